"""Data access layer for verification results"""

from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from sofloan_gateway.domain.models import BankAccount, CategorizedTransaction
from sofloan_gateway.infrastructure.database.models import CategorizedTransactionRecord, IBVSummaryRecord


class CategorizedTransactionRepository:
    """Repository for categorized bank transactions"""

    def __init__(self, db: Session):
        self.db = db

    def has_any(self, application_id: str) -> bool:
        """True when the application's transactions were already categorized"""
        return (
            self.db.query(CategorizedTransactionRecord.id)
            .filter(CategorizedTransactionRecord.application_id == application_id)
            .first()
            is not None
        )

    def bulk_create(
        self,
        application_id: str,
        accounts: Sequence[Tuple[BankAccount, Sequence[CategorizedTransaction]]],
        batch_size: int = 100,
        fallback_date: Optional[date] = None,
    ) -> int:
        """
        Persist categorized transactions for every account, flushing in batches.

        Transactions without a parseable date are stored under fallback_date
        (today by default) with date_estimated set. Returns the number of rows
        written.
        """
        fallback_date = fallback_date or date.today()
        pending: List[CategorizedTransactionRecord] = []
        written = 0

        for account_index, (account, transactions) in enumerate(accounts):
            for transaction in transactions:
                pending.append(
                    CategorizedTransactionRecord(
                        application_id=application_id,
                        account_index=account_index,
                        description=transaction.description,
                        transaction_date=transaction.posted_on or fallback_date,
                        date_estimated=transaction.posted_on is None,
                        credit=transaction.credit or None,
                        debit=transaction.debit or None,
                        balance=transaction.balance,
                        detected_category=transaction.detected_category.value,
                        confidence=transaction.confidence,
                        account_type=account.account_type or None,
                        account_description=account.title or None,
                        account_number=account.number or None,
                        institution=account.bank_name or None,
                        original_category=transaction.category.name if transaction.category else None,
                    )
                )
                if len(pending) >= batch_size:
                    written += self._flush(pending)
                    pending = []

        if pending:
            written += self._flush(pending)
        return written

    def _flush(self, batch: List[CategorizedTransactionRecord]) -> int:
        self.db.add_all(batch)
        self.db.flush()
        return len(batch)

    def list_paginated(
        self,
        application_id: str,
        page: int = 1,
        limit: int = 50,
        account_index: Optional[int] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[CategorizedTransactionRecord], int]:
        """Fetch one page of an application's transactions, newest first, with the total count"""
        query = self.db.query(CategorizedTransactionRecord).filter(
            CategorizedTransactionRecord.application_id == application_id
        )
        if account_index is not None:
            query = query.filter(CategorizedTransactionRecord.account_index == account_index)
        if category:
            query = query.filter(CategorizedTransactionRecord.detected_category == category)
        if search:
            query = query.filter(CategorizedTransactionRecord.description.ilike(f"%{search}%"))

        total = query.count()
        records = (
            query.order_by(
                CategorizedTransactionRecord.transaction_date.desc(),
                CategorizedTransactionRecord.account_index,
            )
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return records, total


class IBVSummaryRepository:
    """Repository for computed IBV summaries"""

    def __init__(self, db: Session):
        self.db = db

    def save(
        self,
        application_id: str,
        request_id: str,
        summary: Dict[str, Any],
        institution_name: Optional[str] = None,
    ) -> IBVSummaryRecord:
        """Persist a JSON-ready summary document"""
        record = IBVSummaryRecord(
            application_id=application_id,
            request_id=request_id,
            institution_name=institution_name or None,
            summary=summary,
        )
        self.db.add(record)
        self.db.flush()
        return record

    def get_latest(self, application_id: str) -> Optional[IBVSummaryRecord]:
        return (
            self.db.query(IBVSummaryRecord)
            .filter(IBVSummaryRecord.application_id == application_id)
            .order_by(IBVSummaryRecord.created_at.desc())
            .first()
        )

"""Per-application bank-verification sync and stored transaction listing"""

import logging
import math
import time
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from sofloan_gateway.api.dependencies import get_request_id, get_zumrails_client
from sofloan_gateway.api.v1.schemas import (
    IBVSummaryResponse,
    PaginationSchema,
    StoredSummaryResponse,
    StoredTransactionSchema,
    SyncResponse,
    TransactionListResponse,
)
from sofloan_gateway.config import settings
from sofloan_gateway.domain.categorization import categorize_transactions
from sofloan_gateway.domain.exceptions import IBVProviderError, InvalidTransactionDataError
from sofloan_gateway.domain.ibv_summary import summarize_account
from sofloan_gateway.domain.models import IBVSummary, TransactionCategory
from sofloan_gateway.infrastructure.clients.zumrails import ZumrailsClient, parse_zumrails_accounts
from sofloan_gateway.infrastructure.database.repositories import (
    CategorizedTransactionRepository,
    IBVSummaryRepository,
)
from sofloan_gateway.infrastructure.database.session import get_db
from sofloan_gateway.infrastructure.observability.logging import log_ibv_summary
from sofloan_gateway.infrastructure.observability.metrics import ibv_fetch_failures_counter, record_categorization

router = APIRouter()


@router.post("/applications/{application_id}/ibv/{request_id}/sync", response_model=SyncResponse)
async def sync_ibv(
    application_id: str,
    request_id: str,
    request: Request,
    db: Session = Depends(get_db),
    zumrails_client: ZumrailsClient = Depends(get_zumrails_client),
):
    """
    Fetch a verification result and store its analysis.

    Flow:
    1. Fetch the aggregation result from Zumrails
    2. Categorize and refine each account's transactions
    3. Persist the IBV summary
    4. Persist categorized transactions, once per application
    """
    start_time = time.perf_counter()
    trace_id = get_request_id(request)
    as_of = date.today()

    try:
        payload = await zumrails_client.get_aggregation(request_id)
        institution_name, accounts = parse_zumrails_accounts(payload)

        pattern_settings = settings.pattern_settings
        categorized_accounts = [(a, categorize_transactions(a.transactions, pattern_settings)) for a in accounts]
        summary = IBVSummary(
            request_guid=request_id,
            accounts=[
                summarize_account(account, as_of, categorized=categorized, pattern_settings=pattern_settings)
                for account, categorized in categorized_accounts
            ],
        )
        summary_response = IBVSummaryResponse.model_validate(summary)
        IBVSummaryRepository(db).save(
            application_id,
            request_id,
            summary_response.model_dump(mode="json"),
            institution_name,
        )

        transaction_repo = CategorizedTransactionRepository(db)
        already_categorized = transaction_repo.has_any(application_id)
        saved = 0
        if already_categorized:
            logging.info(
                "Transactions already categorized, skipping",
                extra={"request_id": trace_id, "application_id": application_id},
            )
        else:
            saved = transaction_repo.bulk_create(
                application_id,
                categorized_accounts,
                batch_size=settings.categorization_batch_size,
            )
            for _, categorized in categorized_accounts:
                record_categorization(categorized)

        db.commit()

    except IBVProviderError as e:
        ibv_fetch_failures_counter.inc()
        db.rollback()
        logging.error(f"Zumrails error: {e}", extra={"request_id": trace_id, "application_id": application_id})
        raise HTTPException(status_code=503, detail="Bank verification provider unavailable")

    except InvalidTransactionDataError as e:
        db.rollback()
        logging.warning(f"Invalid provider data: {e}", extra={"request_id": trace_id})
        raise HTTPException(status_code=422, detail=str(e))

    log_ibv_summary(
        trace_id,
        request_id,
        len(accounts),
        sum(len(a.transactions) for a in accounts),
        sum(a.nsf.all_time for a in summary.accounts),
        (time.perf_counter() - start_time) * 1000,
    )

    return SyncResponse(
        application_id=application_id,
        request_id=request_id,
        institution_name=institution_name,
        transactions_saved=saved,
        already_categorized=already_categorized,
        summary=summary_response,
    )


@router.get("/applications/{application_id}/transactions", response_model=TransactionListResponse)
def list_transactions(
    application_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    account_index: Optional[int] = Query(None, ge=0),
    category: Optional[TransactionCategory] = Query(None),
    search: Optional[str] = Query(None, min_length=1),
    db: Session = Depends(get_db),
):
    """Page through an application's categorized transactions, newest first"""
    records, total = CategorizedTransactionRepository(db).list_paginated(
        application_id,
        page=page,
        limit=limit,
        account_index=account_index,
        category=category.value if category else None,
        search=search,
    )

    return TransactionListResponse(
        transactions=[StoredTransactionSchema.model_validate(r) for r in records],
        pagination=PaginationSchema(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit) if total else 0,
        ),
    )


@router.get("/applications/{application_id}/ibv/summary", response_model=StoredSummaryResponse)
def get_ibv_summary(application_id: str, db: Session = Depends(get_db)):
    """Most recently stored IBV summary for the application"""
    record = IBVSummaryRepository(db).get_latest(application_id)
    if record is None:
        raise HTTPException(status_code=404, detail="No IBV summary stored for this application")

    return StoredSummaryResponse.model_validate(record)

"""Bank-verification analysis endpoints under /v1/ibv"""

import logging
import time

from fastapi import APIRouter, HTTPException, Request

from sofloan_gateway.api.dependencies import get_request_id
from sofloan_gateway.api.v1.schemas import (
    CategorizedTransactionSchema,
    CategorizeRequest,
    CategorizeResponse,
    IBVSummaryRequest,
    IBVSummaryResponse,
)
from sofloan_gateway.config import settings
from sofloan_gateway.domain.categorization import categorize_transactions
from sofloan_gateway.domain.exceptions import InvalidTransactionDataError
from sofloan_gateway.domain.ibv_summary import summarize_accounts
from sofloan_gateway.domain.models import ProviderCategory, Transaction
from sofloan_gateway.infrastructure.clients.zumrails import parse_zumrails_accounts
from sofloan_gateway.infrastructure.observability.logging import log_ibv_summary
from sofloan_gateway.infrastructure.observability.metrics import record_categorization

router = APIRouter()


@router.post("/ibv/categorize", response_model=CategorizeResponse)
def categorize(request_body: CategorizeRequest):
    """Categorize a transaction list, then upgrade recurring salary and loan deposits"""
    transactions = [
        Transaction(
            transaction_id=t.transaction_id,
            date=t.date,
            description=t.description,
            credit=t.credit,
            debit=t.debit,
            balance=t.balance,
            category=ProviderCategory(**t.category.model_dump()) if t.category else None,
        )
        for t in request_body.transactions
    ]

    categorized = categorize_transactions(transactions, settings.pattern_settings)
    record_categorization(categorized)

    return CategorizeResponse(
        transactions=[CategorizedTransactionSchema.model_validate(t, from_attributes=True) for t in categorized]
    )


@router.post("/ibv/summary", response_model=IBVSummaryResponse)
def summary(request_body: IBVSummaryRequest, request: Request):
    """
    Summarize a raw provider payload into per-account income and NSF counts.

    as_of defaults to today; pass it explicitly for reproducible results.
    """
    start_time = time.perf_counter()
    request_id = get_request_id(request)

    try:
        _, accounts = parse_zumrails_accounts(request_body.payload)
    except InvalidTransactionDataError as e:
        logging.warning(f"Invalid provider payload: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    ibv_summary = summarize_accounts(
        request_body.request_guid,
        accounts,
        as_of=request_body.as_of,
        pattern_settings=settings.pattern_settings,
    )

    log_ibv_summary(
        request_id,
        ibv_summary.request_guid,
        len(accounts),
        sum(len(a.transactions) for a in accounts),
        sum(a.nsf.all_time for a in ibv_summary.accounts),
        (time.perf_counter() - start_time) * 1000,
    )
    return IBVSummaryResponse.model_validate(ibv_summary)

"""Loan calculation endpoints under /v1/loans"""

import logging
import time
from typing import Optional

from fastapi import APIRouter, HTTPException, Request

from sofloan_gateway.api.dependencies import get_request_id
from sofloan_gateway.api.v1.schemas import (
    BalanceRequest,
    BalanceResponse,
    FailedPaymentFeesRequest,
    FailedPaymentFeesResponse,
    LoanCalculateRequest,
    LoanCalculateResponse,
    RecalculateRequest,
    RecalculateResponse,
)
from sofloan_gateway.config import settings
from sofloan_gateway.domain.amortization import (
    BALANCE_EPSILON,
    BusinessDayAdjuster,
    calculate_brokerage_fee,
    calculate_failed_payment_fees,
    calculate_loan,
    calculate_modification_balance,
    calculate_new_balance,
    get_number_of_payments,
    recalculate_payment_schedule,
    validate_loan_params,
    validate_payment_amount,
)
from sofloan_gateway.domain.models import FailedPayment, LoanCalculationParams
from sofloan_gateway.infrastructure.observability.logging import log_schedule_computed
from sofloan_gateway.infrastructure.observability.metrics import invalid_loan_input_counter, record_schedule
from sofloan_gateway.utils.date_utils import previous_business_day

router = APIRouter()


def _adjuster(enabled: bool) -> Optional[BusinessDayAdjuster]:
    return previous_business_day if enabled else None


def _reject(endpoint: str, detail: str, request_id: str) -> HTTPException:
    invalid_loan_input_counter.labels(endpoint=endpoint).inc()
    logging.warning(f"Rejected loan input: {detail}", extra={"request_id": request_id, "endpoint": endpoint})
    return HTTPException(status_code=422, detail=detail)


@router.post("/loans/calculate", response_model=LoanCalculateResponse)
def calculate(request_body: LoanCalculateRequest, request: Request):
    """
    Compute the fixed payment amount and the full amortization schedule.

    The number of payments defaults to the standard term for the frequency.
    With charge_brokerage_fee set, the brokerage fee is the configured rate
    applied to the principal and replaces any explicit brokerage_fee.
    Invalid inputs are reported with the validator's message as a 422.
    """
    start_time = time.perf_counter()
    request_id = get_request_id(request)

    number_of_payments = request_body.number_of_payments
    if number_of_payments is None:
        number_of_payments = get_number_of_payments(request_body.payment_frequency)

    brokerage_fee = request_body.brokerage_fee
    if request_body.charge_brokerage_fee:
        brokerage_fee = calculate_brokerage_fee(request_body.principal_amount, rate=settings.brokerage_fee_rate)

    params = LoanCalculationParams(
        principal_amount=request_body.principal_amount,
        interest_rate=request_body.interest_rate,
        payment_frequency=request_body.payment_frequency,
        number_of_payments=number_of_payments,
        brokerage_fee=brokerage_fee,
        origination_fee=request_body.origination_fee,
        other_fees=request_body.other_fees,
    )

    error = validate_loan_params(params)
    if error:
        raise _reject("calculate", error, request_id)

    result = calculate_loan(
        params,
        request_body.first_payment_date,
        business_day_adjuster=_adjuster(request_body.adjust_to_business_days),
    )
    if result is None:
        raise _reject("calculate", "Payment amount could not be computed", request_id)

    record_schedule(result.payment_frequency.value, "fixed")
    log_schedule_computed(
        request_id,
        result.payment_frequency.value,
        result.number_of_payments,
        result.payment_amount,
        (time.perf_counter() - start_time) * 1000,
    )
    return LoanCalculateResponse.model_validate(result)


@router.post("/loans/recalculate", response_model=RecalculateResponse)
def recalculate(request_body: RecalculateRequest, request: Request):
    """Rebuild the schedule from a new balance with the payment held fixed"""
    start_time = time.perf_counter()
    request_id = get_request_id(request)

    result = recalculate_payment_schedule(
        new_remaining_balance=request_body.new_remaining_balance,
        payment_amount=request_body.payment_amount,
        payment_frequency=request_body.payment_frequency,
        interest_rate=request_body.interest_rate,
        first_payment_date=request_body.first_payment_date,
        max_periods=request_body.max_periods or settings.schedule_max_periods,
        business_day_adjuster=_adjuster(request_body.adjust_to_business_days),
    )
    if not result.recalculated_breakdown and request_body.new_remaining_balance > BALANCE_EPSILON:
        raise _reject("recalculate", "Schedule could not be computed from the given inputs", request_id)

    record_schedule(request_body.payment_frequency.value, "until_zero")
    log_schedule_computed(
        request_id,
        request_body.payment_frequency.value,
        len(result.recalculated_breakdown),
        request_body.payment_amount,
        (time.perf_counter() - start_time) * 1000,
    )
    return RecalculateResponse.model_validate(result)


@router.post("/loans/balance", response_model=BalanceResponse)
def balance(request_body: BalanceRequest, request: Request):
    """Apply fees then a payment to the current balance"""
    if request_body.strict:
        error = validate_payment_amount(request_body.payment_amount, request_body.current_balance)
        if error:
            raise _reject("balance", error, get_request_id(request))

    result = calculate_new_balance(
        request_body.current_balance,
        request_body.payment_amount,
        request_body.additional_fees,
    )
    return BalanceResponse.model_validate(result)


@router.post("/loans/failed-payment-fees", response_model=FailedPaymentFeesResponse)
def failed_payment_fees(request_body: FailedPaymentFeesRequest):
    failed_payments = [
        FailedPayment(amount=p.amount, interest=p.interest, payment_date=p.payment_date)
        for p in request_body.failed_payments
    ]
    result = calculate_failed_payment_fees(failed_payments, request_body.origination_fee)

    modification_balance = None
    if request_body.current_balance is not None:
        modification_balance = calculate_modification_balance(
            request_body.current_balance,
            request_body.brokerage_fee,
            result,
        )

    return FailedPaymentFeesResponse(
        total_fees=result.total_fees,
        total_interest=result.total_interest,
        total_amount=result.total_amount,
        failed_payment_count=result.failed_payment_count,
        modification_balance=modification_balance,
    )

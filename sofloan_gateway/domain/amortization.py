"""Loan amortization and payment-schedule engine

All functions are pure. Invalid numeric input yields a sentinel (None or an
empty list), never an exception; callers check the sentinel before use.
"""

import logging
import math
from datetime import date, timedelta
from itertools import islice
from typing import Callable, Iterable, Iterator, List, Optional, Sequence

from sofloan_gateway.domain.models import (
    BalanceCalculationResult,
    FailedPayment,
    FailedPaymentCalculationResult,
    LoanCalculationParams,
    LoanCalculationResult,
    PaymentBreakdown,
    PaymentFrequency,
    RecalculationResult,
)
from sofloan_gateway.utils.currency import format_currency, round_currency
from sofloan_gateway.utils.date_utils import (
    add_months,
    next_twice_monthly_date,
    parse_iso_date,
    twice_monthly_anchor,
)

logger = logging.getLogger(__name__)

BusinessDayAdjuster = Callable[[date], date]

# Safety cap for the until-zero generator: a payment at or below the periodic
# interest never amortizes the balance.
DEFAULT_MAX_PERIODS = 1000

# Remaining balance at or below this is treated as paid off.
BALANCE_EPSILON = 0.01

DEFAULT_BROKERAGE_FEE_RATE = 0.68

# Default term is capped at three months
DEFAULT_NUMBER_OF_PAYMENTS = {
    PaymentFrequency.WEEKLY: 12,
    PaymentFrequency.BI_WEEKLY: 6,
    PaymentFrequency.TWICE_MONTHLY: 6,
    PaymentFrequency.MONTHLY: 3,
}


def _resolve_frequency(value) -> Optional[PaymentFrequency]:
    if isinstance(value, PaymentFrequency):
        return value
    try:
        return PaymentFrequency(value)
    except ValueError:
        return None


def _is_finite(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _is_whole(value) -> bool:
    return _is_finite(value) and float(value).is_integer()


def _periodic_rate(interest_rate: float, frequency: PaymentFrequency) -> float:
    return interest_rate / 100 / frequency.payments_per_year


def _fees(params: LoanCalculationParams) -> Sequence[float]:
    return (params.brokerage_fee or 0.0, params.origination_fee or 0.0, params.other_fees or 0.0)


# ============================================================================
# Totals
# ============================================================================


def calculate_total_fees(params: LoanCalculationParams) -> float:
    return round_currency(sum(_fees(params)))


def calculate_total_loan_amount(params: LoanCalculationParams) -> float:
    """Principal plus all fees; the amount interest is charged on"""
    return round_currency(params.principal_amount + calculate_total_fees(params))


def calculate_total_interest(payment_schedule: Iterable[PaymentBreakdown]) -> float:
    return round_currency(sum(payment.interest for payment in payment_schedule))


def calculate_total_repayment_amount(
    params: LoanCalculationParams,
    payment_schedule: Iterable[PaymentBreakdown],
) -> float:
    return round_currency(calculate_total_loan_amount(params) + calculate_total_interest(payment_schedule))


# ============================================================================
# Payment amount and schedule
# ============================================================================


def calculate_payment_amount(params: LoanCalculationParams) -> Optional[float]:
    """
    Fixed periodic payment for an amortized loan.

    Uses the standard formula P = P0 * r * (1 + r)^n / ((1 + r)^n - 1) over the
    total loan amount (principal + fees). A zero periodic rate falls back to
    simple division.

    Returns:
        Payment rounded to cents, or None when any input is invalid
        (total <= 0, rate < 0, payments <= 0, unknown frequency, non-finite
        values) or the formula degenerates.

    Example:
        $500 at 29% monthly over 3 payments -> 174.79
    """
    frequency = _resolve_frequency(params.payment_frequency)
    values = (params.principal_amount, params.interest_rate, params.number_of_payments, *_fees(params))
    if frequency is None or not all(_is_finite(v) for v in values):
        logger.debug("Payment amount not computable", extra={"reason": "invalid_input"})
        return None

    total_loan_amount = calculate_total_loan_amount(params)
    number_of_payments = params.number_of_payments
    if (
        total_loan_amount <= 0
        or params.interest_rate < 0
        or number_of_payments <= 0
        or not _is_whole(number_of_payments)
    ):
        logger.debug("Payment amount not computable", extra={"reason": "out_of_range"})
        return None

    periodic_rate = _periodic_rate(params.interest_rate, frequency)
    if periodic_rate == 0:
        return round_currency(total_loan_amount / number_of_payments)

    try:
        growth = (1 + periodic_rate) ** number_of_payments
    except OverflowError:
        return None

    denominator = growth - 1
    if denominator == 0 or not math.isfinite(growth):
        return None

    return round_currency(total_loan_amount * periodic_rate * growth / denominator)


def _iter_due_dates(first_payment_date: date, frequency: PaymentFrequency) -> Iterator[date]:
    """Unadjusted due dates, one per period, starting with the first payment"""
    if frequency is PaymentFrequency.TWICE_MONTHLY:
        current = twice_monthly_anchor(first_payment_date)
        while True:
            yield current
            current = next_twice_monthly_date(current)
    elif frequency is PaymentFrequency.MONTHLY:
        months = 0
        while True:
            yield add_months(first_payment_date, months)
            months += frequency.months_between
    else:
        step = timedelta(days=frequency.days_between)
        current = first_payment_date
        while True:
            yield current
            current += step


def generate_due_dates(
    first_payment_date,
    payment_frequency,
    count: int,
    business_day_adjuster: Optional[BusinessDayAdjuster] = None,
) -> List[date]:
    """
    Due dates for a schedule.

    - monthly: first date + N calendar months
    - weekly / bi-weekly: first date + N * 7 / 14 days
    - twice-monthly: 15th and last day of each month, snapping the first
      date forward to whichever comes next in its month

    Each date is passed through business_day_adjuster when one is given
    (typically previous_business_day).
    """
    first = parse_iso_date(first_payment_date)
    frequency = _resolve_frequency(payment_frequency)
    if first is None or frequency is None or count <= 0:
        return []

    dates = islice(_iter_due_dates(first, frequency), count)
    if business_day_adjuster is None:
        return list(dates)
    return [business_day_adjuster(d) for d in dates]


def calculate_payment_breakdown(
    params: LoanCalculationParams,
    first_payment_date,
    business_day_adjuster: Optional[BusinessDayAdjuster] = None,
) -> List[PaymentBreakdown]:
    """
    Expand the fixed payment into a payment-by-payment schedule.

    Interest accrues on the unrounded remaining balance; the final period
    takes whatever principal is left so the schedule ends at exactly zero.
    Returns [] when the payment cannot be computed, rounds to zero cents, or
    the first date is unparseable.
    """
    payment_amount = calculate_payment_amount(params)
    first = parse_iso_date(first_payment_date)
    if not payment_amount or first is None:
        return []

    frequency = _resolve_frequency(params.payment_frequency)
    periodic_rate = _periodic_rate(params.interest_rate, frequency)
    number_of_payments = int(params.number_of_payments)
    due_dates = generate_due_dates(first, frequency, number_of_payments, business_day_adjuster)

    remaining = calculate_total_loan_amount(params)
    breakdown = []

    for i, due_date in enumerate(due_dates):
        is_last = i == number_of_payments - 1
        interest = remaining * periodic_rate

        if is_last:
            principal = remaining
        else:
            principal = max(0.0, payment_amount - interest)

        remaining = max(0.0, remaining - principal)

        breakdown.append(
            PaymentBreakdown(
                payment_number=i + 1,
                due_date=due_date,
                amount=round_currency(principal + interest) if is_last else payment_amount,
                interest=round_currency(interest),
                principal=round_currency(principal),
                remaining_balance=round_currency(remaining),
            )
        )

    return breakdown


def calculate_breakdown_until_zero(
    starting_balance: float,
    payment_amount: float,
    payment_frequency,
    interest_rate: float,
    first_payment_date,
    max_periods: int = DEFAULT_MAX_PERIODS,
    business_day_adjuster: Optional[BusinessDayAdjuster] = None,
) -> List[PaymentBreakdown]:
    """
    Schedule for a fixed payment amount, run until the balance is paid off.

    Used after deferrals, failed payments and modifications where the payment
    stays fixed and the number of periods is derived. The balance is rounded
    to cents at the top of every period so drift cannot compound; the last
    period pays exactly remaining + interest. Stops after max_periods when the
    payment cannot amortize the balance.
    """
    frequency = _resolve_frequency(payment_frequency)
    first = parse_iso_date(first_payment_date)
    if frequency is None or first is None:
        return []
    if not all(_is_finite(v) for v in (starting_balance, payment_amount, interest_rate)):
        return []
    if payment_amount <= 0 or interest_rate < 0 or not _is_whole(max_periods) or max_periods <= 0:
        return []

    periodic_rate = _periodic_rate(interest_rate, frequency)
    remaining = round_currency(starting_balance)
    breakdown = []

    due_dates = _iter_due_dates(first, frequency)
    for payment_number, due_date in zip(range(1, int(max_periods) + 1), due_dates):
        if remaining <= BALANCE_EPSILON:
            break

        remaining = round_currency(remaining)
        interest = remaining * periodic_rate

        if payment_amount >= remaining + interest:
            principal = remaining
            amount = round_currency(remaining + interest)
            remaining = 0.0
        else:
            principal = max(0.0, payment_amount - interest)
            amount = payment_amount
            remaining -= principal

        if business_day_adjuster is not None:
            due_date = business_day_adjuster(due_date)

        breakdown.append(
            PaymentBreakdown(
                payment_number=payment_number,
                due_date=due_date,
                amount=amount,
                interest=round_currency(interest),
                principal=round_currency(principal),
                remaining_balance=round_currency(remaining),
            )
        )

    if remaining > BALANCE_EPSILON and breakdown:
        logger.warning(
            "Schedule hit period cap before reaching zero",
            extra={
                "max_periods": max_periods,
                "remaining_balance": round_currency(remaining),
                "payment_amount": payment_amount,
            },
        )

    return breakdown


def recalculate_payment_schedule(
    new_remaining_balance: float,
    payment_amount: float,
    payment_frequency,
    interest_rate: float,
    first_payment_date,
    max_periods: int = DEFAULT_MAX_PERIODS,
    business_day_adjuster: Optional[BusinessDayAdjuster] = None,
) -> RecalculationResult:
    """
    Rebuild the schedule from a changed outstanding balance.

    The caller computes the new balance (remaining + deferred interest +
    deferral fee, remaining + failed interest + origination fee, ...).
    """
    breakdown = calculate_breakdown_until_zero(
        starting_balance=new_remaining_balance,
        payment_amount=payment_amount,
        payment_frequency=payment_frequency,
        interest_rate=interest_rate,
        first_payment_date=first_payment_date,
        max_periods=max_periods,
        business_day_adjuster=business_day_adjuster,
    )
    if _is_finite(new_remaining_balance):
        new_remaining_balance = round_currency(new_remaining_balance)

    return RecalculationResult(
        new_remaining_balance=new_remaining_balance,
        recalculated_breakdown=breakdown,
    )


def calculate_loan(
    params: LoanCalculationParams,
    first_payment_date,
    business_day_adjuster: Optional[BusinessDayAdjuster] = None,
) -> Optional[LoanCalculationResult]:
    """Main entry point: payment amount, schedule and totals in one result"""
    payment_amount = calculate_payment_amount(params)
    if not payment_amount:
        return None

    payment_schedule = calculate_payment_breakdown(params, first_payment_date, business_day_adjuster)
    if not payment_schedule:
        return None

    return LoanCalculationResult(
        principal_amount=params.principal_amount,
        total_fees=calculate_total_fees(params),
        total_loan_amount=calculate_total_loan_amount(params),
        payment_amount=payment_amount,
        total_repayment_amount=calculate_total_repayment_amount(params, payment_schedule),
        total_interest=calculate_total_interest(payment_schedule),
        payment_schedule=payment_schedule,
        number_of_payments=int(params.number_of_payments),
        payment_frequency=_resolve_frequency(params.payment_frequency),
    )


# ============================================================================
# Balances, failed payments and modifications
# ============================================================================


def calculate_new_balance(
    current_balance: float,
    payment_amount: float,
    additional_fees: float = 0.0,
) -> BalanceCalculationResult:
    """Add fees first, then subtract the payment; never goes below zero"""
    balance_with_fees = current_balance + (additional_fees or 0.0)
    new_balance = round_currency(max(0.0, balance_with_fees - payment_amount))

    return BalanceCalculationResult(
        new_balance=new_balance,
        amount_paid=round_currency(payment_amount),
        is_paid_off=new_balance == 0,
    )


def calculate_balance_from_payments(initial_balance: float, payments: Iterable[float]) -> float:
    return round_currency(max(0.0, initial_balance - sum(payments)))


def calculate_failed_payment_fees(
    failed_payments: Sequence[FailedPayment],
    origination_fee: float,
) -> FailedPaymentCalculationResult:
    """Penalty added to the balance when payments fail: one fee per failure plus the missed interest"""
    total_fees = len(failed_payments) * origination_fee
    total_interest = sum(payment.interest or 0.0 for payment in failed_payments)

    return FailedPaymentCalculationResult(
        total_fees=round_currency(total_fees),
        total_interest=round_currency(total_interest),
        total_amount=round_currency(total_fees + total_interest),
        failed_payment_count=len(failed_payments),
    )


def calculate_modification_balance(
    current_balance: float,
    brokerage_fee: float,
    failed_payment_result: FailedPaymentCalculationResult,
) -> float:
    return round_currency(current_balance + brokerage_fee + failed_payment_result.total_amount)


# ============================================================================
# Validation and helpers
# ============================================================================


def validate_loan_params(params: LoanCalculationParams) -> Optional[str]:
    """Human-readable reason the params are unusable, or None if valid"""
    values = (params.principal_amount, params.interest_rate, params.number_of_payments, *_fees(params))
    if not all(_is_finite(v) for v in values):
        return "Loan amounts must be finite numbers"
    if params.principal_amount <= 0:
        return "Principal amount must be greater than 0"
    if params.interest_rate < 0:
        return "Interest rate cannot be negative"
    if params.number_of_payments <= 0:
        return "Number of payments must be greater than 0"
    if not _is_whole(params.number_of_payments):
        return "Number of payments must be a whole number"
    if _resolve_frequency(params.payment_frequency) is None:
        return "Invalid payment frequency"
    if params.brokerage_fee and params.brokerage_fee < 0:
        return "Brokerage fee cannot be negative"
    if params.origination_fee and params.origination_fee < 0:
        return "Origination fee cannot be negative"
    if params.other_fees and params.other_fees < 0:
        return "Other fees cannot be negative"
    return None


def validate_payment_amount(payment_amount: float, current_balance: float) -> Optional[str]:
    if payment_amount <= 0:
        return "Payment amount must be greater than 0"
    if payment_amount > current_balance:
        return (
            f"Payment amount ({format_currency(payment_amount)}) cannot exceed "
            f"remaining balance ({format_currency(current_balance)})"
        )
    return None


def get_number_of_payments(payment_frequency) -> Optional[int]:
    frequency = _resolve_frequency(payment_frequency)
    return DEFAULT_NUMBER_OF_PAYMENTS.get(frequency)


def calculate_brokerage_fee(loan_amount: float, rate: float = DEFAULT_BROKERAGE_FEE_RATE) -> float:
    """Brokerage fee as a share of the loan amount; 0 for non-positive or non-finite amounts"""
    if not _is_finite(loan_amount) or loan_amount <= 0:
        return 0.0
    return round_currency(loan_amount * rate)

"""Income and NSF aggregation over categorized bank transactions

Everything here is computed relative to an explicit as_of date so results are
reproducible; only summarize_accounts falls back to today.
"""

from collections import Counter
from datetime import date, timedelta
from statistics import mean
from typing import Dict, List, Optional, Sequence

from sofloan_gateway.domain.categorization import (
    INTERVAL_TOLERANCE_DAYS,
    MIN_PATTERN_GROUP_SIZE,
    PatternSettings,
    categorize_transactions,
    detect_recurring_frequency,
)
from sofloan_gateway.domain.models import (
    AccountSummary,
    BankAccount,
    CategorizedTransaction,
    IBVSummary,
    IncomePattern,
    NSFCounts,
    PaymentFrequency,
    TransactionCategory,
)
from sofloan_gateway.utils.currency import format_currency, round_currency
from sofloan_gateway.utils.date_utils import (
    add_months,
    next_twice_monthly_date,
    parse_iso_date,
    twice_monthly_anchor,
)
from sofloan_gateway.utils.frequency import payments_per_month

NSF_CATEGORIES = (TransactionCategory.NSF_FEE, TransactionCategory.OVERDRAFT_FEE)

# Trailing windows (days) for NSF buckets
NSF_WINDOWS = {
    "quarter_3_months": 90,
    "quarter_6_months": 180,
    "quarter_9_months": 270,
    "quarter_12_months": 365,
}

FUTURE_PAYMENT_COUNTS = {
    PaymentFrequency.WEEKLY: 6,
    PaymentFrequency.BI_WEEKLY: 4,
    PaymentFrequency.TWICE_MONTHLY: 4,
    PaymentFrequency.MONTHLY: 3,
}

CATEGORY_LABELS = {
    TransactionCategory.SALARY: "Salary",
    TransactionCategory.EMPLOYMENT_INSURANCE: "Employment Insurance",
    TransactionCategory.GOVERNMENT_BENEFIT: "Government Benefit",
    TransactionCategory.PENSION: "Pension",
    TransactionCategory.LOAN_RECEIPT: "Loan Receipt",
    TransactionCategory.TRANSFER: "Transfer",
    TransactionCategory.OTHER_INCOME: "Other Income",
}


def predict_future_payments(
    last_payment_date: date,
    frequency: PaymentFrequency,
    as_of: date,
    count: Optional[int] = None,
) -> List[date]:
    """
    Project a detected frequency forward from the most recent payment.

    Returns the next `count` dates strictly after as_of. Twice-monthly income
    is projected onto the 15th / last-day anchors; monthly income keeps the
    day of month of the last payment (clamped to short months).
    """
    count = count if count is not None else FUTURE_PAYMENT_COUNTS[frequency]
    predictions: List[date] = []
    if count <= 0:
        return predictions

    if frequency is PaymentFrequency.TWICE_MONTHLY:
        current = twice_monthly_anchor(last_payment_date)
        if current == last_payment_date:
            current = next_twice_monthly_date(current)
        while len(predictions) < count:
            if current > as_of:
                predictions.append(current)
            current = next_twice_monthly_date(current)
        return predictions

    step = 1
    while len(predictions) < count:
        if frequency is PaymentFrequency.MONTHLY:
            candidate = add_months(last_payment_date, step)
        else:
            candidate = last_payment_date + timedelta(days=frequency.days_between * step)
        if candidate > as_of:
            predictions.append(candidate)
        step += 1
    return predictions


def _group_frequency(
    transactions: Sequence[CategorizedTransaction],
    interval_tolerance_days: float,
    min_group_size: int,
) -> Optional[PaymentFrequency]:
    """Frequency found by refinement wins; otherwise try the group's own spacing"""
    pattern_frequencies = Counter(t.pattern_frequency for t in transactions if t.pattern_frequency)
    if pattern_frequencies:
        return pattern_frequencies.most_common(1)[0][0]
    return detect_recurring_frequency(transactions, interval_tolerance_days, min_group_size)


def calculate_income_by_category(
    transactions: Sequence[CategorizedTransaction],
    as_of,
    interval_tolerance_days: float = INTERVAL_TOLERANCE_DAYS,
    min_group_size: int = MIN_PATTERN_GROUP_SIZE,
) -> List[IncomePattern]:
    """
    Group credits by detected category and estimate monthly income for each.

    With a detected frequency: average amount x payments per month, plus
    predicted future dates. Without one: total over the covered span in
    30-day months (at least one month). Credits with unparseable dates still
    count toward totals but not toward spans or predictions.
    """
    as_of = parse_iso_date(as_of)
    by_category: Dict[TransactionCategory, List[CategorizedTransaction]] = {}
    for transaction in transactions:
        if transaction.is_credit:
            by_category.setdefault(transaction.detected_category, []).append(transaction)

    patterns = []
    for category, members in by_category.items():
        total = sum(t.amount for t in members)
        dates = sorted(d for d in (t.posted_on for t in members) if d is not None)
        frequency = _group_frequency(members, interval_tolerance_days, min_group_size)

        future_payments: List[date] = []
        if frequency is not None:
            monthly_income = mean(t.amount for t in members) * payments_per_month(frequency)
            if dates and as_of is not None:
                future_payments = predict_future_payments(dates[-1], frequency, as_of)
        elif dates:
            months = max(1.0, (dates[-1] - dates[0]).days / 30)
            monthly_income = total / months
        else:
            monthly_income = total

        label = CATEGORY_LABELS.get(category, category.value.replace("_", " ").title())
        details = f"{label}: {len(members)} transaction(s), total {format_currency(total)}"
        if frequency is not None:
            details += f", paid {frequency.value}"

        patterns.append(
            IncomePattern(
                category=category,
                frequency=frequency,
                raw_frequency=frequency.value if frequency else None,
                details=details,
                monthly_income=round_currency(monthly_income),
                future_payments=future_payments,
            )
        )

    return patterns


def calculate_nsf_counts(transactions: Sequence[CategorizedTransaction], as_of) -> NSFCounts:
    """
    NSF and overdraft fees in trailing 90/180/270/365-day windows.

    Windows are inclusive of their start day. A fee with an unparseable date
    counts toward all_time only, as does every fee when as_of is unparseable.
    """
    as_of = parse_iso_date(as_of)
    fees = [t for t in transactions if t.detected_category in NSF_CATEGORIES]
    counts = NSFCounts(all_time=len(fees))

    for transaction in fees:
        posted_on = transaction.posted_on
        if posted_on is None or as_of is None:
            continue
        for bucket, days in NSF_WINDOWS.items():
            if posted_on >= as_of - timedelta(days=days):
                setattr(counts, bucket, getattr(counts, bucket) + 1)

    return counts


def summarize_account(
    account: BankAccount,
    as_of,
    categorized: Optional[List[CategorizedTransaction]] = None,
    pattern_settings: Optional[PatternSettings] = None,
) -> AccountSummary:
    """Income patterns, net income and NSF counts for one account"""
    pattern_settings = pattern_settings or PatternSettings()
    if categorized is None:
        categorized = categorize_transactions(account.transactions, pattern_settings)

    total_credits = sum(t.credit or 0.0 for t in account.transactions)
    total_debits = sum(t.debit or 0.0 for t in account.transactions)

    return AccountSummary(
        bank_name=account.bank_name,
        type=account.account_type,
        number=account.number,
        transit=account.transit,
        institution=account.institution,
        routing_code=account.routing_code,
        income=calculate_income_by_category(
            categorized,
            as_of,
            interval_tolerance_days=pattern_settings.interval_tolerance_days,
            min_group_size=pattern_settings.min_group_size,
        ),
        income_net=round_currency(total_credits - total_debits),
        nsf=calculate_nsf_counts(categorized, as_of),
        total_transactions=len(account.transactions),
    )


def summarize_accounts(
    request_guid: str,
    accounts: Sequence[BankAccount],
    as_of=None,
    pattern_settings: Optional[PatternSettings] = None,
) -> IBVSummary:
    """Main entry point: IBV summary for every account in a verification result"""
    as_of = date.today() if as_of is None else as_of
    return IBVSummary(
        request_guid=request_guid,
        accounts=[summarize_account(a, as_of, pattern_settings=pattern_settings) for a in accounts],
    )

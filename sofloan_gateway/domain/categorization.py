"""Bank transaction categorization - rule cascade plus behavioural refinement"""

import logging
import re
from dataclasses import dataclass
from statistics import mean
from typing import Iterable, List, Optional, Pattern, Sequence

from sofloan_gateway.domain.models import (
    CategorizedTransaction,
    PaymentFrequency,
    Transaction,
    TransactionCategory,
)

logger = logging.getLogger(__name__)

# Refinement defaults (empirically tuned; loans are contractually fixed so
# their amounts cluster tighter than pay cheques)
SALARY_AMOUNT_TOLERANCE = 0.15
LOAN_AMOUNT_TOLERANCE = 0.05
INTERVAL_TOLERANCE_DAYS = 3
MIN_PATTERN_GROUP_SIZE = 3

REFINED_SALARY_CONFIDENCE = 0.92
REFINED_LOAN_CONFIDENCE = 0.93
REFINEMENT_CONFIDENCE_CEILING = 0.9


@dataclass(frozen=True)
class PatternSettings:
    """Clustering knobs for the refinement pass"""

    salary_tolerance: float = SALARY_AMOUNT_TOLERANCE
    loan_tolerance: float = LOAN_AMOUNT_TOLERANCE
    interval_tolerance_days: float = INTERVAL_TOLERANCE_DAYS
    min_group_size: int = MIN_PATTERN_GROUP_SIZE


# Average interval (days) -> frequency, half-open [low, high)
FREQUENCY_INTERVAL_WINDOWS = [
    (PaymentFrequency.WEEKLY, 5.0, 9.0),
    (PaymentFrequency.BI_WEEKLY, 12.0, 14.5),
    (PaymentFrequency.TWICE_MONTHLY, 14.5, 17.0),
    (PaymentFrequency.MONTHLY, 26.0, 36.0),
]


def _patterns(*expressions: str) -> List[Pattern]:
    return [re.compile(expression) for expression in expressions]


NSF_PATTERNS = _patterns(
    r"(?<![a-z])nsf",
    r"insufficient funds",
    r"non[- ]?sufficient",
    r"fonds insuffisants",
    r"returned item",
    r"retour.*effet",
)
OVERDRAFT_PATTERNS = _patterns(
    r"overdraft",
    r"overdrawn",
    r"d[ée]couvert",
    r"\bod (fee|charge|interest|handling)",
)
BANK_FEE_PATTERNS = _patterns(
    r"service charge",
    r"\bfees?\b",
    r"\bfrais\b",
    r"bank charge",
    r"plan fee",
    r"\bcharge\b",
)
EMPLOYMENT_INSURANCE_PATTERNS = _patterns(
    r"employment insurance",
    r"assurance[- ]emploi",
    r"\bei\b",
    r"\bae\b.*canada",
)
GOVERNMENT_BENEFIT_PATTERNS = _patterns(
    r"canada child",
    r"child benefit",
    r"\bccb\b",
    r"\bcctb\b",
    r"gst",
    r"hst credit",
    r"canada revenue",
    r"\bcra\b",
    r"old age security",
    r"\boas\b",
    r"guaranteed income",
    r"\bgis\b",
    r"climate action",
    r"carbon rebate",
    r"trillium",
    r"ontario works",
    r"\bodsp\b",
    r"social assistance",
    r"disability",
    r"\bwsib\b",
    r"\bcnesst\b",
    r"allocation canadienne",
    r"prestation",
    r"solidarit",
    r"gouv(ernement)? du (canada|qu[ée]bec)",
    r"(govt|gov|government) (of )?canada",
    r"fed(eral)? payment",
    r"prov(incial)? payment",
)
PENSION_PATTERNS = _patterns(
    r"pension",
    r"retirement",
    r"annuity",
    r"\brrif\b",
    r"\bcpp\b",
    r"\bqpp\b",
    r"rente",
    r"retraite",
)
PENSION_EXCLUSIONS = _patterns(r"contribution", r"deposit to", r"transfer to")
SALARY_PATTERNS = _patterns(
    r"payroll",
    r"salary",
    r"salaire",
    r"\bpaie\b",
    r"direct dep",
    r"d[ée]p[ôo]t direct",
    r"pay ?cheque",
    r"paycheck",
    r"\bwages?\b",
    r"\bpay\b",
)
CORPORATE_SUFFIX_PATTERNS = _patterns(
    r"\binc\b\.?",
    r"\bltd\b\.?",
    r"\blt[ée]e\b",
    r"\bcorp\b\.?",
    r"corporation",
    r"\bllc\b",
    r"limited",
)
LOAN_PAYMENT_PATTERNS = _patterns(
    r"\bloan\b",
    r"mortgage",
    r"hypoth[èe]que",
    r"\bpr[êe]t\b",
    r"credit card (payment|pmt)",
    r"(visa|mastercard|amex) (payment|pmt)",
    r"line of credit",
    r"\bloc (payment|pmt)",
    r"financing",
    r"instal+ment",
    r"payday",
    r"easyfinancial",
    r"fairstone",
)
LOAN_RECEIPT_PATTERNS = _patterns(
    r"disbursement",
    r"loan (deposit|advance|proceeds|credit|funding)",
    r"\badvance\b",
    r"payday loan",
    r"easyfinancial",
    r"fairstone",
)
TRANSFER_PATTERNS = _patterns(
    r"transfer",
    r"e-?transfer",
    r"interac",
    r"\bwire\b",
    r"virement",
    r"\bxfer\b",
    r"\btfr\b",
)
RENT_PATTERNS = _patterns(
    r"\brent\b",
    r"rental",
    r"landlord",
    r"property management",
    r"loyer",
    r"apartment",
)
UTILITY_PATTERNS = _patterns(
    r"hydro",
    r"electric",
    r"enbridge",
    r"\bgas\b",
    r"\bwater\b",
    r"\bbell\b",
    r"rogers",
    r"telus",
    r"\bfido\b",
    r"videotron",
    r"\bshaw\b",
    r"koodo",
    r"virgin (mobile|plus)",
    r"freedom mobile",
    r"internet",
    r"utilit",
    r"fortis",
    r"energy",
)
INSURANCE_PATTERNS = _patterns(
    r"insurance",
    r"\bassurance",
    r"\bintact\b",
    r"manulife",
    r"sun life",
    r"belair",
    r"aviva",
    r"premium",
)
SUBSCRIPTION_PATTERNS = _patterns(
    r"netflix",
    r"spotify",
    r"disney",
    r"prime video",
    r"amazon prime",
    r"apple\.com",
    r"itunes",
    r"google (play|one)",
    r"youtube",
    r"\bcrave\b",
    r"subscription",
    r"abonnement",
    r"membership",
    r"patreon",
    r"xbox",
    r"playstation",
    r"adobe",
    r"microsoft 365",
    r"dropbox",
)


def _matches(text: str, patterns: Iterable[Pattern]) -> bool:
    return any(pattern.search(text) for pattern in patterns)


def _provider_text(transaction: Transaction) -> str:
    if transaction.category is None:
        return ""
    return f"{transaction.category.name} {transaction.category.insights_type}".lower()


def _categorized(
    transaction: Transaction,
    category: TransactionCategory,
    confidence: float,
) -> CategorizedTransaction:
    return CategorizedTransaction(
        transaction_id=transaction.transaction_id,
        date=transaction.date,
        description=transaction.description,
        credit=transaction.credit,
        debit=transaction.debit,
        balance=transaction.balance,
        category=transaction.category,
        detected_category=category,
        confidence=confidence,
    )


def _is_round_amount(amount: float, step: float = 50.0, tolerance: float = 10.0) -> bool:
    return abs(amount - round(amount / step) * step) <= tolerance


def categorize_transaction(transaction: Transaction) -> CategorizedTransaction:
    """
    Assign a semantic category using a priority-ordered rule cascade.

    Rules run top to bottom against the lower-cased description and the first
    match wins:
    - fees (NSF 0.98, overdraft 0.98, bank fee under $100 0.95)
    - government income (EI 0.97, benefits 0.95, pension 0.88)
    - salary (payroll keywords >= $500 0.92, corporate payer >= $1000 0.75)
    - loans (payment 0.93, receipt 0.90), transfers 0.85
    - recurring expenses (rent 0.90, utilities 0.88, insurance 0.87,
      subscriptions 0.82)
    - amount-only fallbacks (large credit 0.55 / medium credit 0.45 as salary,
      round-ish debit as loan payment 0.50)
    - other_income / other_expense 0.30, unknown 0.10
    """
    description = (transaction.description or "").lower()
    provider = _provider_text(transaction)
    is_credit = transaction.is_credit
    is_debit = transaction.is_debit
    amount = transaction.amount

    def result(category: TransactionCategory, confidence: float) -> CategorizedTransaction:
        return _categorized(transaction, category, confidence)

    # 1-3. Fees
    if is_debit and (_matches(description, NSF_PATTERNS) or _matches(provider, NSF_PATTERNS)):
        return result(TransactionCategory.NSF_FEE, 0.98)
    if is_debit and (_matches(description, OVERDRAFT_PATTERNS) or _matches(provider, OVERDRAFT_PATTERNS)):
        return result(TransactionCategory.OVERDRAFT_FEE, 0.98)
    if is_debit and amount < 100 and _matches(description, BANK_FEE_PATTERNS):
        return result(TransactionCategory.BANK_FEE, 0.95)

    # 4-6. Government and retirement income
    if is_credit and _matches(description, EMPLOYMENT_INSURANCE_PATTERNS):
        return result(TransactionCategory.EMPLOYMENT_INSURANCE, 0.97)
    if is_credit and _matches(description, GOVERNMENT_BENEFIT_PATTERNS):
        return result(TransactionCategory.GOVERNMENT_BENEFIT, 0.95)
    if (
        is_credit
        and _matches(description, PENSION_PATTERNS)
        and not _matches(description, PENSION_EXCLUSIONS)
    ):
        return result(TransactionCategory.PENSION, 0.88)

    # 7-8. Employment income
    if is_credit and amount >= 500 and _matches(description, SALARY_PATTERNS):
        return result(TransactionCategory.SALARY, 0.92)
    if is_credit and amount >= 1000 and _matches(description, CORPORATE_SUFFIX_PATTERNS):
        return result(TransactionCategory.SALARY, 0.75)

    # 9-11. Credit products and money movement
    if is_debit and _matches(description, LOAN_PAYMENT_PATTERNS):
        return result(TransactionCategory.LOAN_PAYMENT, 0.93)
    if is_credit and _matches(description, LOAN_RECEIPT_PATTERNS):
        return result(TransactionCategory.LOAN_RECEIPT, 0.90)
    if (is_credit or is_debit) and _matches(description, TRANSFER_PATTERNS):
        return result(TransactionCategory.TRANSFER, 0.85)

    # 12-15. Recurring expenses
    if is_debit and amount >= 500 and _matches(description, RENT_PATTERNS):
        return result(TransactionCategory.RENT, 0.90)
    if is_debit and 20 <= amount <= 500 and _matches(description, UTILITY_PATTERNS):
        return result(TransactionCategory.UTILITIES, 0.88)
    if is_debit and amount >= 30 and _matches(description, INSURANCE_PATTERNS):
        return result(TransactionCategory.INSURANCE, 0.87)
    if is_debit and 5 <= amount <= 150 and _matches(description, SUBSCRIPTION_PATTERNS):
        return result(TransactionCategory.SUBSCRIPTION, 0.82)

    # 16. Amount-only heuristics
    if is_credit and amount >= 1500:
        return result(TransactionCategory.SALARY, 0.55)
    if is_credit and 800 <= amount < 1500:
        return result(TransactionCategory.SALARY, 0.45)
    if is_debit and 100 <= amount <= 2000 and _is_round_amount(amount):
        return result(TransactionCategory.LOAN_PAYMENT, 0.50)

    # 17. Defaults
    if is_credit:
        return result(TransactionCategory.OTHER_INCOME, 0.30)
    if is_debit:
        return result(TransactionCategory.OTHER_EXPENSE, 0.30)
    return result(TransactionCategory.UNKNOWN, 0.10)


def detect_frequency_from_interval(average_interval_days: float) -> Optional[PaymentFrequency]:
    """Map an average gap between payments to a frequency (weekly ~7, bi-weekly ~14, twice-monthly ~15, monthly ~30)"""
    for frequency, low, high in FREQUENCY_INTERVAL_WINDOWS:
        if low <= average_interval_days < high:
            return frequency
    return None


def detect_recurring_frequency(
    transactions: Sequence[Transaction],
    interval_tolerance_days: float = INTERVAL_TOLERANCE_DAYS,
    min_group_size: int = MIN_PATTERN_GROUP_SIZE,
) -> Optional[PaymentFrequency]:
    """
    Frequency of a group of payments when their spacing is regular.

    Transactions with unparseable dates are ignored. Needs min_group_size
    dated members, every interval within interval_tolerance_days of the
    average, and an average that maps to a known frequency.
    """
    dates = sorted(d for d in (t.posted_on for t in transactions) if d is not None)
    if len(dates) < max(min_group_size, 2):
        return None

    intervals = [(later - earlier).days for earlier, later in zip(dates, dates[1:])]
    average = mean(intervals)
    if average <= 0:
        return None
    if any(abs(interval - average) > interval_tolerance_days for interval in intervals):
        return None

    return detect_frequency_from_interval(average)


def _group_by_amount(
    candidates: List[CategorizedTransaction],
    tolerance: float,
) -> List[List[CategorizedTransaction]]:
    """Pairwise clustering: each unassigned seed (smallest first) pulls in everything within tolerance of it"""
    ordered = sorted(candidates, key=lambda t: t.amount)
    assigned = set()
    groups = []

    for i, seed in enumerate(ordered):
        if i in assigned or seed.amount <= 0:
            continue
        group = [seed]
        assigned.add(i)
        for j in range(i + 1, len(ordered)):
            if j in assigned:
                continue
            if abs(ordered[j].amount - seed.amount) / seed.amount <= tolerance:
                group.append(ordered[j])
                assigned.add(j)
        groups.append(group)

    return groups


def _upgrade_groups(
    candidates: List[CategorizedTransaction],
    amount_tolerance: float,
    category: TransactionCategory,
    confidence: float,
    interval_tolerance_days: float,
    min_group_size: int,
) -> int:
    upgraded = 0
    for group in _group_by_amount(candidates, amount_tolerance):
        if len(group) < min_group_size:
            continue
        frequency = detect_recurring_frequency(group, interval_tolerance_days, min_group_size)
        if frequency is None:
            continue
        for transaction in group:
            transaction.detected_category = category
            transaction.confidence = max(transaction.confidence, confidence)
            transaction.pattern_frequency = frequency
            upgraded += 1
    return upgraded


def refine_categories_by_pattern(
    transactions: List[CategorizedTransaction],
    salary_tolerance: float = SALARY_AMOUNT_TOLERANCE,
    loan_tolerance: float = LOAN_AMOUNT_TOLERANCE,
    interval_tolerance_days: float = INTERVAL_TOLERANCE_DAYS,
    min_group_size: int = MIN_PATTERN_GROUP_SIZE,
) -> List[CategorizedTransaction]:
    """
    Second pass over one account's categorized transactions.

    Low-confidence salary and loan-payment guesses (including credits and
    debits that fell through to other_income / other_expense) are clustered
    by amount. A cluster of at least min_group_size members with regular
    spacing is upgraded in place to salary (0.92) or loan_payment (0.93).

    Returns the same list.
    """
    salary_candidates = [
        t for t in transactions
        if t.is_credit
        and (
            (t.detected_category is TransactionCategory.SALARY and t.confidence < REFINEMENT_CONFIDENCE_CEILING)
            or t.detected_category is TransactionCategory.OTHER_INCOME
        )
    ]
    loan_candidates = [
        t for t in transactions
        if t.is_debit
        and (
            (t.detected_category is TransactionCategory.LOAN_PAYMENT and t.confidence < REFINEMENT_CONFIDENCE_CEILING)
            or t.detected_category is TransactionCategory.OTHER_EXPENSE
        )
    ]

    salary_upgrades = _upgrade_groups(
        salary_candidates,
        salary_tolerance,
        TransactionCategory.SALARY,
        REFINED_SALARY_CONFIDENCE,
        interval_tolerance_days,
        min_group_size,
    )
    loan_upgrades = _upgrade_groups(
        loan_candidates,
        loan_tolerance,
        TransactionCategory.LOAN_PAYMENT,
        REFINED_LOAN_CONFIDENCE,
        interval_tolerance_days,
        min_group_size,
    )

    if salary_upgrades or loan_upgrades:
        logger.debug(
            "Refined categories from recurring patterns",
            extra={"salary_upgrades": salary_upgrades, "loan_upgrades": loan_upgrades},
        )

    return transactions


def categorize_transactions(
    transactions: Iterable[Transaction],
    pattern_settings: Optional[PatternSettings] = None,
) -> List[CategorizedTransaction]:
    """Categorize each transaction, then refine the whole set"""
    pattern_settings = pattern_settings or PatternSettings()
    categorized = [categorize_transaction(t) for t in transactions]
    return refine_categories_by_pattern(
        categorized,
        salary_tolerance=pattern_settings.salary_tolerance,
        loan_tolerance=pattern_settings.loan_tolerance,
        interval_tolerance_days=pattern_settings.interval_tolerance_days,
        min_group_size=pattern_settings.min_group_size,
    )

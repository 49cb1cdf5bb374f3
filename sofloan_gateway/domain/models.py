"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional

from sofloan_gateway.utils.date_utils import parse_iso_date


class PaymentFrequency(str, Enum):
    """Contractual repayment frequency"""

    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    TWICE_MONTHLY = "twice-monthly"
    MONTHLY = "monthly"

    @property
    def payments_per_year(self) -> int:
        return FREQUENCY_CONFIG[self]["payments_per_year"]

    @property
    def days_between(self) -> int:
        return FREQUENCY_CONFIG[self]["days_between"]

    @property
    def months_between(self) -> int:
        return FREQUENCY_CONFIG[self]["months_between"]


FREQUENCY_CONFIG = {
    PaymentFrequency.WEEKLY: {"payments_per_year": 52, "days_between": 7, "months_between": 0},
    PaymentFrequency.BI_WEEKLY: {"payments_per_year": 26, "days_between": 14, "months_between": 0},
    PaymentFrequency.TWICE_MONTHLY: {"payments_per_year": 24, "days_between": 15, "months_between": 0},
    PaymentFrequency.MONTHLY: {"payments_per_year": 12, "days_between": 0, "months_between": 1},
}


# ---------------------------------------------------------------------------
# Amortization
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoanCalculationParams:
    """Inputs for a single loan's payment calculation"""

    principal_amount: float
    interest_rate: float  # annual percentage, 29 means 29%
    payment_frequency: PaymentFrequency
    number_of_payments: int
    brokerage_fee: float = 0.0
    origination_fee: float = 0.0
    other_fees: float = 0.0


@dataclass
class PaymentBreakdown:
    """Single scheduled payment with its interest/principal split"""

    payment_number: int
    due_date: date
    amount: float
    interest: float
    principal: float
    remaining_balance: float


@dataclass
class LoanCalculationResult:
    """Complete loan calculation including the payment schedule"""

    principal_amount: float
    total_fees: float
    total_loan_amount: float
    payment_amount: float
    total_repayment_amount: float
    total_interest: float
    payment_schedule: List[PaymentBreakdown]
    number_of_payments: int
    payment_frequency: PaymentFrequency


@dataclass
class BalanceCalculationResult:
    """Point-in-time balance transition after a payment or fee adjustment"""

    new_balance: float
    amount_paid: float
    is_paid_off: bool


@dataclass
class FailedPayment:
    """Scheduled payment that bounced"""

    amount: float
    interest: float = 0.0
    payment_date: Optional[date] = None


@dataclass
class FailedPaymentCalculationResult:
    total_fees: float
    total_interest: float
    total_amount: float
    failed_payment_count: int


@dataclass
class RecalculationResult:
    """Fresh schedule computed from a changed outstanding balance"""

    new_remaining_balance: float
    recalculated_breakdown: List[PaymentBreakdown]


# ---------------------------------------------------------------------------
# Bank transactions
# ---------------------------------------------------------------------------


class TransactionCategory(str, Enum):
    """Semantic category assigned by the categorizer"""

    SALARY = "salary"
    EMPLOYMENT_INSURANCE = "employment_insurance"
    GOVERNMENT_BENEFIT = "government_benefit"
    PENSION = "pension"
    LOAN_RECEIPT = "loan_receipt"
    OTHER_INCOME = "other_income"
    NSF_FEE = "nsf_fee"
    OVERDRAFT_FEE = "overdraft_fee"
    BANK_FEE = "bank_fee"
    LOAN_PAYMENT = "loan_payment"
    TRANSFER = "transfer"
    RENT = "rent"
    UTILITIES = "utilities"
    INSURANCE = "insurance"
    SUBSCRIPTION = "subscription"
    OTHER_EXPENSE = "other_expense"
    UNKNOWN = "unknown"


@dataclass
class ProviderCategory:
    """Category attached by the bank-verification provider"""

    id: str = ""
    name: str = ""
    insights_type: str = ""


@dataclass
class Transaction:
    """
    Bank transaction as delivered by the verification provider.

    Amounts arrive as two optional fields; exactly one of credit/debit is
    expected to be non-zero. The date is kept as the raw provider string so a
    malformed value can be skipped by date-based aggregates.
    """

    transaction_id: str
    date: str
    description: str
    credit: Optional[float] = None
    debit: Optional[float] = None
    balance: float = 0.0
    category: Optional[ProviderCategory] = None

    @property
    def posted_on(self) -> Optional[date]:
        return parse_iso_date(self.date)

    @property
    def is_credit(self) -> bool:
        return self.credit is not None and self.credit > 0

    @property
    def is_debit(self) -> bool:
        return not self.is_credit and self.debit is not None and self.debit > 0

    @property
    def amount(self) -> float:
        """Positive magnitude of whichever side is populated"""
        if self.is_credit:
            return self.credit
        if self.is_debit:
            return self.debit
        return 0.0


@dataclass
class CategorizedTransaction(Transaction):
    """Transaction with the categorizer's verdict; refinement may upgrade it in place"""

    detected_category: TransactionCategory = TransactionCategory.UNKNOWN
    confidence: float = 0.0
    pattern_frequency: Optional[PaymentFrequency] = None


# ---------------------------------------------------------------------------
# IBV summary
# ---------------------------------------------------------------------------


@dataclass
class IncomePattern:
    """Recurring (or aggregate) income source inferred from credits"""

    category: TransactionCategory
    frequency: Optional[PaymentFrequency]
    raw_frequency: Optional[str]
    details: str
    monthly_income: float
    future_payments: List[date] = field(default_factory=list)


@dataclass
class NSFCounts:
    all_time: int = 0
    quarter_3_months: int = 0
    quarter_6_months: int = 0
    quarter_9_months: int = 0
    quarter_12_months: int = 0


@dataclass
class BankAccount:
    """Bank account with its raw transaction feed"""

    bank_name: str
    account_type: str
    number: str = ""
    transit: str = ""
    institution: str = ""
    title: str = ""
    transactions: List[Transaction] = field(default_factory=list)

    @property
    def routing_code(self) -> str:
        return f"{self.institution}-{self.transit}"


@dataclass
class AccountSummary:
    bank_name: str
    type: str
    number: str
    transit: str
    institution: str
    routing_code: str
    income: List[IncomePattern]
    income_net: float
    nsf: NSFCounts
    total_transactions: int


@dataclass
class IBVSummary:
    """Per-account income and NSF picture consumed by underwriting"""

    request_guid: str
    accounts: List[AccountSummary] = field(default_factory=list)

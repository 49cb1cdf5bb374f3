"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from sofloan_gateway.domain.models import PaymentFrequency, TransactionCategory


# ---------------------------------------------------------------------------
# Loans
# ---------------------------------------------------------------------------


class PaymentBreakdownSchema(BaseModel):
    """Single scheduled payment"""

    model_config = ConfigDict(from_attributes=True)

    payment_number: int
    due_date: date
    amount: float
    interest: float
    principal: float
    remaining_balance: float


class LoanCalculateRequest(BaseModel):
    """Request body for POST /v1/loans/calculate"""

    principal_amount: float = Field(..., description="Amount lent, before fees")
    interest_rate: float = Field(..., description="Annual rate in percent, 29 means 29%")
    payment_frequency: PaymentFrequency
    number_of_payments: Optional[int] = Field(None, description="Defaults to the frequency's standard term")
    first_payment_date: date
    brokerage_fee: float = 0.0
    charge_brokerage_fee: bool = Field(False, description="Derive the brokerage fee from the configured rate")
    origination_fee: float = 0.0
    other_fees: float = 0.0
    adjust_to_business_days: bool = Field(False, description="Move due dates on weekends/holidays back")


class LoanCalculateResponse(BaseModel):
    """Response for POST /v1/loans/calculate"""

    model_config = ConfigDict(from_attributes=True)

    principal_amount: float
    total_fees: float
    total_loan_amount: float
    payment_amount: float
    total_repayment_amount: float
    total_interest: float
    number_of_payments: int
    payment_frequency: PaymentFrequency
    payment_schedule: List[PaymentBreakdownSchema]


class RecalculateRequest(BaseModel):
    """Request body for POST /v1/loans/recalculate"""

    new_remaining_balance: float
    payment_amount: float
    payment_frequency: PaymentFrequency
    interest_rate: float
    first_payment_date: date
    max_periods: Optional[int] = Field(None, gt=0)
    adjust_to_business_days: bool = False


class RecalculateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    new_remaining_balance: float
    recalculated_breakdown: List[PaymentBreakdownSchema]


class BalanceRequest(BaseModel):
    """Request body for POST /v1/loans/balance"""

    current_balance: float
    payment_amount: float
    additional_fees: float = 0.0
    strict: bool = Field(False, description="Reject payments that are non-positive or exceed the balance")


class BalanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    new_balance: float
    amount_paid: float
    is_paid_off: bool


class FailedPaymentSchema(BaseModel):
    amount: float
    interest: float = 0.0
    payment_date: Optional[date] = None


class FailedPaymentFeesRequest(BaseModel):
    """Request body for POST /v1/loans/failed-payment-fees"""

    failed_payments: List[FailedPaymentSchema]
    origination_fee: float = Field(..., ge=0)
    current_balance: Optional[float] = None
    brokerage_fee: float = 0.0


class FailedPaymentFeesResponse(BaseModel):
    total_fees: float
    total_interest: float
    total_amount: float
    failed_payment_count: int
    modification_balance: Optional[float] = None


# ---------------------------------------------------------------------------
# Bank verification
# ---------------------------------------------------------------------------


class ProviderCategorySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = ""
    name: str = ""
    insights_type: str = ""


class TransactionSchema(BaseModel):
    """Provider transaction; exactly one of credit/debit is normally set"""

    model_config = ConfigDict(from_attributes=True)

    transaction_id: str
    date: str
    description: str = "No description"
    credit: Optional[float] = None
    debit: Optional[float] = None
    balance: float = 0.0
    category: Optional[ProviderCategorySchema] = None


class CategorizeRequest(BaseModel):
    """Request body for POST /v1/ibv/categorize"""

    transactions: List[TransactionSchema]


class CategorizedTransactionSchema(TransactionSchema):
    detected_category: TransactionCategory
    confidence: float
    pattern_frequency: Optional[PaymentFrequency] = None


class CategorizeResponse(BaseModel):
    transactions: List[CategorizedTransactionSchema]


class IBVSummaryRequest(BaseModel):
    """Request body for POST /v1/ibv/summary: raw provider payload"""

    request_guid: str
    payload: Dict[str, Any]
    as_of: Optional[date] = None


class IncomePatternSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    category: TransactionCategory
    frequency: Optional[PaymentFrequency]
    raw_frequency: Optional[str]
    details: str
    monthly_income: float
    future_payments: List[date]


class NSFCountsSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    all_time: int
    quarter_3_months: int
    quarter_6_months: int
    quarter_9_months: int
    quarter_12_months: int


class AccountSummarySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    bank_name: str
    type: str
    number: str
    transit: str
    institution: str
    routing_code: str
    income: List[IncomePatternSchema]
    income_net: float
    nsf: NSFCountsSchema
    total_transactions: int


class IBVSummaryResponse(BaseModel):
    """Per-account income and NSF summary"""

    model_config = ConfigDict(from_attributes=True)

    request_guid: str
    accounts: List[AccountSummarySchema]


class SyncResponse(BaseModel):
    """Response for POST /v1/applications/{application_id}/ibv/{request_id}/sync"""

    application_id: str
    request_id: str
    institution_name: str
    transactions_saved: int
    already_categorized: bool
    summary: IBVSummaryResponse


class StoredSummaryResponse(BaseModel):
    """Response for GET /v1/applications/{application_id}/ibv/summary"""

    model_config = ConfigDict(from_attributes=True)

    request_id: str
    institution_name: Optional[str] = None
    created_at: datetime
    summary: IBVSummaryResponse


# ---------------------------------------------------------------------------
# Stored transactions
# ---------------------------------------------------------------------------


class StoredTransactionSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    account_index: int
    description: str
    transaction_date: date
    date_estimated: bool = False
    credit: Optional[float] = None
    debit: Optional[float] = None
    balance: Optional[float] = None
    detected_category: TransactionCategory
    confidence: float
    account_type: Optional[str] = None
    account_description: Optional[str] = None
    account_number: Optional[str] = None
    institution: Optional[str] = None
    original_category: Optional[str] = None


class PaginationSchema(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class TransactionListResponse(BaseModel):
    """Response for GET /v1/applications/{application_id}/transactions"""

    transactions: List[StoredTransactionSchema]
    pagination: PaginationSchema

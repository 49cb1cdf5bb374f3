"""Unit tests for transaction categorization and recurring-pattern refinement"""

import pytest

from sofloan_gateway.domain.categorization import (
    PatternSettings,
    categorize_transaction,
    categorize_transactions,
    detect_frequency_from_interval,
    detect_recurring_frequency,
    refine_categories_by_pattern,
)
from sofloan_gateway.domain.models import PaymentFrequency, ProviderCategory, TransactionCategory
from tests.conftest import make_transaction


@pytest.mark.parametrize(
    "description,credit,debit,category,confidence",
    [
        ("NSF FEE", None, 48.0, TransactionCategory.NSF_FEE, 0.98),
        ("Insufficient Funds Charge", None, 45.0, TransactionCategory.NSF_FEE, 0.98),
        ("OVERDRAFT INTEREST", None, 3.2, TransactionCategory.OVERDRAFT_FEE, 0.98),
        ("MONTHLY PLAN FEE", None, 16.95, TransactionCategory.BANK_FEE, 0.95),
        ("EI CANADA", 980.0, None, TransactionCategory.EMPLOYMENT_INSURANCE, 0.97),
        ("CANADA CHILD BENEFIT", 620.0, None, TransactionCategory.GOVERNMENT_BENEFIT, 0.95),
        ("CPP PENSION", 850.0, None, TransactionCategory.PENSION, 0.88),
        ("PAYROLL DEP ACME", 1800.0, None, TransactionCategory.SALARY, 0.92),
        ("GLOBEX CORP", 2100.0, None, TransactionCategory.SALARY, 0.75),
        ("EASYFINANCIAL PMT", None, 210.0, TransactionCategory.LOAN_PAYMENT, 0.93),
        ("LOAN ADVANCE", 500.0, None, TransactionCategory.LOAN_RECEIPT, 0.90),
        ("INTERAC E-TRANSFER", 60.0, None, TransactionCategory.TRANSFER, 0.85),
        ("RENT APT 4", None, 1250.0, TransactionCategory.RENT, 0.90),
        ("HYDRO ONE", None, 95.0, TransactionCategory.UTILITIES, 0.88),
        ("INTACT INSURANCE", None, 140.0, TransactionCategory.INSURANCE, 0.87),
        ("NETFLIX.COM", None, 16.99, TransactionCategory.SUBSCRIPTION, 0.82),
        ("DEPOSIT", 1600.0, None, TransactionCategory.SALARY, 0.55),
        ("DEPOSIT", 900.0, None, TransactionCategory.SALARY, 0.45),
        ("PREAUTHORIZED DEBIT", None, 300.0, TransactionCategory.LOAN_PAYMENT, 0.50),
        ("DEPOSIT", 40.0, None, TransactionCategory.OTHER_INCOME, 0.30),
        ("GROCERY STORE", None, 87.13, TransactionCategory.OTHER_EXPENSE, 0.30),
    ],
)
def test_categorize_transaction_cascade(description, credit, debit, category, confidence):
    result = categorize_transaction(make_transaction("t", "2024-05-01", description, credit=credit, debit=debit))

    assert result.detected_category is category
    assert result.confidence == confidence


def test_transfer_is_not_mistaken_for_nsf():
    result = categorize_transaction(make_transaction("t", "2024-05-01", "TRANSFER TO SAVINGS", debit=20.0))
    assert result.detected_category is TransactionCategory.TRANSFER


def test_nsf_detected_from_provider_category():
    transaction = make_transaction("t", "2024-05-01", "No description", debit=45.0)
    transaction.category = ProviderCategory(id="c1", name="NSF", insights_type="Fees")

    assert categorize_transaction(transaction).detected_category is TransactionCategory.NSF_FEE


def test_zero_amount_is_unknown():
    result = categorize_transaction(make_transaction("t", "2024-05-01", "ADJUSTMENT", credit=0.0, debit=0.0))

    assert result.detected_category is TransactionCategory.UNKNOWN
    assert result.confidence == 0.10


def test_categorize_preserves_provider_fields():
    transaction = make_transaction("abc", "2024-05-01", "NETFLIX.COM", debit=16.99)
    result = categorize_transaction(transaction)

    assert result.transaction_id == "abc"
    assert result.date == "2024-05-01"
    assert result.debit == 16.99
    assert result.pattern_frequency is None


@pytest.mark.parametrize(
    "interval,expected",
    [
        (7, PaymentFrequency.WEEKLY),
        (14, PaymentFrequency.BI_WEEKLY),
        (15.2, PaymentFrequency.TWICE_MONTHLY),
        (30.4, PaymentFrequency.MONTHLY),
        (3, None),
        (45, None),
    ],
)
def test_detect_frequency_from_interval(interval, expected):
    assert detect_frequency_from_interval(interval) is expected


def test_detect_recurring_frequency_requires_regular_spacing():
    regular = [make_transaction(str(i), d, "X", credit=100.0) for i, d in enumerate(["2024-01-05", "2024-02-05", "2024-03-06"])]
    irregular = [make_transaction(str(i), d, "X", credit=100.0) for i, d in enumerate(["2024-01-05", "2024-01-12", "2024-03-06"])]

    assert detect_recurring_frequency(regular) is PaymentFrequency.MONTHLY
    assert detect_recurring_frequency(irregular) is None
    assert detect_recurring_frequency(regular[:2]) is None


def test_refinement_upgrades_recurring_deposits_to_salary(biweekly_salary):
    categorized = categorize_transactions(biweekly_salary)

    assert all(t.detected_category is TransactionCategory.SALARY for t in categorized)
    assert all(t.confidence >= 0.92 for t in categorized)
    assert all(t.pattern_frequency is PaymentFrequency.BI_WEEKLY for t in categorized)


def test_refinement_ignores_groups_smaller_than_minimum(biweekly_salary):
    categorized = categorize_transactions(biweekly_salary[:2])

    assert all(t.detected_category is TransactionCategory.OTHER_INCOME for t in categorized)


def test_refinement_minimum_group_size_is_configurable(biweekly_salary):
    categorized = categorize_transactions(biweekly_salary[:2], PatternSettings(min_group_size=2))

    assert all(t.detected_category is TransactionCategory.SALARY for t in categorized)


def test_refinement_upgrades_recurring_debits_to_loan_payment():
    debits = [
        make_transaction("d1", "2024-03-01", "PAD 88231", debit=212.40),
        make_transaction("d2", "2024-03-31", "PAD 88231", debit=212.40),
        make_transaction("d3", "2024-04-30", "PAD 88231", debit=214.10),
    ]
    categorized = categorize_transactions(debits)

    assert all(t.detected_category is TransactionCategory.LOAN_PAYMENT for t in categorized)
    assert all(t.confidence == 0.93 for t in categorized)
    assert all(t.pattern_frequency is PaymentFrequency.MONTHLY for t in categorized)


def test_refinement_keeps_high_confidence_categories():
    credits = [
        make_transaction("e1", "2024-03-01", "EI CANADA", credit=600.0),
        make_transaction("e2", "2024-03-15", "EI CANADA", credit=600.0),
        make_transaction("e3", "2024-03-29", "EI CANADA", credit=600.0),
    ]
    categorized = categorize_transactions(credits)

    assert all(t.detected_category is TransactionCategory.EMPLOYMENT_INSURANCE for t in categorized)


def test_refinement_mutates_and_returns_same_list(biweekly_salary):
    categorized = [categorize_transaction(t) for t in biweekly_salary]
    refined = refine_categories_by_pattern(categorized)

    assert refined is categorized


def test_refinement_skips_unparseable_dates():
    credits = [
        make_transaction("a", "2024-05-03", "DEPOSIT ABC", credit=610.0),
        make_transaction("b", "garbage", "DEPOSIT ABC", credit=620.0),
        make_transaction("c", "2024-05-31", "DEPOSIT ABC", credit=640.0),
    ]
    categorized = categorize_transactions(credits)

    assert all(t.detected_category is TransactionCategory.OTHER_INCOME for t in categorized)


def test_categorize_empty_list():
    assert categorize_transactions([]) == []

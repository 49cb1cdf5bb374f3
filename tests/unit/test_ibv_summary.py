"""Unit tests for income and NSF aggregation"""

from datetime import date

import pytest

from sofloan_gateway.domain.categorization import categorize_transactions
from sofloan_gateway.domain.ibv_summary import (
    calculate_income_by_category,
    calculate_nsf_counts,
    predict_future_payments,
    summarize_accounts,
)
from sofloan_gateway.domain.models import BankAccount, PaymentFrequency, TransactionCategory
from tests.conftest import AS_OF, make_transaction


def test_predict_bi_weekly_payments_after_as_of():
    predictions = predict_future_payments(date(2024, 5, 31), PaymentFrequency.BI_WEEKLY, AS_OF)

    assert predictions == [date(2024, 7, 12), date(2024, 7, 26), date(2024, 8, 9), date(2024, 8, 23)]


def test_predict_monthly_payments_clamp_to_month_end():
    predictions = predict_future_payments(date(2024, 1, 31), PaymentFrequency.MONTHLY, date(2024, 1, 31))

    assert predictions == [date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30)]


def test_predict_twice_monthly_payments_use_anchors():
    predictions = predict_future_payments(date(2024, 6, 14), PaymentFrequency.TWICE_MONTHLY, date(2024, 6, 14))

    assert predictions == [date(2024, 6, 15), date(2024, 6, 30), date(2024, 7, 15), date(2024, 7, 31)]


def test_predict_weekly_default_count():
    assert len(predict_future_payments(date(2024, 6, 28), PaymentFrequency.WEEKLY, AS_OF)) == 6


def test_income_from_recurring_deposits(biweekly_salary):
    categorized = categorize_transactions(biweekly_salary)
    [pattern] = calculate_income_by_category(categorized, AS_OF)

    assert pattern.category is TransactionCategory.SALARY
    assert pattern.frequency is PaymentFrequency.BI_WEEKLY
    assert pattern.raw_frequency == "bi-weekly"
    # mean 623.33 x 26 / 12
    assert pattern.monthly_income == pytest.approx(1350.56, abs=0.01)
    assert pattern.future_payments[0] == date(2024, 7, 12)
    assert pattern.details == "Salary: 3 transaction(s), total $1,870.00, paid bi-weekly"


def test_income_without_frequency_spreads_over_span():
    categorized = categorize_transactions(
        [
            make_transaction("a", "2024-03-01", "DEPOSIT", credit=100.0),
            make_transaction("b", "2024-04-20", "DEPOSIT", credit=200.0),
            make_transaction("c", "2024-05-30", "DEPOSIT", credit=300.0),
        ]
    )
    [pattern] = calculate_income_by_category(categorized, AS_OF)

    assert pattern.category is TransactionCategory.OTHER_INCOME
    assert pattern.frequency is None
    assert pattern.future_payments == []
    # 600 over 90 days = 3 months
    assert pattern.monthly_income == 200.0


def test_single_deposit_counts_as_one_month():
    categorized = categorize_transactions([make_transaction("a", "2024-06-01", "DEPOSIT", credit=450.0)])
    [pattern] = calculate_income_by_category(categorized, AS_OF)

    assert pattern.monthly_income == 450.0


def test_income_ignores_debits():
    categorized = categorize_transactions([make_transaction("a", "2024-06-01", "GROCERY STORE", debit=87.0)])

    assert calculate_income_by_category(categorized, AS_OF) == []


def test_nsf_buckets_are_nested():
    categorized = categorize_transactions(
        [
            make_transaction("n1", "2024-06-20", "NSF FEE", debit=48.0),
            make_transaction("n2", "2024-03-01", "NSF FEE", debit=48.0),
            make_transaction("n3", "2023-11-15", "OVERDRAFT HANDLING", debit=5.0),
            make_transaction("n4", "2023-08-01", "NSF FEE", debit=48.0),
            make_transaction("n5", "2022-01-01", "NSF FEE", debit=48.0),
            make_transaction("n6", "not a date", "NSF FEE", debit=48.0),
            make_transaction("x", "2024-06-20", "GROCERY STORE", debit=48.0),
        ]
    )
    counts = calculate_nsf_counts(categorized, AS_OF)

    assert counts.all_time == 6
    assert counts.quarter_3_months == 1
    assert counts.quarter_6_months == 2
    assert counts.quarter_9_months == 3
    assert counts.quarter_12_months == 4
    assert (
        counts.quarter_3_months
        <= counts.quarter_6_months
        <= counts.quarter_9_months
        <= counts.quarter_12_months
        <= counts.all_time
    )


def test_nsf_window_includes_boundary_day():
    categorized = categorize_transactions([make_transaction("n", "2024-04-01", "NSF FEE", debit=48.0)])

    assert calculate_nsf_counts(categorized, AS_OF).quarter_3_months == 1


def test_summarize_accounts(biweekly_salary):
    account = BankAccount(
        bank_name="RBC",
        account_type="Chequing",
        number="1234567",
        transit="00011",
        institution="003",
        transactions=biweekly_salary + [make_transaction("r", "2024-06-01", "RENT", debit=1100.0)],
    )
    summary = summarize_accounts("guid-1", [account], as_of="2024-06-30")

    assert summary.request_guid == "guid-1"
    [result] = summary.accounts
    assert result.routing_code == "003-00011"
    assert result.type == "Chequing"
    assert result.total_transactions == 4
    assert result.income_net == 770.0
    assert result.nsf.all_time == 0
    assert [p.category for p in result.income] == [TransactionCategory.SALARY]


def test_summarize_no_accounts():
    assert summarize_accounts("guid-2", [], as_of=AS_OF).accounts == []


def test_unparseable_as_of_skips_windows_and_predictions(biweekly_salary):
    categorized = categorize_transactions(biweekly_salary + [make_transaction("n", "2024-06-20", "NSF FEE", debit=48.0)])

    counts = calculate_nsf_counts(categorized, "someday")
    [pattern] = calculate_income_by_category(categorized, "someday")

    assert counts.all_time == 1
    assert counts.quarter_12_months == 0
    assert pattern.frequency is PaymentFrequency.BI_WEEKLY
    assert pattern.future_payments == []

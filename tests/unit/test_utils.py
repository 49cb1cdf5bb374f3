"""Unit tests for date, currency and frequency helpers"""

from datetime import date, datetime

import pytest

from sofloan_gateway.domain.models import PaymentFrequency
from sofloan_gateway.utils.currency import format_currency, round_currency
from sofloan_gateway.utils.date_utils import (
    add_months,
    canadian_holidays,
    easter_sunday,
    generate_date_range,
    is_business_day,
    next_twice_monthly_date,
    parse_iso_date,
    previous_business_day,
    twice_monthly_anchor,
)
from sofloan_gateway.utils.frequency import assert_frequency, normalize_frequency, payments_per_month


class TestDates:
    def test_parse_iso_date_variants(self):
        assert parse_iso_date("2024-01-15") == date(2024, 1, 15)
        assert parse_iso_date("2024-01-15T08:30:00Z") == date(2024, 1, 15)
        assert parse_iso_date(datetime(2024, 1, 15, 23, 59)) == date(2024, 1, 15)
        assert parse_iso_date("") is None
        assert parse_iso_date("15/01/2024") is None
        assert parse_iso_date(None) is None

    def test_generate_date_range_inclusive(self):
        assert generate_date_range(date(2024, 2, 28), date(2024, 3, 1)) == [
            date(2024, 2, 28),
            date(2024, 2, 29),
            date(2024, 3, 1),
        ]

    def test_add_months_clamps(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)
        assert add_months(date(2024, 11, 30), 3) == date(2025, 2, 28)

    def test_twice_monthly_anchor(self):
        assert twice_monthly_anchor(date(2024, 2, 3)) == date(2024, 2, 15)
        assert twice_monthly_anchor(date(2024, 2, 15)) == date(2024, 2, 15)
        assert twice_monthly_anchor(date(2024, 2, 16)) == date(2024, 2, 29)
        assert twice_monthly_anchor(date(2024, 2, 29)) == date(2024, 2, 29)

    def test_next_twice_monthly_date(self):
        assert next_twice_monthly_date(date(2024, 2, 15)) == date(2024, 2, 29)
        assert next_twice_monthly_date(date(2024, 2, 29)) == date(2024, 3, 15)
        assert next_twice_monthly_date(date(2024, 12, 31)) == date(2025, 1, 15)

    def test_easter(self):
        assert easter_sunday(2024) == date(2024, 3, 31)
        assert easter_sunday(2025) == date(2025, 4, 20)

    def test_canadian_holidays_2024(self):
        holidays = {h.name: h.date for h in canadian_holidays(2024)}

        assert holidays["Good Friday"] == date(2024, 3, 29)
        assert holidays["Victoria Day"] == date(2024, 5, 20)
        assert holidays["Labour Day"] == date(2024, 9, 2)
        assert holidays["Thanksgiving"] == date(2024, 10, 14)

    def test_business_days(self):
        assert is_business_day(date(2024, 6, 14))
        assert not is_business_day(date(2024, 6, 15))
        assert not is_business_day(date(2024, 7, 1))
        assert is_business_day(date(2024, 7, 1), holidays=[])

    def test_previous_business_day(self):
        assert previous_business_day(date(2024, 6, 15)) == date(2024, 6, 14)
        assert previous_business_day(date(2024, 4, 1)) == date(2024, 3, 28)
        assert previous_business_day(date(2024, 6, 14)) == date(2024, 6, 14)


class TestCurrency:
    @pytest.mark.parametrize(
        "amount,expected",
        [(123.455, 123.46), (0.125, 0.13), (2.675, 2.68), (-1.005, -1.01), (10.0, 10.0)],
    )
    def test_round_currency_half_up(self, amount, expected):
        assert round_currency(amount) == expected

    def test_format_currency(self):
        assert format_currency(1234.5) == "$1,234.50"
        assert format_currency(-12) == "-$12.00"
        assert format_currency(1, currency="EUR") == "1.00 EUR"


class TestFrequency:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("weekly", PaymentFrequency.WEEKLY),
            ("Biweekly", PaymentFrequency.BI_WEEKLY),
            ("every two weeks", PaymentFrequency.BI_WEEKLY),
            ("semi_monthly", PaymentFrequency.TWICE_MONTHLY),
            ("2x per month", PaymentFrequency.TWICE_MONTHLY),
            ("mensuel", PaymentFrequency.MONTHLY),
            ("monthly: 15th", PaymentFrequency.MONTHLY),
            (["", "bi-weekly"], PaymentFrequency.BI_WEEKLY),
            ({"raw_frequency": "weekly"}, PaymentFrequency.WEEKLY),
            (PaymentFrequency.MONTHLY, PaymentFrequency.MONTHLY),
            ("quarterly", None),
            (None, None),
        ],
    )
    def test_normalize_frequency(self, value, expected):
        assert normalize_frequency(value) is expected

    def test_assert_frequency_falls_back(self):
        assert assert_frequency("whenever") is PaymentFrequency.MONTHLY
        assert assert_frequency("whenever", PaymentFrequency.WEEKLY) is PaymentFrequency.WEEKLY

    def test_payments_per_month(self):
        assert payments_per_month(PaymentFrequency.WEEKLY) == pytest.approx(4.333, abs=0.001)
        assert payments_per_month(PaymentFrequency.BI_WEEKLY) == pytest.approx(2.1667, abs=0.001)
        assert payments_per_month(PaymentFrequency.TWICE_MONTHLY) == 2.0
        assert payments_per_month(PaymentFrequency.MONTHLY) == 1.0

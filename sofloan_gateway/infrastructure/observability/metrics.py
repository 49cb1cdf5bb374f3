"""Prometheus metrics for schedule computation, categorization and provider calls"""

from typing import Iterable

from prometheus_client import Counter, Histogram

from sofloan_gateway.domain.models import CategorizedTransaction

# Amortization metrics
schedule_counter = Counter(
    "sofloan_schedules_computed_total",
    "Payment schedules computed",
    ["frequency", "kind"],  # kind: fixed | until_zero
)

invalid_loan_input_counter = Counter(
    "sofloan_invalid_loan_inputs_total",
    "Loan calculations rejected for invalid input",
    ["endpoint"],
)

# Categorization metrics
transactions_categorized_counter = Counter(
    "sofloan_transactions_categorized_total",
    "Transactions categorized by detected category",
    ["category"],
)

pattern_upgrade_counter = Counter(
    "sofloan_pattern_upgrades_total",
    "Transactions upgraded by recurring-pattern refinement",
    ["category"],
)

# Provider metrics
ibv_fetch_failures_counter = Counter(
    "ibv_fetch_failures_total",
    "Failed bank-verification provider calls",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_schedule(frequency: str, kind: str = "fixed") -> None:
    schedule_counter.labels(frequency=frequency, kind=kind).inc()


def record_categorization(transactions: Iterable[CategorizedTransaction]) -> None:
    """Count categories; transactions carrying a pattern frequency came from refinement"""
    for transaction in transactions:
        category = transaction.detected_category.value
        transactions_categorized_counter.labels(category=category).inc()
        if transaction.pattern_frequency is not None:
            pattern_upgrade_counter.labels(category=category).inc()

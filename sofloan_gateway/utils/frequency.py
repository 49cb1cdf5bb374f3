"""Free-text payment frequency normalization"""

import re
from typing import Dict, List, Optional

from sofloan_gateway.domain.models import PaymentFrequency

FREQUENCY_ALIASES: Dict[PaymentFrequency, List[str]] = {
    PaymentFrequency.WEEKLY: [
        "weekly", "week", "once-a-week", "one-week", "1w",
        "hebdomadaire", "every-week", "per-week",
    ],
    PaymentFrequency.BI_WEEKLY: [
        "bi-weekly", "biweekly", "every-two-weeks", "two-weeks",
        "fortnightly", "14-days", "every-14-days", "2w",
    ],
    PaymentFrequency.TWICE_MONTHLY: [
        "twice-monthly", "twice-per-month", "two-times-per-month",
        "2-times-per-month", "2x-per-month", "2x-month", "semi-monthly",
        "semimonthly", "semi-month", "twice-month", "bimensuel",
    ],
    PaymentFrequency.MONTHLY: ["monthly", "month", "once-a-month", "1m", "mensuel", "per-month"],
}

PAYMENTS_PER_MONTH: Dict[PaymentFrequency, float] = {
    PaymentFrequency.WEEKLY: 52 / 12,
    PaymentFrequency.BI_WEEKLY: 26 / 12,
    PaymentFrequency.TWICE_MONTHLY: 2.0,
    PaymentFrequency.MONTHLY: 1.0,
}

_SEGMENT_DELIMITERS = re.compile(r"[:|;,/]+")


def _canonicalize(value: str) -> str:
    text = re.sub(r"[_\s]+", "-", value.strip().lower())
    return re.sub(r"-+", "-", text)


def _match_text(value: str) -> Optional[PaymentFrequency]:
    normalized = _canonicalize(value)
    if not normalized:
        return None

    for frequency in PaymentFrequency:
        if frequency.value == normalized:
            return frequency

    # Try whole value first, then delimited segments ("monthly: 15th", "bi-weekly|fri")
    segments = [normalized]
    segments += [s.strip("-") for s in _SEGMENT_DELIMITERS.split(normalized)]
    segments = [s for s in segments if s]

    for frequency, aliases in FREQUENCY_ALIASES.items():
        canonical_aliases = {_canonicalize(alias) for alias in aliases}
        if any(segment in canonical_aliases for segment in segments):
            return frequency

    # Last resort: the first word ("monthly-on-the-1st")
    head = normalized.split("-")[0]
    for frequency, aliases in FREQUENCY_ALIASES.items():
        if head in {_canonicalize(alias) for alias in aliases}:
            return frequency
    return None


def normalize_frequency(value) -> Optional[PaymentFrequency]:
    """
    Map loosely-typed frequency input onto PaymentFrequency.

    Accepts enum members, strings with aliases ("Biweekly", "semi_monthly",
    "mensuel"), lists (first match wins) and dicts carrying a "frequency",
    "raw_frequency" or "value" key. Returns None when nothing matches.
    """
    if value is None:
        return None
    if isinstance(value, PaymentFrequency):
        return value
    if isinstance(value, str):
        return _match_text(value)
    if isinstance(value, (list, tuple)):
        for entry in value:
            matched = normalize_frequency(entry)
            if matched:
                return matched
        return None
    if isinstance(value, dict):
        for key in ("frequency", "raw_frequency", "value"):
            if value.get(key) is not None:
                return normalize_frequency(value[key])
        return None
    return _match_text(str(value))


def assert_frequency(value, fallback: PaymentFrequency = PaymentFrequency.MONTHLY) -> PaymentFrequency:
    return normalize_frequency(value) or fallback


def payments_per_month(frequency: PaymentFrequency) -> float:
    return PAYMENTS_PER_MONTH.get(frequency, 1.0)

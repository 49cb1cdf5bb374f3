"""Date manipulation utilities: month math, twice-monthly anchors, business days"""

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional


@dataclass(frozen=True)
class Holiday:
    """Statutory holiday or common observance"""

    date: date
    name: str


def parse_iso_date(value) -> Optional[date]:
    """
    Parse a provider or request date into a calendar date.

    Accepts date/datetime objects, "YYYY-MM-DD" and ISO datetime strings
    ("2024-01-15T00:00:00Z"). Anything else returns None so callers can skip
    the record instead of failing the whole computation.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if len(text) < 10:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def generate_date_range(start: date, end: date) -> List[date]:
    """Generate list of dates from start to end (inclusive)"""
    days = (end - start).days + 1
    return [start + timedelta(days=i) for i in range(days)]


def last_day_of_month(d: date) -> date:
    return d.replace(day=calendar.monthrange(d.year, d.month)[1])


def add_months(d: date, months: int) -> date:
    """Add calendar months, clamping to the last day of the target month (Jan 31 + 1 -> Feb 28/29)"""
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def twice_monthly_anchor(d: date) -> date:
    """
    Snap a date forward to the next twice-monthly anchor in the same month.

    Anchors are the 15th and the last calendar day:
    - before the 15th -> the 15th
    - after the 15th (not the last day) -> the last day
    - on the 15th or the last day -> unchanged
    """
    month_end = last_day_of_month(d)
    if d.day == 15 or d == month_end:
        return d
    if d.day < 15:
        return d.replace(day=15)
    return month_end


def next_twice_monthly_date(d: date) -> date:
    """Next anchor strictly after d: 15th -> last day, last day -> 15th of the following month"""
    if d.day < 15:
        return d.replace(day=15)
    month_end = last_day_of_month(d)
    if d < month_end:
        return month_end
    return add_months(d.replace(day=15), 1)


def easter_sunday(year: int) -> date:
    """Anonymous Gregorian computus"""
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month, day = divmod(h + l - 7 * m + 114, 31)
    return date(year, month, day + 1)


def _nth_weekday_on_or_after(start: date, weekday: int) -> date:
    return start + timedelta(days=(weekday - start.weekday()) % 7)


def canadian_holidays(year: int) -> List[Holiday]:
    """
    Canadian statutory holidays and common observances for a year.

    Victoria Day is the last Monday on or before May 24; Labour Day the first
    Monday of September; Thanksgiving the second Monday of October.
    """
    easter = easter_sunday(year)
    victoria_day = date(year, 5, 24) - timedelta(days=date(year, 5, 24).weekday())

    return [
        Holiday(date(year, 1, 1), "New Year's Day"),
        Holiday(easter - timedelta(days=2), "Good Friday"),
        Holiday(easter + timedelta(days=1), "Easter Monday"),
        Holiday(victoria_day, "Victoria Day"),
        Holiday(date(year, 7, 1), "Canada Day"),
        Holiday(_nth_weekday_on_or_after(date(year, 9, 1), 0), "Labour Day"),
        Holiday(_nth_weekday_on_or_after(date(year, 10, 8), 0), "Thanksgiving"),
        Holiday(date(year, 11, 11), "Remembrance Day"),
        Holiday(date(year, 12, 25), "Christmas"),
        Holiday(date(year, 12, 26), "Boxing Day"),
    ]


def is_business_day(d: date, holidays: Optional[Iterable[date]] = None) -> bool:
    """Weekday that is not a holiday (Canadian holidays for d's year by default)"""
    if d.weekday() >= 5:
        return False
    if holidays is None:
        holidays = [h.date for h in canadian_holidays(d.year)]
    return d not in set(holidays)


def previous_business_day(d: date, holidays: Optional[Iterable[date]] = None) -> date:
    """Return d if it is a business day, otherwise the nearest preceding one"""
    holiday_set = set(holidays) if holidays is not None else None
    while not is_business_day(d, holiday_set):
        d -= timedelta(days=1)
    return d

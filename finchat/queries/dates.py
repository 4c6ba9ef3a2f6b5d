"""
Natural-Language Date Ranges

Turns phrases like "last 7 days", "2 weeks ago" or "in March" into an
inclusive DateRange. Weeks run Monday to Sunday.

All computations start from `now` truncated to midnight, so for a given
`now` the result is always the same.
"""

import calendar
import re
from datetime import date, datetime, time, timedelta
from typing import Callable, Iterable, Optional, TypeVar

from finchat.models.context import DateRange


MONTH_NAMES = [
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
]

T = TypeVar("T")


def _start_of(day: date) -> datetime:
    return datetime.combine(day, time.min)


def _end_of(day: date) -> datetime:
    return datetime.combine(day, time.max)


def _month_range(year: int, month: int, label: str) -> DateRange:
    last_day = calendar.monthrange(year, month)[1]
    return DateRange(
        start=_start_of(date(year, month, 1)),
        end=_end_of(date(year, month, last_day)),
        label=label,
    )


def _week_range(monday: date, label: str) -> DateRange:
    return DateRange(
        start=_start_of(monday),
        end=_end_of(monday + timedelta(days=6)),
        label=label,
    )


def shift_month(year: int, month: int, back: int) -> tuple[int, int]:
    """Go `back` months back from (year, month)."""
    index = year * 12 + (month - 1) - back
    return index // 12, index % 12 + 1


def parse_date_range(text: str, now: Optional[datetime] = None) -> Optional[DateRange]:
    """
    Extract a date range from a question, or None.

    Phrases are tried in a fixed order and the first one found wins:
    today, yesterday, last/past N days, last/this week, last/this month,
    N weeks ago, N months ago, this/last quarter, this/last year, month name.
    """
    lower = text.lower()
    today = (now or datetime.now()).date()
    year, month = today.year, today.month
    monday = today - timedelta(days=today.weekday())

    if re.search(r"\btoday\b", lower):
        return DateRange(start=_start_of(today), end=_end_of(today), label="Today")

    if re.search(r"\byesterday\b", lower):
        yesterday = today - timedelta(days=1)
        return DateRange(start=_start_of(yesterday), end=_end_of(yesterday), label="Yesterday")

    match = re.search(r"\b(?:last|past)\s+(\d+)\s+days?\b", lower)
    if match:
        days = int(match.group(1))
        if 0 < days <= 365:
            return DateRange(
                start=_start_of(today - timedelta(days=days)),
                end=_end_of(today),
                label=f"Last {days} Days",
            )

    if re.search(r"\b(?:last|previous) week\b", lower):
        return _week_range(monday - timedelta(days=7), "Last Week")

    if re.search(r"\b(?:this|current) week\b", lower):
        return _week_range(monday, "This Week")

    if re.search(r"\b(?:last|previous) month\b", lower):
        return _month_range(*shift_month(year, month, 1), label="Last Month")

    if re.search(r"\b(?:this|current) month\b", lower):
        return _month_range(year, month, "This Month")

    match = re.search(r"\b(\d+)\s+weeks?\s+ago\b", lower)
    if match:
        weeks = int(match.group(1))
        if 0 < weeks <= 52:
            plural = "s" if weeks > 1 else ""
            return _week_range(monday - timedelta(weeks=weeks), f"{weeks} Week{plural} Ago")

    match = re.search(r"\b(\d+)\s+months?\s+ago\b", lower)
    if match:
        months = int(match.group(1))
        if 0 < months <= 12:
            plural = "s" if months > 1 else ""
            return _month_range(
                *shift_month(year, month, months),
                label=f"{months} Month{plural} Ago",
            )

    quarter_start = (month - 1) // 3 * 3 + 1
    if re.search(r"\b(?:this|current) quarter\b", lower):
        return _quarter_range(year, quarter_start, "This Quarter")

    if re.search(r"\b(?:last|previous) quarter\b", lower):
        q_year, q_month = shift_month(year, quarter_start, 3)
        return _quarter_range(q_year, q_month, "Last Quarter")

    if re.search(r"\b(?:this|current) year\b", lower):
        return DateRange(
            start=_start_of(date(year, 1, 1)),
            end=_end_of(date(year, 12, 31)),
            label="This Year",
        )

    if re.search(r"\b(?:last|previous) year\b", lower):
        return DateRange(
            start=_start_of(date(year - 1, 1, 1)),
            end=_end_of(date(year - 1, 12, 31)),
            label="Last Year",
        )

    for index, name in enumerate(MONTH_NAMES, start=1):
        # "may" is also a verb; only a preposition makes it a month
        pattern = r"\b(?:in|of|during|for|since)\s+may\b" if name == "may" else rf"\b{name}\b"
        if re.search(pattern, lower):
            prior_year = "last year" in lower or (
                index > month and "this year" not in lower
            )
            return _month_range(year - 1 if prior_year else year, index, name.capitalize())

    return None


def _quarter_range(year: int, first_month: int, label: str) -> DateRange:
    last_month = first_month + 2
    return DateRange(
        start=_start_of(date(year, first_month, 1)),
        end=_end_of(date(year, last_month, calendar.monthrange(year, last_month)[1])),
        label=label,
    )


def filter_by_date_range(
    items: Iterable[T],
    date_range: DateRange,
    key: Callable[[T], datetime] = lambda item: item.date,
) -> list[T]:
    """Keep the items whose date falls inside the range (both ends inclusive)."""
    return [item for item in items if date_range.contains(key(item))]


def describe_range(date_range: DateRange) -> str:
    """Phrase used inside answers: 'today', 'yesterday' or 'in last 7 days'."""
    if date_range.label in ("Today", "Yesterday"):
        return date_range.label.lower()
    return f"in {date_range.label.lower()}"

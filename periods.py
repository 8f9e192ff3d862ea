"""Budget period arithmetic.

A period is either a calendar month or a user-configured day-of-month window
(``start_day`` .. ``end_day``) that may run into the following month. Every
function here is pure: "today" is always passed in by the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)
MONTH_ABBR = tuple(name[:3] for name in MONTH_NAMES)


@dataclass(frozen=True)
class PeriodConfig:
    custom_period_enabled: bool = False
    start_day: int = 1
    end_day: int = 31

    def __post_init__(self) -> None:
        for name in ("start_day", "end_day"):
            value = getattr(self, name)
            if not 1 <= value <= 31:
                raise ValueError(f"{name} must be between 1 and 31, got {value}")

    @property
    def spans_months(self) -> bool:
        return self.custom_period_enabled and self.start_day > self.end_day


DEFAULT_PERIOD_CONFIG = PeriodConfig()


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError("Start date must not be after end date")

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


@dataclass(frozen=True)
class PeriodDescriptor:
    range: DateRange
    label: str

    @property
    def start(self) -> date:
        return self.range.start

    @property
    def end(self) -> date:
        return self.range.end


def days_in_month(year: int, month: int) -> int:
    if month == 12:
        next_month = date(year + 1, 1, 1)
    else:
        next_month = date(year, month + 1, 1)
    return (next_month - date(year, month, 1)).days


def _shift_month(year: int, month: int, count: int) -> tuple[int, int]:
    month_index = (year * 12) + (month - 1) + count
    return month_index // 12, (month_index % 12) + 1


def _clamped(year: int, month: int, day: int) -> date:
    return date(year, month, min(day, days_in_month(year, month)))


def month_range(day: date) -> DateRange:
    last = days_in_month(day.year, day.month)
    return DateRange(day.replace(day=1), day.replace(day=last))


def period_for_anchor(year: int, month: int, config: PeriodConfig) -> DateRange:
    """Return the window whose start falls in the given anchor month."""
    if not config.custom_period_enabled:
        return month_range(date(year, month, 1))

    start = _clamped(year, month, config.start_day)
    end_year, end_month = (
        _shift_month(year, month, 1) if config.spans_months else (year, month)
    )
    end = _clamped(end_year, end_month, config.end_day)

    # Clamping can push the next window's start onto this window's end
    # (e.g. start_day=30 in February); windows must not overlap.
    next_year, next_month = _shift_month(year, month, 1)
    next_start = _clamped(next_year, next_month, config.start_day)
    end = min(end, next_start - timedelta(days=1))
    return DateRange(start, end)


def resolve_current_period(today: date, config: PeriodConfig) -> DateRange:
    if not config.custom_period_enabled:
        return month_range(today)

    this_window = period_for_anchor(today.year, today.month, config)
    if today >= this_window.start:
        return this_window

    prev_window = period_for_anchor(
        *_shift_month(today.year, today.month, -1), config
    )
    if not config.spans_months:
        # This month's window hasn't opened yet, so last month's is the open one.
        return prev_window
    if today <= prev_window.end:
        return prev_window
    # Between windows: the upcoming one counts as current.
    return this_window


def shift_period(period: DateRange, config: PeriodConfig, months: int) -> DateRange:
    year, month = _shift_month(period.start.year, period.start.month, months)
    return period_for_anchor(year, month, config)


def previous_period(today: date, config: PeriodConfig) -> DateRange:
    return shift_period(resolve_current_period(today, config), config, -1)


def is_date_in_period(day: date, period: DateRange) -> bool:
    return period.contains(day)


def ordinal(day: int) -> str:
    if 11 <= day % 100 <= 13:
        return f"{day}th"
    suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{day}{suffix}"


def month_label(day: date) -> str:
    return f"{MONTH_NAMES[day.month - 1]} {day.year}"


def describe_period(period: DateRange) -> str:
    start, end = period.start, period.end
    start_month = MONTH_ABBR[start.month - 1]
    end_month = MONTH_ABBR[end.month - 1]
    if start.year != end.year:
        return (
            f"{ordinal(start.day)} {start_month} {start.year} – "
            f"{ordinal(end.day)} {end_month} {end.year}"
        )
    if start.month != end.month:
        return (
            f"{ordinal(start.day)} {start_month} – "
            f"{ordinal(end.day)} {end_month} {end.year}"
        )
    if start.day == end.day:
        return f"{ordinal(start.day)} {start_month} {start.year}"
    return f"{ordinal(start.day)} – {ordinal(end.day)} {end_month} {end.year}"


def enumerate_periods(
    earliest: Optional[date], today: date, config: PeriodConfig
) -> list[PeriodDescriptor]:
    """List every period from the one holding ``earliest`` up to the current one.

    Most recent first. An empty list means there is no history; callers fall
    back to the current period on their own.
    """
    if earliest is None:
        return []
    earliest = min(earliest, today)

    periods: list[PeriodDescriptor] = []
    if not config.custom_period_enabled:
        year, month = earliest.year, earliest.month
        while (year, month) <= (today.year, today.month):
            first = date(year, month, 1)
            periods.append(PeriodDescriptor(month_range(first), month_label(first)))
            year, month = _shift_month(year, month, 1)
        periods.reverse()
        return periods

    current = resolve_current_period(today, config)
    window = resolve_current_period(earliest, config)
    while window.start <= current.start:
        periods.append(PeriodDescriptor(window, describe_period(window)))
        window = shift_period(window, config, 1)
    periods.reverse()
    return periods

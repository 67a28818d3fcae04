"""Helpers for the ``DD.MM.YYYY`` dates used by the PrivatBank archive API."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

from privat_fx.errors import InvalidDateFormat

DATE_SEPARATOR = "."


@dataclass(frozen=True, slots=True)
class CalendarDate:
    """Immutable Gregorian calendar day."""

    day: int
    month: int
    year: int

    def __post_init__(self) -> None:
        try:
            date(self.year, self.month, self.day)
        except (TypeError, ValueError) as exc:
            raise InvalidDateFormat(
                f"{self.day:02d}.{self.month:02d}.{self.year:04d} is not a valid calendar date"
            ) from exc

    @classmethod
    def from_date(cls, value: date) -> "CalendarDate":
        return cls(day=value.day, month=value.month, year=value.year)

    def to_date(self) -> date:
        return date(self.year, self.month, self.day)

    def __str__(self) -> str:
        return format_date(self)


def parse_date(text: str) -> CalendarDate:
    """Parse ``DD.MM.YYYY`` text into a :class:`CalendarDate`."""

    parts = str(text).strip().split(DATE_SEPARATOR)
    if len(parts) != 3:
        raise InvalidDateFormat(f"Expected a DD.MM.YYYY date, got {text!r}")
    try:
        day, month, year = (int(part) for part in parts)
    except ValueError as exc:
        raise InvalidDateFormat(f"Expected a DD.MM.YYYY date, got {text!r}") from exc
    return CalendarDate(day=day, month=month, year=year)


def format_date(value: CalendarDate) -> str:
    """Render a date as ``DD.MM.YYYY`` with zero padded day and month."""

    return f"{value.day:02d}.{value.month:02d}.{value.year:04d}"


def add_one_day(value: CalendarDate) -> CalendarDate:
    """Return the next calendar day, rolling over months, years and leap days."""

    try:
        following = value.to_date() + timedelta(days=1)
    except OverflowError as exc:
        raise InvalidDateFormat(f"{format_date(value)} is the last supported date") from exc
    return CalendarDate.from_date(following)


def diff_in_days(first: CalendarDate, second: CalendarDate) -> int:
    """Return ``second - first`` in whole days (negative when ``second`` is earlier)."""

    start = datetime(first.year, first.month, first.day, tzinfo=timezone.utc)
    end = datetime(second.year, second.month, second.day, tzinfo=timezone.utc)
    hours = (end - start).total_seconds() / 3600
    return int(hours / 24)


def today_text() -> str:
    """Return the current local date formatted as ``DD.MM.YYYY``."""

    return format_date(CalendarDate.from_date(date.today()))


__all__ = [
    "CalendarDate",
    "parse_date",
    "format_date",
    "add_one_day",
    "diff_in_days",
    "today_text",
]

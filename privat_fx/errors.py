"""Exception hierarchy raised by privat_fx.

Every error also derives from the closest builtin so callers that already
catch ``ValueError``, ``RuntimeError`` or ``OSError`` keep working.
"""

from __future__ import annotations


class PrivatFxError(Exception):
    """Base class for all errors raised by this package."""


class InvalidDateFormat(PrivatFxError, ValueError):
    """Raised when a date is not written as ``DD.MM.YYYY``."""


class InvalidRange(PrivatFxError, ValueError):
    """Raised when the end date of a run precedes its start date."""


class NetworkError(PrivatFxError, RuntimeError):
    """Raised when the exchange-rate API cannot be reached."""


class ParseError(PrivatFxError, ValueError):
    """Raised when an API response body does not have the expected shape."""


class NoDataForDate(PrivatFxError, RuntimeError):
    """Raised when the API returns no exchange rates for a requested date."""

    def __init__(self, date_text: str) -> None:
        super().__init__(f"PrivatBank returned no exchange rates for {date_text}")
        self.date_text = date_text


class CreateError(PrivatFxError, OSError):
    """Raised when the output file cannot be created."""


class FlushError(PrivatFxError, OSError):
    """Raised when buffered output cannot be written to disk."""


class RunInProgress(PrivatFxError, RuntimeError):
    """Raised when a run is requested while another one is still active."""


__all__ = [
    "PrivatFxError",
    "InvalidDateFormat",
    "InvalidRange",
    "NetworkError",
    "ParseError",
    "NoDataForDate",
    "CreateError",
    "FlushError",
    "RunInProgress",
]

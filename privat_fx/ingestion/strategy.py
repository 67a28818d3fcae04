"""Abstractions for pluggable exchange-rate sources."""

from __future__ import annotations

from typing import Protocol

from privat_fx.ingestion.models import RawRateResponse
from privat_fx.utils.dates import CalendarDate


class RateSource(Protocol):
    """Contract for fetching the published rates of a single day.

    Implementations perform one blocking request per call and raise the
    errors from :mod:`privat_fx.errors` on failure.
    """

    def fetch(self, day: CalendarDate) -> RawRateResponse:
        ...  # pragma: no cover - protocol definition


__all__ = ["RateSource"]

"""Data models shared across ingestion and storage modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from privat_fx.utils.dates import CalendarDate, format_date


class RateKind(str, Enum):
    """Which quote pair is taken from each ``exchangeRate`` entry."""

    OFFICIAL = "official"
    RETAIL = "retail"


@dataclass(slots=True)
class ExchangeRateEntry:
    """One currency row of the ``exchangeRate`` list."""

    base_currency: str
    currency: str
    sale_rate_nb: float = 0.0
    purchase_rate_nb: float = 0.0
    sale_rate: float = 0.0
    purchase_rate: float = 0.0

    def rate_pair(self, kind: RateKind = RateKind.OFFICIAL) -> tuple[float, float]:
        """Return ``(sale, purchase)`` for the requested quote kind."""

        if kind is RateKind.RETAIL:
            return (self.sale_rate, self.purchase_rate)
        return (self.sale_rate_nb, self.purchase_rate_nb)


@dataclass(slots=True)
class RawRateResponse:
    """Parsed body of a single ``exchange_rates`` API call."""

    date: CalendarDate
    bank: str
    base_currency: int
    base_currency_lit: str
    exchange_rates: list[ExchangeRateEntry] = field(default_factory=list)


@dataclass(slots=True)
class RatePoint:
    """Rate pair extracted for one day of a run."""

    date: CalendarDate
    sale: float = 0.0
    purchase: float = 0.0

    @property
    def is_quoted(self) -> bool:
        """Return False when the bank published no rate for the currency."""

        return not (self.sale == 0 and self.purchase == 0)

    def to_line(self) -> str:
        return f"{format_date(self.date)} {self.sale} {self.purchase}\n"


__all__ = ["RateKind", "ExchangeRateEntry", "RawRateResponse", "RatePoint"]

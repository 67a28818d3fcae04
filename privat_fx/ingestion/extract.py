"""Pick the rate pair of one currency out of a parsed API response."""

from __future__ import annotations

from privat_fx.ingestion.models import RateKind, RatePoint, RawRateResponse


def extract_rate_point(
    response: RawRateResponse,
    currency: str,
    *,
    rate_kind: RateKind = RateKind.OFFICIAL,
) -> RatePoint:
    """Return the first quote for ``currency`` in ``response``.

    The match is exact and case sensitive. When no entry matches, a point
    with zero rates is returned. The date always comes from the response.
    """

    for entry in response.exchange_rates:
        if entry.currency == currency:
            sale, purchase = entry.rate_pair(rate_kind)
            return RatePoint(date=response.date, sale=sale, purchase=purchase)
    return RatePoint(date=response.date)


__all__ = ["extract_rate_point"]

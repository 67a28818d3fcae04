"""requests-based client for the PrivatBank exchange-rate archive."""

from __future__ import annotations

from numbers import Real
from typing import Any, Mapping

import requests

from privat_fx.config import DEFAULT_TIMEOUT, DEFAULT_USER_AGENT, PRIVATBANK_ARCHIVE_URL
from privat_fx.errors import InvalidDateFormat, NetworkError, NoDataForDate, ParseError
from privat_fx.ingestion.models import ExchangeRateEntry, RawRateResponse
from privat_fx.utils.dates import CalendarDate, format_date, parse_date
from privat_fx.utils.logger import get_logger

LOGGER = get_logger(__name__)


def _parse_rate(entry: Mapping[str, Any], key: str) -> float:
    value = entry.get(key)
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ParseError(f"Field {key!r} must be numeric, got {value!r}")
    return float(value)


def _parse_entry(entry: object) -> ExchangeRateEntry:
    if not isinstance(entry, Mapping):
        raise ParseError(f"exchangeRate entries must be objects, got {type(entry).__name__}")
    return ExchangeRateEntry(
        base_currency=str(entry.get("baseCurrency") or ""),
        currency=str(entry.get("currency") or ""),
        sale_rate_nb=_parse_rate(entry, "saleRateNB"),
        purchase_rate_nb=_parse_rate(entry, "purchaseRateNB"),
        sale_rate=_parse_rate(entry, "saleRate"),
        purchase_rate=_parse_rate(entry, "purchaseRate"),
    )


def parse_exchange_rates(payload: object, *, requested: str | None = None) -> RawRateResponse:
    """Validate a decoded API body and convert it into a :class:`RawRateResponse`.

    An empty or missing ``exchangeRate`` list means the archive has nothing for
    the date and raises :class:`NoDataForDate`. The echoed ``date`` must be a
    valid ``DD.MM.YYYY`` value because the next requested day is derived from it.
    """

    if not isinstance(payload, Mapping):
        raise ParseError(f"Expected a JSON object, got {type(payload).__name__}")

    raw_rates = payload.get("exchangeRate")
    if raw_rates is not None and not isinstance(raw_rates, list):
        raise ParseError("Field 'exchangeRate' must be a list")
    if not raw_rates:
        raise NoDataForDate(str(payload.get("date") or requested or "unknown date"))

    date_text = payload.get("date")
    if not isinstance(date_text, str):
        raise ParseError(f"Response for {requested or 'request'} has no echoed date")
    try:
        echoed = parse_date(date_text)
    except InvalidDateFormat as exc:
        raise ParseError(f"Response carries a malformed date {date_text!r}") from exc

    base_currency = payload.get("baseCurrency") or 0
    if isinstance(base_currency, bool) or not isinstance(base_currency, int):
        raise ParseError(f"Field 'baseCurrency' must be an integer, got {base_currency!r}")

    return RawRateResponse(
        date=echoed,
        bank=str(payload.get("bank") or ""),
        base_currency=base_currency,
        base_currency_lit=str(payload.get("baseCurrencyLit") or ""),
        exchange_rates=[_parse_entry(entry) for entry in raw_rates],
    )


class PrivatBankClient:
    """Fetch one day of archived exchange rates per call."""

    def __init__(
        self,
        *,
        session: requests.Session | None = None,
        api_url: str = PRIVATBANK_ARCHIVE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._owns_session = session is None
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent, "Accept": "application/json"})
        self.api_url = api_url
        self.timeout = timeout

    def url_for(self, day: CalendarDate) -> str:
        return self.api_url.format(date=format_date(day))

    def fetch(self, day: CalendarDate) -> RawRateResponse:
        """Download and validate the rates published for ``day``."""

        date_text = format_date(day)
        url = self.url_for(day)
        LOGGER.debug("GET %s", url)
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else "unknown"
            raise NetworkError(
                f"PrivatBank responded with HTTP {status} for {date_text}"
            ) from exc
        except requests.RequestException as exc:
            raise NetworkError(f"Unable to reach PrivatBank for {date_text}: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise ParseError(f"Response for {date_text} is not valid JSON") from exc

        result = parse_exchange_rates(payload, requested=date_text)
        LOGGER.info("Fetched %s rates for %s", len(result.exchange_rates), date_text)
        return result

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "PrivatBankClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


__all__ = ["PrivatBankClient", "parse_exchange_rates"]

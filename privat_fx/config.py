"""Runtime settings for talking to PrivatBank and writing output files."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from privat_fx.ingestion.models import RateKind

PRIVATBANK_ARCHIVE_URL: Final[str] = (
    "https://api.privatbank.ua/p24api/exchange_rates?json&date={date}"
)
DEFAULT_TIMEOUT: Final[float] = 30.0
DEFAULT_USER_AGENT: Final[str] = "privat-fx-collector/1.0"

# Currencies offered by the original picker; any code the API knows is accepted.
SUPPORTED_CURRENCIES: Final[tuple[str, ...]] = ("RUB", "EUR", "USD")
DEFAULT_START_DATE: Final[str] = "01.01.2012"


@dataclass(frozen=True, slots=True)
class CollectorConfig:
    """Settings for a :class:`~privat_fx.collector.RangeCollector`."""

    api_url: str = PRIVATBANK_ARCHIVE_URL
    timeout: float = DEFAULT_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT
    output_dir: Path = field(default_factory=Path.cwd)
    rate_kind: RateKind = RateKind.OFFICIAL

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if "{date}" not in self.api_url:
            raise ValueError("api_url must contain a '{date}' placeholder")
        object.__setattr__(self, "output_dir", Path(self.output_dir))
        object.__setattr__(self, "rate_kind", RateKind(self.rate_kind))


__all__ = [
    "CollectorConfig",
    "DEFAULT_START_DATE",
    "DEFAULT_TIMEOUT",
    "DEFAULT_USER_AGENT",
    "PRIVATBANK_ARCHIVE_URL",
    "SUPPORTED_CURRENCIES",
]

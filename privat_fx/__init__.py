"""Public interface for the privat_fx package."""

from __future__ import annotations

from importlib import metadata as importlib_metadata

from privat_fx.collector import (
    FetchRange,
    ProgressState,
    QueuedDispatcher,
    RangeCollector,
    RunResult,
    RunState,
)
from privat_fx.config import CollectorConfig, SUPPORTED_CURRENCIES
from privat_fx.errors import (
    CreateError,
    FlushError,
    InvalidDateFormat,
    InvalidRange,
    NetworkError,
    NoDataForDate,
    ParseError,
    PrivatFxError,
    RunInProgress,
)
from privat_fx.ingestion.models import RateKind, RatePoint
from privat_fx.ingestion.privatbank import PrivatBankClient
from privat_fx.storage.text_sink import read_series

__all__ = [
    "__version__",
    "CollectorConfig",
    "CreateError",
    "FetchRange",
    "FlushError",
    "InvalidDateFormat",
    "InvalidRange",
    "NetworkError",
    "NoDataForDate",
    "ParseError",
    "PrivatBankClient",
    "PrivatFxError",
    "ProgressState",
    "QueuedDispatcher",
    "RangeCollector",
    "RateKind",
    "RatePoint",
    "RunInProgress",
    "RunResult",
    "RunState",
    "SUPPORTED_CURRENCIES",
    "collect_rates",
    "read_series",
]

try:
    __version__ = importlib_metadata.version("privat-fx")
except importlib_metadata.PackageNotFoundError:  # pragma: no cover - fallback for local runs
    __version__ = "0.1.0"


def collect_rates(*args, **kwargs):
    from privat_fx.jobs.collect_rates import collect_rates as _collect_rates

    return _collect_rates(*args, **kwargs)

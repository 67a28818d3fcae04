"""Collect daily PrivatBank exchange rates for a date range into a text file."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Callable, Sequence

from privat_fx.collector import QueuedDispatcher, RangeCollector, RunResult, RunState
from privat_fx.config import (
    DEFAULT_START_DATE,
    DEFAULT_TIMEOUT,
    SUPPORTED_CURRENCIES,
    CollectorConfig,
)
from privat_fx.errors import PrivatFxError
from privat_fx.ingestion.models import RateKind
from privat_fx.ingestion.strategy import RateSource
from privat_fx.storage.text_sink import read_series
from privat_fx.utils.dates import today_text
from privat_fx.utils.logger import get_logger, set_verbosity

LOGGER = get_logger(__name__)

__all__ = ["collect_rates", "parse_args", "main"]

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_REJECTED = 2


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--from",
        dest="start",
        default=DEFAULT_START_DATE,
        help=f"First day to collect (DD.MM.YYYY, default {DEFAULT_START_DATE})",
    )
    parser.add_argument(
        "--to",
        dest="end",
        default=None,
        help="Last day to collect (DD.MM.YYYY, default today)",
    )
    parser.add_argument(
        "--currency",
        default="USD",
        help=f"Currency code as published by PrivatBank, e.g. {', '.join(SUPPORTED_CURRENCIES)}",
    )
    parser.add_argument(
        "--retail",
        action="store_true",
        help="Store PrivatBank retail rates instead of the NBU official rates",
    )
    parser.add_argument(
        "--output-dir",
        dest="output_dir",
        default=".",
        help="Directory receiving the <currency><from>-<to>.txt file",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help="Per-request timeout in seconds",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def collect_rates(
    start: str,
    end: str,
    currency: str,
    *,
    config: CollectorConfig | None = None,
    source: RateSource | None = None,
    on_progress: Callable[[int], None] | None = None,
    poll_interval: float = 0.1,
) -> RunResult:
    """Run a collection in the background and pump its callbacks on this thread.

    ``KeyboardInterrupt`` cancels the run; the call still waits for the worker
    to flush the output file before returning.
    """

    dispatcher = QueuedDispatcher()
    finished: list[RunResult] = []
    collector = RangeCollector(
        source,
        config=config,
        on_progress=on_progress,
        on_completed=finished.append,
        dispatch=dispatcher,
    )
    try:
        collector.start_run(start, end, currency)
        while not finished:
            try:
                dispatcher.drain(timeout=poll_interval)
            except KeyboardInterrupt:
                collector.cancel()
    finally:
        collector.close()
    return finished[0]


def _print_progress(percent: int) -> None:
    sys.stderr.write(f"\rProgress: {percent:3d}%")
    sys.stderr.flush()


def _summarise(result: RunResult) -> None:
    if result.output_path is None or not result.output_path.exists():
        return
    series = read_series(result.output_path)
    if series.empty:
        LOGGER.info("No rates were written to %s", result.output_path)
        return
    LOGGER.info(
        "%s rows from %s to %s saved to %s (sale min %.4f, max %.4f)",
        len(series),
        series["rate_date"].min().strftime("%d.%m.%Y"),
        series["rate_date"].max().strftime("%d.%m.%Y"),
        result.output_path,
        series["sale"].min(),
        series["sale"].max(),
    )


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    set_verbosity(args.verbose)
    try:
        config = CollectorConfig(
            timeout=args.timeout,
            output_dir=Path(args.output_dir),
            rate_kind=RateKind.RETAIL if args.retail else RateKind.OFFICIAL,
        )
        result = collect_rates(
            args.start,
            args.end or today_text(),
            args.currency,
            config=config,
            on_progress=_print_progress,
        )
    except (PrivatFxError, ValueError) as exc:
        LOGGER.error("Run rejected: %s", exc)
        return EXIT_REJECTED
    sys.stderr.write("\n")

    if result.state is RunState.FAILED:
        LOGGER.error("Collection failed: %s", result.error)
        return EXIT_FAILED
    if result.state is RunState.CANCELLED:
        LOGGER.warning("Collection cancelled after %s days", result.days_written)
    _summarise(result)
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())

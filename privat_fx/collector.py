"""Day-by-day collection of PrivatBank rates into a text file.

A :class:`RangeCollector` owns at most one run at a time. A run walks from the
start date to the day after the end date, fetching one day per request. The
next day is derived from the date echoed by the server, so requests are
strictly sequential. Progress and completion are handed to the caller through
a dispatcher so a UI thread never has its state touched by the worker.
"""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Callable, Optional

from privat_fx.config import CollectorConfig
from privat_fx.errors import (
    InvalidDateFormat,
    InvalidRange,
    ParseError,
    PrivatFxError,
    RunInProgress,
)
from privat_fx.ingestion.extract import extract_rate_point
from privat_fx.ingestion.privatbank import PrivatBankClient
from privat_fx.ingestion.strategy import RateSource
from privat_fx.storage.text_sink import TextFileSink, output_filename
from privat_fx.utils.dates import (
    CalendarDate,
    add_one_day,
    diff_in_days,
    format_date,
    parse_date,
)
from privat_fx.utils.logger import get_logger

LOGGER = get_logger(__name__)

Dispatcher = Callable[[Callable[[], None]], None]


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class FetchRange:
    """Validated request for one run."""

    start: CalendarDate
    end: CalendarDate
    currency: str
    day_count: int
    stop_date: CalendarDate

    @classmethod
    def from_text(cls, start_text: str, end_text: str, currency: str) -> "FetchRange":
        start = parse_date(start_text)
        end = parse_date(end_text)
        if not currency:
            raise ValueError("currency code must not be empty")
        day_count = diff_in_days(start, end)
        if day_count < 0:
            raise InvalidRange(
                f"End date {format_date(end)} precedes start date {format_date(start)}"
            )
        try:
            stop_date = add_one_day(end)
        except InvalidDateFormat as exc:
            raise InvalidRange(f"End date {format_date(end)} has no following day") from exc
        return cls(
            start=start,
            end=end,
            currency=currency,
            day_count=day_count,
            stop_date=stop_date,
        )

    def progress_for(self, completed_days: int) -> int:
        divisor = self.day_count or 1
        return min(100, completed_days * 100 // divisor)


@dataclass(frozen=True, slots=True)
class ProgressState:
    """Read-only snapshot of a run's progress."""

    completed_days: int = 0
    total_days: int = 0
    is_running: bool = False


@dataclass(frozen=True, slots=True)
class RunResult:
    """Outcome of a finished run."""

    state: RunState
    days_written: int
    output_path: Path | None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is RunState.COMPLETED


def immediate_dispatch(callback: Callable[[], None]) -> None:
    """Run callbacks on the calling thread."""

    callback()


class QueuedDispatcher:
    """Queue callbacks from the worker for a UI loop to execute via :meth:`drain`."""

    def __init__(self) -> None:
        self._pending: "queue.Queue[Callable[[], None]]" = queue.Queue()

    def __call__(self, callback: Callable[[], None]) -> None:
        self._pending.put(callback)

    def drain(self, timeout: float | None = None) -> int:
        """Run queued callbacks and return how many ran.

        With ``timeout`` the call blocks up to that many seconds for the first
        callback; otherwise it only runs what is already queued.
        """

        executed = 0
        if timeout is not None:
            try:
                callback = self._pending.get(timeout=timeout)
            except queue.Empty:
                return 0
            callback()
            executed += 1
        while True:
            try:
                callback = self._pending.get_nowait()
            except queue.Empty:
                return executed
            callback()
            executed += 1


class RangeCollector:
    """Drive a single collection run at a time over a date range."""

    def __init__(
        self,
        source: RateSource | None = None,
        *,
        config: CollectorConfig | None = None,
        on_progress: Optional[Callable[[int], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
        on_completed: Optional[Callable[[RunResult], None]] = None,
        dispatch: Dispatcher = immediate_dispatch,
    ) -> None:
        self.config = config or CollectorConfig()
        self._owns_source = source is None
        self.source: RateSource = source or PrivatBankClient(
            api_url=self.config.api_url,
            timeout=self.config.timeout,
            user_agent=self.config.user_agent,
        )
        self.on_progress = on_progress
        self.on_error = on_error
        self.on_completed = on_completed
        self.dispatch = dispatch

        self._lock = threading.Lock()
        self._cancel = threading.Event()
        self._state = RunState.IDLE
        self._progress = ProgressState()
        self._thread: threading.Thread | None = None
        self.last_result: RunResult | None = None

    @property
    def state(self) -> RunState:
        with self._lock:
            return self._state

    def is_running(self) -> bool:
        return self.state is RunState.RUNNING

    def progress(self) -> ProgressState:
        with self._lock:
            return self._progress

    def start_run(self, start_text: str, end_text: str, currency: str) -> FetchRange:
        """Validate the request and collect it on a background thread.

        Raises :class:`RunInProgress`, :class:`InvalidDateFormat` or
        :class:`InvalidRange` synchronously; nothing is created in that case.
        """

        fetch_range = self._begin(start_text, end_text, currency)
        thread = threading.Thread(
            target=self._execute,
            args=(fetch_range,),
            name=f"privat-fx-{fetch_range.currency}",
            daemon=True,
        )
        try:
            thread.start()
        except RuntimeError:
            with self._lock:
                self._state = RunState.IDLE
                self._progress = ProgressState()
            raise
        self._thread = thread
        return fetch_range

    def run(self, start_text: str, end_text: str, currency: str) -> RunResult:
        """Collect the range on the calling thread and return its outcome."""

        fetch_range = self._begin(start_text, end_text, currency)
        return self._execute(fetch_range)

    def cancel(self) -> bool:
        """Ask the active run to stop before its next request."""

        if not self.is_running():
            return False
        LOGGER.info("Cancellation requested")
        self._cancel.set()
        return True

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the background run finishes; return False on timeout."""

        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def close(self) -> None:
        if self._owns_source and isinstance(self.source, PrivatBankClient):
            self.source.close()

    def _begin(self, start_text: str, end_text: str, currency: str) -> FetchRange:
        with self._lock:
            if self._state is RunState.RUNNING:
                raise RunInProgress("A collection run is still in progress; wait for it to finish")
            fetch_range = FetchRange.from_text(start_text, end_text, currency)
            self._state = RunState.RUNNING
            self._progress = ProgressState(0, fetch_range.day_count, True)
            self._cancel.clear()
        LOGGER.info(
            "Collecting %s rates from %s to %s (%s days)",
            fetch_range.currency,
            format_date(fetch_range.start),
            format_date(fetch_range.end),
            fetch_range.day_count,
        )
        return fetch_range

    def _execute(self, fetch_range: FetchRange) -> RunResult:
        path = self.config.output_dir / output_filename(
            fetch_range.currency, fetch_range.start, fetch_range.end
        )
        sink: TextFileSink | None = None
        state: RunState
        error: str | None = None
        try:
            sink = TextFileSink.open(path)
            with sink:
                state = self._collect(fetch_range, sink)
        except PrivatFxError as exc:
            LOGGER.error("Run for %s failed: %s", fetch_range.currency, exc)
            state = RunState.FAILED
            error = str(exc)
        except Exception as exc:
            LOGGER.exception("Run for %s crashed", fetch_range.currency)
            state = RunState.FAILED
            error = f"Unexpected error: {exc}"

        result = RunResult(
            state=state,
            days_written=sink.lines_written if sink else 0,
            output_path=path if sink else None,
            error=error,
        )
        self._finish(fetch_range, result)
        return result

    def _collect(self, fetch_range: FetchRange, sink: TextFileSink) -> RunState:
        stop_date = fetch_range.stop_date
        current = fetch_range.start
        counter = 0
        while current != stop_date:
            if self._cancel.is_set():
                LOGGER.warning("Run cancelled before %s", format_date(current))
                return RunState.CANCELLED
            counter += 1
            response = self.source.fetch(current)
            point = extract_rate_point(
                response, fetch_range.currency, rate_kind=self.config.rate_kind
            )
            if not point.is_quoted:
                LOGGER.info(
                    "No %s quote on %s; treating as end of data",
                    fetch_range.currency,
                    format_date(point.date),
                )
                return RunState.COMPLETED
            if point.date.to_date() < current.to_date():
                raise ParseError(
                    f"Server echoed {format_date(point.date)} for requested day {format_date(current)}"
                )
            sink.append_point(point)
            current = add_one_day(point.date)
            self._report_progress(fetch_range, counter)
            if current.to_date() > stop_date.to_date():
                LOGGER.warning(
                    "Server echoed %s past the requested end %s; stopping",
                    format_date(point.date),
                    format_date(fetch_range.end),
                )
                break
        return RunState.COMPLETED

    def _report_progress(self, fetch_range: FetchRange, completed: int) -> None:
        with self._lock:
            self._progress = ProgressState(completed, fetch_range.day_count, True)
        if self.on_progress is not None:
            self.dispatch(partial(self.on_progress, fetch_range.progress_for(completed)))

    def _finish(self, fetch_range: FetchRange, result: RunResult) -> None:
        with self._lock:
            self._state = result.state
            self._progress = ProgressState(
                self._progress.completed_days, fetch_range.day_count, False
            )
            self.last_result = result
        LOGGER.info(
            "Run for %s finished as %s with %s days written",
            fetch_range.currency,
            result.state.value,
            result.days_written,
        )
        if result.state is RunState.COMPLETED and self.on_progress is not None:
            self.dispatch(partial(self.on_progress, 100))
        if result.error is not None and self.on_error is not None:
            self.dispatch(partial(self.on_error, result.error))
        if self.on_completed is not None:
            self.dispatch(partial(self.on_completed, result))


__all__ = [
    "Dispatcher",
    "FetchRange",
    "ProgressState",
    "QueuedDispatcher",
    "RangeCollector",
    "RunResult",
    "RunState",
    "immediate_dispatch",
]

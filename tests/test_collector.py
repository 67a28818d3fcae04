"""Tests covering the day-by-day collection loop."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

import pytest

from privat_fx import collector as collector_module
from privat_fx.collector import FetchRange, QueuedDispatcher, RangeCollector, RunResult, RunState
from privat_fx.config import CollectorConfig
from privat_fx.errors import InvalidDateFormat, InvalidRange, NetworkError, RunInProgress
from privat_fx.ingestion.models import RawRateResponse
from privat_fx.ingestion.privatbank import parse_exchange_rates
from privat_fx.utils.dates import CalendarDate, format_date, parse_date


def _payload(date_text: str, usd: tuple[float, float] | None = (27.0, 26.5)) -> dict[str, Any]:
    rates: list[dict[str, Any]] = [
        {"baseCurrency": "UAH", "currency": "EUR", "saleRateNB": 30.0, "purchaseRateNB": 29.5}
    ]
    if usd is not None:
        rates.append(
            {
                "baseCurrency": "UAH",
                "currency": "USD",
                "saleRateNB": usd[0],
                "purchaseRateNB": usd[1],
            }
        )
    return {
        "date": date_text,
        "bank": "PB",
        "baseCurrency": 980,
        "baseCurrencyLit": "UAH",
        "exchangeRate": rates,
    }


class _DummySource:
    """Serve canned payloads keyed by the requested ``DD.MM.YYYY`` date."""

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses = responses or {}
        self.requested: list[str] = []

    def fetch(self, day: CalendarDate) -> RawRateResponse:
        date_text = format_date(day)
        self.requested.append(date_text)
        response = self.responses.get(date_text, _payload(date_text))
        if isinstance(response, Exception):
            raise response
        return parse_exchange_rates(response, requested=date_text)


class _Recorder:
    def __init__(self) -> None:
        self.progress: list[int] = []
        self.errors: list[str] = []
        self.completed: list[RunResult] = []


def _collector(
    tmp_path: Path, source: Any, recorder: _Recorder | None = None, **kwargs: Any
) -> RangeCollector:
    recorder = recorder or _Recorder()
    return RangeCollector(
        source,
        config=CollectorConfig(output_dir=tmp_path),
        on_progress=recorder.progress.append,
        on_error=recorder.errors.append,
        on_completed=recorder.completed.append,
        **kwargs,
    )


def test_fetch_range_validates_input() -> None:
    fetch_range = FetchRange.from_text("01.01.2024", "11.01.2024", "USD")

    assert fetch_range.day_count == 10
    assert fetch_range.stop_date == parse_date("12.01.2024")
    assert fetch_range.progress_for(3) == 30
    assert fetch_range.progress_for(15) == 100

    with pytest.raises(InvalidRange):
        FetchRange.from_text("02.01.2024", "01.01.2024", "USD")
    with pytest.raises(InvalidDateFormat):
        FetchRange.from_text("2024-01-01", "01.01.2024", "USD")


def test_single_day_range_reports_progress_against_one_day() -> None:
    fetch_range = FetchRange.from_text("01.01.2024", "01.01.2024", "USD")

    assert fetch_range.day_count == 0
    assert fetch_range.progress_for(1) == 100


def test_run_writes_one_line_per_day(tmp_path: Path) -> None:
    recorder = _Recorder()
    source = _DummySource()
    collector = _collector(tmp_path, source, recorder)

    result = collector.run("30.12.2023", "02.01.2024", "USD")

    assert result.state is RunState.COMPLETED
    assert result.days_written == 4
    assert result.output_path == tmp_path / "USD30.12.2023-02.01.2024.txt"
    assert source.requested == ["30.12.2023", "31.12.2023", "01.01.2024", "02.01.2024"]
    assert result.output_path.read_text().splitlines() == [
        "30.12.2023 27.0 26.5",
        "31.12.2023 27.0 26.5",
        "01.01.2024 27.0 26.5",
        "02.01.2024 27.0 26.5",
    ]
    assert recorder.progress == [33, 66, 100, 100, 100]
    assert recorder.errors == []
    assert recorder.completed == [result]
    assert collector.state is RunState.COMPLETED
    assert collector.is_running() is False


def test_run_rejects_inverted_range_without_output(tmp_path: Path) -> None:
    source = _DummySource()
    collector = _collector(tmp_path, source)

    with pytest.raises(InvalidRange):
        collector.run("05.01.2024", "01.01.2024", "USD")

    assert list(tmp_path.iterdir()) == []
    assert source.requested == []
    assert collector.state is RunState.IDLE


def test_empty_rate_list_fails_the_run_and_keeps_earlier_days(tmp_path: Path) -> None:
    recorder = _Recorder()
    payload = _payload("03.01.2024")
    payload["exchangeRate"] = []
    source = _DummySource({"03.01.2024": payload})
    collector = _collector(tmp_path, source, recorder)

    result = collector.run("01.01.2024", "05.01.2024", "USD")

    assert result.state is RunState.FAILED
    assert result.days_written == 2
    assert source.requested == ["01.01.2024", "02.01.2024", "03.01.2024"]
    assert result.output_path is not None
    assert result.output_path.read_text().splitlines() == [
        "01.01.2024 27.0 26.5",
        "02.01.2024 27.0 26.5",
    ]
    assert recorder.errors == ["PrivatBank returned no exchange rates for 03.01.2024"]
    assert recorder.completed == [result]
    assert 100 not in recorder.progress


def test_zero_rates_complete_the_run_without_writing_that_day(tmp_path: Path) -> None:
    recorder = _Recorder()
    source = _DummySource({"03.01.2024": _payload("03.01.2024", usd=None)})
    collector = _collector(tmp_path, source, recorder)

    result = collector.run("01.01.2024", "05.01.2024", "USD")

    assert result.state is RunState.COMPLETED
    assert result.days_written == 2
    assert source.requested == ["01.01.2024", "02.01.2024", "03.01.2024"]
    assert result.output_path is not None
    assert len(result.output_path.read_text().splitlines()) == 2
    assert recorder.errors == []
    assert recorder.progress[-1] == 100


def test_network_errors_are_reported_not_raised(tmp_path: Path) -> None:
    recorder = _Recorder()
    source = _DummySource({"02.01.2024": NetworkError("Unable to reach PrivatBank for 02.01.2024")})
    collector = _collector(tmp_path, source, recorder)

    result = collector.run("01.01.2024", "03.01.2024", "USD")

    assert result.state is RunState.FAILED
    assert result.error == "Unable to reach PrivatBank for 02.01.2024"
    assert result.days_written == 1
    assert recorder.errors == [result.error]


def test_malformed_echoed_date_fails_the_run(tmp_path: Path) -> None:
    recorder = _Recorder()
    source = _DummySource({"02.01.2024": _payload("2024-01-02")})
    collector = _collector(tmp_path, source, recorder)

    result = collector.run("01.01.2024", "03.01.2024", "USD")

    assert result.state is RunState.FAILED
    assert "malformed date" in (result.error or "")


def test_next_day_follows_server_echoed_date(tmp_path: Path) -> None:
    source = _DummySource({"02.01.2024": _payload("03.01.2024")})
    collector = _collector(tmp_path, source)

    result = collector.run("01.01.2024", "05.01.2024", "USD")

    assert source.requested == ["01.01.2024", "02.01.2024", "04.01.2024", "05.01.2024"]
    assert result.output_path is not None
    assert [line.split()[0] for line in result.output_path.read_text().splitlines()] == [
        "01.01.2024",
        "03.01.2024",
        "04.01.2024",
        "05.01.2024",
    ]


def test_echoed_date_past_the_end_stops_the_loop(tmp_path: Path) -> None:
    source = _DummySource({"01.01.2024": _payload("10.01.2024")})
    collector = _collector(tmp_path, source)

    result = collector.run("01.01.2024", "02.01.2024", "USD")

    assert result.state is RunState.COMPLETED
    assert result.days_written == 1
    assert source.requested == ["01.01.2024"]


def test_unwritable_output_dir_fails_with_create_error(tmp_path: Path) -> None:
    recorder = _Recorder()
    source = _DummySource()
    collector = RangeCollector(
        source,
        config=CollectorConfig(output_dir=tmp_path / "missing"),
        on_error=recorder.errors.append,
    )

    result = collector.run("01.01.2024", "02.01.2024", "USD")

    assert result.state is RunState.FAILED
    assert result.output_path is None
    assert source.requested == []
    assert recorder.errors and "Unable to create output file" in recorder.errors[0]


def test_unexpected_errors_do_not_escape(tmp_path: Path) -> None:
    source = _DummySource({"01.01.2024": KeyError("boom")})
    collector = _collector(tmp_path, source)

    result = collector.run("01.01.2024", "02.01.2024", "USD")

    assert result.state is RunState.FAILED
    assert result.error is not None and result.error.startswith("Unexpected error")


class _BlockingSource(_DummySource):
    def __init__(self) -> None:
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def fetch(self, day: CalendarDate) -> RawRateResponse:
        self.entered.set()
        assert self.release.wait(timeout=5)
        return super().fetch(day)


def test_second_start_is_rejected_while_running(tmp_path: Path) -> None:
    source = _BlockingSource()
    collector = _collector(tmp_path, source)

    collector.start_run("01.01.2024", "02.01.2024", "USD")
    assert source.entered.wait(timeout=5)
    assert collector.is_running() is True
    assert collector.progress().is_running is True

    with pytest.raises(RunInProgress):
        collector.start_run("01.01.2024", "02.01.2024", "EUR")
    with pytest.raises(RunInProgress):
        collector.run("01.01.2024", "02.01.2024", "EUR")

    source.release.set()
    assert collector.wait(timeout=5)
    assert collector.is_running() is False
    assert source.requested == ["01.01.2024", "02.01.2024"]
    assert not (tmp_path / "EUR01.01.2024-02.01.2024.txt").exists()

    again = collector.run("03.01.2024", "03.01.2024", "USD")
    assert again.state is RunState.COMPLETED


def test_cancel_stops_before_the_next_request(tmp_path: Path) -> None:
    recorder = _Recorder()

    class _CancellingSource(_DummySource):
        collector: RangeCollector

        def fetch(self, day: CalendarDate) -> RawRateResponse:
            response = super().fetch(day)
            self.collector.cancel()
            return response

    source = _CancellingSource()
    collector = _collector(tmp_path, source, recorder)
    source.collector = collector

    result = collector.run("01.01.2024", "10.01.2024", "USD")

    assert result.state is RunState.CANCELLED
    assert result.days_written == 1
    assert source.requested == ["01.01.2024"]
    assert recorder.completed == [result]
    assert collector.cancel() is False


def test_queued_dispatcher_defers_callbacks_to_the_draining_thread(tmp_path: Path) -> None:
    recorder = _Recorder()
    dispatcher = QueuedDispatcher()
    threads: set[str] = set()

    def _on_progress(percent: int) -> None:
        threads.add(threading.current_thread().name)
        recorder.progress.append(percent)

    collector = RangeCollector(
        _DummySource(),
        config=CollectorConfig(output_dir=tmp_path),
        on_progress=_on_progress,
        on_completed=recorder.completed.append,
        dispatch=dispatcher,
    )

    collector.start_run("01.01.2024", "03.01.2024", "USD")
    assert collector.wait(timeout=5)
    assert recorder.progress == []

    executed = dispatcher.drain()

    assert executed == 5
    assert recorder.progress == [50, 100, 100, 100]
    assert threads == {threading.current_thread().name}
    assert recorder.completed[0].state is RunState.COMPLETED
    assert dispatcher.drain(timeout=0.01) == 0


def test_stale_echoed_date_fails_instead_of_repeating_days(tmp_path: Path) -> None:
    recorder = _Recorder()

    class _StaleSource(_DummySource):
        def fetch(self, day: CalendarDate) -> RawRateResponse:
            self.requested.append(format_date(day))
            return parse_exchange_rates(_payload("01.01.2024"))

    source = _StaleSource()
    collector = _collector(tmp_path, source, recorder)

    result = collector.run("01.01.2024", "03.01.2024", "USD")

    assert result.state is RunState.FAILED
    assert source.requested == ["01.01.2024", "02.01.2024"]
    assert result.days_written == 1
    assert result.output_path is not None
    assert result.output_path.read_text().splitlines() == ["01.01.2024 27.0 26.5"]
    assert recorder.errors == ["Server echoed 01.01.2024 for requested day 02.01.2024"]


def test_last_supported_end_date_is_rejected_before_any_output(tmp_path: Path) -> None:
    source = _DummySource()
    collector = _collector(tmp_path, source)

    with pytest.raises(InvalidRange):
        collector.run("31.12.9999", "31.12.9999", "USD")

    assert list(tmp_path.iterdir()) == []
    assert source.requested == []
    assert collector.state is RunState.IDLE


def test_failed_thread_start_leaves_collector_idle(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    class _UnstartableThread(threading.Thread):
        def start(self) -> None:
            raise RuntimeError("can't start new thread")

    monkeypatch.setattr(collector_module.threading, "Thread", _UnstartableThread)
    source = _DummySource()
    collector = _collector(tmp_path, source)

    with pytest.raises(RuntimeError, match="can't start new thread"):
        collector.start_run("01.01.2024", "02.01.2024", "USD")

    monkeypatch.undo()
    assert collector.state is RunState.IDLE
    assert collector.is_running() is False
    assert collector.run("01.01.2024", "01.01.2024", "USD").state is RunState.COMPLETED

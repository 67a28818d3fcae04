"""Append-only text file holding one ``DD.MM.YYYY sale purchase`` line per day."""

from __future__ import annotations

from pathlib import Path
from typing import TextIO

import pandas as pd

from privat_fx.errors import CreateError, FlushError
from privat_fx.ingestion.models import RatePoint
from privat_fx.utils.dates import CalendarDate, format_date
from privat_fx.utils.logger import get_logger

LOGGER = get_logger(__name__)

SERIES_COLUMNS = ("rate_date", "sale", "purchase")


def output_filename(currency: str, start: CalendarDate, end: CalendarDate) -> str:
    """Return ``<currency><start>-<end>.txt`` for a run."""

    return f"{currency}{format_date(start)}-{format_date(end)}.txt"


class TextFileSink:
    """Buffered line writer; nothing is flushed before :meth:`close`."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.lines_written = 0
        self._handle: TextIO | None = None

    @classmethod
    def open(cls, path: str | Path) -> "TextFileSink":
        sink = cls(path)
        try:
            sink._handle = sink.path.open("w", encoding="utf-8", newline="\n")
        except OSError as exc:
            raise CreateError(f"Unable to create output file {sink.path}: {exc}") from exc
        LOGGER.info("Writing rates to %s", sink.path)
        return sink

    @property
    def closed(self) -> bool:
        return self._handle is None

    def append(self, line: str) -> None:
        if self._handle is None:
            raise FlushError(f"Output file {self.path} is already closed")
        try:
            self._handle.write(line)
        except OSError as exc:
            raise FlushError(f"Unable to write to {self.path}: {exc}") from exc
        self.lines_written += 1

    def append_point(self, point: RatePoint) -> None:
        self.append(point.to_line())

    def close(self) -> None:
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        try:
            handle.flush()
        except OSError as exc:
            raise FlushError(f"Unable to flush {self.path}: {exc}") from exc
        finally:
            try:
                handle.close()
            except OSError as exc:
                LOGGER.warning("Closing %s failed: %s", self.path, exc)

    def __enter__(self) -> "TextFileSink":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def read_series(path: str | Path) -> pd.DataFrame:
    """Load a collected file back as a ``rate_date``/``sale``/``purchase`` frame."""

    source = Path(path)
    if source.stat().st_size == 0:
        return pd.DataFrame(
            {
                "rate_date": pd.Series(dtype="datetime64[ns]"),
                "sale": pd.Series(dtype="float64"),
                "purchase": pd.Series(dtype="float64"),
            }
        )
    frame = pd.read_csv(
        source,
        sep=" ",
        header=None,
        names=list(SERIES_COLUMNS),
        dtype={"rate_date": str, "sale": "float64", "purchase": "float64"},
    )
    frame["rate_date"] = pd.to_datetime(frame["rate_date"], format="%d.%m.%Y")
    return frame


__all__ = ["SERIES_COLUMNS", "TextFileSink", "output_filename", "read_series"]

"""Output helpers for collected rate series."""

from __future__ import annotations

from privat_fx.storage.text_sink import TextFileSink, output_filename, read_series

__all__ = ["TextFileSink", "output_filename", "read_series"]

"""CLI entry point for collecting PrivatBank exchange rates."""

from __future__ import annotations

from privat_fx.jobs.collect_rates import main

if __name__ == "__main__":  # pragma: no cover - thin wrapper
    raise SystemExit(main())

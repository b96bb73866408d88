"""Module entrypoint for ``python -m crew_planner``."""

from __future__ import annotations

from crew_planner.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())

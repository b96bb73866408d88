"""Process entrypoint and exit-code contract for ``crew-planner``."""

from __future__ import annotations

import sys
import traceback
from enum import IntEnum
from typing import TYPE_CHECKING

from crew_planner.ui.cli import run_cli

if TYPE_CHECKING:
    from collections.abc import Sequence


class ExitCode(IntEnum):
    SUCCESS = 0
    SCHEDULE_REJECTED = 1
    CONFIG_ERROR = 2
    INTERNAL_ERROR = 4


def cli_entrypoint(argv: Sequence[str] | None = None) -> int:
    """Run the CLI and map every outcome onto an ``ExitCode``.

    Expected failures are reported by ``run_cli`` itself; argparse usage
    errors arrive as ``SystemExit``; anything else is an internal error and
    its traceback goes to stderr.
    """

    try:
        code: object = run_cli(argv)
    except SystemExit as exc:
        code = exc.code
    except Exception:
        traceback.print_exc(file=sys.stderr)
        return ExitCode.INTERNAL_ERROR

    if code is None:
        return ExitCode.SUCCESS
    try:
        return ExitCode(code)
    except ValueError:
        return ExitCode.INTERNAL_ERROR


__all__ = ["ExitCode", "cli_entrypoint"]

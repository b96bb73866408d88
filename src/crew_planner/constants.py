"""Stable constants shared across planner layers."""

from __future__ import annotations

from typing import Final

# Schema versions for persisted contracts.
CONFIG_SCHEMA_VERSION: Final[int] = 1

# Default runtime paths (relative to the config file unless overridden).
DEFAULT_TASKS_FILE: Final[str] = "tasks.json"
DEFAULT_LOG_DIR: Final[str] = "logs"

# Execution-order tie-break policies for tasks sharing an early start.
TIE_BREAK_INPUT_ORDER: Final[str] = "input_order"
TIE_BREAK_TASK_CODE: Final[str] = "task_code"
TIE_BREAK_POLICIES: Final[tuple[str, ...]] = (TIE_BREAK_INPUT_ORDER, TIE_BREAK_TASK_CODE)

__all__ = [
    "CONFIG_SCHEMA_VERSION",
    "DEFAULT_LOG_DIR",
    "DEFAULT_TASKS_FILE",
    "TIE_BREAK_INPUT_ORDER",
    "TIE_BREAK_POLICIES",
    "TIE_BREAK_TASK_CODE",
]

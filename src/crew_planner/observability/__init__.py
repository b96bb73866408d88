"""Public observability primitives: per-run logging and correlation context."""

from crew_planner.observability.logging import (
    LOG_FILENAME,
    ROOT_LOGGER_NAME,
    LogFormat,
    RunLog,
    active_run_log,
    configure_structlog,
    correlation_scope,
    get_correlation_context,
    shutdown_logging,
    start_run_logging,
)

__all__ = [
    "LOG_FILENAME",
    "LogFormat",
    "ROOT_LOGGER_NAME",
    "RunLog",
    "active_run_log",
    "configure_structlog",
    "correlation_scope",
    "get_correlation_context",
    "shutdown_logging",
    "start_run_logging",
]

"""Per-run structured logging.

Records from the ``crew_planner`` logger tree, including ``structlog`` events
from the planning layer, pass through a queue to a listener thread that writes
them to ``<log_dir>/<run_id>/planner.jsonl`` as JSON or text lines, and to
stderr when asked. Correlation fields bound with ``correlation_scope`` are
captured in the calling thread and stamped on every record.
"""

from __future__ import annotations

import atexit
import contextvars
import json
import logging
import logging.handlers
import math
import queue
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Final, Literal

import structlog

LogFormat = Literal["json", "text"]

ROOT_LOGGER_NAME: Final[str] = "crew_planner"
LOG_FILENAME: Final[str] = "planner.jsonl"

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS: Final[frozenset[str]] = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
    "correlation",
}

_CORRELATION: contextvars.ContextVar[Mapping[str, str]] = contextvars.ContextVar(
    "crew_planner_correlation", default={}
)

_ACTIVE_LOCK = threading.Lock()
_active: RunLog | None = None


def get_correlation_context() -> dict[str, str]:
    """Correlation fields bound in the current context."""
    return dict(_CORRELATION.get())


@contextmanager
def correlation_scope(**fields: str | None) -> Iterator[None]:
    """Bind correlation fields for records logged inside the block; ``None`` unbinds."""
    context = get_correlation_context()
    for key, value in fields.items():
        if value is None:
            context.pop(key, None)
        else:
            context[key] = value
    token = _CORRELATION.set(context)
    try:
        yield
    finally:
        _CORRELATION.reset(token)


def configure_structlog() -> None:
    """Route ``structlog`` events through the standard ``logging`` handlers.

    Event keyword arguments become ``extra`` attributes on the record, so they
    land under ``fields`` in the JSON output.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.render_to_log_kwargs,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


class _CorrelatingQueueHandler(logging.handlers.QueueHandler):
    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        prepared = super().prepare(record)
        prepared.correlation = get_correlation_context()
        return prepared


class _LineFormatter(logging.Formatter):
    """One line per record: canonical JSON, or ``timestamp LEVEL logger message k=v``."""

    def __init__(self, *, run_id: str, log_format: LogFormat) -> None:
        super().__init__()
        self._run_id = run_id
        self._log_format = log_format

    def format(self, record: logging.LogRecord) -> str:
        timestamp = (
            datetime.fromtimestamp(record.created, tz=UTC)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z")
        )
        context = {"run_id": self._run_id, **getattr(record, "correlation", {})}
        fields = {
            key: _json_safe(value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }

        if self._log_format == "text":
            parts = [timestamp, record.levelname, record.name, record.getMessage()]
            parts.extend(f"{key}={value}" for key, value in sorted(context.items()))
            for key, value in sorted(fields.items()):
                rendered = value if isinstance(value, str) else json.dumps(value, sort_keys=True)
                parts.append(f"{key}={rendered}")
            return " ".join(parts)

        event: dict[str, object] = {
            "timestamp": timestamp,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **context,
        }
        if fields:
            event["fields"] = fields
        return json.dumps(event, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


class RunLog:
    """Logging session for one run: queue handler, listener thread and sinks."""

    def __init__(
        self,
        run_id: str,
        *,
        log_dir: Path | str,
        level: str = "INFO",
        log_format: LogFormat = "json",
        to_stderr: bool = False,
    ) -> None:
        if not run_id or Path(run_id).name != run_id:
            raise ValueError(f"run_id must be a single path component, got {run_id!r}")
        numeric_level = logging.getLevelNamesMapping().get(level.upper())
        if numeric_level is None:
            raise ValueError(f"unsupported logging level {level!r}")

        self.run_id = run_id
        self.run_dir = Path(log_dir) / run_id
        self.log_path = self.run_dir / LOG_FILENAME
        self.run_dir.mkdir(parents=True, exist_ok=True)

        formatter = _LineFormatter(run_id=run_id, log_format=log_format)
        sinks: list[logging.Handler] = [logging.FileHandler(self.log_path, encoding="utf-8")]
        if to_stderr:
            sinks.append(logging.StreamHandler())
        for sink in sinks:
            sink.setFormatter(formatter)
        self._sinks = tuple(sinks)

        log_queue: queue.SimpleQueue[logging.LogRecord] = queue.SimpleQueue()
        self._queue_handler = _CorrelatingQueueHandler(log_queue)
        self._listener = logging.handlers.QueueListener(log_queue, *sinks)

        self.logger = logging.getLogger(ROOT_LOGGER_NAME)
        self.logger.setLevel(numeric_level)
        self.logger.propagate = False
        for stale in list(self.logger.handlers):
            self.logger.removeHandler(stale)
            stale.close()
        self.logger.addHandler(self._queue_handler)
        self._listener.start()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Drain queued records into the sinks, then detach and close them."""
        if self._closed:
            return
        self._closed = True
        self._listener.stop()
        self.logger.removeHandler(self._queue_handler)
        self._queue_handler.close()
        for sink in self._sinks:
            sink.close()


def start_run_logging(
    run_id: str,
    *,
    log_dir: Path | str,
    level: str = "INFO",
    log_format: LogFormat = "json",
    to_stderr: bool = False,
) -> RunLog:
    """Replace the active session with a new one and route ``structlog`` into it."""
    global _active
    with _ACTIVE_LOCK:
        previous, _active = _active, None
        if previous is not None:
            previous.close()
        _active = RunLog(
            run_id, log_dir=log_dir, level=level, log_format=log_format, to_stderr=to_stderr
        )
        session = _active
    configure_structlog()
    return session


def active_run_log() -> RunLog | None:
    with _ACTIVE_LOCK:
        return _active


def shutdown_logging() -> None:
    """Close the active session, if any."""
    global _active
    with _ACTIVE_LOCK:
        session, _active = _active, None
    if session is not None:
        session.close()


atexit.register(shutdown_logging)


def _json_safe(value: object) -> object:
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else repr(value)
    if isinstance(value, Path):
        return value.as_posix()
    if isinstance(value, Mapping):
        return {str(key): _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    return repr(value)


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

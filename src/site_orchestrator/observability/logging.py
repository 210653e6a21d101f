"""
site-orchestrator — structured run logging.

One bootstrap run writes one JSON object per line to
``<log_dir>/<run_id>/build.jsonl``. structlog renders each record in the calling
thread; stdlib logging only transports the rendered line through a bounded
queue to the file (and optionally stdout) sinks.

Record shape::

    {"timestamp": ..., "level": "INFO", "logger": ..., "message": "<event>",
     "run_id": ..., "phase": ..., "plugin": ..., "hook": ...,
     "fields": {<redacted key/values>}, "exception": ...}

Correlation keys are taken from :func:`correlation_scope` at the moment of the
call, so records emitted inside a phase carry the phase name even though the
listener thread writes them later.
"""

from __future__ import annotations

import contextvars
import logging
import logging.handlers
import math
import queue
import threading
from collections.abc import Callable, Iterator, Mapping, MutableMapping
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Final

import structlog

from site_orchestrator.domain.events import JSONValue

LogRedactor = Callable[[JSONValue], JSONValue]

REDACTED: Final[str] = "***REDACTED***"
CORRELATION_KEYS: Final[tuple[str, ...]] = ("run_id", "phase", "plugin", "hook")

_ROOT_LOGGER: Final[str] = "site_orchestrator"
_ENVELOPE_KEYS: Final[frozenset[str]] = frozenset(
    {"timestamp", "level", "logger", "message", "exception", *CORRELATION_KEYS}
)
# Source plugins routinely receive API credentials through their options.
_SENSITIVE_TERMS: Final[tuple[str, ...]] = (
    "secret",
    "token",
    "password",
    "api_key",
    "apikey",
    "authorization",
    "credential",
    "private_key",
)

_correlation: contextvars.ContextVar[tuple[tuple[str, str], ...]] = contextvars.ContextVar(
    "site_orchestrator_correlation", default=()
)

_active_lock = threading.Lock()
_active: StructuredLoggingHandle | None = None


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    run_id: str
    base_log_dir: Path | str = Path(".site-logs")
    level: int | str = "INFO"
    queue_size: int = 4096
    log_filename: str = "build.jsonl"
    log_to_stdout: bool = False
    redactor: LogRedactor | None = None


class _DroppingQueueHandler(logging.handlers.QueueHandler):
    """Never blocks a hook on a slow disk; overflowing records are counted and dropped."""

    def __init__(self, log_queue: queue.Queue[Any]) -> None:
        super().__init__(log_queue)
        self.dropped = 0

    def enqueue(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            self.dropped += 1


class StructuredLoggingHandle:
    """The sinks and listener thread of one configured run."""

    def __init__(
        self,
        *,
        run_id: str,
        log_path: Path,
        logger: logging.Logger,
        queue_handler: _DroppingQueueHandler,
        listener: logging.handlers.QueueListener,
    ) -> None:
        self.run_id = run_id
        self.log_path = log_path
        self._logger = logger
        self._queue_handler = queue_handler
        self._listener = listener
        self._lock = threading.Lock()
        self._closed = False

    @property
    def dropped_records(self) -> int:
        return self._queue_handler.dropped

    @property
    def is_shutdown(self) -> bool:
        return self._closed

    def shutdown(self) -> None:
        with self._lock:
            if self._closed:
                return
            # stop() drains everything already queued before joining the thread.
            self._listener.stop()
            self._logger.removeHandler(self._queue_handler)
            self._queue_handler.close()
            for sink in self._listener.handlers:
                sink.close()
            self._closed = True


def setup_structured_logging(config: LoggingConfig) -> StructuredLoggingHandle:
    """Start logging for one run, replacing any previously active run."""

    global _active

    shutdown_logging()
    run_id = _non_empty(config.run_id, "run_id")
    level = _level(config.level)
    if config.queue_size <= 0:
        raise ValueError("queue_size must be > 0")

    filename = _non_empty(config.log_filename, "log_filename")
    log_path = Path(config.base_log_dir) / run_id / filename
    log_path.parent.mkdir(parents=True, exist_ok=True)

    sinks: list[logging.Handler] = [logging.FileHandler(log_path, encoding="utf-8")]
    if config.log_to_stdout:
        sinks.append(logging.StreamHandler())
    for sink in sinks:
        sink.setFormatter(logging.Formatter("%(message)s"))

    logger = logging.getLogger(_ROOT_LOGGER)
    for stale in list(logger.handlers):
        logger.removeHandler(stale)
        stale.close()
    logger.setLevel(level)
    logger.propagate = False

    log_queue: queue.Queue[Any] = queue.Queue(maxsize=config.queue_size)
    queue_handler = _DroppingQueueHandler(log_queue)
    listener = logging.handlers.QueueListener(log_queue, *sinks)
    listener.start()
    logger.addHandler(queue_handler)

    configure_structlog(run_id=run_id, redactor=config.redactor or default_log_redactor)

    handle = StructuredLoggingHandle(
        run_id=run_id,
        log_path=log_path,
        logger=logger,
        queue_handler=queue_handler,
        listener=listener,
    )
    with _active_lock:
        _active = handle
    return handle


def configure_structlog(
    *, run_id: str | None = None, redactor: LogRedactor | None = None
) -> None:
    """Point structlog at stdlib logging and render each event as one JSON line."""

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            _add_level,
            _CorrelationBinder(run_id),
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
            structlog.processors.format_exc_info,
            _FieldNester(redactor or default_log_redactor),
            structlog.processors.JSONRenderer(
                sort_keys=True, separators=(",", ":"), ensure_ascii=False
            ),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def shutdown_logging(handle: StructuredLoggingHandle | None = None) -> None:
    """Flush and close ``handle`` (default: the active one). Safe to call twice."""

    global _active

    target = handle or get_active_logging_handle()
    if target is None:
        return
    target.shutdown()
    with _active_lock:
        if _active is target:
            _active = None


def get_active_logging_handle() -> StructuredLoggingHandle | None:
    with _active_lock:
        return _active


def get_correlation_context() -> dict[str, str]:
    return dict(_correlation.get())


@contextmanager
def correlation_scope(**fields: str | None) -> Iterator[None]:
    """Bind ``run_id``/``phase``/``plugin``/``hook`` for records emitted in this block.

    Passing ``None`` unbinds a key for the duration of the block.
    """

    bound = get_correlation_context()
    for key, value in fields.items():
        if key not in CORRELATION_KEYS:
            raise ValueError(f"unsupported correlation key {key!r}")
        if value is None:
            bound.pop(key, None)
        else:
            bound[key] = _non_empty(value, key)
    token = _correlation.set(tuple(bound.items()))
    try:
        yield
    finally:
        _correlation.reset(token)


def default_log_redactor(value: JSONValue) -> JSONValue:
    """Mask values stored under credential-looking keys at any depth."""

    if isinstance(value, dict):
        return {
            key: REDACTED if _is_sensitive(key) else default_log_redactor(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [default_log_redactor(item) for item in value]
    return value


def _add_level(
    logger: object, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    event_dict["level"] = "ERROR" if method_name == "exception" else method_name.upper()
    return event_dict


class _CorrelationBinder:
    def __init__(self, run_id: str | None) -> None:
        self._run_id = run_id

    def __call__(
        self, logger: object, method_name: str, event_dict: MutableMapping[str, Any]
    ) -> MutableMapping[str, Any]:
        if self._run_id is not None:
            event_dict.setdefault("run_id", self._run_id)
        for key, value in _correlation.get():
            event_dict.setdefault(key, value)
        return event_dict


class _FieldNester:
    """Move caller key/values under ``fields`` and redact them."""

    def __init__(self, redactor: LogRedactor) -> None:
        self._redactor = redactor

    def __call__(
        self, logger: object, method_name: str, event_dict: MutableMapping[str, Any]
    ) -> MutableMapping[str, Any]:
        record: dict[str, Any] = {"message": str(event_dict.pop("event", ""))}
        extras: dict[str, JSONValue] = {}
        for key, value in event_dict.items():
            if key in _ENVELOPE_KEYS:
                record[key] = value
            else:
                extras[key] = _jsonable(value)
        if extras:
            record["fields"] = self._redactor(extras)
        return record


def _jsonable(value: object) -> JSONValue:
    if value is None or isinstance(value, bool | int | str):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else repr(value)
    if isinstance(value, Path):
        return value.as_posix()
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, list | tuple | set | frozenset):
        return [_jsonable(item) for item in value]
    return repr(value)


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(term in lowered for term in _SENSITIVE_TERMS)


def _non_empty(value: object, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{name} must be a non-empty string")
    return value.strip()


def _level(value: int | str) -> int:
    if isinstance(value, int):
        return value
    resolved = logging.getLevelName(value.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"unsupported logging level {value!r}")
    return resolved


__all__ = [
    "CORRELATION_KEYS",
    "REDACTED",
    "LogRedactor",
    "LoggingConfig",
    "StructuredLoggingHandle",
    "configure_structlog",
    "correlation_scope",
    "default_log_redactor",
    "get_active_logging_handle",
    "get_correlation_context",
    "setup_structured_logging",
    "shutdown_logging",
]

"""
BodyCount Logging Subsystem (2025)

Purpose
-------
Provide the single logging pipeline for the reward engine and its host glue:

- Structured JSON logs for aggregation and analysis.
- LogContext-based propagation of per-actor context via ContextVars.
- Correlation IDs so one reward request can be followed from the client
  command through every grant in its batch.
- Non-blocking emission via a QueueHandler + QueueListener architecture,
  so a tick handler never waits on console or file I/O.
- Bounded queue with drop counters instead of back-pressure on the host.

Responsibilities
----------------
- Initialize and configure the global logging stack.
- Enrich all log records with contextual fields:
  - actor_id, command
  - correlation_id
  - component, operation
- Provide simple helper APIs:
  - get_logger()
  - LogContext (sync + async context manager)
  - set_log_context() / clear_log_context()
  - get_logging_health() for infra-level health inspection.

Design Decisions
----------------
- Console logging is the primary sink (JSON in prod, colored in dev).
- A TimedRotatingFileHandler JSON log is opt-in via `Config.LOG_TO_FILE`.
- JSONFormatter is the canonical representation.
- Extra fields passed via `logger.info("msg", extra={...})` are merged into JSON.

Dependencies
------------
- src.core.config.config.Config
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import (
    QueueHandler,
    QueueListener,
    TimedRotatingFileHandler,
)
from pathlib import Path
from typing import Any, Dict, List, Optional

from src.core.config.config import Config



# ============================================================================
# Actor / Operation Context (ContextVars)
# ============================================================================

_log_context: ContextVar[Dict[str, Any]] = ContextVar(
    "bodycount_log_context",
    default={},
)

# Fields every record carries, in console-format order.
CONTEXT_FIELDS = ("actor_id", "command", "correlation_id", "component", "operation")

_INIT_FLAG = "_bodycount_logging_initialized"


def _merged_context(base: Dict[str, Any], fields: Dict[str, Any], extra: Dict[str, Any]) -> Dict[str, Any]:
    merged = {**base, **extra}
    for key, value in fields.items():
        if value is None:
            continue
        merged[key] = str(value) if key == "actor_id" else value
    return merged


# ============================================================================
# Config / Environment
# ============================================================================


@dataclass(frozen=True, slots=True)
class LoggerConfig:
    """Logging settings resolved from `Config` when the pipeline is built."""

    environment: str = "development"
    level: int = logging.INFO
    use_json: bool = False
    use_colors: bool = False
    log_to_file: bool = False
    logs_dir: Path = Path("logs")
    quiet_sqlalchemy: bool = True

    CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-32s | [%(actor_id)s] %(message)s"
    DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
    DAILY_BASENAME = "bodycount_daily.json.log"
    DAILY_BACKUP_COUNT = 1
    QUEUE_MAX_SIZE = 10_000

    @classmethod
    def from_config(cls) -> "LoggerConfig":
        environment = str(Config.ENVIRONMENT).lower()
        production = environment == "production"
        use_json = production if Config.LOG_JSON is None else bool(Config.LOG_JSON)
        return cls(
            environment=environment,
            level=getattr(logging, str(Config.LOG_LEVEL).upper(), logging.INFO),
            use_json=use_json,
            use_colors=bool(Config.LOG_COLORS) and not use_json and not production and sys.stdout.isatty(),
            log_to_file=bool(Config.LOG_TO_FILE),
            logs_dir=Path(Config.LOGS_DIR).resolve(),
            quiet_sqlalchemy=not Config.DATABASE_ECHO,
        )


# ============================================================================
# Logging Health
# ============================================================================


@dataclass(frozen=True, slots=True)
class LoggingHealth:
    initialized: bool
    queue_size: int
    queue_max_size: int
    records_enqueued: int
    records_dropped: int
    listener_errors: int


class _PipelineCounters:
    __slots__ = ("enqueued", "dropped", "listener_errors")

    def __init__(self) -> None:
        self.enqueued = 0
        self.dropped = 0
        self.listener_errors = 0


_counters = _PipelineCounters()
_log_queue: Optional["queue.Queue[logging.LogRecord]"] = None
_queue_listener: Optional[QueueListener] = None


# ============================================================================
# Filters & Formatters
# ============================================================================


class ContextFilter(logging.Filter):
    """Stamp the ambient LogContext onto each record; `extra` values win."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        context = _log_context.get({})

        for key in CONTEXT_FIELDS:
            if getattr(record, key, None) is not None:
                continue
            if key == "component":
                record.component = context.get("component") or record.name.rsplit(".", 1)[-1]
            else:
                setattr(record, key, context.get(key) or "N/A")

        for key, value in context.items():
            if not hasattr(record, key):
                setattr(record, key, value)

        return True


class ColoredFormatter(logging.Formatter):
    LEVEL_COLORS: Dict[int, str] = {
        logging.DEBUG: "\033[90m",
        logging.INFO: "\033[94m",
        logging.WARNING: "\033[93m",
        logging.ERROR: "\033[91m",
        logging.CRITICAL: "\033[91m\033[1m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        color = self.LEVEL_COLORS.get(record.levelno)
        if color is None:
            return super().format(record)

        plain = record.levelname
        record.levelname = f"{color}{plain}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = plain


class JSONFormatter(logging.Formatter):
    """One JSON object per record; non-standard attributes land under `extra`."""

    RESERVED = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value not in (None, "N/A"):
                payload[key] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in self.RESERVED and key not in CONTEXT_FIELDS and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra

        return json.dumps(payload, ensure_ascii=False, default=str)


# ============================================================================
# Queue Handler & Listener
# ============================================================================


class BodyCountQueueHandler(QueueHandler):
    def enqueue(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        _counters.enqueued += 1
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            _counters.dropped += 1
            sys.stderr.write("BodyCount logging queue full; dropping log record.\n")


class BodyCountQueueListener(QueueListener):
    def handleError(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        _counters.listener_errors += 1
        sys.stderr.write("BodyCount logging handler error while processing record.\n")


# ============================================================================
# Global Setup
# ============================================================================


def _console_formatter(settings: LoggerConfig) -> logging.Formatter:
    if settings.use_json:
        return JSONFormatter()
    formatter_cls = ColoredFormatter if settings.use_colors else logging.Formatter
    return formatter_cls(fmt=settings.CONSOLE_FORMAT, datefmt=settings.DATE_FORMAT)


def _build_handlers(settings: LoggerConfig) -> List[logging.Handler]:
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(_console_formatter(settings))
    handlers: List[logging.Handler] = [console]

    if settings.log_to_file:
        settings.logs_dir.mkdir(parents=True, exist_ok=True)
        daily = TimedRotatingFileHandler(
            filename=str(settings.logs_dir / settings.DAILY_BASENAME),
            when="midnight",
            backupCount=settings.DAILY_BACKUP_COUNT,
            encoding="utf-8",
            utc=True,
        )
        daily.setFormatter(JSONFormatter())
        handlers.append(daily)

    for handler in handlers:
        handler.setLevel(settings.level)
    return handlers


def setup_logging(settings: Optional[LoggerConfig] = None) -> None:
    """
    Route every record through a bounded queue to console (and file) sinks.

    Idempotent: a second call is a no-op until `shutdown_logging()` runs.
    """
    global _queue_listener, _log_queue, _counters

    root = logging.getLogger()
    if getattr(root, _INIT_FLAG, False):
        return

    settings = settings or LoggerConfig.from_config()
    _counters = _PipelineCounters()
    _log_queue = queue.Queue(settings.QUEUE_MAX_SIZE)

    root.setLevel(settings.level)
    root.handlers.clear()

    _queue_listener = BodyCountQueueListener(_log_queue, *_build_handlers(settings), respect_handler_level=True)
    _queue_listener.start()

    # Enrichment happens on the emitting thread, before the record crosses the queue.
    queue_handler = BodyCountQueueHandler(_log_queue)
    queue_handler.setLevel(settings.level)
    queue_handler.addFilter(ContextFilter())
    root.addHandler(queue_handler)

    logging.getLogger("asyncio").setLevel(logging.WARNING)
    if settings.quiet_sqlalchemy:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    setattr(root, _INIT_FLAG, True)

    logging.getLogger(__name__).info(
        "Logging initialized",
        extra={
            "environment": settings.environment,
            "log_level": logging.getLevelName(settings.level),
            "json": settings.use_json,
            "colors": settings.use_colors,
            "file": settings.log_to_file,
        },
    )


def shutdown_logging() -> None:
    global _queue_listener, _log_queue

    root = logging.getLogger()
    if not getattr(root, _INIT_FLAG, False):
        return

    logging.getLogger(__name__).info("Shutting down logging subsystem.")

    if _queue_listener is not None:
        _queue_listener.stop()
        _queue_listener = None

    for handler in list(root.handlers):
        handler.flush()
        handler.close()
        root.removeHandler(handler)

    setattr(root, _INIT_FLAG, False)
    _log_queue = None


def get_logging_health() -> LoggingHealth:
    return LoggingHealth(
        initialized=bool(getattr(logging.getLogger(), _INIT_FLAG, False)),
        queue_size=_log_queue.qsize() if _log_queue is not None else 0,
        queue_max_size=_log_queue.maxsize if _log_queue is not None else 0,
        records_enqueued=_counters.enqueued,
        records_dropped=_counters.dropped,
        listener_errors=_counters.listener_errors,
    )


# ============================================================================
# Public API
# ============================================================================


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


class LogContext:
    """
    Scoped logging context, usable with `with` and `async with`.

    Nested contexts inherit the enclosing values and override only the
    fields they set. A correlation id is generated when none is inherited.
    """

    def __init__(
        self,
        actor_id: Optional[Any] = None,
        command: Optional[str] = None,
        component: Optional[str] = None,
        operation: Optional[str] = None,
        correlation_id: Optional[str] = None,
        **extra: Any,
    ) -> None:
        inherited = _log_context.get({})
        self.context: Dict[str, Any] = _merged_context(
            inherited,
            {
                "actor_id": actor_id,
                "command": command,
                "component": component,
                "operation": operation,
                "correlation_id": correlation_id
                or inherited.get("correlation_id")
                or uuid.uuid4().hex[:8],
            },
            extra,
        )
        self._token: Optional[Token[Dict[str, Any]]] = None

    @property
    def correlation_id(self) -> str:
        return self.context["correlation_id"]

    def __enter__(self) -> "LogContext":
        self._token = _log_context.set(self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


def set_log_context(
    actor_id: Optional[Any] = None,
    command: Optional[str] = None,
    component: Optional[str] = None,
    operation: Optional[str] = None,
    correlation_id: Optional[str] = None,
    **extra: Any,
) -> None:
    """Update the current context in place (outside any `with LogContext`)."""
    _log_context.set(
        _merged_context(
            _log_context.get({}),
            {
                "actor_id": actor_id,
                "command": command,
                "component": component,
                "operation": operation,
                "correlation_id": correlation_id or None,
            },
            extra,
        )
    )


def get_log_context() -> Dict[str, Any]:
    return dict(_log_context.get({}))


def clear_log_context() -> None:
    _log_context.set({})


# Initialize logging automatically
setup_logging()

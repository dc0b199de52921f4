"""Logging setup: console and rotating-file handlers tagged with the active session."""

import json
import logging
import logging.handlers
import sys
from contextvars import ContextVar
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

# Set by the orchestrator to the id of the session being mutated.
correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")

_STANDARD_RECORD_FIELDS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "correlation_id", "taskName"}

_QUIET_LOGGERS = ("asyncio", "aiohttp")


class CorrelationIdFilter(logging.Filter):
    """Stamps every record with the current correlation id."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id.get()
        return True


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _STANDARD_RECORD_FIELDS}


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, including any ``extra=`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "correlation_id": getattr(record, "correlation_id", ""),
            "message": record.getMessage(),
        }
        entry.update(_extra_fields(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class HumanReadableFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        session = getattr(record, "correlation_id", "")
        prefix = f"{stamp} {record.levelname:<7} {record.name}"
        if session:
            prefix += f" [{session[:8]}]"
        text = f"{prefix}: {record.getMessage()}"
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        return text


def _attach(root: logging.Logger, handler: logging.Handler, formatter: logging.Formatter) -> None:
    handler.setFormatter(formatter)
    handler.addFilter(CorrelationIdFilter())
    root.addHandler(handler)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    enable_console: bool = True,
    enable_file: bool = False,
    structured: bool = False,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """Configure the root logger, replacing any handlers already installed.

    Args:
        level: Level name such as ``DEBUG`` or ``INFO``
        log_file: Rotating log file path, used when ``enable_file`` is set
        enable_console: Log to stderr
        enable_file: Log to ``log_file``
        structured: JSON lines instead of the human-readable format
        max_file_size: Bytes before the log file rotates
        backup_count: Rotated files to keep
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    formatter = StructuredFormatter() if structured else HumanReadableFormatter()
    if enable_console:
        _attach(root, logging.StreamHandler(sys.stderr), formatter)
    if enable_file and log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        _attach(
            root,
            logging.handlers.RotatingFileHandler(
                log_file, maxBytes=max_file_size, backupCount=backup_count, encoding="utf-8"
            ),
            formatter,
        )
    if not root.handlers:
        root.addHandler(logging.NullHandler())

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    get_logger("startup").debug(
        "Logging configured",
        extra={"log_level": level, "console": enable_console, "file": bool(enable_file and log_file)},
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"interview_engine.{name}")


def set_correlation_id(value: str) -> None:
    correlation_id.set(value)


def get_correlation_id() -> str:
    return correlation_id.get()


def log_performance(operation: str, duration: float, details: Optional[Dict[str, Any]] = None) -> None:
    """Record how long an operation took.

    Args:
        operation: Dotted operation name, e.g. ``ai_gateway.evaluate_answer``
        duration: Elapsed seconds
        details: Extra fields for structured output
    """
    extra: Dict[str, Any] = {"operation": operation, "duration_seconds": round(duration, 4)}
    if details:
        extra.update(details)
    get_logger("performance").info(f"{operation} took {duration:.3f}s", extra=extra)

from __future__ import annotations

import datetime as dt
import json
import logging
import os
import sys
import uuid
from typing import Any

from loguru import logger as loguru_logger

UTC = dt.timezone.utc

# Attributes every LogRecord carries; anything else came in through ``extra``.
_STANDARD_FIELDS = frozenset(
    {
        "args",
        "msg",
        "name",
        "levelno",
        "levelname",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "getMessage",
        "message",
    }
)

_PERFORMANCE_FIELDS = frozenset(
    {"latency_ms", "model_count", "pages", "delivered", "failures"}
)

_CLASSIFICATION_FIELDS = frozenset(
    {"category", "is_retryable", "status_code", "retry_after", "error_type", "cause_type"}
)


class EnhancedJsonFormatter(logging.Formatter):
    """JSON formatter grouping timing and error-classification fields."""

    def __init__(self, include_location: bool = True, include_process_info: bool = True):
        super().__init__()
        self.include_location = include_location
        self.include_process_info = include_process_info
        self.hostname = os.uname().nodename if hasattr(os, "uname") else "unknown"

    def format(self, record: logging.LogRecord) -> str:
        base: dict[str, Any] = {
            "timestamp": dt.datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "hostname": self.hostname,
        }

        if self.include_location:
            base.update(
                {
                    "module": record.module,
                    "function": record.funcName,
                    "line": record.lineno,
                }
            )

        if self.include_process_info:
            base.update({"process": record.process, "thread": record.thread})

        if record.exc_info:
            base["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        extra_fields: dict[str, Any] = {}
        performance_fields: dict[str, Any] = {}
        classification_fields: dict[str, Any] = {}

        for key, value in record.__dict__.items():
            if key.startswith("_") or key in _STANDARD_FIELDS or key in base:
                continue
            if key in _PERFORMANCE_FIELDS:
                performance_fields[key] = value
            elif key in _CLASSIFICATION_FIELDS:
                classification_fields[key] = value
            else:
                extra_fields[key] = value

        if performance_fields:
            base["performance"] = performance_fields
        if classification_fields:
            base["classification"] = classification_fields
        if extra_fields:
            base["extra"] = extra_fields

        if hasattr(record, "correlation_id"):
            base["correlation_id"] = record.correlation_id

        return json.dumps(
            base, ensure_ascii=False, default=self._json_serializer, separators=(",", ":")
        )

    def _json_serializer(self, obj: Any) -> str:
        """Custom JSON serializer for non-standard types."""
        if hasattr(obj, "__dict__"):
            return f"<{obj.__class__.__name__}>"
        return str(obj)


class InterceptHandler(logging.Handler):
    """Forward stdlib records, including their ``extra`` fields, to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        level_to_use: int | str
        try:
            level_to_use = loguru_logger.level(record.levelname).name
        except ValueError:
            level_to_use = record.levelno

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if not key.startswith("_") and key not in _STANDARD_FIELDS
        }

        loguru_logger.bind(**extra).opt(depth=6, exception=record.exc_info).log(
            level_to_use, record.getMessage()
        )


def setup_json_logging(
    level: str = "INFO",
    include_location: bool = True,
    include_process_info: bool = True,
    use_loguru: bool = True,
    log_file: str | None = None,
    max_file_size: str = "100 MB",
    retention: str = "30 days",
) -> None:
    """Configure JSON logging for the client and the HTTP stack.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        include_location: Include file/line information in logs
        include_process_info: Include process/thread information
        use_loguru: Route stdlib logging through loguru sinks
        log_file: Optional log file path for persistent logging
        max_file_size: Maximum size per log file (loguru format)
        retention: Log retention period (loguru format)
    """
    lvl = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()

    if use_loguru:
        loguru_logger.remove()
        loguru_logger.add(
            sys.stdout,
            level=level.upper(),
            serialize=True,
            enqueue=True,
            backtrace=True,
            diagnose=False,
        )
        if log_file:
            loguru_logger.add(
                log_file,
                level=level.upper(),
                serialize=True,
                rotation=max_file_size,
                retention=retention,
                compression="gz",
                enqueue=True,
            )

        root.handlers.clear()
        root.setLevel(lvl)
        root.addHandler(InterceptHandler())
    else:
        formatter = EnhancedJsonFormatter(
            include_location=include_location, include_process_info=include_process_info
        )
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root.handlers.clear()
        root.setLevel(lvl)
        root.addHandler(console_handler)

        if log_file:
            from logging.handlers import RotatingFileHandler

            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=100 * 1024 * 1024,  # 100MB
                backupCount=5,
            )
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

    # httpx/httpcore log every request at INFO/DEBUG
    for noisy_logger in ("httpx", "httpcore", "hpack"):
        logging.getLogger(noisy_logger).setLevel(max(lvl, logging.WARNING))

    logging.getLogger(__name__).info(
        "json_logging_initialized",
        extra={"level": level, "use_loguru": use_loguru, "log_file": log_file},
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance by name.

    Args:
        name: Logger name, typically __name__ of the calling module

    Returns:
        Logger instance for the given name
    """
    return logging.getLogger(name)


def generate_correlation_id() -> str:
    """Generate a short correlation ID for tracing one call across log lines."""
    return uuid.uuid4().hex[:12]


def truncate_log_content(content: str | None, max_length: int = 1000) -> str | None:
    """Truncate large content (e.g. provider error bodies) for logging.

    Args:
        content: The content to potentially truncate
        max_length: Maximum length before truncation (default 1000)

    Returns:
        Truncated content with a marker if truncated, or original content if short enough
    """
    if not content:
        return content
    if len(content) <= max_length:
        return content

    if max_length > 20:
        truncate_at = max_length - 15
        truncated = content[:truncate_at]

        last_space = truncated.rfind(" ", max(0, truncate_at - 50))
        if last_space > truncate_at - 100:
            truncated = truncated[:last_space]

        return truncated + "... [truncated]"

    return content[:max_length] + "..."


__all__ = [
    "EnhancedJsonFormatter",
    "InterceptHandler",
    "generate_correlation_id",
    "get_logger",
    "setup_json_logging",
    "truncate_log_content",
]

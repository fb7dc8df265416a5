#!/usr/bin/env python3
"""
structlog setup for the configuration cache.

Every event carries a ``stage`` (see Stage) and, while a load test runs,
the ``run_id`` of that run. Output is JSON by default; set
LOG_FORMAT=console for colored local output.
"""

import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from enum import Enum

import structlog
from structlog.types import EventDict, WrappedLogger

from prdv_cache.core.config.settings import get_settings

# Context variable for the correlation id of the current run/request
run_id_ctx: ContextVar[str | None] = ContextVar("run_id", default=None)


def add_run_id(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add run ID to log event from context variable.

    STAGE-L.1: Run ID injection
    """
    run_id = run_id_ctx.get()
    if run_id:
        event_dict["run_id"] = run_id
    return event_dict


def add_timestamp(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add ISO timestamp to log event.

    STAGE-L.2: Timestamp injection
    """
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    return event_dict


def add_log_level_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add log level name to event dict.

    STAGE-L.3: Log level injection
    """
    if "level" in event_dict:
        event_dict["level"] = event_dict["level"].upper()
    return event_dict


def setup_logging(log_level: str | None = None, log_format: str | None = None) -> None:
    """
    Setup structured logging with structlog.

    STAGE-L: Logging initialization

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format ('json' or 'console')
    """
    settings = get_settings()

    log_level = log_level or settings.logging.LOG_LEVEL
    log_format = log_format or settings.logging.LOG_FORMAT

    logging.basicConfig(
        format="%(message)s", stream=sys.stdout, level=getattr(logging, log_level.upper())
    )

    # SQLAlchemy and aiosqlite are chatty at DEBUG
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_run_id,
            add_timestamp,
            structlog.stdlib.add_log_level,
            add_log_level_name,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        BoundLogger: Structured logger instance

    Usage:
        logger = get_logger(__name__)
        logger.info("message", device_id="HM0011000000", stage=Stage.CACHE_HIT)
    """
    return structlog.get_logger(name)


def set_run_id(run_id: str) -> None:
    """Set the correlation id for the current run or request."""
    run_id_ctx.set(run_id)


def get_run_id() -> str | None:
    """Get the current correlation id, if any."""
    return run_id_ctx.get()


def clear_run_id() -> None:
    """Clear the correlation id at the end of a run."""
    run_id_ctx.set(None)


def log_stage(
    logger: structlog.stdlib.BoundLogger, stage: str, message: str, level: str = "info", **kwargs
) -> None:
    """
    Log a message with stage information.

    Args:
        logger: Logger instance
        stage: Stage identifier (e.g., Stage.CACHE_HIT)
        message: Log message
        level: Log level (debug, info, warning, error, critical)
        **kwargs: Additional fields to log

    Usage:
        log_stage(logger, Stage.CACHE_HIT, "Cache hit", device_id="HM0011000000")
    """
    if isinstance(stage, Enum):
        stage = stage.value
    log_func = getattr(logger, level.lower())
    log_func(message, stage=stage, **kwargs)

"""Structured logging configuration for Phasekeeper.

This module configures structlog with support for:
- JSON and console output formats
- File rotation based on size
- Correlation IDs tying together the log lines of one command
- Project and state context binding

Logs go to stderr (or a rotating file) so they never mix with command
output on stdout.

Example usage:
    >>> from phasekeeper.config import LoggingConfig
    >>> from phasekeeper.logging import setup_logging, get_logger, bind_project_context
    >>>
    >>> setup_logging(LoggingConfig(level="INFO", format="json"))
    >>> logger = get_logger(__name__)
    >>> bind_project_context(project="add-login", state="ReviewActive")
    >>> logger.info("project_advanced", trigger="review_pass")
"""

from __future__ import annotations

import contextvars
import logging
import logging.handlers
import sys
import uuid
from typing import Any

import structlog

from phasekeeper.config import LoggingConfig

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)


def add_correlation_id(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add correlation_id to log event if set in context.

    Args:
        logger: Logger instance (unused, required by structlog protocol)
        method_name: Log method name (unused, required by structlog protocol)
        event_dict: Current event dictionary to augment

    Returns:
        Event dictionary with correlation_id added if available
    """
    correlation_id = _correlation_id.get()
    if correlation_id is not None:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def set_correlation_id(correlation_id: str | None) -> None:
    _correlation_id.set(correlation_id)


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def new_correlation_id() -> str:
    """Generate and set a fresh correlation ID for the current context."""
    correlation_id = uuid.uuid4().hex[:12]
    _correlation_id.set(correlation_id)
    return correlation_id


def bind_project_context(project: str, state: str | None = None) -> None:
    """Bind project (and optionally state) to all subsequent logs in this context.

    Args:
        project: Project name to bind
        state: Current state name to bind
    """
    values: dict[str, Any] = {"project": project}
    if state is not None:
        values["state"] = state
    structlog.contextvars.bind_contextvars(**values)


def clear_project_context() -> None:
    structlog.contextvars.unbind_contextvars("project", "state")


def setup_logging(config: LoggingConfig) -> None:
    """Configure structlog with the given configuration.

    Sets up the stdlib root handler (rotating file or stderr), the
    timestamp/level/logger-name processors, context merging, correlation
    IDs, and a JSON or console renderer.

    Args:
        config: Logging configuration from PhasekeeperConfig

    Example:
        >>> setup_logging(LoggingConfig(level="DEBUG", format="console"))
    """
    log_level = getattr(logging, config.level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    handler: logging.Handler
    if config.file is not None:
        config.file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            filename=config.file,
            maxBytes=config.rotation_size_mb * 1024 * 1024,
            backupCount=config.retention_count,
            encoding="utf-8",
        )
    else:
        handler = logging.StreamHandler(sys.stderr)

    handler.setLevel(log_level)
    root_logger.addHandler(handler)

    if config.format == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.contextvars.merge_contextvars,
            add_correlation_id,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        # The CLI reconfigures per invocation; cached loggers would keep the old chain.
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module)
    """
    return structlog.get_logger(name)

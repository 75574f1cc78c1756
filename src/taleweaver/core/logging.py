"""Structured diagnostic logging for the Taleweaver round engine.

Diagnostic logging is separate from the in-game story log: story lines
live in ``WorldState.history`` and are written through the StateStore.
Everything here goes through structlog, configured once from the
application settings (``TALEWEAVER_LOG_LEVEL``, ``TALEWEAVER_JSON_LOGS``).
The RoundScheduler configures logging when it is constructed, so an
embedding application only has to set those variables.

Example:
    >>> from taleweaver.core.logging import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Phase entered", phase="settlement", round=3)
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any, TextIO

import structlog
from structlog.types import Processor


if TYPE_CHECKING:
    from structlog.types import EventDict, WrappedLogger

    from taleweaver.core.config import Settings


# Libraries used by the Judge transport; only their warnings are of interest.
NOISY_LOGGERS = ("openai", "httpx", "httpcore")

_configured = False


def app_context(app_name: str) -> Processor:
    """Build a processor stamping every event with the application name."""

    def add_app_context(
        logger: WrappedLogger,
        method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        event_dict["app"] = app_name
        return event_dict

    return add_app_context


def is_configured() -> bool:
    """Whether ``configure_logging`` has already run."""
    return _configured


def configure_logging(
    settings: Settings | None = None,
    *,
    stream: TextIO | None = None,
    force: bool = False,
) -> None:
    """Configure structlog from the application settings.

    Only the first call takes effect unless ``force`` is set. Loggers are
    not cached, so a later forced call applies to every module logger.

    Args:
        settings: Settings to read the level and format from; the cached
            application settings when omitted.
        stream: Where log lines are written (standard output by default).
        force: Reconfigure even if logging was configured before.

    Example:
        >>> configure_logging(Settings(log_level="DEBUG", json_logs=True), force=True)
    """
    global _configured
    if _configured and not force:
        return

    if settings is None:
        from taleweaver.core.config import get_settings

        settings = get_settings()

    level = getattr(logging, settings.log_level, logging.INFO)
    output = stream or sys.stdout

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        app_context(settings.app_name),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.json_logs:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=output.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=False,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    _configured = True


def reset_logging() -> None:
    """Restore structlog defaults and forget the previous configuration."""
    global _configured
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    _configured = False


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a logger instance.

    Args:
        name: Optional name for the logger (typically __name__).

    Returns:
        A structlog logger bound lazily to the current configuration.
    """
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context variables that will be included in all subsequent logs.

    The scheduler binds the round number and phase here so that every
    resolver log line carries them.

    Args:
        **kwargs: Key-value pairs to bind to the logging context.

    Example:
        >>> bind_context(round=2, phase="char_acting")
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


__all__ = [
    "configure_logging",
    "is_configured",
    "reset_logging",
    "get_logger",
    "bind_context",
    "clear_context",
]

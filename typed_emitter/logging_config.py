"""Structured logging configuration for typed-emitter.

Loggers are structlog wrappers around stdlib loggers under the
``typed_emitter`` namespace. The package logger carries a ``NullHandler``,
so nothing is printed until the host application configures logging, either
its own way or through ``configure_logging``. Neither touches the root
logger or the host's global structlog configuration.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from typed_emitter.settings import EmitterSettings

PACKAGE_LOGGER = "typed_emitter"

logging.getLogger(PACKAGE_LOGGER).addHandler(logging.NullHandler())


def _processors(json_output: bool = False, colors: bool = False) -> list[structlog.types.Processor]:
    processors: list[structlog.types.Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=colors))
    return processors


# Shared by every logger from ``get_logger``; updated in place on reconfigure.
_PROCESSORS: list[structlog.types.Processor] = _processors()
_handler: logging.Handler | None = None


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Path | None = None,
    colors: bool = True,
) -> None:
    """Send typed-emitter logs to stderr or a file.

    Calling it again replaces (and closes) the handler installed before.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Whether to output JSON format
        log_file: Optional file to log to
        colors: Whether to use colors in console output
    """
    global _handler

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    reset_logging()

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
        colors = False
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))

    package_logger.addHandler(handler)
    package_logger.setLevel(getattr(logging, level.upper()))
    _handler = handler
    _PROCESSORS[:] = _processors(json_output=json_output, colors=colors)


def configure_from_settings(settings: EmitterSettings, log_file: Path | None = None) -> None:
    """Apply the logging part of an ``EmitterSettings``."""
    configure_logging(
        level=settings.log_level,
        json_output=settings.json_logs,
        log_file=log_file,
        colors=not settings.json_logs,
    )


def reset_logging() -> None:
    """Remove the handler installed by ``configure_logging``, if any."""
    global _handler

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is not None:
        package_logger.removeHandler(_handler)
        _handler.close()
        _handler = None
    package_logger.setLevel(logging.NOTSET)
    _PROCESSORS[:] = _processors()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__, inside the typed_emitter namespace)

    Returns:
        Structured logger instance
    """
    return structlog.wrap_logger(
        logging.getLogger(name),
        processors=_PROCESSORS,
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


# Usage example:
# from typed_emitter.logging_config import get_logger
#
# logger = get_logger(__name__)
#
# logger.debug("listener_registered",
#              event_name="data",
#              once=False,
#              listeners=2)

"""
typed-emitter: a small typed publish/subscribe utility.
"""

from .events import (
    DispatchMode,
    Emitter,
    EventContract,
    EventKey,
    Listener,
    Publisher,
    UnknownEventError,
    async_listener,
    is_async_listener,
    sync_listener,
)
from .logging_config import configure_from_settings, configure_logging, get_logger, reset_logging
from .settings import EmitterSettings

__version__ = "0.1.0"

__all__ = [
    "DispatchMode",
    "Emitter",
    "EmitterSettings",
    "EventContract",
    "EventKey",
    "Listener",
    "Publisher",
    "UnknownEventError",
    "async_listener",
    "configure_from_settings",
    "configure_logging",
    "get_logger",
    "is_async_listener",
    "reset_logging",
    "sync_listener",
]

"""
Typed event emitter.

Provides named, payload-typed events with persistent and one-shot listeners.
"""

from typed_emitter.events.emitter import (
    Emitter,
    Publisher,
    UnknownEventError,
)
from typed_emitter.events.types import (
    DispatchMode,
    EventContract,
    EventKey,
    Listener,
    async_listener,
    is_async_listener,
    sync_listener,
)

__all__ = [
    "DispatchMode",
    "Emitter",
    "EventContract",
    "EventKey",
    "Listener",
    "Publisher",
    "UnknownEventError",
    "async_listener",
    "is_async_listener",
    "sync_listener",
]

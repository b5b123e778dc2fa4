"""
Event contract types and listener classification.

An event contract is a class whose attributes are ``EventKey`` objects:

    class DownloadEvents(EventContract):
        progress = EventKey[float]("progress")
        finished = EventKey[Path]("finished")

Each key carries the payload type of its event, so a type checker can match
``emitter.on(DownloadEvents.progress, listener)`` against ``listener``'s
parameter. At runtime a key is just its name: ``EventKey("progress")`` and
``"progress"`` address the same registry entry.
"""

from __future__ import annotations

import functools
import inspect
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, ClassVar, Generic, TypeVar

P = TypeVar("P")
F = TypeVar("F", bound=Callable[..., Any])

# A listener receives one payload and returns nothing or an awaitable.
Listener = Callable[[P], Awaitable[None] | None]

_ASYNC_MARKER = "__emitter_async__"


# =============================================================================
# Event Keys & Contracts
# =============================================================================


class EventKey(str, Generic[P]):
    """Name of an event, typed by the payload its listeners receive."""

    def __repr__(self) -> str:
        return f"EventKey({str.__repr__(self)})"


class EventContract:
    """
    Base class for event contracts.

    Subclasses declare their events as ``EventKey`` class attributes. The set
    of names is collected once, at class creation, into ``__events__``.
    """

    __events__: ClassVar[frozenset[str]] = frozenset()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        names: set[str] = set()
        for base in cls.__mro__[1:]:
            names |= getattr(base, "__events__", frozenset())

        declared: set[str] = set()
        for attr, value in vars(cls).items():
            if not isinstance(value, EventKey):
                continue
            name = str(value)
            if name in declared:
                raise TypeError(f"{cls.__name__}.{attr}: duplicate event name {name!r}")
            declared.add(name)

        cls.__events__ = frozenset(names | declared)

    @classmethod
    def names(cls) -> frozenset[str]:
        """Return every event name of the contract."""
        return cls.__events__


# =============================================================================
# Dispatch Mode
# =============================================================================


class DispatchMode(str, Enum):
    """
    How a listener sequence is dispatched.

    - SEQUENCE: the first listener decides for the whole sequence
    - LISTENER: every listener is dispatched according to its own kind
    """

    SEQUENCE = "sequence"
    LISTENER = "listener"


# =============================================================================
# Listener Classification
# =============================================================================


def async_listener(fn: F) -> F:
    """Mark ``fn`` as returning an awaitable, whatever its function kind."""
    setattr(fn, _ASYNC_MARKER, True)
    return fn


def sync_listener(fn: F) -> F:
    """Mark ``fn`` as synchronous; a returned value is never awaited."""
    setattr(fn, _ASYNC_MARKER, False)
    return fn


def is_async_listener(fn: Callable[..., Any]) -> bool:
    """
    Tell whether a listener returns a pending completion.

    An explicit marker set by ``async_listener``/``sync_listener`` wins.
    Otherwise coroutine functions are async, including when wrapped in
    ``functools.partial`` or exposed as an object's ``__call__``.
    """
    target = fn
    while True:
        marker = getattr(target, _ASYNC_MARKER, None)
        if marker is not None:
            return bool(marker)
        if not isinstance(target, functools.partial):
            break
        target = target.func

    if inspect.iscoroutinefunction(target):
        return True
    if not inspect.isfunction(target) and not inspect.ismethod(target):
        return inspect.iscoroutinefunction(getattr(target, "__call__", None))
    return False

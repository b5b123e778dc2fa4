"""
Typed event emitter.

Anyone holding an emitter can subscribe; only its owner can emit:

    class Downloader(Emitter[DownloadEvents]):
        def _finish(self, path: Path) -> None:
            self._emit(DownloadEvents.finished, path)

    downloader = Downloader()
    downloader.on(DownloadEvents.finished, lambda path: print(path))

Owners that prefer composition keep a ``Publisher`` and hand out
``publisher.events`` instead.

Dispatch:
- Persistent listeners (``on``) stay registered across emissions.
- One-shot listeners (``once``) are cleared once the emission that
  dispatched them settles, whether it succeeded or failed.
  Clearing removes the listeners that emission dispatched; a ``once``
  registered while its async listeners are still running is kept for the
  next emission.
- Under ``DispatchMode.SEQUENCE`` the first listener of a sequence decides
  how the whole sequence runs. If it is async, every listener is called and
  every returned awaitable is started and tracked. If it is sync, every
  listener is called in order and nothing is tracked: a coroutine returned
  by a later async listener is started as a detached task when a loop is
  running (and dropped otherwise), and one-shot clearing does not wait for
  it.
- Under ``DispatchMode.LISTENER`` each listener is dispatched according to
  its own kind.
- Awaitables are started with ``asyncio.ensure_future`` when an event loop
  is running, and never awaited by ``_emit``. Without a running loop they
  are driven to completion with ``asyncio.run`` before ``_emit`` returns.
- A sync listener that raises aborts the rest of its pass and propagates to
  the caller of ``_emit``. Async failures are logged and never re-raised.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from typed_emitter.events.types import DispatchMode, EventContract, EventKey, Listener, P, is_async_listener
from typed_emitter.logging_config import get_logger
from typed_emitter.settings import EmitterSettings

logger = get_logger(__name__)

C = TypeVar("C", bound=EventContract)
R = TypeVar("R")


class UnknownEventError(LookupError):
    """Raised by ``off`` for an event name no registry holds."""

    def __init__(self, event: str, message: str | None = None):
        self.event = event
        self.message = message or f"Can't remove a listener. Event \"{event}\" doesn't exist."
        super().__init__(self.message)


@dataclass(frozen=True, eq=False)
class _Entry:
    """A registered listener, tagged with its kind at registration time."""

    listener: Listener[Any]
    is_async: bool


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class Emitter(Generic[C]):
    """
    Registration, removal and dispatch of the events of contract ``C``.

    ``_emit`` is protected: call it from subclasses (or through a
    ``Publisher``), never from subscriber code.
    """

    def __init__(self, settings: EmitterSettings | None = None):
        """
        Initialize the emitter.

        Args:
            settings: Emitter settings, defaults to ``EmitterSettings()``
        """
        self._settings = settings or EmitterSettings()
        self._events: dict[str, list[_Entry]] = {}
        self._once_events: dict[str, list[_Entry]] = {}
        self._tasks: set[asyncio.Future[Any]] = set()

    @property
    def settings(self) -> EmitterSettings:
        return self._settings

    # -------------------------------------------------------------------------
    # Subscription
    # -------------------------------------------------------------------------

    def on(self, event: EventKey[P], listener: Callable[[P], R]) -> Callable[[P], R]:
        """
        Listen to every emission of ``event``.

        Args:
            event: Event name from the emitter's contract
            listener: Callable receiving the event payload (sync or async)

        Returns:
            The listener itself, for a later ``off``
        """
        return self._register(self._events, event, listener, once=False)

    def once(self, event: EventKey[P], listener: Callable[[P], R]) -> Callable[[P], R]:
        """Listen to the next emission of ``event`` only."""
        return self._register(self._once_events, event, listener, once=True)

    def _register(
        self,
        registry: dict[str, list[_Entry]],
        event: str,
        listener: Callable[[Any], Any],
        once: bool,
    ) -> Any:
        name = str(event)
        entry = _Entry(listener=listener, is_async=is_async_listener(listener))
        registry.setdefault(name, []).append(entry)

        logger.debug(
            "listener_registered",
            event_name=name,
            once=once,
            is_async=entry.is_async,
            listeners=self.listeners_count(name),
        )
        return listener

    def off(self, event: EventKey[P], listener: Callable[[P], Any]) -> bool:
        """
        Remove every registration of ``listener`` for ``event``.

        Listeners are matched by identity, in both the persistent and the
        one-shot registry. Removing a listener that is not registered is a
        no-op.

        Raises:
            UnknownEventError: If neither registry holds ``event``
        """
        name = str(event)
        if name not in self._events and name not in self._once_events:
            raise UnknownEventError(name)

        before = self.listeners_count(name)
        self._events[name] = [e for e in self._events.get(name, []) if e.listener is not listener]
        self._once_events[name] = [e for e in self._once_events.get(name, []) if e.listener is not listener]

        logger.debug("listener_removed", event_name=name, removed=before - self.listeners_count(name))
        return True

    def remove_all_listeners(self) -> None:
        """Remove every listener of every event."""
        self._events = {}
        self._once_events = {}
        logger.debug("listeners_cleared")

    def listeners_count(self, event: EventKey[Any]) -> int:
        """Number of persistent plus one-shot listeners for ``event``."""
        name = str(event)
        return len(self._events.get(name, ())) + len(self._once_events.get(name, ()))

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def _emit(self, event: EventKey[P], data: P) -> None:
        """
        Dispatch ``data`` to the listeners of ``event``.

        Args:
            event: Event name from the emitter's contract
            data: Payload handed to every listener
        """
        name = str(event)
        if not self._events.get(name) and not self._once_events.get(name):
            return

        logger.debug(
            "event_dispatching",
            event_name=name,
            listeners=len(self._events.get(name, ())),
            once_listeners=len(self._once_events.get(name, ())),
        )

        persistent = self._events.get(name)
        if persistent:
            self._dispatch(name, tuple(persistent), data)

        once = self._once_events.get(name)
        if not once:
            return

        snapshot = tuple(once)
        try:
            pending = self._dispatch(name, snapshot, data)
        except BaseException:
            self._clear_once(name, snapshot)
            raise
        if not pending:
            self._clear_once(name, snapshot)
            return

        aggregate = asyncio.gather(*pending, return_exceptions=True)
        aggregate.add_done_callback(lambda _: self._clear_once(name, snapshot))

    def _dispatch(self, name: str, entries: tuple[_Entry, ...], data: Any) -> list[asyncio.Future[Any]]:
        """
        Call every listener of a snapshot.

        Returns:
            Started futures of the tracked awaitables, empty when nothing is
            left pending
        """
        per_listener = self._settings.dispatch_mode is DispatchMode.LISTENER
        track_all = not per_listener and entries[0].is_async
        loop = _running_loop()
        tracked: list[Awaitable[Any]] = []

        try:
            for entry in entries:
                result = entry.listener(data)
                if not inspect.isawaitable(result):
                    continue
                if track_all or (per_listener and entry.is_async):
                    tracked.append(result if loop is None else self._start(name, result))
                else:
                    self._detach(name, result)
        except BaseException:
            if loop is None:
                for awaitable in tracked:
                    if inspect.iscoroutine(awaitable):
                        awaitable.close()
            raise

        if loop is None:
            if tracked:
                asyncio.run(self._run_all(name, tracked))
            return []
        return tracked  # type: ignore[return-value]

    async def _run_all(self, name: str, awaitables: list[Awaitable[Any]]) -> None:
        futures = [self._start(name, awaitable) for awaitable in awaitables]
        await asyncio.gather(*futures, return_exceptions=True)

    def _start(self, name: str, awaitable: Awaitable[Any]) -> asyncio.Future[Any]:
        future = asyncio.ensure_future(awaitable)
        self._tasks.add(future)
        future.add_done_callback(self._tasks.discard)
        future.add_done_callback(functools.partial(self._log_failure, name))
        return future

    def _detach(self, name: str, awaitable: Awaitable[Any]) -> None:
        """Start an untracked awaitable, or drop it when no loop can run it."""
        if _running_loop() is not None:
            self._start(name, awaitable)
            return

        if inspect.iscoroutine(awaitable):
            awaitable.close()
        logger.warning("listener_coroutine_dropped", event_name=name)

    @staticmethod
    def _log_failure(name: str, future: asyncio.Future[Any]) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("listener_failed", event_name=name, error=repr(exc), exc_info=exc)

    def _clear_once(self, name: str, dispatched: tuple[_Entry, ...]) -> None:
        """Drop the dispatched one-shot entries, keeping later registrations."""
        current = self._once_events.get(name)
        if current is None:
            return

        dispatched_ids = {id(entry) for entry in dispatched}
        remaining = [entry for entry in current if id(entry) not in dispatched_ids]
        if remaining:
            self._once_events[name] = remaining
        else:
            del self._once_events[name]

        logger.debug("once_listeners_cleared", event_name=name, cleared=len(current) - len(remaining))


class Publisher(Generic[C]):
    """
    Owner-side handle of an emitter.

    Hand ``publisher.events`` to subscribers and keep the publisher itself:
    only its holder can emit.
    """

    def __init__(self, settings: EmitterSettings | None = None):
        self._emitter: Emitter[C] = Emitter(settings)

    @property
    def events(self) -> Emitter[C]:
        """Subscriber-facing emitter."""
        return self._emitter

    def emit(self, event: EventKey[P], data: P) -> None:
        """Dispatch ``data`` to the listeners of ``event``."""
        self._emitter._emit(event, data)

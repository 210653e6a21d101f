"""
site-orchestrator — lifecycle event bus.

The orchestrator announces run and phase transitions here; external reporters
(progress bars, CI annotations, tests) subscribe to them. A subscriber that
raises is recorded as a :class:`DispatchError` and never affects the build or
the other subscribers.

Subscribers may be coroutine functions. ``emit_async`` awaits them in order;
``emit`` from inside a running loop schedules them as tasks that
``drain_async`` collects. With no running loop their coroutines are closed
unrun.
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
import threading
from collections import deque
from collections.abc import Awaitable, Callable, Iterator, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime

from site_orchestrator.domain.events import BuildEvent, EventType, as_json_object
from site_orchestrator.domain.ids import generate_event_id

Subscriber = Callable[[BuildEvent], object]


@dataclass(frozen=True, slots=True)
class DispatchError:
    event_id: str
    target: str
    error_type: str
    message: str

    @classmethod
    def capture(cls, event: BuildEvent, callback: object, exc: BaseException) -> DispatchError:
        return cls(
            event_id=event.event_id,
            target=getattr(callback, "__qualname__", None) or type(callback).__name__,
            error_type=type(exc).__name__,
            message=str(exc),
        )


class EventBus:
    def __init__(self, *, buffer_size: int = 512, error_buffer_size: int = 1024) -> None:
        if buffer_size <= 0 or error_buffer_size <= 0:
            raise ValueError("buffer sizes must be > 0")
        self._history: deque[BuildEvent] = deque(maxlen=buffer_size)
        self._errors: deque[DispatchError] = deque(maxlen=error_buffer_size)
        self._subscribers: dict[int, tuple[EventType | None, Subscriber]] = {}
        self._tokens = itertools.count(1)
        self._tasks: set[asyncio.Future[object]] = set()
        self._lock = threading.RLock()

    def subscribe(self, event_type: str | EventType | None, callback: Subscriber) -> int:
        """Deliver events of ``event_type`` (every event for ``None``) to ``callback``.

        Returns a token for :meth:`unsubscribe`.
        """

        if not callable(callback):
            raise ValueError("callback must be callable")
        wanted = None if event_type is None else EventType(event_type)
        with self._lock:
            token = next(self._tokens)
            self._subscribers[token] = (wanted, callback)
        return token

    def unsubscribe(self, token: int) -> bool:
        with self._lock:
            return self._subscribers.pop(token, None) is not None

    def emit(
        self,
        event_type: str | EventType,
        payload: Mapping[str, object],
        *,
        correlation_id: str | None = None,
    ) -> BuildEvent:
        event = build_event(event_type, payload, correlation_id=correlation_id)
        self.publish(event)
        return event

    async def emit_async(
        self,
        event_type: str | EventType,
        payload: Mapping[str, object],
        *,
        correlation_id: str | None = None,
    ) -> BuildEvent:
        event = build_event(event_type, payload, correlation_id=correlation_id)
        await self.publish_async(event)
        return event

    def publish(self, event: BuildEvent) -> tuple[DispatchError, ...]:
        errors: list[DispatchError] = []
        for callback in self._route(event):
            try:
                outcome = callback(event)
            except Exception as exc:
                errors.append(DispatchError.capture(event, callback, exc))
            else:
                if inspect.isawaitable(outcome):
                    self._schedule(outcome, event, callback)
        return self._record_errors(errors)

    async def publish_async(self, event: BuildEvent) -> tuple[DispatchError, ...]:
        errors: list[DispatchError] = []
        for callback in self._route(event):
            try:
                outcome = callback(event)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as exc:
                errors.append(DispatchError.capture(event, callback, exc))
        return self._record_errors(errors)

    async def drain_async(self) -> tuple[DispatchError, ...]:
        """Wait for subscriber tasks scheduled by :meth:`publish`; return all errors so far."""

        while True:
            with self._lock:
                pending = tuple(self._tasks)
            if not pending:
                return self.dispatch_errors()
            await asyncio.gather(*pending, return_exceptions=True)

    def replay(
        self, *, event_type: str | EventType | None = None, limit: int | None = None
    ) -> tuple[BuildEvent, ...]:
        """Buffered events, oldest first, optionally filtered and capped to the newest ``limit``."""

        wanted = None if event_type is None else EventType(event_type)
        with self._lock:
            matching = [event for event in self._history if wanted in (None, event.event_type)]
        if limit is None:
            return tuple(matching)
        return tuple(matching[-limit:]) if limit > 0 else ()

    def dispatch_errors(self) -> tuple[DispatchError, ...]:
        with self._lock:
            return tuple(self._errors)

    def _route(self, event: BuildEvent) -> Iterator[Subscriber]:
        if not isinstance(event, BuildEvent):
            raise ValueError(f"event must be BuildEvent, got {type(event).__name__}")
        with self._lock:
            self._history.append(event)
            targets = [
                callback
                for wanted, callback in self._subscribers.values()
                if wanted in (None, event.event_type)
            ]
        return iter(targets)

    def _schedule(self, awaitable: Awaitable[object], event: BuildEvent, callback: object) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return
        task = asyncio.ensure_future(awaitable, loop=loop)
        with self._lock:
            self._tasks.add(task)

        def settle(done: asyncio.Future[object]) -> None:
            with self._lock:
                self._tasks.discard(done)
            if not done.cancelled() and isinstance(done.exception(), Exception):
                self._record_errors([DispatchError.capture(event, callback, done.exception())])

        task.add_done_callback(settle)

    def _record_errors(self, errors: list[DispatchError]) -> tuple[DispatchError, ...]:
        if errors:
            with self._lock:
                self._errors.extend(errors)
        return tuple(errors)


def build_event(
    event_type: str | EventType,
    payload: Mapping[str, object],
    *,
    correlation_id: str | None = None,
) -> BuildEvent:
    return BuildEvent(
        event_id=generate_event_id(),
        event_type=EventType(event_type),
        timestamp=datetime.now(tz=UTC),
        correlation_id=correlation_id,
        payload=as_json_object(dict(payload), "payload"),
    )


__all__ = ["DispatchError", "EventBus", "Subscriber", "build_event"]

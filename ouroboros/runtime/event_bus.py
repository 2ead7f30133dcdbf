"""In-process pub/sub bus that widgets talk to each other over.

Subscribers are plain callables (sync or async). The bus snapshots the
subscriber list before iterating so that callbacks added during a broadcast
don't cause mutation issues.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)

# ── Well-known event names ─────────────────────────────────────────────────
EVENT_WIDGET_CREATED = "widget.created"
EVENT_WIDGET_UPDATED = "widget.updated"
EVENT_WIDGET_DELETED = "widget.deleted"


class EventBus:
    """Lightweight, in-process pub/sub bus.

    Usage::

        bus = EventBus()
        unsubscribe = bus.subscribe("timer.tick", on_tick)
        bus.broadcast("timer.tick", {"elapsed": 3})
        unsubscribe()
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Callable]] = {}
        self._pending: set[asyncio.Task] = set()

    def subscribe(self, event: str, callback: Callable) -> Callable[[], None]:
        """Register *callback* for *event*. Returns a callable that unsubscribes it."""
        self._subscribers.setdefault(event, []).append(callback)

        def unsubscribe() -> None:
            self.unsubscribe(event, callback)

        return unsubscribe

    def unsubscribe(self, event: str, callback: Callable) -> None:
        """Remove the first occurrence of *callback* from *event*. Silently ignores missing."""
        callbacks = self._subscribers.get(event, [])
        try:
            callbacks.remove(callback)
        except ValueError:
            pass

    def subscriber_count(self, event: str) -> int:
        return len(self._subscribers.get(event, []))

    def broadcast(self, event: str, data: Any = None) -> None:
        """Deliver *event* synchronously; async subscribers are scheduled on the running loop.

        Exceptions raised by individual subscribers are logged so that one
        failing handler cannot block the rest.
        """
        for cb in list(self._subscribers.get(event, [])):
            try:
                result = cb(data)
                if inspect.isawaitable(result):
                    self._schedule(event, result)
            except Exception:
                logger.exception("EventBus subscriber raised for event=%r", event)

    async def emit(self, event: str, data: Any = None) -> None:
        """Deliver *event*, awaiting async subscribers in registration order."""
        for cb in list(self._subscribers.get(event, [])):
            try:
                result = cb(data)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("EventBus subscriber raised for event=%r", event)

    def _schedule(self, event: str, awaitable) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(_await(awaitable))
            return
        task = loop.create_task(_await(awaitable))
        self._pending.add(task)

        def _done(t: asyncio.Task) -> None:
            self._pending.discard(t)
            if not t.cancelled() and t.exception() is not None:
                logger.error("EventBus subscriber failed for event=%r", event, exc_info=t.exception())

        task.add_done_callback(_done)


async def _await(awaitable):
    return await awaitable

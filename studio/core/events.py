"""
Process-wide publish/subscribe register.

Handlers run synchronously on the publishing call stack, in subscription
order. A handler that raises is logged and delivery continues with the next
one. Coroutine handlers are scheduled on the running loop and their failures
are logged the same way.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Any]


class EventBus:
    """Topic based event bus with no replay and no backpressure."""

    def __init__(self):
        self._handlers: dict[str, list[Handler]] = {}
        self._tasks: set[asyncio.Task] = set()

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` for ``topic`` and return an unsubscribe callable."""
        self._handlers.setdefault(topic, []).append(handler)

        def unsubscribe() -> None:
            self.unsubscribe(topic, handler)

        return unsubscribe

    def unsubscribe(self, topic: str, handler: Handler) -> None:
        handlers = self._handlers.get(topic)
        if not handlers:
            return
        # Remove one registration only; the same handler may be subscribed twice.
        try:
            handlers.remove(handler)
        except ValueError:
            return
        if not handlers:
            del self._handlers[topic]

    def publish(self, topic: str, payload: Any = None) -> None:
        """Deliver ``payload`` to every current subscriber of ``topic``."""
        for handler in list(self._handlers.get(topic, ())):
            try:
                result = handler(payload)
            except Exception:
                logger.exception("Error in event handler for %s", topic)
                continue
            if inspect.isawaitable(result):
                self._schedule(topic, result)

    def _schedule(self, topic: str, awaitable) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running loop for async handler of %s; dropped", topic)
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return

        task = loop.create_task(awaitable)
        self._tasks.add(task)

        def _done(t: asyncio.Task) -> None:
            self._tasks.discard(t)
            if t.cancelled():
                return
            exc = t.exception()
            if exc is not None:
                logger.error(
                    "Error in async event handler for %s", topic, exc_info=exc
                )

        task.add_done_callback(_done)

    async def drain(self) -> None:
        """Wait for async handlers scheduled so far, including ones they spawn."""
        while True:
            pending = [t for t in self._tasks if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def subscriber_count(self, topic: str) -> int:
        return len(self._handlers.get(topic, ()))

    def clear(self) -> None:
        self._handlers.clear()

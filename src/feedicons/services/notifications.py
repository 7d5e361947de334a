"""In-process notification channels delivered on an event loop."""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Any, Callable

from pydantic import BaseModel

logger = logging.getLogger(__name__)

# Channel names
FAVICON_DID_BECOME_AVAILABLE = "FaviconDidBecomeAvailable"

Handler = Callable[[Any], Any]


class NotificationCenter:
    """Named broadcast channels. Handlers may be plain or async callables.

    ``post`` never runs a handler inline: each delivery is scheduled with
    ``loop.call_soon`` on the given loop. Tasks started for async handlers
    are held until they finish, and their failures are logged like those of
    plain handlers.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = {}
        self._tasks: set[asyncio.Task[Any]] = set()

    def subscribe(self, name: str, handler: Handler) -> Callable[[], None]:
        """Register *handler* on channel *name*.

        Returns
        -------
        Callable[[], None]
            Call it to unsubscribe.
        """
        self._handlers.setdefault(name, []).append(handler)
        return lambda: self.unsubscribe(name, handler)

    def unsubscribe(self, name: str, handler: Handler) -> None:
        handlers = self._handlers.get(name, [])
        if handler in handlers:
            handlers.remove(handler)

    def subscriber_count(self, name: str) -> int:
        return len(self._handlers.get(name, []))

    def post(
        self,
        name: str,
        payload: BaseModel,
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        """Schedule delivery of *payload* to every handler of *name*."""
        handlers = list(self._handlers.get(name, []))
        logger.debug("Posting %s to %d handler(s)", name, len(handlers))
        for handler in handlers:
            loop.call_soon(self._deliver, loop, name, handler, payload)

    def _deliver(
        self,
        loop: asyncio.AbstractEventLoop,
        name: str,
        handler: Handler,
        payload: BaseModel,
    ) -> None:
        try:
            result = handler(payload)
            if asyncio.iscoroutine(result):
                task = loop.create_task(result)
                self._tasks.add(task)
                task.add_done_callback(partial(self._handler_done, name))
        except Exception as e:
            logger.exception("handler failed for %s: %s", name, e)

    def _handler_done(self, name: str, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("handler failed for %s: %s", name, exc, exc_info=exc)

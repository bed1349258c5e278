"""Event dispatch between the gateway core and the owning application.

Handlers are registered per named event. Awaited events (`transmit`,
`receive`, `receive_segment`, `return_segments`) suspend the calling phase
until the handler finishes: a normal return acknowledges, a raised exception
rejects. Notify-only events (`delete`, `receive_error`, `transmit_error`) are
fired without waiting for anything.

Handlers may be plain functions or coroutine functions.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, Mapping, Optional

from core.errors import InvalidArgument, InvalidEventName, InvalidHandlerType, NoListenerError
from core.models import OutboundMessage, TransmitResult

LOGGER = logging.getLogger(__name__)

AWAITED_EVENTS = frozenset({"transmit", "receive", "receive_segment", "return_segments"})
NOTIFY_EVENTS = frozenset({"delete", "receive_error", "transmit_error"})
EVENT_NAMES = AWAITED_EVENTS | NOTIFY_EVENTS

Handler = Callable[..., Any]


class EventDispatcher:
    """Dispatch table holding at most one handler per event name."""

    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}
        self._background: set[asyncio.Task] = set()

    def register(self, event: str, handler: Handler) -> None:
        """Register (or replace) the handler for one event."""

        if event not in EVENT_NAMES:
            raise InvalidEventName(f"Invalid event specified: {event!r}")
        if not callable(handler):
            raise InvalidHandlerType(f"Handler for '{event}' must be callable")
        self._handlers[event] = handler

    def on(self, event: Any, handler: Optional[Handler] = None) -> "EventDispatcher":
        """Register one handler by name, or several from a name->handler mapping."""

        if isinstance(event, Mapping):
            for name, fn in event.items():
                self.register(name, fn)
        elif isinstance(event, str):
            self.register(event, handler)
        else:
            raise InvalidArgument("Event name has an invalid type")
        return self

    def has_listener(self, event: str) -> bool:
        return event in self._handlers

    async def request(self, event: str, *args: Any) -> Any:
        """Invoke an awaited event and return the handler's result."""

        handler = self._handlers.get(event)
        if handler is None:
            raise NoListenerError(event)
        result = handler(*args)
        if inspect.isawaitable(result):
            result = await result
        return result

    def notify(self, event: str, *args: Any) -> None:
        """Invoke a notify-only event without waiting for it."""

        handler = self._handlers.get(event)
        if handler is None:
            return
        self._fire(event, handler, *args)

    async def dispatch_transmit(self, message: OutboundMessage, result: TransmitResult) -> None:
        """Notify the per-message callback, then await the `transmit` handler."""

        if message.on_result is not None:
            self._fire("on_result", message.on_result, message, result)
        await self.request("transmit", message, result)

    def _fire(self, event: str, handler: Handler, *args: Any) -> None:
        try:
            result = handler(*args)
        except Exception:
            LOGGER.exception("Handler for '%s' raised", event)
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._background.add(task)
            task.add_done_callback(lambda done: self._finish_background(event, done))

    def _finish_background(self, event: str, task: asyncio.Future) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            LOGGER.error("Handler for '%s' raised", event, exc_info=error)

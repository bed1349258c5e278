"""Outbound queue: batching, transmission and per-message reconciliation."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from core.errors import InvalidArgument, TransmitPartialFailure
from core.events import EventDispatcher
from core.models import OutboundMessage
from core.ports import ModemPort
from core.records import build_send_args, parse_transmit_results

LOGGER = logging.getLogger(__name__)


class OutboundQueue:
    """Holds messages awaiting transmission and retries the ones that fail."""

    def __init__(self, modem: ModemPort, dispatcher: EventDispatcher, batch_size: int) -> None:
        self._modem = modem
        self._dispatcher = dispatcher
        self._batch_size = batch_size
        self._queue: list[OutboundMessage] = []

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def pending(self) -> tuple[OutboundMessage, ...]:
        return tuple(self._queue)

    def enqueue(
        self,
        destination: str,
        text: str,
        context: Any = None,
        on_result: Optional[Callable[..., Any]] = None,
    ) -> OutboundMessage:
        """Validate and queue one message for the next transmit phase."""

        # The context may be omitted: send(to, text, callback).
        if on_result is None and callable(context):
            on_result, context = context, None

        if on_result is not None and not callable(on_result):
            raise InvalidArgument("Callback, if provided, must be callable")
        if not isinstance(destination, str) or not destination:
            raise InvalidArgument("Destination must be supplied as a non-empty string")
        if not isinstance(text, str) or not text:
            raise InvalidArgument("Message text must be supplied as a non-empty string")

        message = OutboundMessage(destination=destination, text=text, context=context, on_result=on_result)
        self._queue.append(message)
        return message

    async def transmit_phase(self) -> None:
        """Send one batch and keep whatever was not confirmed as sent."""

        if not self._queue:
            return

        batch = self._queue[: self._batch_size]
        payload = await self._modem.run("send", build_send_args(batch))
        results = parse_transmit_results(payload)

        # Results carry the one-based position of their message in the batch.
        sent: set[int] = set()
        for result in results:
            position = result.index - 1
            if not 0 <= position < len(batch) or position in sent:
                LOGGER.warning("Ignoring transmit result with unexpected index %s", result.index)
                continue

            message = batch[position]
            if not result.succeeded:
                # Whole-message retry: the tool reports no per-segment status.
                self._dispatcher.notify("transmit_error", message, TransmitPartialFailure(message, result))
                continue

            sent.add(position)
            try:
                await self._dispatcher.dispatch_transmit(message, result)
            except Exception as exc:
                # Already handed to the telco; report but never resend.
                self._dispatcher.notify("transmit_error", message, exc)

        unsent = [message for position, message in enumerate(batch) if position not in sent]
        self._queue = self._queue[len(batch) :] + unsent

        LOGGER.info("Transmitted %s of %s message(s); %s queued", len(sent), len(batch), len(self._queue))

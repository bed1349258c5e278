"""Inbound queue: retrieval, multi-segment reassembly and delivery.

Segments of concatenated messages are never held by the core. Each one is
handed to the application through `receive_segment` and the stored group is
read back through `return_segments`; once the group covers every part the
reassembled message is delivered like any single-part message.
"""

from __future__ import annotations

import logging
from collections.abc import Set
from typing import Any, Iterable, Optional

from core.deletion import DeletionQueue
from core.errors import NoListenerError, ReassemblyDataError
from core.events import EventDispatcher
from core.models import InboundMessage
from core.ports import ModemPort
from core.records import parse_inbound_message, parse_retrieved

LOGGER = logging.getLogger(__name__)


def _coerce_segments(segment_id: str, returned: Any) -> list[InboundMessage]:
    if returned is None:
        return []
    if not isinstance(returned, (list, tuple, Set)):
        raise ReassemblyDataError("Event handler `return_segments` provided invalid data")

    segments: list[InboundMessage] = []
    for item in returned:
        if not isinstance(item, InboundMessage):
            raise ReassemblyDataError(
                f"Event handler `return_segments` provided a non-message item: {type(item).__name__}"
            )
        if item.segment_id == segment_id:
            segments.append(item)
    return segments


def reassemble(message: InboundMessage, stored: Iterable[InboundMessage]) -> Optional[InboundMessage]:
    """Return the complete message if `stored` plus `message` cover every part.

    Completeness is decided by the count of distinct part numbers. When a part
    appears more than once the newest copy (`message`) wins.
    """

    by_part = {segment.segment: segment for segment in stored}
    by_part[message.segment] = message
    if len(by_part) < message.total_segments:
        return None

    parts = tuple(by_part[number] for number in sorted(by_part))
    first = parts[0]
    return InboundMessage(
        sender=message.sender,
        text="".join(part.text for part in parts),
        location=first.location,
        timestamp=first.timestamp or message.timestamp,
        total_segments=message.total_segments,
        segment=1,
        udh=message.udh,
        smsc=first.smsc,
        parts=parts,
    )


class InboundQueue:
    """Holds fully received messages until the application accepts them."""

    def __init__(self, modem: ModemPort, dispatcher: EventDispatcher, deletion: DeletionQueue) -> None:
        self._modem = modem
        self._dispatcher = dispatcher
        self._deletion = deletion
        self._queue: list[InboundMessage] = []

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def pending(self) -> tuple[InboundMessage, ...]:
        return tuple(self._queue)

    async def receive_phase(self) -> None:
        """Retrieve new messages, reassemble segments, then deliver."""

        payload = await self._modem.run("retrieve")
        records = parse_retrieved(payload)
        completed: set[str] = set()

        for record in records:
            try:
                message = parse_inbound_message(record)
            except (KeyError, TypeError, ValueError) as exc:
                LOGGER.warning("Skipping malformed message record: %s", exc)
                self._dispatcher.notify("receive_error", record, exc)
                continue

            if not message.is_multipart:
                self._queue.append(message)
                continue

            # A group completes at most once per cycle even if the device
            # still holds earlier copies of its segments.
            if message.segment_id in completed:
                continue

            try:
                complete = await self._receive_segment(message)
            except Exception as exc:
                LOGGER.warning("Segment %s of %s not processed: %s", message.segment, message.segment_id, exc)
                self._dispatcher.notify("receive_error", message, exc)
                continue

            if complete is not None:
                completed.add(message.segment_id)
                self._queue.append(complete)
                LOGGER.info("Reassembled %s-part message %s", complete.total_segments, complete.segment_id)

        if records:
            LOGGER.info("Retrieved %s record(s); %s message(s) ready for delivery", len(records), len(self._queue))
        await self.deliver_phase()

    async def _receive_segment(self, message: InboundMessage) -> Optional[InboundMessage]:
        await self._dispatcher.request("receive_segment", message)
        returned = await self._dispatcher.request("return_segments", message.segment_id)
        return reassemble(message, _coerce_segments(message.segment_id, returned))

    async def deliver_phase(self) -> None:
        """Hand each queued message to the application; accepted ones go to deletion."""

        delivering = list(self._queue)
        for message in delivering:
            try:
                await self._dispatcher.request("receive", message)
            except NoListenerError as exc:
                self._dispatcher.notify("receive_error", message, exc)
                continue
            except Exception as exc:
                # Rejected by the application itself; the message stays on
                # the device and is retrieved again next cycle.
                LOGGER.debug("Delivery of message from %s deferred: %s", message.sender, exc)
                continue
            self._deletion.enqueue(message)

        del self._queue[: len(delivering)]

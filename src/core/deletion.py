"""Deletion queue: erases delivered messages from the device."""

from __future__ import annotations

import logging

from core.events import EventDispatcher
from core.models import DeletionCandidate, InboundMessage
from core.ports import ModemPort
from core.records import build_delete_args, parse_delete_detail

LOGGER = logging.getLogger(__name__)

STATUS_OK = "ok"


class DeletionQueue:
    """Holds device locations whose messages the application has stored."""

    def __init__(self, modem: ModemPort, dispatcher: EventDispatcher, batch_size: int) -> None:
        self._modem = modem
        self._dispatcher = dispatcher
        self._batch_size = batch_size
        self._queue: list[DeletionCandidate] = []

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def pending(self) -> tuple[DeletionCandidate, ...]:
        return tuple(self._queue)

    def enqueue(self, message: InboundMessage) -> None:
        """Queue every location of a delivered message for deletion."""

        for location in message.locations:
            self._queue.append(DeletionCandidate(location=location, message=message))

    async def delete_phase(self) -> None:
        """Delete one batch of locations and requeue those not confirmed."""

        if not self._queue:
            return

        batch = self._queue[: self._batch_size]
        payload = await self._modem.run("delete", build_delete_args(batch))
        detail = parse_delete_detail(payload)

        failed: list[DeletionCandidate] = []
        for candidate in batch:
            status = detail.get(str(candidate.location))
            if status == STATUS_OK:
                self._dispatcher.notify("delete", candidate)
            else:
                LOGGER.debug("Location %s not deleted (status=%s)", candidate.location, status)
                failed.append(candidate)

        self._queue = self._queue[len(batch) :] + failed
        LOGGER.info("Deleted %s of %s location(s); %s queued", len(batch) - len(failed), len(batch), len(self._queue))

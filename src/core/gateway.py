"""Gateway facade: the public API of the SMS relay.

The gateway owns the three queues and runs each polling cycle as three
independent phases (transmit, receive, delete). A failing phase is recorded
in the cycle report and logged; the following phases always run.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

from core.config import GatewayConfig
from core.deletion import DeletionQueue
from core.events import EventDispatcher, Handler
from core.inbound import InboundQueue
from core.models import CycleReport, DeletionCandidate, InboundMessage, OutboundMessage
from core.outbound import OutboundQueue
from core.ports import ModemPort
from core.scheduler import PollingScheduler

LOGGER = logging.getLogger(__name__)


class Gateway:
    """Polls one modem and mediates between it and the owning application."""

    def __init__(self, modem: ModemPort, config: Optional[GatewayConfig] = None) -> None:
        self._config = config or GatewayConfig()
        self._dispatcher = EventDispatcher()
        self._deletion = DeletionQueue(modem, self._dispatcher, self._config.delete_batch_size)
        self._inbound = InboundQueue(modem, self._dispatcher, self._deletion)
        self._outbound = OutboundQueue(modem, self._dispatcher, self._config.transmit_batch_size)
        self._scheduler = PollingScheduler(self.run_cycle, self._config.poll_interval_seconds)

    @property
    def config(self) -> GatewayConfig:
        return self._config

    @property
    def polling(self) -> bool:
        return self._scheduler.polling

    @property
    def outbound(self) -> tuple[OutboundMessage, ...]:
        return self._outbound.pending

    @property
    def inbound(self) -> tuple[InboundMessage, ...]:
        return self._inbound.pending

    @property
    def deletion(self) -> tuple[DeletionCandidate, ...]:
        return self._deletion.pending

    def start(self) -> None:
        """Start sending/receiving messages."""

        self._scheduler.start()

    def stop(self) -> None:
        """Stop sending/receiving messages after the current cycle."""

        self._scheduler.stop()

    async def join(self) -> None:
        await self._scheduler.join()

    def send(
        self,
        destination: str,
        text: str,
        context: Any = None,
        on_result: Optional[Callable[..., Any]] = None,
    ) -> OutboundMessage:
        """Queue a message for one recipient; raises InvalidArgument on bad input."""

        return self._outbound.enqueue(destination, text, context, on_result)

    def on(self, event: Any, handler: Optional[Handler] = None) -> "Gateway":
        """Register event handlers (see core.events for the event names)."""

        self._dispatcher.on(event, handler)
        return self

    async def run_cycle(self) -> CycleReport:
        """Run transmit, receive and delete once, in that order."""

        report = CycleReport(
            transmit=await self._run_phase("transmit", self._outbound.transmit_phase),
            receive=await self._run_phase("receive", self._inbound.receive_phase),
            delete=await self._run_phase("delete", self._deletion.delete_phase),
        )
        if not report.ok:
            LOGGER.warning("Polling cycle finished with errors")
        return report

    async def _run_phase(self, name: str, phase: Callable[[], Awaitable[None]]) -> Optional[Exception]:
        try:
            await phase()
        except Exception as exc:
            LOGGER.error("%s phase failed: %s", name.capitalize(), exc, exc_info=LOGGER.isEnabledFor(logging.DEBUG))
            return exc
        return None

"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to the modem tool's JSON layout.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

from core.segments import derive_segment_id


@dataclass
class OutboundMessage:
    """A message waiting in the outbound queue."""

    destination: str
    text: str
    context: Any = None
    on_result: Optional[Callable[..., Any]] = None


@dataclass(frozen=True)
class TransmitResult:
    """One entry of the modem tool's `send` output."""

    index: int
    result: str
    detail: dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.result == "success"


@dataclass(frozen=True)
class InboundMessage:
    """A message (or one segment of a message) read from the device.

    `parts` is empty for anything retrieved directly from the modem; a
    reassembled message carries its segments there, ordered by part number.
    """

    sender: str
    text: str
    location: int
    timestamp: Optional[datetime] = None
    total_segments: int = 1
    segment: int = 1
    udh: Optional[int] = None
    smsc: Optional[str] = None
    parts: tuple["InboundMessage", ...] = ()

    @property
    def segment_id(self) -> str:
        return derive_segment_id(self.sender, self.udh, self.total_segments)

    @property
    def is_multipart(self) -> bool:
        return self.total_segments > 1

    @property
    def locations(self) -> list[int]:
        """Every device location this message occupies."""

        if self.parts:
            return [part.location for part in self.parts]
        return [self.location]


@dataclass(frozen=True)
class DeletionCandidate:
    """A device location that is safe to erase."""

    location: int
    message: Optional[InboundMessage] = None


@dataclass(frozen=True)
class CycleReport:
    """Outcome of each phase of one polling cycle (None means success)."""

    transmit: Optional[BaseException] = None
    receive: Optional[BaseException] = None
    delete: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.transmit is None and self.receive is None and self.delete is None

"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from core.errors import InvalidArgument

DEFAULT_EXECUTABLE = "gammu-json"


@dataclass(frozen=True)
class GatewayConfig:
    """Polling and batching settings for one gateway instance."""

    poll_interval_seconds: float = 10
    transmit_batch_size: int = 64
    delete_batch_size: int = 1024
    prefix: Optional[str] = None
    executable: str = DEFAULT_EXECUTABLE

    def __post_init__(self) -> None:
        if self.poll_interval_seconds <= 0:
            raise InvalidArgument("poll_interval_seconds must be positive")
        if self.transmit_batch_size <= 0:
            raise InvalidArgument("transmit_batch_size must be positive")
        if self.delete_batch_size <= 0:
            raise InvalidArgument("delete_batch_size must be positive")
        if not self.executable:
            raise InvalidArgument("executable must be a non-empty string")

    @classmethod
    def from_dict(cls, raw: Optional[dict]) -> "GatewayConfig":
        """Build a config from the `gateway` section of config.json."""

        raw = raw or {}
        return cls(
            poll_interval_seconds=float(raw.get("poll_interval_seconds", 10)),
            transmit_batch_size=int(raw.get("transmit_batch_size", 64)),
            delete_batch_size=int(raw.get("delete_batch_size", 1024)),
            prefix=raw.get("prefix") or None,
            executable=raw.get("executable") or DEFAULT_EXECUTABLE,
        )

"""Ports (interfaces) used by the core gateway.

The modem port is the only contract the core needs from the outside world,
so the polling cycle can be driven by the gammu-json adapter or by a fake.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence


class ModemPort(Protocol):
    """Run one modem tool command and return its parsed JSON output.

    Implementations raise SubprocessFailure for a non-zero exit status or
    output that cannot be parsed.
    """

    async def run(self, command: str, args: Sequence[str] = ()) -> Any:
        ...

"""Error taxonomy shared by the core and adapters."""

from __future__ import annotations

from typing import Any, Optional


class GatewayError(Exception):
    """Base class for every error raised by smsrelay."""


class InvalidArgument(GatewayError, ValueError):
    """Malformed input to a directly invoked operation (send, on)."""


class InvalidEventName(InvalidArgument):
    """An event handler was registered under an unknown name."""


class InvalidHandlerType(InvalidArgument, TypeError):
    """An event handler was not callable."""


class SubprocessFailure(GatewayError):
    """The modem tool exited non-zero or produced unusable output."""

    def __init__(
        self,
        command: str,
        message: str,
        returncode: Optional[int] = None,
        stderr: str = "",
    ) -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        detail = f"{command}: {message}"
        if stderr:
            detail = f"{detail} ({stderr.strip()})"
        super().__init__(detail)


class TransmitPartialFailure(GatewayError):
    """One message of an otherwise successful batch was not sent."""

    def __init__(self, message: Any, result: Any) -> None:
        self.message = message
        self.result = result
        super().__init__(f"Transmission to {message.destination} failed with status {result.result!r}")


class ReassemblyDataError(GatewayError):
    """The return_segments handler yielded something other than segments."""


class NoListenerError(GatewayError):
    """An awaited event was dispatched with no handler registered."""

    def __init__(self, event: str) -> None:
        self.event = event
        super().__init__(f"No listener present for '{event}'")

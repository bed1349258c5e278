"""Mapping between the modem tool's JSON records and core models.

gammu-json prints hyphenated keys (`total-segments`, `content`) while older
wrappers used underscored ones (`total_segments`, `text`); both are accepted.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

from core.errors import SubprocessFailure
from core.models import DeletionCandidate, InboundMessage, OutboundMessage, TransmitResult

LOGGER = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def _first_present(record: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in record:
            return record[key]
    return default


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a device timestamp.

    `false`, null, empty and unparseable values (gammu prints zeroed fields
    for some SIMs) all mean unknown.
    """

    if not value:
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    try:
        return datetime.strptime(text, TIMESTAMP_FORMAT)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        LOGGER.debug("Ignoring unparseable timestamp %r", text)
        return None


def _optional_int(value: Any) -> Optional[int]:
    # gammu-json prints `false` when a header carries no identifier.
    if value is None or value is False:
        return None
    return int(value)


def build_send_args(messages: Iterable[OutboundMessage]) -> list[str]:
    """Interleave destinations and texts for the `send` command."""

    args: list[str] = []
    for message in messages:
        args.append(message.destination)
        args.append(message.text)
    return args


def build_delete_args(candidates: Iterable[DeletionCandidate]) -> list[str]:
    """Return location arguments for the `delete` command."""

    return [str(candidate.location) for candidate in candidates]


def parse_transmit_results(payload: Any) -> list[TransmitResult]:
    """Convert `send` output into TransmitResult objects."""

    if not isinstance(payload, list):
        raise SubprocessFailure("send", "expected a JSON array of results")

    results: list[TransmitResult] = []
    for item in payload:
        if not isinstance(item, Mapping) or "index" not in item:
            raise SubprocessFailure("send", f"malformed result entry: {item!r}")
        try:
            index = int(item["index"])
        except (TypeError, ValueError) as exc:
            raise SubprocessFailure("send", f"non-numeric result index: {item['index']!r}") from exc
        detail = {key: value for key, value in item.items() if key not in ("index", "result")}
        results.append(TransmitResult(index=index, result=str(item.get("result", "")), detail=detail))
    return results


def parse_retrieved(payload: Any) -> list[Any]:
    """Validate `retrieve` output and return its raw records."""

    if not isinstance(payload, list):
        raise SubprocessFailure("retrieve", "expected a JSON array of messages")
    return payload


def parse_inbound_message(record: Any) -> InboundMessage:
    """Build an InboundMessage from one `retrieve` record.

    Raises ValueError (or KeyError/TypeError) for records missing the sender
    or location, or carrying non-numeric segment metadata.
    """

    if not isinstance(record, Mapping):
        raise ValueError(f"Message record must be an object, got {type(record).__name__}")

    sender = record["from"]
    if not isinstance(sender, str) or not sender:
        raise ValueError("Message record has no sender")

    total_segments = int(_first_present(record, "total-segments", "total_segments", default=1) or 1)
    segment = int(record.get("segment") or 1)
    text = _first_present(record, "content", "text", default="") or ""

    return InboundMessage(
        sender=sender,
        text=str(text),
        location=int(record["location"]),
        timestamp=parse_timestamp(record.get("timestamp")),
        total_segments=max(total_segments, 1),
        segment=segment,
        udh=_optional_int(record.get("udh")),
        smsc=record.get("smsc") or None,
    )


def parse_delete_detail(payload: Any) -> dict[str, str]:
    """Return the per-location status map of `delete` output."""

    if not isinstance(payload, Mapping) or not isinstance(payload.get("detail"), Mapping):
        raise SubprocessFailure("delete", "expected an object with a `detail` map")
    return {str(location): str(status) for location, status in payload["detail"].items()}

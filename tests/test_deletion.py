from __future__ import annotations

import asyncio

import pytest

from core.deletion import DeletionQueue
from core.errors import SubprocessFailure
from core.events import EventDispatcher
from core.models import InboundMessage
from fakes import FakeModem, Recorder


def _message(location: int) -> InboundMessage:
    return InboundMessage(sender="+15550001", text="hi", location=location)


def _make_deletion(modem: FakeModem, recorder: Recorder, batch_size: int = 1024) -> DeletionQueue:
    dispatcher = EventDispatcher()
    dispatcher.on(recorder.handlers())
    return DeletionQueue(modem, dispatcher, batch_size)


def test_ok_locations_dropped_and_failed_requeued() -> None:
    modem = FakeModem()
    modem.delete_statuses["77"] = "error"
    recorder = Recorder()
    deletion = _make_deletion(modem, recorder)
    deletion.enqueue(_message(41))
    deletion.enqueue(_message(77))

    asyncio.run(deletion.delete_phase())

    assert modem.calls == [("delete", ["41", "77"])]
    assert [args[0].location for args in recorder.named("delete")] == [41]
    assert [candidate.location for candidate in deletion.pending] == [77]


def test_missing_status_is_treated_as_failure() -> None:
    class PartialModem(FakeModem):
        async def run(self, command, args=()):
            self.calls.append((command, list(args)))
            return {"detail": {"1": "ok"}}

    deletion = _make_deletion(PartialModem(), Recorder())
    deletion.enqueue(_message(1))
    deletion.enqueue(_message(2))

    asyncio.run(deletion.delete_phase())

    assert [candidate.location for candidate in deletion.pending] == [2]


def test_batch_limit_and_requeue_order() -> None:
    modem = FakeModem()
    modem.delete_statuses["1"] = "error"
    deletion = _make_deletion(modem, Recorder(), batch_size=2)
    for location in (1, 2, 3, 4):
        deletion.enqueue(_message(location))

    asyncio.run(deletion.delete_phase())

    assert modem.calls == [("delete", ["1", "2"])]
    assert [candidate.location for candidate in deletion.pending] == [3, 4, 1]


def test_subprocess_failure_leaves_queue_untouched() -> None:
    modem = FakeModem()
    modem.failing.add("delete")
    recorder = Recorder()
    deletion = _make_deletion(modem, recorder)
    deletion.enqueue(_message(41))

    with pytest.raises(SubprocessFailure):
        asyncio.run(deletion.delete_phase())

    assert [candidate.location for candidate in deletion.pending] == [41]
    assert recorder.named("delete") == []


def test_empty_queue_runs_nothing() -> None:
    modem = FakeModem()
    asyncio.run(_make_deletion(modem, Recorder()).delete_phase())
    assert modem.calls == []


def test_reassembled_message_queues_every_part() -> None:
    parts = tuple(
        InboundMessage(sender="+1", text="x", location=location, total_segments=2, segment=number)
        for number, location in enumerate((5, 9), start=1)
    )
    composite = InboundMessage(sender="+1", text="xx", location=5, total_segments=2, parts=parts)
    deletion = _make_deletion(FakeModem(), Recorder())

    deletion.enqueue(composite)

    assert [candidate.location for candidate in deletion.pending] == [5, 9]

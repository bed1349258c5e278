from __future__ import annotations

from datetime import datetime

import pytest

from adapters.sqlite_store import SQLiteStore
from core.inbound import reassemble
from core.models import InboundMessage


@pytest.fixture()
def store(tmp_path) -> SQLiteStore:
    store = SQLiteStore(str(tmp_path / "smsrelay.db"))
    store.init_db()
    return store


def _part(segment: int, location: int, text: str = "x") -> InboundMessage:
    return InboundMessage(
        sender="+15550042",
        text=text,
        location=location,
        timestamp=datetime(2024, 1, 1, 12, 0, segment),
        total_segments=3,
        segment=segment,
        udh=77,
    )


def test_segments_round_trip_in_part_order(store) -> None:
    store.save_segment(_part(2, 11, "b"))
    store.save_segment(_part(1, 10, "a"))

    loaded = store.load_segments("+15550042-77-3")

    assert [part.segment for part in loaded] == [1, 2]
    assert loaded[0] == _part(1, 10, "a")


def test_resaving_a_part_does_not_duplicate_it(store) -> None:
    store.save_segment(_part(1, 10, "a"))
    store.save_segment(_part(1, 14, "a"))

    loaded = store.load_segments("+15550042-77-3")

    assert [part.location for part in loaded] == [14]


def test_forget_location(store) -> None:
    store.save_segment(_part(1, 10))
    store.save_segment(_part(2, 11))

    assert store.forget_location(10) == 1
    assert [part.location for part in store.load_segments("+15550042-77-3")] == [11]


def test_save_received_drops_completed_group(store) -> None:
    store.save_segment(_part(1, 10, "a"))
    store.save_segment(_part(2, 11, "b"))
    composite = reassemble(_part(3, 12, "c"), store.load_segments("+15550042-77-3"))
    assert composite is not None

    store.save_received(composite)

    assert store.load_segments("+15550042-77-3") == []
    rows = store.list_received()
    assert rows[0]["text"] == "abc"
    assert rows[0]["locations"] == [10, 11, 12]
    assert rows[0]["segments"] == 3


def test_list_received_newest_first_with_limit(store) -> None:
    for number in range(3):
        store.save_received(InboundMessage(sender="+15550001", text=f"m{number}", location=number))

    rows = store.list_received(limit=2)

    assert [row["text"] for row in rows] == ["m2", "m1"]
    assert rows[0]["timestamp"] is None

"""Helpers for multi-segment reassembly keys."""

from __future__ import annotations

from typing import Optional

DEFAULT_UDH = 0


def derive_segment_id(sender: str, udh: Optional[int], total_segments: int) -> str:
    """Return the reassembly key shared by all segments of one message.

    The key is not globally unique: two concurrent multi-part messages from the
    same sender with the same header and segment count map to the same key.
    The modem tool exposes nothing stronger to disambiguate them.
    """

    header = udh if udh is not None else DEFAULT_UDH
    return f"{sender}-{header}-{total_segments}"

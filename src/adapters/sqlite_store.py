"""SQLite storage adapter for the owning application.

Provides durable storage behind the gateway's `receive_segment`,
`return_segments` and `receive` events, so a restart never loses a segment
the gateway has been told is stored.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from typing import Optional

from core.models import InboundMessage


class SQLiteStore:
    """Thin SQLite wrapper holding pending segments and received messages."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - segments: parts of concatenated messages awaiting their siblings
        - inbox: append-only log of messages accepted from the gateway
        """

        with self._connect() as conn:
            # One row per part; a part seen again (still on the device) is
            # upserted rather than duplicated.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS segments (
                    segment_id TEXT NOT NULL,
                    segment INTEGER NOT NULL,
                    location INTEGER NOT NULL,
                    sender TEXT NOT NULL,
                    text TEXT NOT NULL,
                    udh INTEGER,
                    total_segments INTEGER NOT NULL,
                    timestamp TEXT,
                    smsc TEXT,
                    PRIMARY KEY (segment_id, segment)
                )
                """
            )
            # Fields:
            # - locations: JSON array of device slots the message occupied
            # - timestamp: device timestamp, if the modem reported one
            # - received_at: when the gateway handed the message over
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS inbox (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    sender TEXT NOT NULL,
                    text TEXT NOT NULL,
                    segments INTEGER NOT NULL,
                    locations TEXT NOT NULL,
                    timestamp TEXT,
                    received_at TIMESTAMP NOT NULL
                )
                """
            )

    def save_segment(self, message: InboundMessage) -> None:
        """Upsert one segment of a multi-part message."""

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO segments (
                    segment_id, segment, location, sender, text,
                    udh, total_segments, timestamp, smsc
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(segment_id, segment) DO UPDATE SET
                    location = excluded.location,
                    text = excluded.text,
                    timestamp = excluded.timestamp
                """,
                (
                    message.segment_id,
                    message.segment,
                    message.location,
                    message.sender,
                    message.text,
                    message.udh,
                    message.total_segments,
                    message.timestamp.isoformat() if message.timestamp else None,
                    message.smsc,
                ),
            )

    def load_segments(self, segment_id: str) -> list[InboundMessage]:
        """Return every stored segment sharing `segment_id`, ordered by part."""

        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM segments WHERE segment_id = ? ORDER BY segment",
                (segment_id,),
            ).fetchall()
        return [
            InboundMessage(
                sender=row["sender"],
                text=row["text"],
                location=int(row["location"]),
                timestamp=datetime.fromisoformat(row["timestamp"]) if row["timestamp"] else None,
                total_segments=int(row["total_segments"]),
                segment=int(row["segment"]),
                udh=row["udh"],
                smsc=row["smsc"],
            )
            for row in rows
        ]

    def forget_location(self, location: int) -> int:
        """Delete segments recorded at a device location that has been erased."""

        with self._connect() as conn:
            cur = conn.execute("DELETE FROM segments WHERE location = ?", (location,))
            return cur.rowcount

    def save_received(self, message: InboundMessage) -> int:
        """Persist a delivered message and return its inbox id.

        For a reassembled message the stored group is dropped in the same
        transaction, so a part that lingers on the device cannot complete the
        group a second time.
        """

        received_at = datetime.now(timezone.utc)
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO inbox (sender, text, segments, locations, timestamp, received_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    message.sender,
                    message.text,
                    message.total_segments,
                    json.dumps(message.locations),
                    message.timestamp.isoformat() if message.timestamp else None,
                    received_at.isoformat(),
                ),
            )
            if message.is_multipart:
                conn.execute("DELETE FROM segments WHERE segment_id = ?", (message.segment_id,))
            return int(cur.lastrowid)

    def list_received(self, limit: Optional[int] = None) -> list[dict]:
        """Return stored messages, newest first."""

        query = "SELECT * FROM inbox ORDER BY id DESC"
        params: tuple = ()
        if limit is not None:
            query += " LIMIT ?"
            params = (limit,)
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [
            {
                "id": row["id"],
                "sender": row["sender"],
                "text": row["text"],
                "segments": row["segments"],
                "locations": json.loads(row["locations"]),
                "timestamp": row["timestamp"],
                "received_at": row["received_at"],
            }
            for row in rows
        ]

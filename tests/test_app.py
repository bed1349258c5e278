from __future__ import annotations

import asyncio
import logging

import settings
from adapters.sqlite_store import SQLiteStore
from app import StoreApplication, _MaskingFormatter, _rotating_handler
from core.config import GatewayConfig
from core.gateway import Gateway
from fakes import FakeModem, record


def _format(formatter: logging.Formatter, message: str) -> str:
    log_record = logging.LogRecord("smsrelay", logging.INFO, __file__, 1, message, None, None)
    return formatter.format(log_record)


def test_masking_formatter_hides_phone_numbers() -> None:
    formatter = _MaskingFormatter(True, fmt="%(message)s")
    assert _format(formatter, "Message to +15550001234 handed off (index 3)") == (
        "Message to ***1234 handed off (index 3)"
    )


def test_masking_formatter_disabled_keeps_numbers() -> None:
    formatter = _MaskingFormatter(False, fmt="%(message)s")
    assert _format(formatter, "from +15550001234") == "from +15550001234"


def test_store_application_reassembles_across_cycles(tmp_path) -> None:
    store = SQLiteStore(str(tmp_path / "smsrelay.db"))
    store.init_db()
    modem = FakeModem()
    parts = [record(20 + n, sender="+15550042", text=f"{n}", total=2, segment=n, udh=5) for n in (1, 2)]
    modem.retrieve_batches.append(parts[:1])
    modem.retrieve_batches.append(parts)
    gateway = Gateway(modem, GatewayConfig())
    gateway.on(StoreApplication(store).handlers())

    asyncio.run(gateway.run_cycle())
    assert store.list_received() == []

    asyncio.run(gateway.run_cycle())

    rows = store.list_received()
    assert [row["text"] for row in rows] == ["12"]
    assert rows[0]["locations"] == [21, 22]
    assert modem.calls[-1] == ("delete", ["21", "22"])
    assert store.load_segments("+15550042-5-2") == []


def test_rotating_handler_resolves_relative_paths(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(settings, "PROJECT_ROOT", str(tmp_path))

    handler = _rotating_handler({"path": "logs/relay.log", "max_bytes": 1024, "backup_count": 2})
    try:
        assert handler.baseFilename == str(tmp_path / "logs" / "relay.log")
        assert handler.maxBytes == 1024
        assert handler.backupCount == 2
        assert (tmp_path / "logs").is_dir()
    finally:
        handler.close()

"""Application entry point for the smsrelay gateway."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import re
import signal
from logging.handlers import RotatingFileHandler
from typing import Any, Optional

from art import tprint

import settings
from adapters.gammu_json import GammuJsonModem
from adapters.sqlite_store import SQLiteStore
from core.gateway import Gateway
from core.models import DeletionCandidate, InboundMessage, OutboundMessage, TransmitResult

NAME = "SMSRELAY"
FONT = "tarty-1"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

_NUMBER_PATTERN = re.compile(r"\+?\d{6,}")


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


def mask_number(match: re.Match) -> str:
    digits = match.group(0)
    return "***" + digits[-4:]


class _MaskingFormatter(logging.Formatter):
    def __init__(self, mask_numbers: bool, fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._mask_numbers = mask_numbers

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if self._mask_numbers:
            message = _NUMBER_PATTERN.sub(mask_number, message)
        return message


def _rotating_handler(file_cfg: dict) -> RotatingFileHandler:
    path = file_cfg.get("path", "logs/smsrelay.log")
    if not os.path.isabs(path):
        path = os.path.join(settings.PROJECT_ROOT, path)
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    return RotatingFileHandler(
        path,
        maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
        backupCount=int(file_cfg.get("backup_count", 5)),
        encoding="utf-8",
    )


def _configure_logging() -> None:
    """Install console/file handlers from the `logging` section of config.json."""

    config = settings.LOGGING or {}
    if not config.get("enabled", True):
        return

    level = getattr(logging, str(config.get("level", "INFO")).upper(), logging.INFO)
    formatter = _MaskingFormatter(bool(config.get("mask_numbers", False)), fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    handlers: list[logging.Handler] = []
    if config.get("console", True):
        handlers.append(logging.StreamHandler())
    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        handlers.append(_rotating_handler(file_cfg))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    if handlers:
        logging.basicConfig(level=level, handlers=handlers)


class StoreApplication:
    """Event handlers backing the gateway with the SQLite store."""

    def __init__(self, store: SQLiteStore) -> None:
        self._store = store
        self._logger = logging.getLogger(__name__)

    def handlers(self) -> dict[str, Any]:
        return {
            "receive": self.receive,
            "receive_segment": self.receive_segment,
            "return_segments": self.return_segments,
            "transmit": self.transmit,
            "delete": self.delete,
            "receive_error": self.receive_error,
            "transmit_error": self.transmit_error,
        }

    async def receive(self, message: InboundMessage) -> None:
        inbox_id = self._store.save_received(message)
        self._logger.info("Received message %s from %s (%s part(s))", inbox_id, message.sender, message.total_segments)

    async def receive_segment(self, message: InboundMessage) -> None:
        self._store.save_segment(message)

    async def return_segments(self, segment_id: str) -> list[InboundMessage]:
        return self._store.load_segments(segment_id)

    async def transmit(self, message: OutboundMessage, result: TransmitResult) -> None:
        self._logger.info("Message to %s handed off (index %s)", message.destination, result.index)

    def delete(self, candidate: DeletionCandidate) -> None:
        self._store.forget_location(candidate.location)
        self._logger.debug("Location %s erased from device", candidate.location)

    def receive_error(self, message: Any, error: Exception) -> None:
        self._logger.warning("Receive error: %s", error)

    def transmit_error(self, message: OutboundMessage, error: Exception) -> None:
        self._logger.warning("Transmit error for %s: %s", message.destination, error)


def _build_gateway() -> tuple[Gateway, SQLiteStore]:
    store = SQLiteStore(settings.DB_PATH)
    store.init_db()

    config = settings.GATEWAY
    modem = GammuJsonModem(executable=config.executable, prefix=config.prefix)
    gateway = Gateway(modem, config)
    gateway.on(StoreApplication(store).handlers())
    return gateway, store


async def _serve(gateway: Gateway) -> None:
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, gateway.stop)

    gateway.start()
    await gateway.join()


def _run() -> None:
    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)

    gateway, _ = _build_gateway()
    logger.info(
        "Starting smsrelay (interval=%ss, transmit batch=%s, delete batch=%s)",
        gateway.config.poll_interval_seconds,
        gateway.config.transmit_batch_size,
        gateway.config.delete_batch_size,
    )
    asyncio.run(_serve(gateway))


def _send(destination: str, text: str) -> None:
    _configure_logging()
    gateway, _ = _build_gateway()

    def on_result(message: OutboundMessage, result: TransmitResult) -> None:
        print(f"Sent to {message.destination} (status: {result.result})")

    gateway.send(destination, text, on_result)
    report = asyncio.run(gateway.run_cycle())
    if gateway.outbound:
        print(f"Not sent yet; {len(gateway.outbound)} message(s) still queued.")
    if report.transmit is not None:
        print(f"Transmit failed: {report.transmit}")


def _inbox(limit: int) -> None:
    store = SQLiteStore(settings.DB_PATH)
    store.init_db()
    rows = store.list_received(limit)
    if not rows:
        print("Inbox is empty.")
        return

    for row in rows:
        stamp = row["timestamp"] or row["received_at"]
        print(f"{row['id']}. {stamp} | {row['sender']} | {row['text']}")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="smsrelay")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start polling the modem")
    send_parser = subparsers.add_parser("send", help="Queue one message and run a single cycle")
    send_parser.add_argument("destination")
    send_parser.add_argument("text")
    inbox_parser = subparsers.add_parser("inbox", help="List received messages")
    inbox_parser.add_argument("--limit", type=int, default=20)

    args = parser.parse_args(argv)
    if args.command == "send":
        _send(args.destination, args.text)
        return
    if args.command == "inbox":
        _inbox(args.limit)
        return
    _run()


if __name__ == "__main__":
    main()

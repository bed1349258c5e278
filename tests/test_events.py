from __future__ import annotations

import asyncio

import pytest

from core.errors import InvalidArgument, InvalidEventName, InvalidHandlerType, NoListenerError
from core.events import EVENT_NAMES, EventDispatcher
from core.models import OutboundMessage, TransmitResult


def test_register_rejects_unknown_event() -> None:
    dispatcher = EventDispatcher()
    with pytest.raises(InvalidEventName):
        dispatcher.register("receive_part", lambda message: None)


def test_register_rejects_non_callable() -> None:
    dispatcher = EventDispatcher()
    with pytest.raises(InvalidHandlerType):
        dispatcher.register("receive", "not a function")


def test_on_rejects_invalid_name_type() -> None:
    dispatcher = EventDispatcher()
    with pytest.raises(InvalidArgument):
        dispatcher.on(42, lambda: None)


def test_on_accepts_mapping_of_handlers() -> None:
    dispatcher = EventDispatcher()
    dispatcher.on({name: (lambda *args: None) for name in EVENT_NAMES})
    assert all(dispatcher.has_listener(name) for name in EVENT_NAMES)


def test_reregistering_replaces_handler() -> None:
    dispatcher = EventDispatcher()
    dispatcher.on("return_segments", lambda segment_id: ["first"])
    dispatcher.on("return_segments", lambda segment_id: ["second"])

    assert asyncio.run(dispatcher.request("return_segments", "x")) == ["second"]


def test_request_awaits_coroutine_handlers() -> None:
    dispatcher = EventDispatcher()
    seen: list[str] = []

    async def receive(message) -> None:
        await asyncio.sleep(0)
        seen.append(message)

    dispatcher.on("receive", receive)
    asyncio.run(dispatcher.request("receive", "hello"))

    assert seen == ["hello"]


def test_request_without_listener_fails() -> None:
    dispatcher = EventDispatcher()
    with pytest.raises(NoListenerError) as info:
        asyncio.run(dispatcher.request("transmit", None, None))
    assert "transmit" in str(info.value)


def test_request_propagates_handler_rejection() -> None:
    dispatcher = EventDispatcher()

    def receive(message) -> None:
        raise RuntimeError("out of space")

    dispatcher.on("receive", receive)
    with pytest.raises(RuntimeError):
        asyncio.run(dispatcher.request("receive", "hello"))


def test_notify_without_listener_is_ignored() -> None:
    EventDispatcher().notify("delete", object())


def test_notify_logs_handler_errors_instead_of_raising(caplog) -> None:
    dispatcher = EventDispatcher()

    def delete(candidate) -> None:
        raise RuntimeError("broken handler")

    dispatcher.on("delete", delete)
    dispatcher.notify("delete", object())

    assert "Handler for 'delete' raised" in caplog.text


def test_notify_does_not_wait_for_coroutine_handlers() -> None:
    dispatcher = EventDispatcher()
    finished: list[bool] = []

    async def scenario() -> None:
        release = asyncio.Event()

        async def receive_error(message, error) -> None:
            await release.wait()
            finished.append(True)

        dispatcher.on("receive_error", receive_error)
        dispatcher.notify("receive_error", None, RuntimeError("x"))
        assert finished == []
        release.set()
        for _ in range(3):
            await asyncio.sleep(0)

    asyncio.run(scenario())
    assert finished == [True]


def test_dispatch_transmit_calls_message_callback_then_handler() -> None:
    dispatcher = EventDispatcher()
    order: list[str] = []

    async def transmit(message, result) -> None:
        order.append("handler")

    message = OutboundMessage("+15550001", "hi", on_result=lambda message, result: order.append("callback"))
    dispatcher.on("transmit", transmit)
    asyncio.run(dispatcher.dispatch_transmit(message, TransmitResult(index=1, result="success")))

    assert order == ["callback", "handler"]

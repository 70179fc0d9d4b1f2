from __future__ import annotations

import logging

import pytest

from chatboxbot.connector import ChatMessage, Dispatcher, MessageEvent

from ._fakes import RecordingSubscriber, make_message


def _event(message_id: int, *, edited: bool = False) -> MessageEvent:
    return MessageEvent(
        message=make_message(message_id),
        edited=edited,
        initial_salvo=False,
        sender_banned=False,
    )


@pytest.mark.asyncio
async def test_sync_and_async_subscribers_receive_events_in_order() -> None:
    dispatcher = Dispatcher()
    recorder = RecordingSubscriber()
    seen: list[int] = []

    async def _async_subscriber(message: ChatMessage, *_flags: bool) -> None:
        seen.append(message.id)

    dispatcher.add(recorder)
    dispatcher.add(_async_subscriber)

    await dispatcher.dispatch_all([_event(1), _event(2, edited=True)])

    assert recorder.calls == [
        (1, "hello", False, False, False),
        (2, "hello", True, False, False),
    ]
    assert seen == [1, 2]


@pytest.mark.asyncio
async def test_failing_subscriber_does_not_stop_the_others(
    caplog: pytest.LogCaptureFixture,
) -> None:
    dispatcher = Dispatcher()
    recorder = RecordingSubscriber()

    async def _broken(*_args: object) -> None:
        message = "module bug"
        raise RuntimeError(message)

    dispatcher.add(_broken)
    dispatcher.add(recorder)

    with caplog.at_level(logging.ERROR, logger="chatboxbot.connector.dispatcher"):
        await dispatcher.dispatch(_event(5))

    assert [call[0] for call in recorder.calls] == [5]
    assert "Chatbox subscriber failed" in caplog.text
    assert "message_id=5" in caplog.text


@pytest.mark.asyncio
async def test_subscriber_added_during_dispatch_sees_only_later_events() -> None:
    dispatcher = Dispatcher()
    late = RecordingSubscriber()

    def _registering(*_args: object) -> None:
        if late not in dispatcher.subscribers:
            dispatcher.add(late)

    dispatcher.add(_registering)

    await dispatcher.dispatch(_event(1))
    await dispatcher.dispatch(_event(2))

    assert [call[0] for call in late.calls] == [2]


@pytest.mark.asyncio
async def test_arithmetic_error_in_a_subscriber_is_isolated(
    caplog: pytest.LogCaptureFixture,
) -> None:
    dispatcher = Dispatcher()
    recorder = RecordingSubscriber()

    def _divides_by_zero(*_args: object) -> None:
        _ = 1 / 0

    dispatcher.add(_divides_by_zero)
    dispatcher.add(recorder)

    with caplog.at_level(logging.ERROR, logger="chatboxbot.connector.dispatcher"):
        await dispatcher.dispatch_all([_event(7), _event(8)])

    assert [call[0] for call in recorder.calls] == [7, 8]
    assert caplog.text.count("Chatbox subscriber failed") == 2
    assert "ZeroDivisionError" in caplog.text

from __future__ import annotations

import asyncio
import logging

import pytest

from chatboxbot.core.error_handling import (
    log_exception,
    register_asyncio_exception_handler,
)

LOGGER_NAME = "chatboxbot.tests.errors"


def test_log_exception_writes_one_structured_line(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger(LOGGER_NAME)

    with caplog.at_level(logging.ERROR, logger=LOGGER_NAME):
        log_exception(
            logger=logger,
            message="Posting failed",
            error=ValueError("bad"),
            context={"operation": "post", "attempt": 2},
        )

    (record,) = caplog.records
    assert record.getMessage() == "Posting failed | attempt=2, operation='post'"
    assert record.exc_info is not None
    assert record.exc_info[0] is ValueError


@pytest.mark.asyncio
async def test_asyncio_handler_logs_unretrieved_exceptions(
    caplog: pytest.LogCaptureFixture,
) -> None:
    loop = asyncio.get_running_loop()
    previous = loop.get_exception_handler()
    register_asyncio_exception_handler(loop, logger=logging.getLogger(LOGGER_NAME))

    try:
        with caplog.at_level(logging.ERROR, logger=LOGGER_NAME):
            loop.call_exception_handler(
                {"message": "Task exception was never retrieved", "exception": OSError("gone")},
            )
            loop.call_exception_handler({"message": "Something odd", "handle": "h"})
    finally:
        loop.set_exception_handler(previous)

    messages = [record.getMessage() for record in caplog.records]
    assert messages == [
        "Task exception was never retrieved",
        "Something odd | handle='h'",
    ]

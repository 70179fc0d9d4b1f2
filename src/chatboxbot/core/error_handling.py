"""Structured exception logging and the process-wide exception hooks.

Code under ``src/`` never calls ``logger.exception`` and never catches
``Exception``: handlers catch one of the tuples below and report through
``log_exception``.
"""

from __future__ import annotations

import logging
import sys
import threading
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    import asyncio
    from collections.abc import Mapping
    from types import TracebackType

LOGGER = logging.getLogger(__name__)
COMMON_HANDLER_EXCEPTIONS = (
    AssertionError,
    AttributeError,
    LookupError,
    OSError,
    RuntimeError,
    TimeoutError,
    TypeError,
    ValueError,
)
# Failures of a single forum exchange: transport errors plus everything a
# response parser may raise on an unexpected page.
TRANSFER_EXCEPTIONS = (httpx.HTTPError, *COMMON_HANDLER_EXCEPTIONS)
# Subscribers are third-party callbacks and may fail in any ordinary way.
SUBSCRIBER_EXCEPTIONS = (
    ArithmeticError,
    ImportError,
    NameError,
    UnicodeError,
    *TRANSFER_EXCEPTIONS,
)


def _format_context(context: Mapping[str, object]) -> str:
    return ", ".join(f"{key}={value!r}" for key, value in sorted(context.items()))


def log_exception(
    *,
    logger: logging.Logger,
    message: str,
    error: BaseException,
    context: Mapping[str, object] | None = None,
) -> None:
    """Log ``error`` with its traceback as one ``message | key=value`` line."""
    text = f"{message} | {_format_context(context)}" if context else message
    logger.error("%s", text, exc_info=error)


def log_subscriber_error(
    *,
    logger: logging.Logger,
    subscriber: object,
    error: BaseException,
    message_id: int,
    edited: bool,
    initial_salvo: bool,
) -> None:
    """Log an exception raised by a subscriber while a message was dispatched."""
    subscriber_name = getattr(subscriber, "__qualname__", None) or repr(subscriber)
    log_exception(
        logger=logger,
        message="Chatbox subscriber failed",
        error=error,
        context={
            "subscriber": subscriber_name,
            "message_id": message_id,
            "edited": edited,
            "initial_salvo": initial_salvo,
        },
    )


def register_asyncio_exception_handler(
    loop: asyncio.AbstractEventLoop,
    *,
    logger: logging.Logger | None = None,
) -> None:
    """Route exceptions nobody retrieved (e.g. from a crashed module task) to the log."""
    target = logger or LOGGER

    def _handle(_loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        message = str(context.get("message") or "Unhandled asyncio exception")
        details = {key: value for key, value in context.items() if key != "message"}
        error = details.pop("exception", None)
        if isinstance(error, BaseException):
            log_exception(logger=target, message=message, error=error, context=details)
        else:
            target.error("%s | %s", message, _format_context(details))

    loop.set_exception_handler(_handle)


def install_global_exception_hooks(*, logger: logging.Logger | None = None) -> None:
    """Log uncaught exceptions of the main thread and of worker threads.

    ``KeyboardInterrupt`` keeps its default handling so Ctrl+C stays quiet.
    """
    target = logger or LOGGER
    default_excepthook = sys.excepthook
    default_thread_excepthook = threading.excepthook

    def _excepthook(
        exc_type: type[BaseException],
        exc_value: BaseException,
        exc_traceback: TracebackType | None,
    ) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            default_excepthook(exc_type, exc_value, exc_traceback)
            return
        log_exception(
            logger=target,
            message="Unhandled exception at process boundary",
            error=exc_value.with_traceback(exc_traceback),
        )

    def _thread_excepthook(args: threading.ExceptHookArgs) -> None:
        if issubclass(args.exc_type, KeyboardInterrupt):
            default_thread_excepthook(args)
            return
        context = {"thread": args.thread.name if args.thread else "unknown"}
        if args.exc_value is None:
            target.error("Unhandled thread exception | %s", _format_context(context))
            return
        log_exception(
            logger=target,
            message="Unhandled thread exception",
            error=args.exc_value.with_traceback(args.exc_traceback),
            context=context,
        )

    sys.excepthook = _excepthook
    threading.excepthook = _thread_excepthook

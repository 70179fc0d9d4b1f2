"""Small admin HTTP server: health check and posting on an operator's behalf."""

import logging
import os
from collections.abc import Awaitable, Callable
from typing import Any

from aiohttp import web

from chatboxbot.connector import ChatboxConnector
from chatboxbot.core.config import get_section
from chatboxbot.core.error_handling import TRANSFER_EXCEPTIONS, log_exception
from chatboxbot.core.exceptions import TransferError

logger = logging.getLogger(__name__)

RequestHandler = Callable[[web.Request], Awaitable[web.StreamResponse]]
CONNECTOR_KEY = web.AppKey("connector", ChatboxConnector)
DEFAULT_PORT = 8001
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


@web.middleware
async def _error_middleware(
    request: web.Request,
    handler: RequestHandler,
) -> web.StreamResponse:
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except TRANSFER_EXCEPTIONS as exc:
        log_exception(
            logger=logger,
            message="Unhandled admin server error",
            error=exc,
            context={
                "method": request.method,
                "path": request.path,
            },
        )
        return web.Response(status=500, text="Internal server error")


async def health_check(request: web.Request) -> web.Response:
    """Return a liveness response with the connector's watermark."""
    connector = request.app[CONNECTOR_KEY]
    return web.json_response(
        {
            "status": "alive",
            "watermark": connector.store.watermark,
            "quiet": connector.is_quiet(),
        },
    )


async def post_message(request: web.Request) -> web.Response:
    """Post the ``message`` form field to the chatbox."""
    connector = request.app[CONNECTOR_KEY]
    form = await request.post()
    message = str(form.get("message") or "").strip()
    if not message:
        raise web.HTTPBadRequest(text="Missing 'message'")
    bypass_quiet = str(form.get("bypass_quiet") or "").lower() in _TRUE_VALUES

    try:
        sent = await connector.send_message(message, bypass_quiet=bypass_quiet)
    except TransferError as exc:
        log_exception(
            logger=logger,
            message="Posting on behalf of the admin interface failed",
            error=exc,
        )
        raise web.HTTPBadGateway(text="Posting to the chatbox failed") from exc
    return web.json_response({"sent": sent})


def build_app(connector: ChatboxConnector) -> web.Application:
    """Create the admin application bound to a connector."""
    app = web.Application(middlewares=[_error_middleware])
    app[CONNECTOR_KEY] = connector
    app.add_routes([web.get("/", health_check), web.post("/post", post_message)])
    return app


async def start_server(connector: ChatboxConnector, config: dict[str, Any]) -> web.AppRunner:
    """Start the admin server.

    Returns the underlying aiohttp runner so callers can clean it up on shutdown.
    """
    section = get_section(config, "server")
    runner = web.AppRunner(build_app(connector))
    await runner.setup()
    port = int(os.environ.get("PORT", str(section.get("port", DEFAULT_PORT))))
    host = os.environ.get("HOST", section.get("host"))
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info("Admin server listening on %s:%s", host or "*", port)
    return runner

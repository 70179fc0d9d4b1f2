"""HTTP client settings for talking to the forum."""

from dataclasses import dataclass, field

import httpx

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:128.0) "
    "Gecko/20100101 Firefox/128.0"
)
# vBulletin serves the chatbox markup the decompiler expects only to desktop browsers.
BROWSER_HEADERS = {
    "User-Agent": DEFAULT_USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}


@dataclass(frozen=True, slots=True)
class HttpxClientOptions:
    """Knobs of the single client a forum session uses.

    One session sends one request at a time, so a couple of pooled
    connections are plenty.
    """

    timeout: float = 30.0
    connect_timeout: float = 10.0
    max_connections: int = 2
    extra_headers: dict[str, str] = field(default_factory=dict)


def build_forum_client(
    options: HttpxClientOptions,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the client that carries a forum session's cookie jar.

    Redirects are followed since vBulletin answers the login form with one.
    ``transport`` lets tests plug in ``httpx.MockTransport``.
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(options.timeout, connect=options.connect_timeout),
        limits=httpx.Limits(
            max_connections=options.max_connections,
            max_keepalive_connections=options.max_connections,
        ),
        headers={**BROWSER_HEADERS, **options.extra_headers},
        follow_redirects=True,
        transport=transport,
    )

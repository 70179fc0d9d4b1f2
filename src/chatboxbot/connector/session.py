"""Authenticated HTTP session against the forum.

Only one exchange with the forum may be in flight at a time: every request
holds ``self.lock`` from sending the request until the response body has been
read. The lock is never held across retries; the recovery ladder takes it
again for each attempt.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING
from urllib.parse import urlencode, urljoin

import httpx
from bs4 import BeautifulSoup

from chatboxbot.connector.encoding import ajax_url_encode_string
from chatboxbot.core.config import HttpxClientOptions, build_forum_client
from chatboxbot.core.config.constants import (
    AJAX_PATH,
    CHEAP_PAGE_PATH,
    LOGIN_PATH,
    MESSAGES_PATH,
    POST_EDIT_PATH,
    SMILIES_PATH,
)
from chatboxbot.core.exceptions import ForumResponseError

if TYPE_CHECKING:
    from chatboxbot.core.config import ForumSettings
    from chatboxbot.markup import SmileyTable

logger = logging.getLogger(__name__)

HTTP_OK = 200
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def parse_security_token(page_html: str) -> str:
    """Return the value of the ``securitytoken`` input of a forum page."""
    soup = BeautifulSoup(page_html, "lxml")
    token_field = soup.find("input", attrs={"name": "securitytoken"})
    token = token_field.get("value") if token_field is not None else None
    if not token:
        message = "Security token not found on page"
        raise ForumResponseError(message)
    return str(token)


def parse_smileys(page_html: str) -> dict[str, str]:
    """Return the smiley symbol to image URL mapping of the smilies page."""
    soup = BeautifulSoup(page_html, "lxml")
    symbols_to_urls: dict[str, str] = {}
    for smiley in soup.select("li.smiliebit"):
        text = smiley.select_one("div.smilietext")
        image = smiley.select_one("div.smilieimage img")
        if text is None or image is None or not image.get("src"):
            continue
        symbols_to_urls[text.get_text()] = str(image["src"])
    return symbols_to_urls


class ForumSession:
    """Cookies, security token and raw requests of one logged-in forum user."""

    def __init__(
        self,
        settings: ForumSettings,
        smileys: SmileyTable,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Prepare a session; nothing is sent before ``login()``."""
        self.settings = settings
        self.smileys = smileys
        self.security_token: str | None = None
        self.lock = asyncio.Lock()
        self._client: httpx.AsyncClient | None = None
        self._transport = transport

        base_url = settings.url
        self.login_url = urljoin(base_url, LOGIN_PATH)
        self.cheap_page_url = urljoin(base_url, CHEAP_PAGE_PATH)
        self.post_edit_url = urljoin(base_url, POST_EDIT_PATH)
        self.messages_url = urljoin(base_url, MESSAGES_PATH)
        self.smilies_url = urljoin(base_url, SMILIES_PATH)
        self.ajax_url = urljoin(base_url, AJAX_PATH)

    @property
    def client(self) -> httpx.AsyncClient:
        """The shared client; it owns the session's cookie jar."""
        if self._client is None or self._client.is_closed:
            self._client = build_forum_client(
                HttpxClientOptions(timeout=self.settings.timeout_seconds),
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()

    def _decode(self, response: httpx.Response) -> str:
        return response.content.decode(self.settings.server_encoding, errors="replace")

    async def _get(self, url: str) -> str:
        async with self.lock:
            response = await self.client.get(url)
        if response.status_code != HTTP_OK:
            message = f"GET {url} returned HTTP {response.status_code}"
            raise ForumResponseError(message, status_code=response.status_code)
        return self._decode(response)

    async def _post(self, url: str, body: bytes) -> httpx.Response:
        async with self.lock:
            return await self.client.post(
                url,
                content=body,
                headers={"Content-Type": FORM_CONTENT_TYPE},
            )

    async def login(self) -> None:
        """Log in anew, then fetch the security token and the smiley list."""
        logger.info("Logging in as %r", self.settings.username)
        form = urlencode(
            {
                "vb_login_username": self.settings.username,
                "vb_login_password": self.settings.password,
                "cookieuser": "1",
                "s": "",
                "do": "login",
                "vb_login_md5password": "",
                "vb_login_md5password_utf": "",
            },
            encoding="utf-8",
        ).encode("ascii")

        self.client.cookies.clear()
        response = await self._post(self.login_url, form)
        if response.status_code != HTTP_OK:
            message = f"Login returned HTTP {response.status_code}"
            raise ForumResponseError(message, status_code=response.status_code)

        await self.fetch_security_token()
        await self.refresh_smileys()
        logger.info("Logged in")

    async def fetch_cheap_page(self) -> str:
        """Fetch a page that is cheap for the forum to render."""
        return await self._get(self.cheap_page_url)

    async def fetch_security_token(self) -> str:
        """Fetch and store a fresh security token."""
        logger.info("Fetching new security token")
        self.security_token = parse_security_token(await self.fetch_cheap_page())
        logger.debug("New security token: %r", self.security_token)
        return self.security_token

    async def fetch_messages_page(self) -> str:
        """Fetch the raw HTML of the chatbox messages page."""
        return await self._get(self.messages_url)

    async def refresh_smileys(self) -> bool:
        """Re-scrape the forum's smiley list and rebuild the trigger index."""
        logger.info("Updating smileys")
        symbols_to_urls = parse_smileys(await self._get(self.smilies_url))
        if not self.smileys.replace_forum_smileys(symbols_to_urls):
            return False
        self.smileys.rebuild_index()
        logger.info("Loaded %d forum smileys", len(symbols_to_urls))
        return True

    def _token(self) -> str:
        if self.security_token is None:
            message = "No security token; not logged in"
            raise ForumResponseError(message)
        return self.security_token

    async def submit_post(self, encoded_body: str) -> None:
        """Post a new message whose body is already encoded for the forum."""
        request = f"do=cb_postnew&securitytoken={self._token()}&vsacb_newmessage={encoded_body}"
        response = await self._post(
            self.post_edit_url,
            request.encode(self.settings.server_encoding),
        )
        # a successful post answers with an empty body
        if response.status_code != HTTP_OK or response.content:
            message = f"Posting failed with HTTP {response.status_code}"
            raise ForumResponseError(message, status_code=response.status_code)

    async def submit_edit(self, message_id: int, encoded_body: str) -> None:
        """Replace the body of an existing message."""
        request = (
            f"do=vsacb_editmessage&s=&securitytoken={self._token()}"
            f"&id={message_id}&vsacb_editmessage={encoded_body}"
        )
        response = await self._post(
            self.post_edit_url,
            request.encode(self.settings.server_encoding),
        )
        if response.status_code != HTTP_OK:
            message = f"Editing message {message_id} failed with HTTP {response.status_code}"
            raise ForumResponseError(message, status_code=response.status_code)

    async def ajax(
        self,
        operation: str,
        parameters: dict[str, str] | None = None,
    ) -> BeautifulSoup:
        """Call an AJAX operation and return its parsed XML answer."""
        values = {"securitytoken": self._token(), "do": operation, **(parameters or {})}
        request = "&".join(
            f"{ajax_url_encode_string(key)}={ajax_url_encode_string(value)}"
            for key, value in values.items()
        )
        response = await self._post(self.ajax_url, request.encode("ascii"))
        if response.status_code != HTTP_OK or not response.content:
            message = f"AJAX {operation} failed with HTTP {response.status_code}"
            raise ForumResponseError(message, status_code=response.status_code)
        return BeautifulSoup(response.content, "xml")

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

import httpx
import pytest

from chatboxbot.connector import ChatboxConnector, ForumSession
from chatboxbot.connector.session import parse_security_token, parse_smileys
from chatboxbot.core.config import ConnectorSettings, ForumSettings
from chatboxbot.core.exceptions import ForumResponseError, TransferError
from chatboxbot.markup import SmileyTable

from ._fakes import FORUM_URL, message_row, messages_page

SMILIES_PAGE = (
    "<html><body><ul>"
    '<li class="smiliebit"><div class="smilietext">:)</div>'
    '<div class="smilieimage"><img src="images/smilies/smile.gif" /></div></li>'
    '<li class="smiliebit"><div class="smilietext">:(</div>'
    '<div class="smilieimage"><img src="images/smilies/frown.gif" /></div></li>'
    "</ul></body></html>"
)


def _token_page(token: str) -> str:
    return (
        '<html><body><form><input type="hidden" name="securitytoken" '
        f'value="{token}" /></form></body></html>'
    )


@dataclass(slots=True)
class _Forum:
    """A tiny forum: counts requests and answers posts with ``post_answer``."""

    post_answer: bytes = b""
    requests: Counter[tuple[str, str]] = field(default_factory=Counter)
    post_bodies: list[str] = field(default_factory=list)
    tokens_issued: int = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        key = (request.method, request.url.path)
        self.requests[key] += 1
        if key == ("POST", "/login.php"):
            return httpx.Response(200, text="Thank you for logging in")
        if key == ("GET", "/faq.php"):
            self.tokens_issued += 1
            return httpx.Response(200, text=_token_page(f"tok-{self.tokens_issued}"))
        if key == ("GET", "/misc.php") and request.url.params.get("do") == "showsmilies":
            return httpx.Response(200, text=SMILIES_PAGE)
        if key == ("GET", "/misc.php") and request.url.params.get("show") == "ccbmessages":
            page = messages_page(message_row(7, "hällo"))
            return httpx.Response(200, content=page.encode("windows-1252"))
        if key == ("POST", "/misc.php"):
            self.post_bodies.append(request.content.decode("windows-1252"))
            return httpx.Response(200, content=self.post_answer)
        if key == ("POST", "/ajax.php"):
            return httpx.Response(
                200,
                text='<users><user userid="42">Bobby</user></users>',
            )
        return httpx.Response(404)


def _session(forum: _Forum) -> ForumSession:
    settings = ForumSettings(url=FORUM_URL, username="Chatbox Bot", password="secret")
    return ForumSession(settings, SmileyTable(), transport=httpx.MockTransport(forum))


def test_parse_security_token() -> None:
    assert parse_security_token(_token_page("abc")) == "abc"
    with pytest.raises(ForumResponseError):
        parse_security_token("<html><body>nothing</body></html>")


def test_parse_smileys() -> None:
    assert parse_smileys(SMILIES_PAGE) == {
        ":)": "images/smilies/smile.gif",
        ":(": "images/smilies/frown.gif",
    }


@pytest.mark.asyncio
async def test_login_fetches_token_and_smileys() -> None:
    forum = _Forum()
    session = _session(forum)

    await session.login()

    assert session.security_token == "tok-1"
    assert session.smileys.forum_symbols_to_urls[":("] == "images/smilies/frown.gif"
    assert session.smileys.trigger_pattern.search(":(") is not None
    await session.aclose()


@pytest.mark.asyncio
async def test_post_failing_everywhere_climbs_the_whole_ladder() -> None:
    forum = _Forum(post_answer=b"<error>flood control</error>")
    session = _session(forum)
    connector = ChatboxConnector(session, ConnectorSettings())
    await session.login()

    with pytest.raises(TransferError):
        await connector.send_message("hi there")

    assert forum.requests["POST", "/misc.php"] == 3
    assert forum.requests["POST", "/login.php"] == 2
    assert forum.requests["GET", "/faq.php"] == 3
    assert [body.split("&")[1] for body in forum.post_bodies] == [
        "securitytoken=tok-1",
        "securitytoken=tok-2",
        "securitytoken=tok-3",
    ]
    assert forum.post_bodies[0].endswith("vsacb_newmessage=hi%20there")
    await session.aclose()


@pytest.mark.asyncio
async def test_successful_post_is_sent_once() -> None:
    forum = _Forum()
    session = _session(forum)
    connector = ChatboxConnector(session, ConnectorSettings())
    await session.login()

    assert await connector.send_message("hi")

    assert forum.requests["POST", "/misc.php"] == 1
    await session.aclose()


@pytest.mark.asyncio
async def test_messages_page_is_decoded_with_the_forum_encoding() -> None:
    forum = _Forum()
    session = _session(forum)
    connector = ChatboxConnector(session, ConnectorSettings())
    await session.login()

    (event,) = await connector.poll_once()

    assert event.message.id == 7
    assert event.message.plain_text() == "hällo"
    await session.aclose()


@pytest.mark.asyncio
async def test_ajax_user_search() -> None:
    forum = _Forum()
    session = _session(forum)
    connector = ChatboxConnector(session, ConnectorSettings())
    await session.login()

    assert await connector.lookup_user("bobby") == (42, "Bobby")
    assert forum.requests["POST", "/ajax.php"] == 1
    await session.aclose()


@pytest.mark.asyncio
async def test_error_status_raises() -> None:
    def _handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    settings = ForumSettings(url=FORUM_URL, username="bot", password="pw")
    session = ForumSession(settings, SmileyTable(), transport=httpx.MockTransport(_handler))

    with pytest.raises(ForumResponseError) as excinfo:
        await session.fetch_messages_page()

    assert excinfo.value.status_code == 503
    await session.aclose()

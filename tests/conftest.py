from __future__ import annotations

import pytest

from chatboxbot.connector import ChatboxConnector
from chatboxbot.core.config import CONFIG_PATH_ENV, ConnectorSettings, clear_config_cache
from chatboxbot.markup import SmileyTable

from ._fakes import FakeClock, FakeForumSession


@pytest.fixture(autouse=True)
def _fresh_config_cache(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
    clear_config_cache()


@pytest.fixture
def smileys() -> SmileyTable:
    return SmileyTable(
        forum_smileys={
            ":)": "images/smilies/smile.gif",
            ":))": "images/smilies/laugh.gif",
            ":multihail:": "images/smilies/multihail.gif",
        },
        custom_smileys={":fluffy:": "https://img.example.com/fluffy.gif"},
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_session(smileys: SmileyTable) -> FakeForumSession:
    return FakeForumSession(smileys=smileys)


@pytest.fixture
def connector(fake_session: FakeForumSession, clock: FakeClock) -> ChatboxConnector:
    settings = ConnectorSettings(
        poll_interval_seconds=0.01,
        banned_nicknames=frozenset({"troll"}),
    )
    return ChatboxConnector(fake_session, settings, clock=clock)  # type: ignore[arg-type]

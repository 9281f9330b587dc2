"""Shared pytest fixtures for Sparkle client tests."""
import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from sparkle.navigation import RecordingNavigator
from sparkle.notifications import LoggingNotifier
from sparkle.schemas import Candidate, MatchEntry, Message, SwipeResult, User
from sparkle.utils.credentials import CredentialStore

BASE_URL = "http://api.test"


@pytest.fixture
def me():
    """The logged-in user, profile complete."""
    return User(
        id="u-me",
        email="ada@example.com",
        name="Ada",
        age=29,
        gender="female",
        bio="Tea, maths, long walks.",
        interests=["chess", "hiking"],
        profile_picture_url="https://img.test/ada.jpg",
        is_profile_complete=True,
    )


@pytest.fixture
def new_user():
    """A freshly registered user who has not finished setup."""
    return User(id="u-new", email="new@example.com", name="Newbie")


def _candidate(n: int) -> Candidate:
    return Candidate(id=f"c{n}", name=f"Candidate {n}", age=20 + n, interests=["music"])


def _message(
    n: int,
    sender: str = "u-peer",
    receiver: str = "u-me",
    minutes: int = 0,
) -> Message:
    return Message(
        id=f"m{n}",
        sender_id=sender,
        receiver_id=receiver,
        content=f"hello {n}",
        timestamp=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc) + timedelta(minutes=minutes),
    )


@pytest.fixture
def make_candidate():
    return _candidate


@pytest.fixture
def make_message():
    return _message


@pytest.fixture
def candidates():
    return [_candidate(n) for n in range(1, 6)]


@pytest.fixture
def match_entries():
    return [
        MatchEntry(id="u-peer", name="Grace", match_id="match-1"),
        MatchEntry(id="u-other", name="Linus", match_id="match-2"),
    ]


@pytest.fixture
def navigator():
    return RecordingNavigator()


@pytest.fixture
def notifier():
    return LoggingNotifier()


@pytest.fixture
def credentials():
    """In-memory token cookie with no encryption."""
    return CredentialStore(
        jar_path="",
        cookie_name="token",
        domain="localhost",
        ttl_days=1,
        fernet_key="",
    )


@pytest.fixture
def fake_api():
    """AsyncMock stand-in for ApiClient with empty-but-valid defaults."""
    api = MagicMock()
    api.get_cards = AsyncMock(return_value=[])
    api.swipe = AsyncMock(return_value=SwipeResult(is_match=False))
    api.get_matches = AsyncMock(return_value=[])
    api.unmatch = AsyncMock(return_value=None)
    api.get_chat_history = AsyncMock(return_value=[])
    api.get_me = AsyncMock()
    api.login = AsyncMock()
    api.register = AsyncMock()
    api.setup_profile = AsyncMock()
    api.update_profile = AsyncMock()
    api.upload_photo = AsyncMock()
    api.add_unauthorized_hook = MagicMock(return_value=lambda: None)
    return api


def json_response(status: int, body=None) -> httpx.Response:
    if body is None:
        return httpx.Response(status)
    return httpx.Response(status, content=json.dumps(body), headers={"Content-Type": "application/json"})


class Router:
    """httpx.MockTransport handler that serves canned responses by route.

    Every request is recorded so tests can inspect headers and bodies.
    """

    def __init__(self):
        self.routes = {}
        self.requests = []

    def add(self, method: str, path: str, status: int = 200, body=None, exc=None):
        self.routes[(method, path)] = (status, body, exc)
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes:
            return json_response(404, {"message": "Not found"})
        status, body, exc = self.routes[key]
        if exc is not None:
            raise exc
        return json_response(status, body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def router():
    return Router()

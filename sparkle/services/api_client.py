"""
Sparkle Client — Remote API client

Typed async wrapper over the Sparkle REST backend using ``httpx``.

* Every request except login/register carries ``Authorization: Bearer``.
* A 401 on any other endpoint means the session token expired: the stored
  credential is cleared, registered hooks run, the navigator is sent to the
  login screen, and ``AuthError(expired=True)`` is raised.
* Transport failures and non-2xx responses become ``NetworkError``.

No request is ever retried automatically.
"""

from __future__ import annotations

import time
from typing import Any, Callable

import httpx
import structlog

from sparkle.config import get_settings
from sparkle.errors import AuthError, NetworkError
from sparkle.navigation import Navigator, Route
from sparkle.schemas import (
    AuthResponse,
    Candidate,
    ChatHistory,
    LoginRequest,
    MatchEntry,
    Message,
    PhotoUpload,
    ProfileResponse,
    RegisterRequest,
    SetupProfileRequest,
    SwipeDecision,
    SwipeResult,
    UpdateProfileRequest,
    User,
)
from sparkle.utils.credentials import CredentialStore

logger = structlog.get_logger("sparkle.api_client")

_LOGIN_PATH = "/auth/login"
_REGISTER_PATH = "/auth/register"
_AUTH_PATHS = frozenset({_LOGIN_PATH, _REGISTER_PATH})

# Status codes an auth endpoint uses for "your input was rejected".
_AUTH_REJECTION_CODES = frozenset({400, 401, 409, 422})


def _error_message(response: httpx.Response) -> str | None:
    """Pull a human-readable message out of an error body, if there is one."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    for key in ("message", "error", "detail"):
        value = body.get(key)
        if not value:
            continue
        if isinstance(value, list):
            return "; ".join(str(v) for v in value)
        return str(value)
    return None


class ApiClient:
    """REST client for auth, profile, discovery, matches, and chat history."""

    def __init__(
        self,
        credentials: CredentialStore,
        navigator: Navigator,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.credentials = credentials
        self.navigator = navigator
        self._unauthorized_hooks: list[Callable[[], None]] = []
        self._client = httpx.AsyncClient(
            base_url=(base_url or settings.API_BASE_URL).rstrip("/"),
            timeout=timeout or settings.REQUEST_TIMEOUT_SECONDS,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def add_unauthorized_hook(self, hook: Callable[[], None]) -> Callable[[], None]:
        """Run ``hook`` whenever a token-expired 401 is observed.

        Returns a callable that removes the hook again.
        """
        self._unauthorized_hooks.append(hook)

        def _remove() -> None:
            if hook in self._unauthorized_hooks:
                self._unauthorized_hooks.remove(hook)

        return _remove

    # ── Auth ──────────────────────────────────────────────────────────────

    async def login(self, request: LoginRequest) -> AuthResponse:
        data = await self._request("POST", _LOGIN_PATH, json=request.to_wire())
        return AuthResponse.model_validate(data)

    async def register(self, request: RegisterRequest) -> AuthResponse:
        data = await self._request("POST", _REGISTER_PATH, json=request.to_wire())
        return AuthResponse.model_validate(data)

    async def get_me(self) -> User:
        data = await self._request("GET", "/users/me")
        return User.model_validate(data)

    # ── Profile ───────────────────────────────────────────────────────────

    async def setup_profile(self, request: SetupProfileRequest) -> User:
        data = await self._request("POST", "/users/profile/setup", json=request.to_wire())
        return ProfileResponse.model_validate(data).user

    async def update_profile(self, request: UpdateProfileRequest) -> User:
        data = await self._request("PATCH", "/users/profile", json=request.to_wire())
        return ProfileResponse.model_validate(data).user

    async def upload_photo(
        self,
        filename: str,
        content: bytes,
        content_type: str = "image/jpeg",
    ) -> PhotoUpload:
        data = await self._request(
            "POST",
            "/users/profile/photo",
            files={"photo": (filename, content, content_type)},
        )
        return PhotoUpload.model_validate(data)

    # ── Discovery & matches ───────────────────────────────────────────────

    async def get_cards(self, limit: int) -> list[Candidate]:
        data = await self._request("GET", "/matches/cards", params={"limit": limit})
        if isinstance(data, dict):
            data = data.get("cards", [])
        return [Candidate.model_validate(item) for item in data or []]

    async def swipe(self, decision: SwipeDecision) -> SwipeResult:
        data = await self._request("POST", "/matches/swipe", json=decision.to_wire())
        return SwipeResult.model_validate(data or {})

    async def get_matches(self) -> list[MatchEntry]:
        data = await self._request("GET", "/matches")
        if isinstance(data, dict):
            data = data.get("matches", [])
        return [MatchEntry.model_validate(item) for item in data or []]

    async def unmatch(self, match_id: str) -> None:
        await self._request("DELETE", f"/matches/{match_id}")

    # ── Chat ──────────────────────────────────────────────────────────────

    async def get_chat_history(self, target_user_id: str, limit: int | None = None) -> list[Message]:
        params = {"limit": limit} if limit else None
        data = await self._request("GET", f"/chat/history/{target_user_id}", params=params)
        if isinstance(data, list):
            return [Message.model_validate(item) for item in data]
        return ChatHistory.model_validate(data or {}).messages

    # ── Transport ─────────────────────────────────────────────────────────

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict | None = None,
        params: dict | None = None,
        files: dict | None = None,
    ) -> Any:
        is_auth_endpoint = path in _AUTH_PATHS
        headers: dict[str, str] = {}
        if not is_auth_endpoint:
            token = self.credentials.get()
            if token:
                headers["Authorization"] = f"Bearer {token}"

        log = logger.bind(method=method, path=path)
        start = time.perf_counter()
        try:
            response = await self._client.request(
                method, path, json=json, params=params, files=files, headers=headers,
            )
        except httpx.TimeoutException as exc:
            log.warning("request_timeout", error=str(exc))
            raise NetworkError("Request timed out") from exc
        except httpx.RequestError as exc:
            log.warning("request_failed", error=str(exc))
            raise NetworkError() from exc

        duration_ms = (time.perf_counter() - start) * 1000
        log.info(
            "request_handled",
            status=response.status_code,
            duration_ms=round(duration_ms, 2),
        )

        if response.status_code == 401 and not is_auth_endpoint:
            self._handle_token_expired()
            raise AuthError("Your session has expired. Please log in again.", expired=True)

        if is_auth_endpoint and response.status_code in _AUTH_REJECTION_CODES:
            default = "Invalid email or password" if path == _LOGIN_PATH else "Registration failed"
            raise AuthError(_error_message(response) or default)

        if response.is_error:
            raise NetworkError(_error_message(response), status_code=response.status_code)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise NetworkError("Malformed response body", status_code=response.status_code) from exc

    def _handle_token_expired(self) -> None:
        logger.warning("token_expired")
        self.credentials.clear()
        for hook in list(self._unauthorized_hooks):
            hook()
        self.navigator.redirect(Route.AUTH)

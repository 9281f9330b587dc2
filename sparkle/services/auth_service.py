"""
Sparkle Client — Authentication / session state manager

State machine::

    UNKNOWN ──initialize──▶ AUTHENTICATING ──▶ AUTHENTICATED(user)
       │                          │
       └── no credential ──▶ ANONYMOUS ◀── fetch failed / logout / 401

``login`` and ``register`` run ANONYMOUS → AUTHENTICATING → AUTHENTICATED,
or fall back to ANONYMOUS with ``error`` set.  ``logout`` is synchronous and
never touches the network.  An authenticated user whose profile is not yet
complete is gated to the profile-setup screen by ``guard``.
"""

from __future__ import annotations

from enum import Enum
from typing import Awaitable

import structlog

from sparkle.errors import AuthError, SparkleError
from sparkle.navigation import COMPLETE_PROFILE_ROUTES, PROTECTED_ROUTES, Navigator, Route
from sparkle.notifications import Notifier
from sparkle.schemas import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    SetupProfileRequest,
    UpdateProfileRequest,
    User,
)
from sparkle.services.api_client import ApiClient
from sparkle.services.validation import (
    validate_login,
    validate_profile_setup,
    validate_profile_update,
    validate_registration,
)
from sparkle.utils.credentials import CredentialStore

logger = structlog.get_logger("sparkle.auth_service")


class AuthState(str, Enum):
    UNKNOWN = "unknown"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


class AuthSessionManager:
    """Holds the current user and drives login/register/logout/profile edits."""

    def __init__(
        self,
        api: ApiClient,
        credentials: CredentialStore,
        navigator: Navigator,
        notifier: Notifier,
    ) -> None:
        self.api = api
        self.credentials = credentials
        self.navigator = navigator
        self.notifier = notifier

        self.state: AuthState = AuthState.UNKNOWN
        self.user: User | None = None
        self.error: str | None = None
        self._busy = False

        self._remove_hook = api.add_unauthorized_hook(self.on_token_expired)

    # ── Derived flags ─────────────────────────────────────────────────────

    @property
    def is_authenticated(self) -> bool:
        return self.state is AuthState.AUTHENTICATED and self.user is not None

    @property
    def loading(self) -> bool:
        return self._busy or self.state in (AuthState.UNKNOWN, AuthState.AUTHENTICATING)

    @property
    def needs_profile_setup(self) -> bool:
        return self.is_authenticated and not self.user.is_profile_complete

    # ── Startup ───────────────────────────────────────────────────────────

    async def initialize(self) -> AuthState:
        """Hydrate the session from the stored credential."""
        if not self.credentials.get():
            self._become_anonymous()
            return self.state

        self.state = AuthState.AUTHENTICATING
        try:
            user = await self.api.get_me()
        except Exception as exc:
            if isinstance(exc, SparkleError):
                logger.warning("auth_initialize_failed", error=exc.message)
            else:
                logger.exception("auth_initialize_failed")
            self.credentials.clear()
            self._become_anonymous(error="Failed to initialize auth")
            return self.state

        self._become_authenticated(user)
        return self.state

    # ── Login / register / logout ─────────────────────────────────────────

    async def login(self, email: str, password: str) -> User:
        validate_login(email, password)
        request = LoginRequest(email=email.strip().lower(), password=password)
        return await self._authenticate(self.api.login(request), "login")

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        confirm_password: str | None = None,
    ) -> User:
        validate_registration(name, email, password, confirm_password)
        request = RegisterRequest(
            name=name.strip(),
            email=email.strip().lower(),
            password=password,
        )
        return await self._authenticate(self.api.register(request), "register")

    def logout(self) -> None:
        self.credentials.clear()
        self._become_anonymous()
        logger.info("logout")
        self.navigator.redirect(Route.AUTH)

    def on_token_expired(self) -> None:
        """Hook run by the API client after a 401 has cleared the credential."""
        if self.state is not AuthState.ANONYMOUS:
            logger.info("session_expired")
        self._become_anonymous(error="Your session has expired. Please log in again.")

    # ── Profile ───────────────────────────────────────────────────────────

    async def setup_profile(self, request: SetupProfileRequest) -> User:
        self._require_authenticated()
        validate_profile_setup(request)
        user = await self._replace_user(self.api.setup_profile(request), "Profile setup failed")
        self.notifier.success("Profile setup complete!")
        return user

    async def update_profile(self, request: UpdateProfileRequest) -> User:
        self._require_authenticated()
        validate_profile_update(request)
        user = await self._replace_user(self.api.update_profile(request), "Profile update failed")
        self.notifier.success("Profile updated")
        return user

    async def upload_photo(
        self,
        filename: str,
        content: bytes,
        content_type: str = "image/jpeg",
    ) -> str:
        self._require_authenticated()
        self._busy = True
        try:
            upload = await self.api.upload_photo(filename, content, content_type)
        except SparkleError as exc:
            self._fail(exc.message)
            raise
        finally:
            self._busy = False

        if upload.user is not None:
            self.user = upload.user
        else:
            self.user = self.user.model_copy(update={"profile_picture_url": upload.url})
        logger.info("profile_photo_uploaded", user_id=self.user.id)
        return upload.url

    async def refresh(self) -> User:
        self._require_authenticated()
        return await self._replace_user(self.api.get_me(), "Failed to refresh user")

    # ── Route guard ───────────────────────────────────────────────────────

    def guard(self, route: Route) -> Route | None:
        """Return where ``route`` must redirect to, or None to render it.

        While the session is still being decided no redirect is issued.
        """
        if self.state in (AuthState.UNKNOWN, AuthState.AUTHENTICATING):
            return None
        if not self.is_authenticated:
            return Route.AUTH if route in PROTECTED_ROUTES else None
        if self.needs_profile_setup:
            if route in COMPLETE_PROFILE_ROUTES or route is Route.AUTH:
                return Route.SETUP
            return None
        if route in (Route.SETUP, Route.AUTH):
            return Route.DISCOVER
        return None

    def can_render(self, route: Route) -> bool:
        return not self.loading and self.guard(route) is None

    def navigate(self, route: Route) -> Route:
        target = self.guard(route) or route
        self.navigator.redirect(target)
        return target

    # ── Internals ─────────────────────────────────────────────────────────

    async def _authenticate(self, call: Awaitable[AuthResponse], action: str) -> User:
        log = logger.bind(action=action)
        self.state = AuthState.AUTHENTICATING
        self.error = None
        try:
            response = await call
            self.credentials.set(response.access_token)
            user = await self.api.get_me()
        except SparkleError as exc:
            log.info("authentication_failed", error=exc.message)
            self.credentials.clear()
            self._become_anonymous(error=exc.message)
            raise
        except Exception as exc:
            log.exception("authentication_error")
            self.credentials.clear()
            self._become_anonymous(error=AuthError.default_message)
            raise AuthError() from exc

        self._become_authenticated(user)
        log.info("authentication_succeeded", user_id=user.id)
        return user

    async def _replace_user(self, call: Awaitable[User], failure: str) -> User:
        self._busy = True
        self.error = None
        try:
            user = await call
        except SparkleError as exc:
            self._fail(exc.message or failure)
            raise
        except Exception as exc:
            logger.exception("profile_call_error")
            self._fail(failure)
            raise SparkleError(failure) from exc
        finally:
            self._busy = False
        self.user = user
        return user

    def _fail(self, message: str) -> None:
        self.error = message
        # An expired session already redirected; no second toast.
        if self.state is AuthState.AUTHENTICATED:
            self.notifier.error(message)

    def _require_authenticated(self) -> None:
        if not self.is_authenticated:
            raise AuthError("You must be logged in")

    def _become_authenticated(self, user: User) -> None:
        self.user = user
        self.state = AuthState.AUTHENTICATED
        self.error = None

    def _become_anonymous(self, error: str | None = None) -> None:
        self.user = None
        self.state = AuthState.ANONYMOUS
        self.error = error

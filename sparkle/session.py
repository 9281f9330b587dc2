"""
Sparkle Client — Session context

``SparkleSession`` is the explicitly-scoped container for one user session:
settings, credential store, API and realtime clients, and the controllers
built on them.  Each controller is handed only the collaborators it uses, so
there is no ambient global store.

Usage::

    async with SparkleSession.create() as session:
        await session.auth.login("ada@example.com", "hunter22")
        await session.discovery.load_candidates()
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
import structlog

from sparkle.config import Settings, get_settings
from sparkle.navigation import Navigator, RecordingNavigator
from sparkle.notifications import LoggingNotifier, Notifier
from sparkle.services.api_client import ApiClient
from sparkle.services.auth_service import AuthSessionManager
from sparkle.services.conversation_service import ConversationController
from sparkle.services.discovery_service import DiscoveryController
from sparkle.services.match_service import MatchListController
from sparkle.services.realtime_client import RealtimeClient
from sparkle.utils.credentials import CredentialStore

logger = structlog.get_logger("sparkle.session")


# ---------------------------------------------------------------------------
# Structured logging configuration
# ---------------------------------------------------------------------------

def configure_logging(level: str | None = None) -> None:
    """Install the JSON structlog pipeline at ``level`` (default LOG_LEVEL)."""
    level_name = (level or get_settings().LOG_LEVEL).upper()
    level_no = logging.getLevelName(level_name)
    if not isinstance(level_no, int):
        level_no = logging.INFO
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level_no),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Session container
# ---------------------------------------------------------------------------

class SparkleSession:
    """Wires clients and controllers for one authenticated-or-not session."""

    def __init__(
        self,
        settings: Settings | None = None,
        credentials: CredentialStore | None = None,
        navigator: Navigator | None = None,
        notifier: Notifier | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        realtime: RealtimeClient | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.credentials = credentials or CredentialStore(
            jar_path=self.settings.COOKIE_JAR_PATH,
            cookie_name=self.settings.TOKEN_COOKIE_NAME,
            domain=self.settings.COOKIE_DOMAIN,
            ttl_days=self.settings.TOKEN_TTL_DAYS,
            fernet_key=self.settings.CREDENTIAL_FERNET_KEY,
        )
        self.navigator = navigator or RecordingNavigator()
        self.notifier = notifier or LoggingNotifier(
            match_display_seconds=self.settings.MATCH_NOTIFICATION_SECONDS
        )

        self.api = ApiClient(
            self.credentials,
            self.navigator,
            base_url=self.settings.API_BASE_URL,
            timeout=self.settings.REQUEST_TIMEOUT_SECONDS,
            transport=transport,
        )
        self.realtime = realtime or RealtimeClient(
            url=self.settings.realtime_endpoint,
            namespace=self.settings.REALTIME_NAMESPACE,
        )

        self.auth = AuthSessionManager(self.api, self.credentials, self.navigator, self.notifier)
        self.matches = MatchListController(self.api, self.notifier)
        self.discovery = DiscoveryController(
            self.api,
            self.notifier,
            matches=self.matches,
            batch_size=self.settings.DISCOVERY_BATCH_SIZE,
            replenish_threshold=self.settings.REPLENISH_THRESHOLD,
        )
        self.conversations = ConversationController(
            self.api,
            self.realtime,
            self.credentials,
            self.matches,
            self.notifier,
            current_user=lambda: self.auth.user,
            history_limit=self.settings.CHAT_HISTORY_LIMIT,
        )
        self.api.add_unauthorized_hook(self._drop_user_state)

    @classmethod
    @asynccontextmanager
    async def create(cls, configure_logs: bool = True, **kwargs) -> AsyncIterator["SparkleSession"]:
        """Start a session, hydrate auth state, and tear everything down on exit."""
        session = cls(**kwargs)
        if configure_logs:
            configure_logging(session.settings.LOG_LEVEL)

        # -- Startup --------------------------------------------------------- #
        logger.info(
            "session_start",
            environment=session.settings.ENVIRONMENT,
            api=session.settings.API_BASE_URL,
        )
        try:
            await session.auth.initialize()
            logger.info("session_ready", auth_state=session.auth.state.value)
            yield session
        finally:
            # -- Shutdown ---------------------------------------------------- #
            await session.aclose()

    async def logout(self) -> None:
        """Log out and drop everything tied to the previous user."""
        self._drop_user_state()
        self.auth.logout()
        await self.realtime.disconnect()

    def _drop_user_state(self) -> None:
        self.conversations.close()
        self.discovery.reset()
        self.matches.clear()

    async def aclose(self) -> None:
        self.discovery.close()
        self.conversations.close()
        await self.realtime.disconnect()
        await self.api.aclose()
        logger.info("session_closed")

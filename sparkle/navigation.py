"""
Sparkle Client — Screen routes and the navigator seam.

Controllers never change screens themselves; they ask an injected
``Navigator`` to redirect.  ``RecordingNavigator`` is the headless
implementation used by scripts and tests.
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol

import structlog

logger = structlog.get_logger("sparkle.navigation")


class Route(str, Enum):
    AUTH = "/auth"
    SETUP = "/setup"
    DISCOVER = "/discover"
    MATCHES = "/matches"
    MESSAGES = "/messages"
    PROFILE = "/profile"


# Screens that need an authenticated user.
PROTECTED_ROUTES: frozenset[Route] = frozenset(
    {Route.SETUP, Route.DISCOVER, Route.MATCHES, Route.MESSAGES, Route.PROFILE}
)

# Screens that additionally need a completed profile.
COMPLETE_PROFILE_ROUTES: frozenset[Route] = frozenset(
    {Route.DISCOVER, Route.MATCHES, Route.MESSAGES}
)


class Navigator(Protocol):
    def redirect(self, route: Route) -> None: ...


class RecordingNavigator:
    """Keeps the current route and every redirect in order."""

    def __init__(self, initial: Route = Route.AUTH) -> None:
        self.current: Route = initial
        self.history: list[Route] = []

    def redirect(self, route: Route) -> None:
        logger.info("navigate", frm=self.current.value, to=route.value)
        self.current = route
        self.history.append(route)

"""
Sparkle Client — User-visible notifications (toasts and the match popup).
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Protocol

import structlog

from sparkle.config import get_settings
from sparkle.errors import AuthError, SparkleError

logger = structlog.get_logger("sparkle.notifications")


class Notifier(Protocol):
    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def match(self, name: str) -> None: ...


@dataclass(frozen=True)
class Notification:
    kind: str  # success / error / match
    message: str


class LoggingNotifier:
    """Notifier that logs every notification and keeps the most recent ones.

    ``history`` is bounded so a long-running session does not grow without
    limit; ``matches`` lists the names surfaced through the match popup.
    The popup itself closes on its own after ``match_display_seconds``.
    """

    def __init__(
        self,
        max_history: int = 100,
        match_display_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.history: deque[Notification] = deque(maxlen=max_history)
        self.match_display_seconds = (
            match_display_seconds
            if match_display_seconds is not None
            else get_settings().MATCH_NOTIFICATION_SECONDS
        )
        self._clock = clock
        self._popup: tuple[str, float] | None = None

    def success(self, message: str) -> None:
        logger.info("toast_success", message=message)
        self.history.append(Notification("success", message))

    def error(self, message: str) -> None:
        logger.warning("toast_error", message=message)
        self.history.append(Notification("error", message))

    def match(self, name: str) -> None:
        logger.info("match_notification", name=name)
        self.history.append(Notification("match", name))
        self._popup = (name, self._clock() + self.match_display_seconds)

    @property
    def current_match(self) -> str | None:
        """Name shown in the match popup, or None once it has closed."""
        if self._popup is None:
            return None
        name, closes_at = self._popup
        if self._clock() >= closes_at:
            self._popup = None
            return None
        return name

    @property
    def errors(self) -> list[str]:
        return [n.message for n in self.history if n.kind == "error"]

    @property
    def matches(self) -> list[str]:
        return [n.message for n in self.history if n.kind == "match"]


def report_failure(notifier: Notifier, exc: BaseException, fallback: str, **context) -> None:
    """Surface a failed operation as a toast.

    An expired session is signalled by the redirect to the login screen, so it
    gets no toast.  Errors that are not ``SparkleError`` are logged with their
    traceback and shown as ``fallback``.
    """
    if isinstance(exc, AuthError) and exc.expired:
        logger.info("failure_session_expired", **context)
        return
    if isinstance(exc, SparkleError):
        logger.info("operation_failed", error=exc.message, **context)
        notifier.error(exc.detail or fallback)
        return
    logger.error("operation_error", exc_info=exc, **context)
    notifier.error(fallback)

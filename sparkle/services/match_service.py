"""
Sparkle Client — Match list controller

Owns the confirmed-match collection for the session.  ``unmatch`` removes the
match locally before the DELETE is sent; if the call fails the match is put
back at its original position and an error toast is shown.
"""

from __future__ import annotations

from typing import Callable

import structlog

from sparkle.errors import ValidationError
from sparkle.notifications import Notifier, report_failure
from sparkle.schemas import Candidate, MatchEntry
from sparkle.services.api_client import ApiClient
from sparkle.utils.optimistic import optimistic

logger = structlog.get_logger("sparkle.match_service")

MatchListener = Callable[[tuple[MatchEntry, ...]], None]


class MatchListController:
    """List, add, and unmatch confirmed matches."""

    def __init__(self, api: ApiClient, notifier: Notifier) -> None:
        self.api = api
        self.notifier = notifier
        self._matches: list[MatchEntry] = []
        self._listeners: list[MatchListener] = []
        self.loading = False
        self.loaded = False

    @property
    def matches(self) -> tuple[MatchEntry, ...]:
        return tuple(self._matches)

    def get(self, match_id: str) -> MatchEntry | None:
        for entry in self._matches:
            if entry.key == match_id:
                return entry
        return None

    # ── Operations ────────────────────────────────────────────────────────

    async def refresh(self) -> tuple[MatchEntry, ...]:
        """Fetch ``GET /matches`` and replace the local list.

        On failure the previous list is kept and an error toast is shown.
        """
        self.loading = True
        try:
            entries = await self.api.get_matches()
        except Exception as exc:
            report_failure(self.notifier, exc, "Failed to load matches")
            return self.matches
        finally:
            self.loading = False

        deduped: dict[str, MatchEntry] = {}
        for entry in entries:
            deduped.setdefault(entry.key, entry)
        self._replace(list(deduped.values()))
        self.loaded = True
        logger.info("matches_loaded", count=len(self._matches))
        return self.matches

    async def list_matches(self) -> tuple[MatchEntry, ...]:
        """Alias of ``refresh`` for callers that think of it as listing."""
        return await self.refresh()

    async def unmatch(self, match_id: str) -> bool:
        if self.get(match_id) is None:
            raise ValidationError(f"Unknown match {match_id}", field="match_id")

        log = logger.bind(match_id=match_id)
        try:
            with optimistic(
                lambda: list(self._matches),
                self._replace,
                lambda entries: [e for e in entries if e.key != match_id],
            ):
                await self.api.unmatch(match_id)
        except Exception as exc:
            log.info("unmatch_rolled_back")
            report_failure(self.notifier, exc, "Failed to unmatch", match_id=match_id)
            return False

        log.info("unmatched")
        self.notifier.success("Successfully unmatched")
        return True

    def clear(self) -> None:
        self.loaded = False
        self._replace([])

    def add_from_swipe(self, candidate: Candidate, match_id: str | None = None) -> MatchEntry:
        """Insert a match produced by a mutual like at the front of the list."""
        entry = MatchEntry.model_validate(
            {**candidate.model_dump(), "match_id": match_id}
        )
        existing = self.get(entry.key)
        if existing is not None:
            return existing
        self._replace([entry, *self._matches])
        logger.info("match_added", match_id=entry.key)
        return entry

    # ── Change notification ───────────────────────────────────────────────

    def subscribe(self, listener: MatchListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _replace(self, entries: list[MatchEntry]) -> None:
        self._matches = entries
        snapshot = self.matches
        for listener in list(self._listeners):
            listener(snapshot)

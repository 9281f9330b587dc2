"""
Sparkle Client — Discovery / swipe session controller

Owns the ordered, finite queue of candidate profiles shown as a card stack
and drives one decision at a time against the top card.

State machine::

    EMPTY ──load──▶ LOADED ──decide──▶ DECIDING ──ok──▶ LOADED (head removed)
      ▲               │                   └──fail──▶ LOADED (head unchanged)
      │               └─ queue ≤ threshold ──▶ background load (non-blocking)
      │
    reload ◀── EXHAUSTED ◀── queue empty and nothing left to fetch

Guarantees:

* Candidate ids are unique in the queue; an id decided this session never
  re-enters it, whatever the server sends back.
* ``decide`` is single-flight: a second call while one is pending is ignored,
  never queued.
* A failed decision leaves the head in place and is never retried
  automatically.
* A mutual like fires the match notification exactly once.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum

import structlog

from sparkle.config import get_settings
from sparkle.errors import ValidationError
from sparkle.notifications import Notifier, report_failure
from sparkle.schemas import Candidate, SwipeAction, SwipeDecision, SwipeResult
from sparkle.services.api_client import ApiClient
from sparkle.services.match_service import MatchListController

logger = structlog.get_logger("sparkle.discovery_service")


class DiscoveryState(str, Enum):
    EMPTY = "empty"
    LOADED = "loaded"
    DECIDING = "deciding"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class DecisionOutcome:
    candidate_id: str
    action: SwipeAction
    is_match: bool = False
    match_name: str | None = None
    match_id: str | None = None


class DiscoveryController:
    """Candidate queue plus the swipe decision lifecycle."""

    def __init__(
        self,
        api: ApiClient,
        notifier: Notifier,
        matches: MatchListController | None = None,
        batch_size: int | None = None,
        replenish_threshold: int | None = None,
    ) -> None:
        settings = get_settings()
        self.api = api
        self.notifier = notifier
        self.matches = matches
        self.batch_size: int = batch_size or settings.DISCOVERY_BATCH_SIZE
        self.replenish_threshold: int = (
            replenish_threshold
            if replenish_threshold is not None
            else settings.REPLENISH_THRESHOLD
        )

        self.state: DiscoveryState = DiscoveryState.EMPTY
        self._queue: list[Candidate] = []
        self._decided: set[str] = set()
        self._in_flight: str | None = None
        self._replenish_task: asyncio.Task | None = None
        # Set when a fetch adds nothing new; cleared by ``reload``.
        self._source_drained = False
        # Bumped by ``reset``; a decision started under an older value is dropped.
        self._generation = 0

    # ── Read-only views ───────────────────────────────────────────────────

    @property
    def queue(self) -> tuple[Candidate, ...]:
        return tuple(self._queue)

    @property
    def head(self) -> Candidate | None:
        return self._queue[0] if self._queue else None

    @property
    def decided_ids(self) -> frozenset[str]:
        return frozenset(self._decided)

    @property
    def is_deciding(self) -> bool:
        return self._in_flight is not None

    @property
    def replenishment_pending(self) -> bool:
        return self._replenish_task is not None and not self._replenish_task.done()

    # ── Loading ───────────────────────────────────────────────────────────

    async def load_candidates(self, limit: int | None = None) -> int:
        """Fetch up to ``limit`` candidates and append the unseen ones.

        Returns the number of candidates added.  A failed fetch shows a toast
        and leaves the queue untouched.
        """
        limit = limit or self.batch_size
        log = logger.bind(limit=limit, queued=len(self._queue))
        try:
            candidates = await self.api.get_cards(limit)
        except Exception as exc:
            report_failure(self.notifier, exc, "Failed to load profiles", limit=limit)
            self._settle_after_load()
            return 0

        added = self._merge(candidates)
        if added == 0:
            self._source_drained = True
        log.info("candidates_loaded", received=len(candidates), added=added)
        self._settle_after_load()
        return added

    async def reload(self, limit: int | None = None) -> int:
        """Manual reload: EXHAUSTED (or any idle state) → EMPTY → load."""
        if self.is_deciding:
            logger.info("reload_ignored_decision_in_flight")
            return 0
        self._cancel_replenishment()
        self._queue.clear()
        self._source_drained = False
        self.state = DiscoveryState.EMPTY
        logger.info("discovery_reload")
        return await self.load_candidates(limit)

    async def wait_for_replenishment(self) -> None:
        task = self._replenish_task
        if task is not None and not task.done():
            await task

    def close(self) -> None:
        self._cancel_replenishment()

    def reset(self) -> None:
        """Forget the queue and every decision; used when the user changes."""
        self._cancel_replenishment()
        self._generation += 1
        self._queue.clear()
        self._decided.clear()
        self._in_flight = None
        self._source_drained = False
        self.state = DiscoveryState.EMPTY

    # ── Decisions ─────────────────────────────────────────────────────────

    async def decide(self, candidate_id: str, action: SwipeAction | str) -> DecisionOutcome | None:
        """Submit a LIKE/PASS for the head candidate.

        Returns the outcome on success, or None when the call was ignored
        (another decision in flight) or failed (toast shown, head kept).
        """
        if self._in_flight is not None:
            logger.info(
                "decision_ignored_in_flight",
                candidate_id=candidate_id,
                in_flight=self._in_flight,
            )
            return None

        head = self.head
        if head is None:
            raise ValidationError("There are no profiles to decide on", field="candidate_id")
        if head.id != candidate_id:
            raise ValidationError("Only the top profile can be decided", field="candidate_id")

        action = SwipeAction(action)
        log = logger.bind(candidate_id=candidate_id, action=action.value)
        generation = self._generation
        self._in_flight = candidate_id
        self.state = DiscoveryState.DECIDING
        try:
            result = await self.api.swipe(
                SwipeDecision(target_user_id=candidate_id, action=action)
            )
        except Exception as exc:
            if generation == self._generation:
                report_failure(self.notifier, exc, "Failed to swipe", candidate_id=candidate_id)
            return None
        finally:
            # Also runs on cancellation, so the controller never stays DECIDING.
            if generation == self._generation:
                self._in_flight = None
                self.state = DiscoveryState.LOADED if self._queue else DiscoveryState.EMPTY

        if generation != self._generation:
            log.info("decision_dropped_after_reset")
            return None

        self._remove(candidate_id)
        self._decided.add(candidate_id)
        log.info("decision_recorded", is_match=result.is_match, remaining=len(self._queue))

        outcome = DecisionOutcome(candidate_id=candidate_id, action=action)
        if result.is_match:
            outcome = self._handle_match(head, result, action)

        self._settle_after_decision()
        return outcome

    async def like(self, candidate_id: str) -> DecisionOutcome | None:
        return await self.decide(candidate_id, SwipeAction.LIKE)

    async def pass_(self, candidate_id: str) -> DecisionOutcome | None:
        return await self.decide(candidate_id, SwipeAction.PASS)

    # ── Internals ─────────────────────────────────────────────────────────

    def _handle_match(
        self,
        candidate: Candidate,
        result: SwipeResult,
        action: SwipeAction,
    ) -> DecisionOutcome:
        partner = result.matched_user or candidate
        match_id = result.match_id or (result.match.id if result.match else None)
        logger.info("mutual_match", candidate_id=candidate.id, match_id=match_id)
        self.notifier.match(partner.name)
        if self.matches is not None:
            self.matches.add_from_swipe(partner, match_id)
        return DecisionOutcome(
            candidate_id=candidate.id,
            action=action,
            is_match=True,
            match_name=partner.name,
            match_id=match_id,
        )

    def _merge(self, candidates: list[Candidate]) -> int:
        seen = {c.id for c in self._queue} | self._decided
        added = 0
        for candidate in candidates:
            if candidate.id in seen:
                continue
            seen.add(candidate.id)
            self._queue.append(candidate)
            added += 1
        return added

    def _remove(self, candidate_id: str) -> None:
        if self._queue and self._queue[0].id == candidate_id:
            self._queue.pop(0)
        else:
            self._queue = [c for c in self._queue if c.id != candidate_id]

    def _settle_after_load(self) -> None:
        if self.is_deciding:
            return
        if self._queue:
            self.state = DiscoveryState.LOADED
        elif not self.replenishment_pending or self._current_task_is_replenishment():
            self.state = DiscoveryState.EXHAUSTED

    def _settle_after_decision(self) -> None:
        if len(self._queue) <= self.replenish_threshold:
            self._schedule_replenishment()
        if self._queue:
            self.state = DiscoveryState.LOADED
        elif self.replenishment_pending:
            self.state = DiscoveryState.EMPTY
        else:
            self.state = DiscoveryState.EXHAUSTED

    def _schedule_replenishment(self) -> None:
        if self.replenishment_pending or self._source_drained:
            return
        logger.info("replenishment_scheduled", queued=len(self._queue))
        self._replenish_task = asyncio.create_task(self.load_candidates())

    def _current_task_is_replenishment(self) -> bool:
        try:
            return asyncio.current_task() is self._replenish_task
        except RuntimeError:
            return False

    def _cancel_replenishment(self) -> None:
        if self.replenishment_pending:
            self._replenish_task.cancel()
        self._replenish_task = None

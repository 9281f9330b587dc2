from pydantic import ConfigDict
from datetime import datetime
from enum import Enum
from typing import Optional

from sparkle.schemas.base import CamelModel
from sparkle.schemas.user import Gender, Location


class SwipeAction(str, Enum):
    LIKE = "like"
    PASS = "pass"


class MatchStatus(str, Enum):
    PENDING = "pending"
    MATCHED = "matched"


class Candidate(CamelModel):
    """Another user's public profile as served by the discovery feed."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    age: Optional[int] = None
    gender: Optional[Gender] = None
    bio: Optional[str] = None
    interests: list[str] = []
    location: Optional[Location] = None
    profile_picture_url: Optional[str] = None
    distance: Optional[float] = None


MatchUser = Candidate


class MatchEntry(Candidate):
    """A confirmed match as listed for the current user.

    ``id`` is the partner's user id; ``match_id`` is the match record id when
    the backend sends one.
    """

    match_id: Optional[str] = None
    matched_at: Optional[datetime] = None

    @property
    def key(self) -> str:
        return self.match_id or self.id


class SwipeDecision(CamelModel):
    target_user_id: str
    action: SwipeAction


class Match(CamelModel):
    id: str
    user_id1: str
    user_id2: str
    status: MatchStatus = MatchStatus.PENDING
    matched_at: Optional[datetime] = None


class SwipeResult(CamelModel):
    is_match: bool = False
    match_id: Optional[str] = None
    match: Optional[Match] = None
    matched_user: Optional[Candidate] = None

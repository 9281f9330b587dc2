"""
Sparkle Client — wire schema registry.

Re-exports every model so callers can ``from sparkle.schemas import User``.
"""

from sparkle.schemas.user import (
    AgeRange,
    AuthResponse,
    Gender,
    Location,
    LoginRequest,
    PhotoUpload,
    Preferences,
    ProfileResponse,
    RegisterRequest,
    SetupProfileRequest,
    UpdateProfileRequest,
    User,
)
from sparkle.schemas.match import (
    Candidate,
    Match,
    MatchEntry,
    MatchStatus,
    MatchUser,
    SwipeAction,
    SwipeDecision,
    SwipeResult,
)
from sparkle.schemas.chat import ChatHistory, Conversation, Message

__all__ = [
    "AgeRange",
    "AuthResponse",
    "Gender",
    "Location",
    "LoginRequest",
    "PhotoUpload",
    "Preferences",
    "ProfileResponse",
    "RegisterRequest",
    "SetupProfileRequest",
    "UpdateProfileRequest",
    "User",
    "Candidate",
    "Match",
    "MatchEntry",
    "MatchStatus",
    "MatchUser",
    "SwipeAction",
    "SwipeDecision",
    "SwipeResult",
    "ChatHistory",
    "Conversation",
    "Message",
]

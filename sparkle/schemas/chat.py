from pydantic import field_validator
from datetime import datetime, timezone
from typing import Optional

from sparkle.schemas.base import CamelModel
from sparkle.schemas.match import Candidate


class Message(CamelModel):
    id: str
    sender_id: str
    receiver_id: str
    content: str
    timestamp: datetime
    is_read: bool = False

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, v: datetime) -> datetime:
        # Naive and aware timestamps must stay comparable when sorting.
        return v if v.tzinfo is not None else v.replace(tzinfo=timezone.utc)


class Conversation(CamelModel):
    match_id: str
    match: Candidate
    last_message: Optional[Message] = None
    unread_count: int = 0


class ChatHistory(CamelModel):
    messages: list[Message] = []

"""
Sparkle Client — Conversation controller

One ``Conversation`` per confirmed match, rebuilt from the match list.  The
open conversation owns the only realtime room routing; switching or closing
releases it before anything else happens.

Delivery is server-echo only: ``send`` emits on the socket and appends
nothing.  The message shows up when the server echoes it back as a
``message`` event, which goes through the same merge as history.  Merging is
idempotent by message id and keeps each thread sorted by timestamp.
"""

from __future__ import annotations

from typing import Callable

import structlog

from sparkle.config import get_settings
from sparkle.errors import AuthError, ValidationError
from sparkle.notifications import Notifier, report_failure
from sparkle.schemas import Conversation, MatchEntry, Message, User
from sparkle.services.api_client import ApiClient
from sparkle.services.match_service import MatchListController
from sparkle.services.realtime_client import RealtimeClient
from sparkle.utils.credentials import CredentialStore

logger = structlog.get_logger("sparkle.conversation_service")


class ConversationController:
    """Per-match message threads with history fetch and live updates."""

    def __init__(
        self,
        api: ApiClient,
        realtime: RealtimeClient,
        credentials: CredentialStore,
        matches: MatchListController,
        notifier: Notifier,
        current_user: Callable[[], User | None],
        history_limit: int | None = None,
    ) -> None:
        self.api = api
        self.realtime = realtime
        self.credentials = credentials
        self.matches = matches
        self.notifier = notifier
        self._current_user = current_user
        self.history_limit = history_limit or get_settings().CHAT_HISTORY_LIMIT

        self._conversations: dict[str, Conversation] = {}
        self._messages: dict[str, list[Message]] = {}
        self._active: str | None = None
        self._release_room: Callable[[], None] | None = None
        # Bumped by every open and close; an open that sees a newer value stops.
        self._ticket = 0
        self.sending = False
        self.loading = False

        self._unsubscribe_matches = matches.subscribe(self._rebuild)

    # ── Read-only views ───────────────────────────────────────────────────

    @property
    def conversations(self) -> tuple[Conversation, ...]:
        return tuple(self._conversations.values())

    @property
    def active(self) -> Conversation | None:
        return self._conversations.get(self._active) if self._active else None

    def messages(self, match_id: str) -> tuple[Message, ...]:
        return tuple(self._messages.get(match_id, ()))

    def conversation(self, match_id: str) -> Conversation | None:
        return self._conversations.get(match_id)

    # ── Conversation list ─────────────────────────────────────────────────

    async def load_conversations(self) -> tuple[Conversation, ...]:
        if not self.matches.loaded:
            await self.matches.refresh()
        self._rebuild(self.matches.matches)
        return self.conversations

    def _rebuild(self, entries: tuple[MatchEntry, ...]) -> None:
        rebuilt: dict[str, Conversation] = {}
        for entry in entries:
            previous = self._conversations.get(entry.key)
            rebuilt[entry.key] = previous or Conversation(match_id=entry.key, match=entry)
        for gone in set(self._messages) - set(rebuilt):
            del self._messages[gone]
        self._conversations = rebuilt
        if self._active is not None and self._active not in rebuilt:
            self.close()

    # ── Open / close ──────────────────────────────────────────────────────

    async def open(self, match_id: str) -> Conversation:
        conversation = self._conversations.get(match_id)
        if conversation is None:
            raise ValidationError(f"No conversation for match {match_id}", field="match_id")

        # Previous room routing goes first so nothing from it lands here.
        self.close()
        ticket = self._ticket

        peer_id = conversation.match.id
        log = logger.bind(match_id=match_id, peer_id=peer_id)

        await self._ensure_connected()
        if ticket != self._ticket:
            log.info("conversation_open_superseded")
            return self._conversations.get(match_id, conversation)

        self._active = match_id
        self._release_room = self.realtime.subscribe(self._room_handler(match_id, peer_id))
        try:
            await self.realtime.join(peer_id)
        except BaseException:
            if ticket == self._ticket:
                self.close()
            raise
        if ticket != self._ticket:
            log.info("conversation_open_superseded")
            return self._conversations.get(match_id, conversation)
        log.info("conversation_opened")

        self.loading = True
        try:
            history = await self.api.get_chat_history(peer_id, limit=self.history_limit)
        except Exception as exc:
            report_failure(self.notifier, exc, "Failed to load messages", match_id=match_id)
        else:
            for message in history:
                self._merge(match_id, message)
            log.info("history_loaded", count=len(history))
        finally:
            self.loading = False

        if ticket == self._ticket:
            self._update(match_id, unread_count=0)
        return self._conversations.get(match_id, conversation)

    def close(self) -> None:
        self._ticket += 1
        if self._release_room is not None:
            self._release_room()
            self._release_room = None
            logger.info("conversation_closed", match_id=self._active)
        self._active = None

    # ── Sending ───────────────────────────────────────────────────────────

    async def send(self, content: str) -> None:
        """Emit ``content`` to the open conversation's peer.

        Nothing is appended locally; the server echo delivers the message.
        """
        if not content or not content.strip():
            raise ValidationError("Message cannot be empty", field="content")
        conversation = self.active
        if conversation is None:
            raise ValidationError("Open a conversation first", field="match_id")
        if self.sending:
            logger.info("send_ignored_in_flight", match_id=conversation.match_id)
            return

        self.sending = True
        try:
            await self.realtime.send_message(conversation.match.id, content.strip())
        except Exception as exc:
            report_failure(self.notifier, exc, "Failed to send message", match_id=conversation.match_id)
        finally:
            self.sending = False

    # ── Realtime delivery ─────────────────────────────────────────────────

    def on_realtime_message(self, message: Message) -> bool:
        """Merge a delivered message into its conversation.

        Returns True if the message was new.
        """
        match_id = self._match_for(message)
        if match_id is None:
            logger.info("realtime_message_unrouted", message_id=message.id)
            return False
        added = self._merge(match_id, message)
        if added and match_id != self._active and self._is_inbound(message):
            current = self._conversations[match_id].unread_count
            self._update(match_id, unread_count=current + 1)
        return added

    def _room_handler(self, match_id: str, peer_id: str) -> Callable[[Message], None]:
        def _handle(message: Message) -> None:
            if self._active != match_id:
                return
            if peer_id not in (message.sender_id, message.receiver_id):
                return
            self.on_realtime_message(message)

        return _handle

    # ── Internals ─────────────────────────────────────────────────────────

    async def _ensure_connected(self) -> None:
        if self.realtime.connected:
            return
        token = self.credentials.get()
        if not token:
            raise AuthError("You must be logged in to chat")
        await self.realtime.connect(token)

    def _merge(self, match_id: str, message: Message) -> bool:
        if match_id not in self._conversations:
            return False
        thread = self._messages.setdefault(match_id, [])
        if any(m.id == message.id for m in thread):
            return False
        thread.append(message)
        thread.sort(key=lambda m: m.timestamp)
        latest = thread[-1]
        self._update(match_id, last_message=latest)
        return True

    def _match_for(self, message: Message) -> str | None:
        me = self._current_user()
        my_id = me.id if me else None
        peer_id = message.receiver_id if message.sender_id == my_id else message.sender_id
        for match_id, conversation in self._conversations.items():
            if conversation.match.id == peer_id:
                return match_id
        return None

    def _is_inbound(self, message: Message) -> bool:
        me = self._current_user()
        return me is None or message.sender_id != me.id

    def _update(self, match_id: str, **changes) -> None:
        conversation = self._conversations.get(match_id)
        if conversation is not None:
            self._conversations[match_id] = conversation.model_copy(update=changes)

"""
Sparkle Client — Realtime chat channel

One Socket.IO connection per authenticated session, opened against the chat
namespace with the session token in the handshake ``auth`` payload.

Outbound events::

    join     {targetUserId}
    message  {targetUserId, content}

Inbound events::

    message  {id, senderId, receiverId, content, timestamp, isRead}

Inbound messages are parsed and fanned out to subscribers registered through
``subscribe``, which returns an unsubscribe handle.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import pydantic
import socketio
from socketio import exceptions as sio_exceptions
import structlog

from sparkle.config import get_settings
from sparkle.errors import RealtimeError
from sparkle.schemas import Message

logger = structlog.get_logger("sparkle.realtime_client")

MessageHandler = Callable[[Message], None]
Unsubscribe = Callable[[], None]


class RealtimeClient:
    """Thin wrapper over ``socketio.AsyncClient`` for the chat namespace."""

    def __init__(
        self,
        url: str | None = None,
        namespace: str | None = None,
        client: socketio.AsyncClient | None = None,
    ) -> None:
        settings = get_settings()
        self.url = url or settings.realtime_endpoint
        self.namespace = namespace or settings.REALTIME_NAMESPACE
        self._sio = client if client is not None else socketio.AsyncClient(reconnection=True)
        self._handlers: list[MessageHandler] = []
        self._connect_lock = asyncio.Lock()

        self._sio.on("message", self._dispatch, namespace=self.namespace)
        self._sio.on("disconnect", self._on_disconnect, namespace=self.namespace)

    @property
    def connected(self) -> bool:
        return bool(self._sio.connected)

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    # ── Connection lifecycle ──────────────────────────────────────────────

    async def connect(self, token: str) -> None:
        async with self._connect_lock:
            if self.connected:
                return
            try:
                await self._sio.connect(
                    self.url,
                    namespaces=[self.namespace],
                    auth={"token": token},
                )
            except sio_exceptions.ConnectionError as exc:
                logger.warning("realtime_connect_failed", url=self.url, error=str(exc))
                raise RealtimeError(f"Could not connect to chat: {exc}") from exc
        logger.info("realtime_connected", url=self.url, namespace=self.namespace)

    async def disconnect(self) -> None:
        if not self.connected:
            return
        await self._sio.disconnect()
        logger.info("realtime_disconnected", namespace=self.namespace)

    # ── Commands ──────────────────────────────────────────────────────────

    async def join(self, target_user_id: str) -> None:
        await self._emit("join", {"targetUserId": target_user_id})
        logger.info("realtime_room_joined", target_user_id=target_user_id)

    async def send_message(self, target_user_id: str, content: str) -> None:
        await self._emit("message", {"targetUserId": target_user_id, "content": content})
        logger.info("realtime_message_sent", target_user_id=target_user_id)

    # ── Subscriptions ─────────────────────────────────────────────────────

    def subscribe(self, handler: MessageHandler) -> Unsubscribe:
        self._handlers.append(handler)

        def _unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return _unsubscribe

    # ── Internals ─────────────────────────────────────────────────────────

    async def _emit(self, event: str, payload: dict) -> None:
        if not self.connected:
            raise RealtimeError("Chat connection is not open")
        await self._sio.emit(event, payload, namespace=self.namespace)

    async def _dispatch(self, data: Any) -> None:
        try:
            message = Message.model_validate(data)
        except pydantic.ValidationError as exc:
            logger.warning("realtime_message_malformed", errors=exc.error_count())
            return
        for handler in list(self._handlers):
            try:
                handler(message)
            except Exception:
                logger.exception("realtime_handler_failed", message_id=message.id)

    async def _on_disconnect(self, *args: Any) -> None:
        logger.info("realtime_connection_lost", namespace=self.namespace)

"""Unit tests for RealtimeClient — Socket.IO connection and message fan-out."""
import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from socketio import exceptions as sio_exceptions

from sparkle.errors import RealtimeError
from sparkle.services.realtime_client import RealtimeClient


@pytest.fixture
def sio():
    client = MagicMock()
    client.connected = False
    client.connect = AsyncMock()
    client.disconnect = AsyncMock()
    client.emit = AsyncMock()
    return client


@pytest.fixture
def realtime(sio):
    return RealtimeClient(url="http://chat.test", namespace="/chat", client=sio)


WIRE_MESSAGE = {
    "id": "m1",
    "senderId": "u-peer",
    "receiverId": "u-me",
    "content": "hi",
    "timestamp": "2024-05-01T12:00:00Z",
    "isRead": False,
}


class TestConnection:
    """Tests for connect / disconnect."""

    def test_default_client_reconnects(self):
        with patch("sparkle.services.realtime_client.socketio.AsyncClient") as client_cls:
            realtime = RealtimeClient(url="http://chat.test", namespace="/chat")

        client_cls.assert_called_once_with(reconnection=True)
        assert realtime.namespace == "/chat"

    def test_handlers_registered_on_namespace(self, sio, realtime):
        events = [c.args[0] for c in sio.on.call_args_list]
        assert "message" in events
        assert all(c.kwargs["namespace"] == "/chat" for c in sio.on.call_args_list)

    @pytest.mark.asyncio
    async def test_connect_sends_token_in_handshake(self, sio, realtime):
        await realtime.connect("tok-1")

        sio.connect.assert_awaited_once_with(
            "http://chat.test", namespaces=["/chat"], auth={"token": "tok-1"}
        )

    @pytest.mark.asyncio
    async def test_connect_is_idempotent(self, sio, realtime):
        sio.connected = True

        await realtime.connect("tok-1")

        sio.connect.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_concurrent_connects_handshake_once(self, sio, realtime):
        async def slow_connect(url, namespaces=None, auth=None):
            await asyncio.sleep(0)
            sio.connected = True

        sio.connect.side_effect = slow_connect

        await asyncio.gather(realtime.connect("tok-1"), realtime.connect("tok-1"))

        sio.connect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_connect_failure_raises_realtime_error(self, sio, realtime):
        sio.connect.side_effect = sio_exceptions.ConnectionError("handshake rejected")

        with pytest.raises(RealtimeError):
            await realtime.connect("tok-1")

    @pytest.mark.asyncio
    async def test_disconnect_only_when_connected(self, sio, realtime):
        await realtime.disconnect()
        sio.disconnect.assert_not_awaited()

        sio.connected = True
        await realtime.disconnect()
        sio.disconnect.assert_awaited_once()


class TestCommands:
    """Tests for outbound events."""

    @pytest.mark.asyncio
    async def test_join_and_send_payloads(self, sio, realtime):
        sio.connected = True

        await realtime.join("u-peer")
        await realtime.send_message("u-peer", "hello")

        assert sio.emit.await_args_list[0].args == ("join", {"targetUserId": "u-peer"})
        assert sio.emit.await_args_list[1].args == (
            "message",
            {"targetUserId": "u-peer", "content": "hello"},
        )

    @pytest.mark.asyncio
    async def test_emit_while_disconnected_fails(self, sio, realtime):
        with pytest.raises(RealtimeError):
            await realtime.send_message("u-peer", "hello")
        sio.emit.assert_not_awaited()


class TestSubscriptions:
    """Tests for inbound message fan-out."""

    @pytest.mark.asyncio
    async def test_subscribe_and_unsubscribe(self, realtime):
        received = []
        unsubscribe = realtime.subscribe(received.append)

        await realtime._dispatch(WIRE_MESSAGE)
        unsubscribe()
        unsubscribe()
        await realtime._dispatch({**WIRE_MESSAGE, "id": "m2"})

        assert [m.id for m in received] == ["m1"]
        assert realtime.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_malformed_payload_dropped(self, realtime):
        received = []
        realtime.subscribe(received.append)

        await realtime._dispatch({"id": "m1", "content": "no sender"})
        await realtime._dispatch("not even a dict")

        assert received == []

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_block_others(self, realtime):
        received = []

        def broken(message):
            raise RuntimeError("boom")

        realtime.subscribe(broken)
        realtime.subscribe(received.append)

        await realtime._dispatch(WIRE_MESSAGE)

        assert [m.id for m in received] == ["m1"]

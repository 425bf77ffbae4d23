"""Tests for the raw Gemini Live WebSocket connection."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.frames import Close

from voice_relay.core.exceptions import TransportClosedError
from voice_relay.services.live_proxy.upstream import MAX_MESSAGE_SIZE, GeminiLiveConnection

URL = "wss://live.example/ws"


def _mock_websocket():
    ws = MagicMock()
    ws.send = AsyncMock()
    ws.recv = AsyncMock()
    ws.close = AsyncMock()
    return ws


@pytest.fixture
def websocket():
    return _mock_websocket()


@pytest.fixture
def connect_mock(websocket):
    with patch(
        "voice_relay.services.live_proxy.upstream.websockets.connect",
        new=AsyncMock(return_value=websocket),
    ) as mock:
        yield mock


async def _connected(session_id: str = "s1") -> GeminiLiveConnection:
    upstream = GeminiLiveConnection(api_key="test-key", url=URL, session_id=session_id)
    await upstream.connect()
    return upstream


# ---------------------------------------------------------------------------
# Connect
# ---------------------------------------------------------------------------


class TestConnect:
    @pytest.mark.asyncio
    async def test_connects_with_key_and_size_limit(self, connect_mock):
        upstream = await _connected()

        connect_mock.assert_awaited_once_with(f"{URL}?key=test-key", max_size=MAX_MESSAGE_SIZE)
        assert upstream.is_open

    def test_not_open_before_connect(self):
        assert not GeminiLiveConnection(api_key="k", url=URL).is_open

    @pytest.mark.asyncio
    async def test_os_error_maps_to_transport_closed(self):
        with patch(
            "voice_relay.services.live_proxy.upstream.websockets.connect",
            new=AsyncMock(side_effect=OSError("connection refused")),
        ):
            upstream = GeminiLiveConnection(api_key="k", url=URL)
            with pytest.raises(TransportClosedError) as exc_info:
                await upstream.connect()

        assert exc_info.value.leg == "upstream"
        assert "connection refused" in exc_info.value.reason
        assert not upstream.is_open

    @pytest.mark.asyncio
    async def test_websocket_exception_maps_to_transport_closed(self):
        with patch(
            "voice_relay.services.live_proxy.upstream.websockets.connect",
            new=AsyncMock(side_effect=WebSocketException("handshake rejected")),
        ):
            upstream = GeminiLiveConnection(api_key="k", url=URL)
            with pytest.raises(TransportClosedError, match="handshake rejected"):
                await upstream.connect()
        assert not upstream.is_open


# ---------------------------------------------------------------------------
# Send / receive
# ---------------------------------------------------------------------------


class TestSendReceive:
    @pytest.mark.asyncio
    async def test_send_json_serializes(self, connect_mock, websocket):
        upstream = await _connected()
        await upstream.send_json({"setup": {"model": "m"}})

        sent = websocket.send.await_args.args[0]
        assert json.loads(sent) == {"setup": {"model": "m"}}

    @pytest.mark.asyncio
    async def test_send_raw_is_verbatim(self, connect_mock, websocket):
        upstream = await _connected()
        frame = '{"realtimeInput":{"mediaChunks":[]}}'
        await upstream.send_raw(frame)
        websocket.send.assert_awaited_once_with(frame)

    @pytest.mark.asyncio
    async def test_recv_returns_frame(self, connect_mock, websocket):
        websocket.recv.return_value = '{"setupComplete": {}}'
        upstream = await _connected()
        assert await upstream.recv() == '{"setupComplete": {}}'

    @pytest.mark.asyncio
    async def test_recv_close_maps_code_and_reason(self, connect_mock, websocket):
        websocket.recv.side_effect = ConnectionClosed(Close(1011, "x"), None)
        upstream = await _connected()

        with pytest.raises(TransportClosedError) as exc_info:
            await upstream.recv()

        assert exc_info.value.leg == "upstream"
        assert exc_info.value.code == 1011
        assert exc_info.value.reason == "x"
        assert upstream.close_code == 1011
        assert upstream.close_reason == "x"
        assert not upstream.is_open

    @pytest.mark.asyncio
    async def test_close_code_from_sent_frame(self, connect_mock, websocket):
        websocket.send.side_effect = ConnectionClosed(None, Close(1000, "bye"))
        upstream = await _connected()

        with pytest.raises(TransportClosedError) as exc_info:
            await upstream.send_raw("frame")

        assert exc_info.value.code == 1000
        assert upstream.close_reason == "bye"

    @pytest.mark.asyncio
    async def test_no_io_after_close_detected(self, connect_mock, websocket):
        websocket.recv.side_effect = ConnectionClosed(Close(1011, "x"), None)
        upstream = await _connected()
        with pytest.raises(TransportClosedError):
            await upstream.recv()

        with pytest.raises(TransportClosedError) as exc_info:
            await upstream.send_raw("late frame")
        assert exc_info.value.code == 1011
        websocket.send.assert_not_awaited()

        with pytest.raises(TransportClosedError):
            await upstream.recv()
        assert websocket.recv.await_count == 1

    @pytest.mark.asyncio
    async def test_io_before_connect_raises(self):
        upstream = GeminiLiveConnection(api_key="k", url=URL)
        with pytest.raises(TransportClosedError):
            await upstream.send_raw("frame")
        with pytest.raises(TransportClosedError):
            await upstream.recv()


# ---------------------------------------------------------------------------
# Close
# ---------------------------------------------------------------------------


class TestClose:
    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, connect_mock, websocket):
        upstream = await _connected()

        await upstream.close(code=1011, reason="Session configuration failed")
        await upstream.close()

        websocket.close.assert_awaited_once_with(code=1011, reason="Session configuration failed")
        assert upstream.close_code == 1011
        assert not upstream.is_open

    @pytest.mark.asyncio
    async def test_send_after_close_raises(self, connect_mock, websocket):
        upstream = await _connected()
        await upstream.close()

        with pytest.raises(TransportClosedError) as exc_info:
            await upstream.send_raw("frame")
        assert exc_info.value.code == 1000
        websocket.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_close_before_connect(self):
        upstream = GeminiLiveConnection(api_key="k", url=URL)
        await upstream.close()
        assert not upstream.is_open

    @pytest.mark.asyncio
    async def test_close_error_is_logged_not_raised(self, connect_mock, websocket):
        websocket.close.side_effect = WebSocketException("already gone")
        upstream = await _connected()

        await upstream.close()

        assert not upstream.is_open
        assert upstream.close_code == 1000

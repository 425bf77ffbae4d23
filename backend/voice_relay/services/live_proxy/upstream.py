"""Raw WebSocket connection to the Gemini Live BidiGenerateContent endpoint.

The relay needs the upstream frames verbatim (client realtimeInput frames are
forwarded as-is and model frames are passed through to the client), so this
talks to the service with the ``websockets`` client directly instead of the
google-genai session wrapper.
"""

import json
import logging
from typing import Any

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from voice_relay.core.exceptions import TransportClosedError

logger = logging.getLogger(__name__)

MAX_MESSAGE_SIZE = 10 * 1024 * 1024  # 10 MB, model audio turns can be large
UPSTREAM_LEG = "upstream"


class GeminiLiveConnection:
    """One upstream connection, owned by exactly one SessionProxy.

    Usage::

        upstream = GeminiLiveConnection(api_key="...", url=settings.GEMINI_WS_URL)
        await upstream.connect()
        await upstream.send_json({"setup": {...}})
        raw = await upstream.recv()
        await upstream.close()
    """

    def __init__(self, api_key: str, url: str, session_id: str = "") -> None:
        self._api_key = api_key
        self._url = url
        self._session_id = session_id
        self._websocket = None
        self._closed = False
        self.close_code: int | None = None
        self.close_reason: str = ""

    @property
    def is_open(self) -> bool:
        return self._websocket is not None and not self._closed

    async def connect(self) -> None:
        """Open the WebSocket to the model service.

        Raises:
            TransportClosedError: If the connection cannot be established.
        """
        try:
            self._websocket = await websockets.connect(
                f"{self._url}?key={self._api_key}",
                max_size=MAX_MESSAGE_SIZE,
            )
        except (OSError, WebSocketException) as exc:
            self._closed = True
            raise TransportClosedError(UPSTREAM_LEG, reason=f"connect failed: {exc}") from exc
        logger.info("Session %s connected to Gemini Live API", self._session_id)

    async def send_json(self, payload: dict[str, Any]) -> None:
        await self.send_raw(json.dumps(payload))

    async def send_raw(self, data: str | bytes) -> None:
        """Send one frame verbatim.

        Raises:
            TransportClosedError: If the connection is closed.
        """
        if not self.is_open:
            raise TransportClosedError(UPSTREAM_LEG, self.close_code, self.close_reason)
        try:
            await self._websocket.send(data)
        except ConnectionClosed as exc:
            self._mark_closed(exc)
            raise TransportClosedError(UPSTREAM_LEG, self.close_code, self.close_reason) from exc

    async def recv(self) -> str | bytes:
        """Receive the next frame.

        Raises:
            TransportClosedError: When the service closes the connection.
        """
        if not self.is_open:
            raise TransportClosedError(UPSTREAM_LEG, self.close_code, self.close_reason)
        try:
            return await self._websocket.recv()
        except ConnectionClosed as exc:
            self._mark_closed(exc)
            raise TransportClosedError(UPSTREAM_LEG, self.close_code, self.close_reason) from exc

    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the connection. Safe to call more than once."""
        if self._websocket is None or self._closed:
            self._closed = True
            return
        self._closed = True
        try:
            await self._websocket.close(code=code, reason=reason)
        except WebSocketException as exc:
            logger.warning("Error closing upstream for session %s: %s", self._session_id, exc)
        finally:
            self.close_code = code
            self.close_reason = reason
            logger.info("Session %s upstream closed", self._session_id)

    def _mark_closed(self, exc: ConnectionClosed) -> None:
        self._closed = True
        frame = exc.rcvd or exc.sent
        if frame is not None:
            self.close_code = frame.code
            self.close_reason = frame.reason

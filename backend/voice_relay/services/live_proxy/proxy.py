"""Session proxy: relays one client WebSocket to one Gemini Live connection.

Each client connection gets its own upstream connection; nothing is shared
or pooled. The session moves through these phases:

    CONNECTING -> AWAITING_UPSTREAM_OPEN -> AWAITING_SETUP_ACK -> ACTIVE
        -> CLOSING -> CLOSED

1. Without an upstream credential the client socket is closed at once and
   no upstream connection is attempted.
2. Once upstream is open, the session config is resolved for the task and
   the setup handshake is sent.
3. On setupComplete the task's initial trigger is sent as a user turn and
   the session becomes ACTIVE.
4. While ACTIVE, client frames go upstream verbatim and in order. Upstream
   frames are decoded once: tool calls go to the ToolCallMediator and are
   not forwarded; everything else is passed to the client unchanged.
5. When either side closes, the other side is closed. There is no
   reconnection; the client starts a new session.

Two tasks run per session: a downstream pump (client -> model) and an
upstream pump (model -> client). Each processes its frames strictly in
arrival order, and a tool response is sent before the next upstream frame is
read. The first pump to finish ends the session.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect, WebSocketState

from voice_relay.core.exceptions import ConfigurationError, TransportClosedError
from voice_relay.services.live_proxy.mediator import ToolCallMediator, extract_log_data, log_collected
from voice_relay.services.live_proxy.messages import (
    build_client_turn,
    build_setup_message,
    decode_upstream,
)
from voice_relay.services.live_proxy.models import (
    ModelOutput,
    SessionPhase,
    SessionState,
    ToolCall,
    UnknownMessage,
    UpstreamKind,
    UpstreamMessage,
)
from voice_relay.services.live_proxy.upstream import GeminiLiveConnection
from voice_relay.services.session_config.models import SessionConfig
from voice_relay.services.session_config.resolver import SessionConfigResolver

logger = logging.getLogger(__name__)

# WebSocket close codes
CLOSE_NORMAL = 1000
CLOSE_INTERNAL_ERROR = 1011

DOWNSTREAM_LEG = "downstream"


class SessionProxy:
    """Runs one relay session from client accept to close.

    Usage::

        await websocket.accept()
        proxy = SessionProxy(
            websocket=websocket,
            task_id=task_id,
            resolver=resolver,
            api_key=settings.GEMINI_API_KEY,
            model_id=settings.GEMINI_MODEL_ID,
            upstream_url=settings.GEMINI_WS_URL,
        )
        await proxy.run()  # blocks until either side closes
    """

    def __init__(
        self,
        websocket: WebSocket,
        task_id: int,
        resolver: SessionConfigResolver,
        api_key: str,
        model_id: str,
        upstream_url: str,
        response_modalities: list[str] | None = None,
        ack_unknown_tool_calls: bool = False,
        upstream_factory: Callable[..., Any] | None = None,
    ) -> None:
        self._ws = websocket
        self._resolver = resolver
        self._api_key = api_key
        self._model_id = model_id
        self._upstream_url = upstream_url
        self._response_modalities = response_modalities or ["AUDIO"]
        self._ack_unknown_tool_calls = ack_unknown_tool_calls
        self._upstream_factory = upstream_factory or GeminiLiveConnection
        self._state = SessionState(task_id=task_id, downstream=websocket)
        self._config: SessionConfig | None = None
        self._mediator: ToolCallMediator | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def phase(self) -> SessionPhase:
        return self._state.phase

    @property
    def session_id(self) -> str:
        return self._state.session_id

    @property
    def config(self) -> SessionConfig | None:
        return self._config

    async def run(self) -> None:
        """Run the session until either leg closes."""
        if not self._api_key:
            logger.error("Session %s: GEMINI_API_KEY is not configured, closing client", self.session_id)
            self._state.phase = SessionPhase.CLOSED
            await self._close_downstream(CLOSE_INTERNAL_ERROR, "Upstream credential not configured")
            return

        upstream = self._upstream_factory(
            api_key=self._api_key,
            url=self._upstream_url,
            session_id=self.session_id,
        )
        self._state.upstream = upstream
        self._state.phase = SessionPhase.AWAITING_UPSTREAM_OPEN

        try:
            await upstream.connect()
        except TransportClosedError as exc:
            logger.error("Session %s: failed to open upstream: %s", self.session_id, exc)
            self._state.phase = SessionPhase.CLOSED
            await self._close_downstream(CLOSE_INTERNAL_ERROR, "Upstream unavailable")
            return

        try:
            await self._send_setup()
        except ConfigurationError as exc:
            logger.error("Session %s: configuration failed: %s", self.session_id, exc)
            await self._shutdown(CLOSE_INTERNAL_ERROR, "Session configuration failed")
            return
        except TransportClosedError as exc:
            logger.warning("Session %s: upstream closed during setup: %s", self.session_id, exc)
            await self._shutdown()
            return

        pumps = {
            asyncio.create_task(self._pump_downstream(), name=f"relay-downstream-{self.session_id}"),
            asyncio.create_task(self._pump_upstream(), name=f"relay-upstream-{self.session_id}"),
        }
        try:
            done, _ = await asyncio.wait(pumps, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                exc = task.exception()
                if exc is not None and not isinstance(exc, TransportClosedError):
                    logger.error("Session %s pump failed: %s", self.session_id, exc, exc_info=exc)
        finally:
            pending = [task for task in pumps if not task.done()]
            for task in pending:
                task.cancel()
            for task in pending:
                try:
                    await task
                except asyncio.CancelledError:
                    pass
            await self._shutdown()

    # ------------------------------------------------------------------
    # Handshake
    # ------------------------------------------------------------------

    async def _send_setup(self) -> None:
        self._config = self._resolver.resolve(self._state.task_id)
        registered = {self._config.tool_name} if self._config.tool_name else set()
        self._mediator = ToolCallMediator(
            registered_names=registered,
            ack_unknown=self._ack_unknown_tool_calls,
            session_id=self.session_id,
        )
        await self._state.upstream.send_json(
            build_setup_message(self._config, self._model_id, self._response_modalities)
        )
        self._state.phase = SessionPhase.AWAITING_SETUP_ACK
        logger.info(
            "Session %s sent setup (task=%d, model=%s, tool=%s)",
            self.session_id,
            self._state.task_id,
            self._model_id,
            self._config.tool_name,
        )

    async def _on_setup_complete(self) -> None:
        if self._state.setup_complete:
            logger.warning("Session %s: duplicate setupComplete ignored", self.session_id)
            return
        self._state.setup_complete = True
        await self._state.upstream.send_json(build_client_turn(self._config.initial_trigger))
        self._state.phase = SessionPhase.ACTIVE
        logger.info("Session %s active (task=%d)", self.session_id, self._state.task_id)

    # ------------------------------------------------------------------
    # Client -> model
    # ------------------------------------------------------------------

    async def _pump_downstream(self) -> None:
        """Forward client frames upstream until the client disconnects."""
        try:
            while True:
                message = await self._ws.receive()

                if message["type"] == "websocket.disconnect":
                    logger.info("Session %s: client disconnected", self.session_id)
                    return

                if message["type"] != "websocket.receive":
                    continue

                frame = message.get("text")
                if frame is None and message.get("bytes") is not None:
                    try:
                        frame = message["bytes"].decode("utf-8")
                    except UnicodeDecodeError:
                        logger.warning("Session %s: dropping non-UTF-8 client frame", self.session_id)
                        self._state.frames_dropped += 1
                        continue
                if frame is None:
                    continue

                if self._state.phase != SessionPhase.ACTIVE:
                    logger.debug(
                        "Session %s: dropping client frame in phase %s",
                        self.session_id,
                        self._state.phase.value,
                    )
                    self._state.frames_dropped += 1
                    continue

                await self._state.upstream.send_raw(frame)
                self._state.frames_upstream += 1
        except WebSocketDisconnect:
            logger.info("Session %s: client disconnected", self.session_id)

    # ------------------------------------------------------------------
    # Model -> client
    # ------------------------------------------------------------------

    async def _pump_upstream(self) -> None:
        """Dispatch upstream frames until the model service closes."""
        try:
            while True:
                frame = await self._state.upstream.recv()
                await self._dispatch(decode_upstream(frame))
        except TransportClosedError as exc:
            if exc.leg == DOWNSTREAM_LEG:
                raise
            logger.info(
                "Session %s: disconnected from Gemini Live API (code=%s, reason=%s)",
                self.session_id,
                exc.code,
                exc.reason or "-",
            )

    async def _dispatch(self, message: UpstreamMessage) -> None:
        if message.kind == UpstreamKind.SETUP_ACK:
            await self._on_setup_complete()
            await self._send_downstream(message.raw)
        elif message.kind == UpstreamKind.TOOL_CALL:
            await self._on_tool_call(message)
        elif message.kind == UpstreamKind.MODEL_OUTPUT:
            self._log_model_text(message)
            await self._send_downstream(message.raw)
        else:
            self._log_unknown(message)
            await self._send_downstream(message.raw)

    async def _on_tool_call(self, message: ToolCall) -> None:
        result = self._mediator.mediate(message.calls)

        for log_message in result.log_messages:
            await self._send_downstream(log_message.model_dump_json())

        tool_response = result.tool_response
        if tool_response is not None:
            await self._state.upstream.send_json(tool_response)
            self._state.tool_calls_acknowledged += len(result.function_responses)
            logger.info(
                "Session %s sent %d tool response(s)",
                self.session_id,
                len(result.function_responses),
            )

    def _log_model_text(self, message: ModelOutput) -> None:
        for text in message.texts:
            data = extract_log_data(text)
            if data:
                log_collected(data)
            else:
                logger.info("Session %s model text: %s", self.session_id, text)

    def _log_unknown(self, message: UnknownMessage) -> None:
        if message.error:
            logger.warning(
                "Session %s: unexpected upstream message (%s), forwarding as-is",
                self.session_id,
                message.error,
            )

    # ------------------------------------------------------------------
    # Transport helpers
    # ------------------------------------------------------------------

    async def _send_downstream(self, text: str) -> None:
        """Send one text frame to the client.

        Raises:
            TransportClosedError: If the client connection is gone.
        """
        if self._ws.client_state != WebSocketState.CONNECTED:
            raise TransportClosedError(DOWNSTREAM_LEG)
        try:
            await self._ws.send_text(text)
        except (WebSocketDisconnect, RuntimeError) as exc:
            raise TransportClosedError(DOWNSTREAM_LEG, reason=str(exc)) from exc
        self._state.frames_downstream += 1

    async def _close_downstream(self, code: int = CLOSE_NORMAL, reason: str = "") -> None:
        if (
            self._ws.client_state != WebSocketState.CONNECTED
            or self._ws.application_state != WebSocketState.CONNECTED
        ):
            return
        try:
            await self._ws.close(code=code, reason=reason)
        except RuntimeError as exc:
            logger.warning("Session %s: error closing client socket: %s", self.session_id, exc)

    async def _shutdown(self, code: int = CLOSE_NORMAL, reason: str = "") -> None:
        """Close both legs. Safe to call more than once."""
        if self._state.phase == SessionPhase.CLOSED:
            return
        self._state.phase = SessionPhase.CLOSING

        upstream = self._state.upstream
        if upstream is not None and upstream.is_open:
            await upstream.close(code=code, reason=reason)
        await self._close_downstream(code, reason)

        self._state.phase = SessionPhase.CLOSED
        logger.info(
            "Session %s closed after %.1fs (upstream frames=%d, downstream frames=%d, dropped=%d, tool acks=%d)",
            self.session_id,
            self._state.duration_seconds,
            self._state.frames_upstream,
            self._state.frames_downstream,
            self._state.frames_dropped,
            self._state.tool_calls_acknowledged,
        )

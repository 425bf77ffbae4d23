"""WebSocket endpoint for voice clients.

Clients stream realtimeInput audio frames as JSON text and receive the
model's frames back, plus ``{"type": "log"}`` frames for collected data.
The ``task`` query parameter selects the conversation flow (default 1).

Route: /api/v1/relay/ws?task=N
"""

import logging

from fastapi import APIRouter, WebSocket

from voice_relay.core.config import settings
from voice_relay.services.live_proxy.proxy import SessionProxy
from voice_relay.services.session_config.flows import FlowStore
from voice_relay.services.session_config.resolver import SessionConfigResolver, parse_task_id

logger = logging.getLogger(__name__)

router = APIRouter()


def get_resolver(websocket: WebSocket) -> SessionConfigResolver:
    """Return the app's SessionConfigResolver, creating it on first use."""
    resolver = getattr(websocket.app.state, "resolver", None)
    if resolver is None:
        resolver = SessionConfigResolver(
            FlowStore(settings.FLOWS_DIR),
            timezone_name=settings.REFERENCE_TIMEZONE,
        )
        websocket.app.state.resolver = resolver
    return resolver


@router.websocket("/ws")
async def relay_websocket(websocket: WebSocket) -> None:
    """Handle one voice client connection.

    Lifecycle:
        1. Accept the WebSocket connection
        2. Parse the task selector and build a SessionProxy
        3. Run the proxy (blocks until either side closes)
    """
    await websocket.accept()

    task_id = parse_task_id(websocket.query_params.get("task"), default=settings.DEFAULT_TASK_ID)
    remote = f"{websocket.client.host}:{websocket.client.port}" if websocket.client else "unknown"
    logger.info("Client connected from %s (task=%d)", remote, task_id)

    proxy = SessionProxy(
        websocket=websocket,
        task_id=task_id,
        resolver=get_resolver(websocket),
        api_key=settings.GEMINI_API_KEY,
        model_id=settings.GEMINI_MODEL_ID,
        upstream_url=settings.GEMINI_WS_URL,
        response_modalities=settings.GEMINI_RESPONSE_MODALITIES,
        ack_unknown_tool_calls=settings.ACK_UNKNOWN_TOOL_CALLS,
        upstream_factory=getattr(websocket.app.state, "upstream_factory", None),
    )
    await proxy.run()

    logger.info("Client disconnected: %s (session %s)", remote, proxy.session_id)

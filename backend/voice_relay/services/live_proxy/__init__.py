"""Live proxy service: client <-> Gemini Live session relay.

Public API:
    - SessionProxy: Per-connection relay with setup handshake and tool mediation.
    - ToolCallMediator: Logs extracted data and batches tool acknowledgments.
    - GeminiLiveConnection: Raw upstream WebSocket connection.
    - decode_upstream: Frame -> SetupAck | ToolCall | ModelOutput | UnknownMessage.
    - SessionPhase / SessionState: Per-connection lifecycle state.
"""

from voice_relay.services.live_proxy.mediator import (
    MediationResult,
    ToolCallMediator,
    extract_log_data,
    format_collected,
)
from voice_relay.services.live_proxy.messages import (
    build_client_turn,
    build_setup_message,
    build_tool_response,
    decode_upstream,
)
from voice_relay.services.live_proxy.models import (
    LogMessage,
    ModelOutput,
    SessionPhase,
    SessionState,
    SetupAck,
    ToolCall,
    ToolCallEvent,
    UnknownMessage,
    UpstreamKind,
)
from voice_relay.services.live_proxy.proxy import SessionProxy
from voice_relay.services.live_proxy.upstream import GeminiLiveConnection

__all__ = [
    "GeminiLiveConnection",
    "LogMessage",
    "MediationResult",
    "ModelOutput",
    "SessionPhase",
    "SessionProxy",
    "SessionState",
    "SetupAck",
    "ToolCall",
    "ToolCallEvent",
    "ToolCallMediator",
    "UnknownMessage",
    "UpstreamKind",
    "build_client_turn",
    "build_setup_message",
    "build_tool_response",
    "decode_upstream",
    "extract_log_data",
    "format_collected",
]

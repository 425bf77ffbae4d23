"""Wire protocol for the Gemini Live leg.

Relay -> upstream:
    setup: model, response modalities, system instruction, tools
    clientContent: synthetic user turn (the session's initial trigger)
    toolResponse: batched acknowledgments for one toolCall message
    realtimeInput: client audio frames, forwarded verbatim (not built here)

Upstream -> relay, decoded once per frame into a tagged variant:
    setupComplete             -> SetupAck
    toolCall.functionCalls    -> ToolCall
    serverContent.modelTurn   -> ModelOutput
    anything else             -> UnknownMessage (forwarded by default)
"""

import json
from typing import Any

from google.genai.types import Content, FunctionResponse, Part

from voice_relay.core.exceptions import UpstreamProtocolError
from voice_relay.services.live_proxy.models import (
    ModelOutput,
    SetupAck,
    ToolCall,
    ToolCallEvent,
    UnknownMessage,
    UpstreamMessage,
)
from voice_relay.services.session_config.models import SessionConfig
from voice_relay.services.session_config.tools import tools_payload


def _dump(model) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Relay -> upstream
# ---------------------------------------------------------------------------


def build_setup_message(
    config: SessionConfig,
    model_id: str,
    response_modalities: list[str] | None = None,
) -> dict[str, Any]:
    """Build the session setup handshake."""
    setup: dict[str, Any] = {
        "model": model_id,
        "generationConfig": {"responseModalities": list(response_modalities or ["AUDIO"])},
        "systemInstruction": _dump(Content(parts=[Part(text=config.system_instruction_text)])),
    }
    tools = tools_payload(config.tool_schema)
    if tools:
        setup["tools"] = tools
    return {"setup": setup}


def build_client_turn(text: str) -> dict[str, Any]:
    """Build a complete synthetic user turn."""
    return {
        "clientContent": {
            "turns": [_dump(Content(role="user", parts=[Part(text=text)]))],
            "turnComplete": True,
        }
    }


def build_tool_response(function_responses: list[FunctionResponse]) -> dict[str, Any]:
    """Batch function responses into one toolResponse message."""
    return {"toolResponse": {"functionResponses": [_dump(fr) for fr in function_responses]}}


# ---------------------------------------------------------------------------
# Upstream -> relay
# ---------------------------------------------------------------------------


def _parse_tool_calls(tool_call: Any) -> list[ToolCallEvent]:
    if not isinstance(tool_call, dict):
        raise UpstreamProtocolError("toolCall is not an object")
    function_calls = tool_call.get("functionCalls")
    if not isinstance(function_calls, list):
        raise UpstreamProtocolError("toolCall.functionCalls is not a list")

    calls = []
    for fc in function_calls:
        if not isinstance(fc, dict) or not isinstance(fc.get("name"), str):
            raise UpstreamProtocolError(f"Malformed function call: {fc!r}")
        args = fc.get("args") or {}
        if not isinstance(args, dict):
            raise UpstreamProtocolError(f"Function call args is not an object: {args!r}")
        call_id = fc.get("id")
        calls.append(ToolCallEvent(id=str(call_id) if call_id is not None else None, name=fc["name"], args=args))
    return calls


def _parse_model_turn(server_content: Any, raw: str) -> ModelOutput | None:
    if not isinstance(server_content, dict):
        return None
    model_turn = server_content.get("modelTurn")
    if not isinstance(model_turn, dict):
        return None
    parts = model_turn.get("parts")
    if not isinstance(parts, list):
        return None

    texts = []
    audio_parts = 0
    for part in parts:
        if not isinstance(part, dict):
            continue
        if isinstance(part.get("text"), str) and part["text"]:
            texts.append(part["text"])
        if isinstance(part.get("inlineData"), dict):
            audio_parts += 1
    return ModelOutput(raw=raw, texts=texts, audio_parts=audio_parts)


def decode_upstream(frame: str | bytes) -> UpstreamMessage:
    """Decode one upstream frame into its tagged variant.

    Never raises: frames that are not JSON, or whose toolCall is malformed,
    come back as UnknownMessage so they can be forwarded unchanged.
    """
    raw = frame.decode("utf-8", errors="replace") if isinstance(frame, bytes) else frame

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        return UnknownMessage(raw=raw, error=f"invalid JSON: {exc}")

    if not isinstance(data, dict):
        return UnknownMessage(raw=raw, error="frame is not a JSON object")

    if "setupComplete" in data:
        return SetupAck(raw=raw)

    if "toolCall" in data:
        try:
            return ToolCall(raw=raw, calls=_parse_tool_calls(data["toolCall"]))
        except UpstreamProtocolError as exc:
            return UnknownMessage(raw=raw, error=str(exc))

    if "serverContent" in data:
        output = _parse_model_turn(data["serverContent"], raw)
        if output is not None:
            return output

    return UnknownMessage(raw=raw)

"""Live proxy models: session state, wire messages and upstream variants."""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field


class SessionPhase(str, Enum):
    """Lifecycle phases of one relay session."""

    CONNECTING = "connecting"
    AWAITING_UPSTREAM_OPEN = "awaiting_upstream_open"
    AWAITING_SETUP_ACK = "awaiting_setup_ack"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class SessionState:
    """Per-connection state, owned by a single SessionProxy."""

    task_id: int
    downstream: Any
    upstream: Any = None
    setup_complete: bool = False
    phase: SessionPhase = SessionPhase.CONNECTING
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    # Metrics
    frames_upstream: int = 0
    frames_downstream: int = 0
    frames_dropped: int = 0
    tool_calls_acknowledged: int = 0

    @property
    def duration_seconds(self) -> float:
        return (datetime.now(UTC) - self.started_at).total_seconds()


# ---------------------------------------------------------------------------
# Relay -> client messages
# ---------------------------------------------------------------------------


class LogMessage(BaseModel):
    """Structured data collected by a tool call, republished to the client."""

    type: Literal["log"] = "log"
    data: str


# ---------------------------------------------------------------------------
# Upstream -> relay messages, decoded once per frame
# ---------------------------------------------------------------------------


class UpstreamKind(str, Enum):
    SETUP_ACK = "setup_ack"
    TOOL_CALL = "tool_call"
    MODEL_OUTPUT = "model_output"
    UNKNOWN = "unknown"


class ToolCallEvent(BaseModel):
    """A single function call from a ``toolCall`` message."""

    id: str | None = None
    name: str
    args: dict[str, Any] = Field(default_factory=dict)


class UpstreamMessage(BaseModel):
    """Base for decoded upstream frames. ``raw`` is the frame text as received."""

    kind: UpstreamKind
    raw: str


class SetupAck(UpstreamMessage):
    kind: Literal[UpstreamKind.SETUP_ACK] = UpstreamKind.SETUP_ACK


class ToolCall(UpstreamMessage):
    kind: Literal[UpstreamKind.TOOL_CALL] = UpstreamKind.TOOL_CALL
    calls: list[ToolCallEvent] = Field(default_factory=list)


class ModelOutput(UpstreamMessage):
    kind: Literal[UpstreamKind.MODEL_OUTPUT] = UpstreamKind.MODEL_OUTPUT
    texts: list[str] = Field(default_factory=list)
    audio_parts: int = 0


class UnknownMessage(UpstreamMessage):
    kind: Literal[UpstreamKind.UNKNOWN] = UpstreamKind.UNKNOWN
    error: str | None = None

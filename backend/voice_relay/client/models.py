"""Voice client models: lifecycle status and the realtimeInput envelope."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from voice_relay.services.audio.models import INPUT_MIME_TYPE


class ClientStatus(str, Enum):
    """Connection lifecycle states surfaced to the user."""

    IDLE = "idle"
    CONNECTING = "connecting"
    ACTIVE = "active"
    ENDED = "ended"
    ERROR = "error"


class MediaChunk(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mime_type: str = Field(default=INPUT_MIME_TYPE, alias="mimeType")
    data: str


class RealtimeInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    media_chunks: list[MediaChunk] = Field(alias="mediaChunks")


class RealtimeInputMessage(BaseModel):
    """``{"realtimeInput": {"mediaChunks": [{"mimeType", "data"}]}}``"""

    model_config = ConfigDict(populate_by_name=True)

    realtime_input: RealtimeInput = Field(alias="realtimeInput")

    @classmethod
    def from_base64(cls, data: str, mime_type: str = INPUT_MIME_TYPE) -> "RealtimeInputMessage":
        return cls(realtime_input=RealtimeInput(media_chunks=[MediaChunk(mime_type=mime_type, data=data)]))

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

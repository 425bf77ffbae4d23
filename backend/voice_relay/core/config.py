from pathlib import Path

from pydantic_settings import BaseSettings

DEFAULT_FLOWS_DIR = Path(__file__).resolve().parent.parent / "flows"


class Settings(BaseSettings):
    PROJECT_NAME: str = "Voice Relay"
    API_V1_PREFIX: str = "/api/v1"
    DEBUG: bool = False

    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    # Gemini Live upstream
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL_ID: str = "models/gemini-2.5-flash-native-audio-preview-12-2025"
    GEMINI_WS_URL: str = (
        "wss://generativelanguage.googleapis.com/ws/"
        "google.ai.generativelanguage.v1beta.GenerativeService.BidiGenerateContent"
    )
    GEMINI_RESPONSE_MODALITIES: list[str] = ["AUDIO"]

    # Conversation flows: task{N}.mmd documents plus an optional profile.json
    FLOWS_DIR: Path = DEFAULT_FLOWS_DIR
    DEFAULT_TASK_ID: int = 1

    # Time zone used for the "current time" statement in system instructions
    REFERENCE_TIMEZONE: str = "America/New_York"

    # Answer tool calls whose name is not registered for the session's task.
    # Off by default: unknown calls are neither logged nor acknowledged.
    ACK_UNKNOWN_TOOL_CALLS: bool = False

    model_config = {"env_file": ".env", "case_sensitive": True}


settings = Settings()

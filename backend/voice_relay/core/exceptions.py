"""Voice relay exceptions.

Session-fatal conditions (ConfigurationError, TransportClosedError) end the
connection. Content-level anomalies (MalformedAudioError,
UpstreamProtocolError) are absorbed where they occur and the session goes on.
"""


class VoiceRelayError(Exception):
    """Base exception for all voice relay operations."""


class ConfigurationError(VoiceRelayError):
    """Raised when a session cannot be configured (missing credential or flow)."""


class FlowNotFoundError(ConfigurationError):
    """Raised when no flow-definition document exists for a task."""

    def __init__(self, task_id: int, path: str | None = None) -> None:
        self.task_id = task_id
        self.path = path
        detail = f" (looked in {path})" if path else ""
        super().__init__(f"No flow definition for task {task_id}{detail}")


class MalformedAudioError(VoiceRelayError):
    """Raised when an audio payload cannot be decoded as PCM16."""


class UpstreamProtocolError(VoiceRelayError):
    """Raised when an upstream message has an unexpected shape."""


class TransportClosedError(VoiceRelayError):
    """Raised when either leg of a session has closed."""

    def __init__(self, leg: str, code: int | None = None, reason: str = "") -> None:
        self.leg = leg
        self.code = code
        self.reason = reason
        super().__init__(f"[{leg}] connection closed (code={code}, reason={reason or '-'})")

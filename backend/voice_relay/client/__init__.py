"""Voice client: capture, half-duplex muting and gapless playback.

Public API:
    - VoiceClient: One voice session against the relay.
    - AudioSink: Protocol for the playback device.
    - ClientStatus: Lifecycle states (connecting, active, ended, error).
    - RealtimeInputMessage: The realtimeInput audio envelope.
"""

from voice_relay.client.client import AudioSink, VoiceClient, sample_rate_from_mime
from voice_relay.client.models import ClientStatus, MediaChunk, RealtimeInputMessage

__all__ = [
    "AudioSink",
    "ClientStatus",
    "MediaChunk",
    "RealtimeInputMessage",
    "VoiceClient",
    "sample_rate_from_mime",
]

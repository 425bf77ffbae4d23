"""Audio service: PCM16 framing and playback scheduling.

Public API:
    - AudioChunk: Immutable PCM16 samples at a fixed sample rate.
    - encode / decode: float samples <-> base64 PCM16 text.
    - PlaybackScheduler: Gapless playback cursor with half-duplex signal.
"""

from voice_relay.services.audio.codec import (
    chunk_from_base64,
    decode,
    decode_pcm,
    encode,
    encode_pcm,
)
from voice_relay.services.audio.models import (
    INPUT_MIME_TYPE,
    INPUT_SAMPLE_RATE,
    OUTPUT_SAMPLE_RATE,
    AudioChunk,
)
from voice_relay.services.audio.playback import PLAYBACK_LEAD_SECONDS, PlaybackScheduler

__all__ = [
    "AudioChunk",
    "INPUT_MIME_TYPE",
    "INPUT_SAMPLE_RATE",
    "OUTPUT_SAMPLE_RATE",
    "PLAYBACK_LEAD_SECONDS",
    "PlaybackScheduler",
    "chunk_from_base64",
    "decode",
    "decode_pcm",
    "encode",
    "encode_pcm",
]

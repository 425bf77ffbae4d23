"""PCM16 frame codec: float samples <-> little-endian int16 <-> base64 text.

Capture buffers arrive as floats in [-1.0, 1.0]. They are clamped and scaled
asymmetrically (negatives by 32768, positives by 32767, so +1.0 does not
overflow), packed as 16-bit little-endian PCM and base64-encoded for JSON
transport. Decoding reverses this and normalizes by 32768.

No external dependencies required.
"""

import base64
import binascii
import struct
from collections.abc import Sequence

from voice_relay.core.exceptions import MalformedAudioError
from voice_relay.services.audio.models import (
    INPUT_SAMPLE_RATE,
    SAMPLE_WIDTH_BYTES,
    AudioChunk,
)

NEGATIVE_SCALE = 0x8000  # 32768
POSITIVE_SCALE = 0x7FFF  # 32767


def float_to_pcm16(samples: Sequence[float]) -> list[int]:
    """Clamp and scale float samples to signed 16-bit integers.

    Scaling truncates toward zero.
    """
    out = []
    for s in samples:
        s = max(-1.0, min(1.0, s))
        out.append(int(s * NEGATIVE_SCALE) if s < 0 else int(s * POSITIVE_SCALE))
    return out


def encode_pcm(samples: Sequence[float]) -> bytes:
    """Encode float samples as raw PCM16 little-endian bytes."""
    pcm = float_to_pcm16(samples)
    return struct.pack(f"<{len(pcm)}h", *pcm)


def encode(samples: Sequence[float]) -> str:
    """Encode float samples as base64 PCM16 text for a realtimeInput frame."""
    return base64.b64encode(encode_pcm(samples)).decode("ascii")


def unpack_pcm16(data: bytes) -> tuple[int, ...]:
    """Reinterpret raw bytes as little-endian int16 samples.

    Raises:
        MalformedAudioError: If the byte length is not a multiple of 2.
    """
    if len(data) % SAMPLE_WIDTH_BYTES != 0:
        raise MalformedAudioError(
            f"Audio data length ({len(data)}) must be a multiple of {SAMPLE_WIDTH_BYTES} bytes (16-bit samples)"
        )
    return struct.unpack(f"<{len(data) // SAMPLE_WIDTH_BYTES}h", data)


def decode_pcm(data: bytes) -> list[float]:
    """Decode raw PCM16 little-endian bytes into floats in [-1.0, 1.0)."""
    return [s / NEGATIVE_SCALE for s in unpack_pcm16(data)]


def b64_to_bytes(text: str) -> bytes:
    """Strict base64 decode.

    Raises:
        MalformedAudioError: If the payload is not valid base64.
    """
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError, TypeError) as exc:
        raise MalformedAudioError(f"Invalid base64 audio payload: {exc}") from exc


def decode(text: str) -> list[float]:
    """Decode base64 PCM16 text into float samples.

    Raises:
        MalformedAudioError: On invalid base64 or an odd byte length.
    """
    return decode_pcm(b64_to_bytes(text))


def chunk_from_base64(text: str, sample_rate: int = INPUT_SAMPLE_RATE) -> AudioChunk:
    """Build an AudioChunk from a base64 PCM16 wire payload."""
    return AudioChunk(samples=unpack_pcm16(b64_to_bytes(text)), sample_rate=sample_rate)

"""Audio data models and PCM constants."""

from pydantic import BaseModel, ConfigDict

# Wire format: 16-bit signed PCM, little-endian, mono
INPUT_SAMPLE_RATE = 16000  # microphone -> model
OUTPUT_SAMPLE_RATE = 24000  # model -> speaker
SAMPLE_WIDTH_BYTES = 2
INPUT_MIME_TYPE = f"audio/pcm;rate={INPUT_SAMPLE_RATE}"


class AudioChunk(BaseModel):
    """An immutable run of PCM16 samples at a fixed sample rate."""

    model_config = ConfigDict(frozen=True)

    samples: tuple[int, ...]
    sample_rate: int = INPUT_SAMPLE_RATE

    @property
    def duration(self) -> float:
        """Playback length in seconds."""
        return len(self.samples) / self.sample_rate

    @property
    def num_bytes(self) -> int:
        return len(self.samples) * SAMPLE_WIDTH_BYTES

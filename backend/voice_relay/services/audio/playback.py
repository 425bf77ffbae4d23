"""Gapless playback scheduling for model audio output.

Each decoded chunk is placed directly after the previous one on the playback
clock. When the cursor has fallen behind the clock (the queue drained), it is
moved to ``now + PLAYBACK_LEAD_SECONDS`` so the next chunk starts cleanly
instead of clicking in mid-buffer.

The same cursor drives half-duplex muting: while ``now < next_play_time``
the model is still speaking and microphone frames must not be sent.
"""

from voice_relay.services.audio.models import AudioChunk

PLAYBACK_LEAD_SECONDS = 0.05


class PlaybackScheduler:
    """Owns the playback cursor for one client session.

    Usage::

        scheduler = PlaybackScheduler()
        start = scheduler.schedule(chunk, now=clock())
        output.play(chunk, at=start)
        if scheduler.is_speaking(clock()):
            ...  # drop the microphone frame
    """

    def __init__(self, lead_seconds: float = PLAYBACK_LEAD_SECONDS) -> None:
        self._lead_seconds = lead_seconds
        self._next_play_time = 0.0

    @property
    def next_play_time(self) -> float:
        return self._next_play_time

    def is_speaking(self, now: float) -> bool:
        """Whether scheduled playback is still pending at ``now``."""
        return now < self._next_play_time

    def schedule(self, chunk: AudioChunk | float, now: float) -> float:
        """Reserve the next playback slot for a chunk.

        Args:
            chunk: The chunk to play, or its duration in seconds.
            now: Current time on the playback clock.

        Returns:
            The time at which playback of this chunk must start.
        """
        duration = chunk.duration if isinstance(chunk, AudioChunk) else float(chunk)
        if duration < 0:
            raise ValueError(f"Chunk duration must be non-negative, got {duration}")

        if self._next_play_time < now:
            self._next_play_time = now + self._lead_seconds

        start = self._next_play_time
        self._next_play_time += duration
        return start

    def reset(self) -> None:
        """Forget all scheduled playback (call ended)."""
        self._next_play_time = 0.0

"""Voice client for the relay.

Drives the client half of a relay session: microphone capture buffers are
encoded as PCM16 realtimeInput frames and sent up; model audio coming back is
decoded and scheduled for gapless playback on an AudioSink.

Turn-taking is half-duplex. While scheduled playback is still pending the
capture path drops microphone buffers so the model does not hear itself;
there is no echo cancellation.

Audio device I/O stays outside this module: captured buffers come in through
``send_capture`` (or an async iterator passed to ``run``) and decoded audio
leaves through the sink.
"""

import asyncio
import json
import logging
import re
import time
from collections.abc import AsyncIterator, Callable, Sequence
from typing import Any, Protocol

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from voice_relay.client.models import ClientStatus, RealtimeInputMessage
from voice_relay.core.exceptions import MalformedAudioError
from voice_relay.services.audio.codec import chunk_from_base64, encode
from voice_relay.services.audio.models import OUTPUT_SAMPLE_RATE, AudioChunk
from voice_relay.services.audio.playback import PlaybackScheduler

logger = logging.getLogger(__name__)

_RATE_PATTERN = re.compile(r"rate=(\d+)")


class AudioSink(Protocol):
    """Plays a decoded chunk starting at a time on the playback clock."""

    def play(self, chunk: AudioChunk, start_time: float) -> None: ...


def sample_rate_from_mime(mime_type: str | None, default: int = OUTPUT_SAMPLE_RATE) -> int:
    """Extract ``rate=N`` from an audio MIME type."""
    if mime_type:
        match = _RATE_PATTERN.search(mime_type)
        if match:
            return int(match.group(1))
    return default


class VoiceClient:
    """One voice session against the relay.

    Usage::

        client = VoiceClient("ws://localhost:8000/api/v1/relay/ws?task=2", sink=speaker)
        await client.run(microphone_buffers())
    """

    def __init__(
        self,
        url: str,
        sink: AudioSink,
        clock: Callable[[], float] = time.monotonic,
        scheduler: PlaybackScheduler | None = None,
        on_status: Callable[[ClientStatus], None] | None = None,
        on_transcript: Callable[[str], None] | None = None,
        connect: Callable[..., Any] = websockets.connect,
    ) -> None:
        self._url = url
        self._sink = sink
        self._clock = clock
        self._scheduler = scheduler or PlaybackScheduler()
        self._on_status = on_status
        self._on_transcript = on_transcript
        self._connect = connect
        self._ws = None
        self._status = ClientStatus.IDLE

        # Metrics
        self.frames_sent = 0
        self.frames_muted = 0
        self.chunks_played = 0
        self.chunks_dropped = 0

    @property
    def status(self) -> ClientStatus:
        return self._status

    @property
    def scheduler(self) -> PlaybackScheduler:
        return self._scheduler

    async def start(self) -> None:
        """Open the connection to the relay.

        Raises:
            OSError / WebSocketException: If the relay cannot be reached.
        """
        self._set_status(ClientStatus.CONNECTING)
        try:
            self._ws = await self._connect(self._url)
        except (OSError, WebSocketException) as exc:
            logger.error("Failed to connect to relay %s: %s", self._url, exc)
            self._set_status(ClientStatus.ERROR)
            raise

    async def stop(self) -> None:
        """End the call: close the socket and forget scheduled playback."""
        if self._ws is not None:
            try:
                await self._ws.close()
            except WebSocketException as exc:
                logger.warning("Error closing relay connection: %s", exc)
            self._ws = None
        self._scheduler.reset()
        if self._status != ClientStatus.ERROR:
            self._set_status(ClientStatus.ENDED)

    async def run(self, capture: AsyncIterator[Sequence[float]]) -> None:
        """Run a whole call: stream capture buffers and play model audio.

        Returns when the relay closes the connection or the capture source
        is exhausted.

        Raises:
            Exception: Whatever the capture source, the sink or a callback
                raised. The status is set to ERROR first.
        """
        await self.start()
        tasks = {
            asyncio.create_task(self.receive_loop()),
            asyncio.create_task(self._pump_capture(capture)),
        }
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            failures = [task.exception() for task in done if task.exception() is not None]
            for exc in failures:
                logger.error("Voice client task failed: %s", exc, exc_info=exc)
            if failures:
                self._set_status(ClientStatus.ERROR)
                raise failures[0]
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            for task in pending:
                try:
                    await task
                except asyncio.CancelledError:
                    pass
            await self.stop()

    async def _pump_capture(self, capture: AsyncIterator[Sequence[float]]) -> None:
        async for samples in capture:
            await self.send_capture(samples)

    async def send_capture(self, samples: Sequence[float]) -> bool:
        """Encode and send one capture buffer.

        Returns:
            False if the buffer was muted (model speaking) or the socket is
            not open, True if it was sent.
        """
        if self._scheduler.is_speaking(self._clock()):
            self.frames_muted += 1
            return False
        if self._ws is None:
            return False

        message = RealtimeInputMessage.from_base64(encode(samples))
        try:
            await self._ws.send(message.to_json())
        except ConnectionClosed:
            logger.info("Relay connection closed while sending audio")
            return False
        self.frames_sent += 1
        return True

    async def receive_loop(self) -> None:
        """Handle relay frames until the connection closes."""
        try:
            async for frame in self._ws:
                self.handle_frame(frame)
        except ConnectionClosed as exc:
            if exc.rcvd is not None and exc.rcvd.code not in (1000, 1001):
                logger.error("Relay closed the session: code=%s reason=%s", exc.rcvd.code, exc.rcvd.reason)
                self._set_status(ClientStatus.ERROR)

    def handle_frame(self, frame: str | bytes) -> None:
        """Dispatch one relay frame: log events, setup ack and model audio."""
        try:
            data = json.loads(frame)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Ignoring non-JSON frame from relay")
            return
        if not isinstance(data, dict):
            return

        if data.get("type") == "log":
            if self._on_transcript is not None:
                self._on_transcript(str(data.get("data", "")))
            return

        if "setupComplete" in data:
            self._set_status(ClientStatus.ACTIVE)
            return

        server_content = data.get("serverContent")
        model_turn = server_content.get("modelTurn") if isinstance(server_content, dict) else None
        if not isinstance(model_turn, dict):
            return
        for part in model_turn.get("parts") or []:
            inline = part.get("inlineData") if isinstance(part, dict) else None
            if isinstance(inline, dict):
                self._play_inline(inline)

    def _play_inline(self, inline: dict[str, Any]) -> None:
        rate = sample_rate_from_mime(inline.get("mimeType"))
        try:
            chunk = chunk_from_base64(inline.get("data") or "", sample_rate=rate)
        except MalformedAudioError as exc:
            logger.warning("Dropping malformed audio chunk: %s", exc)
            self.chunks_dropped += 1
            return

        start = self._scheduler.schedule(chunk, now=self._clock())
        self._sink.play(chunk, start)
        self.chunks_played += 1

    def _set_status(self, status: ClientStatus) -> None:
        if status == self._status:
            return
        self._status = status
        logger.info("Voice client status: %s", status.value)
        if self._on_status is not None:
            self._on_status(status)

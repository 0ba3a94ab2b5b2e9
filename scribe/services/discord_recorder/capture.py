# -------------------------------------------------------------- #
# Per-Speaker Audio Capture
# -------------------------------------------------------------- #

import asyncio
import enum
import logging
import time
import wave
from collections.abc import Callable

import discord

logger = logging.getLogger(__name__)


class CaptureConstants:
    """Audio format of the capture files.

    py-cord hands sinks decoded 48 kHz 16-bit stereo PCM, so the container
    header is fixed to match and declared once when the file is opened.
    """

    SAMPLE_RATE = 48000
    CHANNELS = 2
    SAMPLE_WIDTH = 2  # bytes, 16-bit signed
    BYTES_PER_MS = SAMPLE_RATE * CHANNELS * SAMPLE_WIDTH // 1000  # 192

    # A gap longer than this between frames ends an utterance
    SILENCE_CUTOFF_MS = 100


class CaptureState(enum.Enum):
    NO_STREAM = "no_stream"
    STREAMING = "streaming"
    CLOSED = "closed"


class CapturePipeline:
    """
    One speaker's capture chain: decoded frames → WAV container → file.

    The file stays open for the whole session. Silence longer than
    ``SILENCE_CUTOFF_MS`` only ends the current burst; the next burst is
    appended to the same file.
    """

    def __init__(
        self,
        speaker_id: int,
        path: str,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.speaker_id = speaker_id
        self.path = path
        self.state = CaptureState.NO_STREAM
        self.frames_written = 0
        self.bytes_written = 0
        self.bursts = 0
        self._clock = clock
        self._last_frame_at: float | None = None
        self._writer: wave.Wave_write | None = None

    def open(self) -> None:
        """Open the destination file and declare the container header."""
        if self.state is not CaptureState.NO_STREAM:
            return

        writer = wave.open(self.path, "wb")
        writer.setnchannels(CaptureConstants.CHANNELS)
        writer.setsampwidth(CaptureConstants.SAMPLE_WIDTH)
        writer.setframerate(CaptureConstants.SAMPLE_RATE)
        self._writer = writer
        self.state = CaptureState.STREAMING

    def write(self, frame: bytes) -> bool:
        """
        Append one decoded frame.

        Returns:
            False if the pipeline is not streaming and the frame was dropped
        """
        if self.state is not CaptureState.STREAMING or not frame:
            return False

        now = self._clock()
        if (
            self._last_frame_at is None
            or (now - self._last_frame_at) * 1000 > CaptureConstants.SILENCE_CUTOFF_MS
        ):
            self.bursts += 1
        self._last_frame_at = now

        self._writer.writeframesraw(frame)
        self.frames_written += 1
        self.bytes_written += len(frame)
        return True

    def close(self) -> None:
        """Finalize the header sizes and close the file. Safe to call twice."""
        if self._writer is not None:
            try:
                self._writer.close()
            finally:
                self._writer = None
        self.state = CaptureState.CLOSED

    @property
    def is_streaming(self) -> bool:
        return self.state is CaptureState.STREAMING

    @property
    def duration_ms(self) -> int:
        return self.bytes_written // CaptureConstants.BYTES_PER_MS


# -------------------------------------------------------------- #
# py-cord Sink
# -------------------------------------------------------------- #


class CaptureSink(discord.sinks.Sink):
    """
    Sink that forwards decoded frames to the event loop.

    py-cord calls ``write`` from its decoder thread; every frame is handed to
    ``on_frame`` through ``call_soon_threadsafe`` so session state is only
    ever touched on the loop.
    """

    def __init__(
        self,
        on_frame: Callable[[int, bytes], None],
        loop: asyncio.AbstractEventLoop,
        *,
        filters=None,
    ):
        super().__init__(filters=filters)
        self._on_frame = on_frame
        self._loop = loop

    @discord.sinks.Filters.container
    def write(self, data, user):
        if self.finished or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._on_frame, int(user), bytes(data))

    def cleanup(self):
        self.finished = True

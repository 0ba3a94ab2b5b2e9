"""
Unit tests for the per-speaker capture pipeline and the py-cord sink.

Covers:
1. WAV header declared once at chain start (2 ch, 48 kHz, 16-bit)
2. Burst counting across silences longer than 100 ms
3. Frames dropped before open and after close
4. Decoder-thread frames marshalled onto the event loop
"""

import asyncio
import os
import threading
import wave

import pytest

from scribe.services.discord_recorder.capture import (
    CaptureConstants,
    CapturePipeline,
    CaptureSink,
    CaptureState,
)

# 20 ms of stereo 16-bit audio at 48 kHz
FRAME = b"\x01\x00" * 2 * 960


class FakeClock:
    """Manually advanced monotonic clock, in seconds."""

    def __init__(self):
        self.now = 0.0

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def pipeline(tmp_path, clock):
    p = CapturePipeline(42, str(tmp_path / "1700000000000-42.wav"), clock=clock)
    yield p
    p.close()


# -------------------------------------------------------------- #
# Constants
# -------------------------------------------------------------- #


@pytest.mark.unit
def test_bytes_per_ms_constant():
    """48000 Hz * 2 channels * 2 bytes / 1000 ms = 192 bytes/ms."""
    assert CaptureConstants.BYTES_PER_MS == 192
    assert CaptureConstants.SILENCE_CUTOFF_MS == 100


# -------------------------------------------------------------- #
# Pipeline
# -------------------------------------------------------------- #


@pytest.mark.unit
class TestCapturePipeline:
    def test_write_before_open_is_dropped(self, pipeline):
        assert pipeline.state is CaptureState.NO_STREAM
        assert pipeline.write(FRAME) is False
        assert pipeline.frames_written == 0

    def test_wav_header_matches_decoded_format(self, pipeline):
        pipeline.open()
        pipeline.write(FRAME)
        pipeline.close()

        with wave.open(pipeline.path, "rb") as reader:
            assert reader.getnchannels() == 2
            assert reader.getframerate() == 48000
            assert reader.getsampwidth() == 2
            assert reader.getnframes() == 960

    def test_open_twice_does_not_truncate(self, pipeline):
        pipeline.open()
        pipeline.write(FRAME)
        pipeline.open()
        pipeline.write(FRAME)
        pipeline.close()

        with wave.open(pipeline.path, "rb") as reader:
            assert reader.getnframes() == 2 * 960

    def test_continuous_frames_are_one_burst(self, pipeline, clock):
        pipeline.open()
        for _ in range(5):
            assert pipeline.write(FRAME) is True
            clock.advance_ms(20)

        assert pipeline.bursts == 1
        assert pipeline.frames_written == 5
        assert pipeline.bytes_written == 5 * len(FRAME)
        assert pipeline.duration_ms == 100

    def test_silence_over_cutoff_starts_new_burst_in_same_file(self, pipeline, clock):
        pipeline.open()
        pipeline.write(FRAME)
        clock.advance_ms(100)  # exactly the cutoff: same burst
        pipeline.write(FRAME)
        clock.advance_ms(101)
        pipeline.write(FRAME)
        pipeline.close()

        assert pipeline.bursts == 2
        with wave.open(pipeline.path, "rb") as reader:
            assert reader.getnframes() == 3 * 960

    def test_empty_frame_is_ignored(self, pipeline):
        pipeline.open()
        assert pipeline.write(b"") is False
        assert pipeline.bursts == 0

    def test_close_is_idempotent_and_drops_later_frames(self, pipeline):
        pipeline.open()
        pipeline.write(FRAME)
        pipeline.close()
        pipeline.close()

        assert pipeline.state is CaptureState.CLOSED
        assert not pipeline.is_streaming
        assert pipeline.write(FRAME) is False
        assert pipeline.frames_written == 1

    def test_close_without_open_leaves_no_file(self, pipeline):
        pipeline.close()
        assert pipeline.state is CaptureState.CLOSED
        assert not os.path.exists(pipeline.path)


# -------------------------------------------------------------- #
# Sink
# -------------------------------------------------------------- #


@pytest.mark.unit
class TestCaptureSink:
    async def test_frames_from_decoder_thread_reach_the_loop(self):
        loop = asyncio.get_running_loop()
        received: list[tuple[int, bytes, int]] = []
        done = asyncio.Event()

        def on_frame(speaker_id: int, frame: bytes) -> None:
            received.append((speaker_id, frame, threading.get_ident()))
            if len(received) == 2:
                done.set()

        sink = CaptureSink(on_frame, loop)
        loop_thread = threading.get_ident()

        def decoder():
            sink.write(bytearray(FRAME), 7)
            sink.write(FRAME, 8)

        thread = threading.Thread(target=decoder)
        thread.start()
        thread.join()
        await asyncio.wait_for(done.wait(), timeout=2)

        assert [(s, f) for s, f, _ in received] == [(7, FRAME), (8, FRAME)]
        assert all(ident == loop_thread for _, _, ident in received)
        assert isinstance(received[0][1], bytes)

    async def test_finished_sink_drops_frames(self):
        loop = asyncio.get_running_loop()
        received = []
        sink = CaptureSink(lambda s, f: received.append(s), loop)

        sink.cleanup()
        sink.write(FRAME, 7)
        await asyncio.sleep(0)

        assert sink.finished is True
        assert received == []

import asyncio
import contextlib
import os
import subprocess
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from scribe.context import Context

from scribe.services.manager import BaseFFmpegServiceManager

# -------------------------------------------------------------- #
# Errors and Constants
# -------------------------------------------------------------- #


class AudioEncodingError(Exception):
    """Raised when ffmpeg cannot encode a recording for upload."""


class UploadEncoding:
    """Target format for files sent to the speech-to-text service.

    Speech models resample to 16 kHz mono anyway, so the upload is downmixed
    and compressed with Opus. At 24 kbps one hour of audio is about 10.8 MB,
    well under the 25 MB request limit of the hosted Whisper API.
    """

    EXTENSION = ".ogg"
    CODEC = "libopus"
    SAMPLE_RATE = 16000
    CHANNELS = 1
    DEFAULT_BITRATE = "24k"

    # hosted Whisper rejects larger uploads
    UPLOAD_LIMIT_BYTES = 25 * 1024 * 1024

    PROCESS_TIMEOUT = 300


# -------------------------------------------------------------- #
# FFmpeg Handler
# -------------------------------------------------------------- #


class FFmpegHandler:
    def __init__(self, ffmpeg_path: str):
        self.ffmpeg_path = ffmpeg_path

    async def _run(self, cmd: list[str], timeout: float) -> subprocess.CompletedProcess:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            lambda: subprocess.run(cmd, capture_output=True, timeout=timeout, text=True),
        )

    async def validate_ffmpeg(self) -> bool:
        """Check that the ffmpeg binary runs."""
        try:
            result = await self._run([self.ffmpeg_path, "-version"], timeout=5)
        except (OSError, subprocess.TimeoutExpired):
            return False
        return result.returncode == 0

    def build_upload_command(self, input_path: str, output_path: str, bitrate: str) -> list[str]:
        return [
            self.ffmpeg_path,
            "-hide_banner",
            "-loglevel",
            "error",
            "-y",
            "-i",
            input_path,
            "-ac",
            str(UploadEncoding.CHANNELS),
            "-ar",
            str(UploadEncoding.SAMPLE_RATE),
            "-c:a",
            UploadEncoding.CODEC,
            "-b:a",
            bitrate,
            "-application",
            "voip",
            output_path,
        ]

    async def convert_for_upload(self, input_path: str, output_path: str, bitrate: str) -> None:
        """
        Encode a capture file into the upload format.

        Raises:
            AudioEncodingError: If ffmpeg is missing, times out or exits non-zero
        """
        cmd = self.build_upload_command(input_path, output_path, bitrate)
        try:
            result = await self._run(cmd, timeout=UploadEncoding.PROCESS_TIMEOUT)
        except subprocess.TimeoutExpired as e:
            raise AudioEncodingError(f"ffmpeg timed out encoding {input_path}") from e
        except OSError as e:
            raise AudioEncodingError(f"Could not run ffmpeg at {self.ffmpeg_path}: {e}") from e

        if result.returncode != 0:
            raise AudioEncodingError(
                f"ffmpeg exited with {result.returncode}: {result.stderr.strip()}"
            )


# -------------------------------------------------------------- #
# FFmpeg Manager Service
# -------------------------------------------------------------- #


class FFmpegManagerService(BaseFFmpegServiceManager):
    """Compresses finished capture files before they are uploaded."""

    def __init__(
        self,
        context: "Context",
        ffmpeg_path: str = "ffmpeg",
        bitrate: str = UploadEncoding.DEFAULT_BITRATE,
    ):
        super().__init__(context)
        self.ffmpeg_path = ffmpeg_path
        self.bitrate = bitrate
        self.handler = FFmpegHandler(ffmpeg_path)

    async def on_start(self, services):
        await super().on_start(services)

        if await self.handler.validate_ffmpeg():
            await self.services.logging_service.info(
                f"FFmpeg validated at path: {self.ffmpeg_path}"
            )
        else:
            await self.services.logging_service.warning(
                f"FFmpeg validation failed at path: {self.ffmpeg_path}; "
                f"recordings cannot be transcribed until it is installed"
            )

    def get_ffmpeg_path(self) -> str:
        return self.ffmpeg_path

    def build_upload_path(self, input_path: str) -> str:
        return os.path.splitext(input_path)[0] + UploadEncoding.EXTENSION

    async def encode_for_upload(self, input_path: str) -> str:
        """
        Encode a capture file next to itself in the upload format.

        A partial output file is removed when encoding fails.

        Returns:
            Path of the encoded file

        Raises:
            AudioEncodingError: If encoding fails
        """
        output_path = self.build_upload_path(input_path)
        try:
            await self.handler.convert_for_upload(input_path, output_path, self.bitrate)
        except AudioEncodingError:
            with contextlib.suppress(FileNotFoundError):
                await asyncio.to_thread(os.remove, output_path)
            raise

        input_size = await asyncio.to_thread(os.path.getsize, input_path)
        output_size = await asyncio.to_thread(os.path.getsize, output_path)
        await self.services.logging_service.debug(
            f"Encoded {os.path.basename(input_path)} for upload: "
            f"{input_size} -> {output_size} bytes"
        )
        return output_path

"""
Mock ffmpeg service for testing.

Uploads the capture file as-is so the stop flow can run without an ffmpeg
binary, and lets tests script per-file encoding failures.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from scribe.context import Context

from scribe.services.ffmpeg_manager.manager import AudioEncodingError
from scribe.services.manager import BaseFFmpegServiceManager


class MockFFmpegManagerService(BaseFFmpegServiceManager):
    """Pass-through encoder."""

    def __init__(self, context: "Context"):
        super().__init__(context)
        self.failures: dict[str, Exception] = {}
        self.calls: list[str] = []

    def get_ffmpeg_path(self) -> str:
        return "mock-ffmpeg"

    async def encode_for_upload(self, input_path: str) -> str:
        self.calls.append(input_path)
        if input_path in self.failures:
            raise self.failures[input_path]
        return input_path

    def set_failure(self, input_path: str, error: Exception | None = None) -> None:
        """Script an encoding failure for a file."""
        self.failures[input_path] = error or AudioEncodingError("mock ffmpeg failure")

from __future__ import annotations

import asyncio
import os
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from scribe.context import Context

from scribe.services.manager import BaseRecordingFileServiceManager

# -------------------------------------------------------------- #
# Recording File Manager Service
# -------------------------------------------------------------- #


class RecordingFileManagerService(BaseRecordingFileServiceManager):
    """Owns the directory where per-speaker capture files are written."""

    CAPTURE_EXTENSION = ".wav"

    def __init__(self, context: Context, recording_storage_path: str):
        super().__init__(context)
        self.recording_storage_path = recording_storage_path

    # -------------------------------------------------------------- #
    # Manager Methods
    # -------------------------------------------------------------- #

    async def on_start(self, services):
        await super().on_start(services)

        await asyncio.to_thread(os.makedirs, self.recording_storage_path, exist_ok=True)

        await self.services.logging_service.info(
            f"RecordingFileManagerService initialized with storage path: "
            f"{self.recording_storage_path}"
        )

    # -------------------------------------------------------------- #
    # Recording File Management Methods
    # -------------------------------------------------------------- #

    def get_recording_storage_path(self) -> str:
        return os.path.abspath(self.recording_storage_path)

    def build_capture_path(self, speaker_id: int, timestamp_ms: int | None = None) -> str:
        """
        Build the capture file path for a speaker: ``<epoch_ms>-<speaker_id>.wav``.

        The speaker ID keeps concurrent speakers apart; the timestamp keeps
        sessions apart.
        """
        if timestamp_ms is None:
            timestamp_ms = time.time_ns() // 1_000_000
        filename = f"{timestamp_ms}-{speaker_id}{self.CAPTURE_EXTENSION}"
        return os.path.join(self.get_recording_storage_path(), filename)

    async def delete_recording(self, path: str) -> bool:
        """
        Delete a finished recording.

        Returns:
            True if a file was deleted, False if it was already gone
        """
        try:
            await self.services.file_service_manager.delete_file(os.path.abspath(path))
        except FileNotFoundError:
            await self.services.logging_service.warning(
                f"Recording already removed: {os.path.basename(path)}"
            )
            return False

        await self.services.logging_service.info(
            f"Deleted recording file: {os.path.basename(path)}"
        )
        return True

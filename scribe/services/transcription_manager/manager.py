from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import discord

if TYPE_CHECKING:
    from scribe.context import Context
    from scribe.services.discord_recorder.capture import CapturePipeline

from scribe.services.ffmpeg_manager.manager import UploadEncoding
from scribe.services.manager import BaseTranscriptionServiceManager
from scribe.services.notes_store.manager import SessionRecord
from scribe.utils import utc_now_iso


@dataclass
class SessionSummary:
    """Outcome of stopping a session."""

    guild_id: int
    date: str
    transcript: str
    transcribed_speakers: list[int] = field(default_factory=list)
    failed_speakers: list[int] = field(default_factory=list)
    skipped_speakers: list[int] = field(default_factory=list)

    @property
    def speaker_count(self) -> int:
        return (
            len(self.transcribed_speakers) + len(self.failed_speakers) + len(self.skipped_speakers)
        )


# -------------------------------------------------------------- #
# Transcription Manager Service
# -------------------------------------------------------------- #


class TranscriptionManagerService(BaseTranscriptionServiceManager):
    """
    Stops a recording session and turns its recordings into a transcript.

    Recordings are submitted one at a time in speaker order, so at most one
    request to the speech-to-text service is outstanding. There is no retry
    and no timeout beyond the HTTP client's.
    """

    def __init__(self, context: Context, model: str | None = None):
        super().__init__(context)
        self.model = model

    async def on_start(self, services):
        await super().on_start(services)
        await self.services.logging_service.info("Transcription Manager Service started")

    # -------------------------------------------------------------- #
    # Stop Flow
    # -------------------------------------------------------------- #

    async def stop_session(self, guild_id: int) -> SessionSummary | None:
        """
        Stop a guild's recording, transcribe each speaker, save the transcript.

        Steps:
        1. Look up the session (None if the guild is not recording)
        2. Destroy the voice connection
        3. Per speaker: close the file, compress it, transcribe it, delete it
        4. Remove the session from the registry
        5. Append the joined transcript to the notes document

        Per-speaker failures are logged and skipped; the stop itself succeeds.

        Returns:
            Summary of the stopped session, or None if nothing was recording
        """
        recorder = self.services.discord_recorder_service_manager
        session = recorder.get_active_session(guild_id)
        if session is None:
            await self.services.logging_service.warning(
                f"No active recording session for guild {guild_id}"
            )
            return None

        await self.services.logging_service.info(
            f"Stopping recording session for guild {guild_id} "
            f"with {len(session.speakers)} speaker(s)"
        )

        summary = SessionSummary(guild_id=guild_id, date="", transcript="")
        texts: list[str] = []

        try:
            try:
                await session.destroy_connection()
            except discord.DiscordException as e:
                await self.services.logging_service.error(
                    f"Failed to disconnect voice client for guild {guild_id}: {e}"
                )

            for speaker_id, pipeline in list(session.speakers.items()):
                text = await self._drain_pipeline(guild_id, pipeline)
                if text is None:
                    summary.failed_speakers.append(speaker_id)
                elif not text.strip():
                    summary.skipped_speakers.append(speaker_id)
                else:
                    summary.transcribed_speakers.append(speaker_id)
                    texts.append(text.strip())
        finally:
            session.close_all()
            recorder.registry.remove(guild_id)

        summary.date = utc_now_iso()
        summary.transcript = "\n".join(texts)
        await self.services.notes_store_service.append_session(
            SessionRecord(date=summary.date, transcript=summary.transcript)
        )

        await self.services.logging_service.info(
            f"Stopped recording session for guild {guild_id}: "
            f"{len(summary.transcribed_speakers)} transcribed, "
            f"{len(summary.failed_speakers)} failed, "
            f"{len(summary.skipped_speakers)} empty"
        )
        return summary

    async def _drain_pipeline(self, guild_id: int, pipeline: CapturePipeline) -> str | None:
        """
        Close, encode, transcribe and delete one speaker's recording.

        Any error is confined to this speaker: it is logged and the speaker is
        reported as failed so the remaining speakers still get transcribed.

        Returns:
            The transcript text, "" for an empty recording, None on failure
        """
        filename = os.path.basename(pipeline.path)
        cleanup = [pipeline.path]
        try:
            pipeline.close()

            if pipeline.bytes_written == 0:
                await self.services.logging_service.info(
                    f"Skipping empty recording {filename} for speaker {pipeline.speaker_id}"
                )
                return ""

            upload_path = await self.services.ffmpeg_service_manager.encode_for_upload(
                pipeline.path
            )
            if upload_path not in cleanup:
                cleanup.append(upload_path)

            upload_size = await asyncio.to_thread(os.path.getsize, upload_path)
            if upload_size > UploadEncoding.UPLOAD_LIMIT_BYTES:
                await self.services.logging_service.warning(
                    f"Upload for speaker {pipeline.speaker_id} is {upload_size} bytes, "
                    f"over the {UploadEncoding.UPLOAD_LIMIT_BYTES} byte limit of hosted Whisper"
                )

            client = self.context.server_manager.speech_to_text_client
            text = await client.transcribe(upload_path, model=self.model)
            await self.services.logging_service.info(
                f"Transcribed {filename} for speaker {pipeline.speaker_id} "
                f"({pipeline.duration_ms} ms audio, {len(text)} characters)"
            )
            return text
        except Exception as e:
            await self.services.logging_service.error(
                f"Transcription failed for speaker {pipeline.speaker_id} in guild {guild_id} - "
                f"File: {filename}, Error Type: {type(e).__name__}, Details: {e}"
            )
            return None
        finally:
            for path in cleanup:
                try:
                    await self.services.recording_file_service_manager.delete_recording(path)
                except OSError as e:
                    await self.services.logging_service.error(
                        f"Failed to delete recording {os.path.basename(path)}: {e}"
                    )

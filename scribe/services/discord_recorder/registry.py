"""
Active recording sessions, one per guild.

The registry is an explicit object over an injected mapping so another
backing store can be swapped in; nothing reaches the sessions through a
module-level global.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, MutableMapping
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from scribe.services.discord_recorder.capture import CapturePipeline

if TYPE_CHECKING:
    import discord

logger = logging.getLogger(__name__)

# -------------------------------------------------------------- #
# Errors
# -------------------------------------------------------------- #


class RecordingSessionError(Exception):
    """Base class for recording session errors."""


class SessionAlreadyActiveError(RecordingSessionError):
    """Raised when a guild already has an active recording session."""

    def __init__(self, guild_id: int):
        super().__init__(f"Guild {guild_id} already has an active recording session")
        self.guild_id = guild_id


# -------------------------------------------------------------- #
# Recording Session
# -------------------------------------------------------------- #


class RecordingSession:
    """
    One guild's recording: the voice connection plus one capture pipeline per
    speaker, keyed by Discord user ID in order of first speech.
    """

    def __init__(
        self,
        guild_id: int,
        voice_client: discord.VoiceClient,
        path_factory: Callable[[int], str],
    ):
        self.guild_id = guild_id
        self.voice_client = voice_client
        self.speakers: dict[int, CapturePipeline] = {}
        self.started_at = datetime.now(timezone.utc)
        self.is_recording = True
        self._path_factory = path_factory

    # -------------------------------------------------------------- #
    # Capture Events
    # -------------------------------------------------------------- #

    def on_speaking_start(self, speaker_id: int) -> bool:
        """
        Open a capture pipeline for a speaker who has none yet.

        A repeat speaking-start for the same speaker is ignored so the open
        file is never re-created or truncated.

        Returns:
            True if a new pipeline was created
        """
        if not self.is_recording or speaker_id in self.speakers:
            return False

        pipeline = CapturePipeline(speaker_id, self._path_factory(speaker_id))
        pipeline.open()
        self.speakers[speaker_id] = pipeline
        logger.info(
            f"Capturing speaker {speaker_id} in guild {self.guild_id} to {pipeline.path}"
        )
        return True

    def handle_frame(self, speaker_id: int, frame: bytes) -> None:
        """Route one decoded frame; the first frame of a speaker is their speaking-start."""
        if not self.is_recording:
            return

        if speaker_id not in self.speakers:
            self.on_speaking_start(speaker_id)
        self.speakers[speaker_id].write(frame)

    # -------------------------------------------------------------- #
    # Teardown
    # -------------------------------------------------------------- #

    async def destroy_connection(self) -> None:
        """Stop receiving audio and drop the voice connection."""
        self.is_recording = False

        if getattr(self.voice_client, "recording", False):
            self.voice_client.stop_recording()
        await self.voice_client.disconnect(force=True)

    def close_all(self) -> None:
        for pipeline in self.speakers.values():
            pipeline.close()


# -------------------------------------------------------------- #
# Session Registry
# -------------------------------------------------------------- #


class SessionRegistry:
    """Maps guild IDs to their active RecordingSession."""

    def __init__(self, storage: MutableMapping[int, RecordingSession] | None = None):
        self._sessions = storage if storage is not None else {}

    def start(
        self,
        guild_id: int,
        voice_client: discord.VoiceClient,
        path_factory: Callable[[int], str],
    ) -> RecordingSession:
        """
        Create and register a session for a guild.

        Raises:
            SessionAlreadyActiveError: If the guild is already recording
        """
        if guild_id in self._sessions:
            raise SessionAlreadyActiveError(guild_id)

        session = RecordingSession(guild_id, voice_client, path_factory)
        self._sessions[guild_id] = session
        return session

    def get(self, guild_id: int) -> RecordingSession | None:
        return self._sessions.get(guild_id)

    def remove(self, guild_id: int) -> RecordingSession | None:
        """Forget a session. Releasing its resources is the caller's job."""
        return self._sessions.pop(guild_id, None)

    def guild_ids(self) -> list[int]:
        return list(self._sessions.keys())

    def __contains__(self, guild_id: object) -> bool:
        return guild_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

import asyncio
from collections.abc import MutableMapping
from typing import TYPE_CHECKING

import discord

if TYPE_CHECKING:
    from scribe.context import Context

from scribe.services.discord_recorder.capture import CaptureSink
from scribe.services.discord_recorder.registry import RecordingSession, SessionRegistry
from scribe.services.manager import BaseDiscordRecorderServiceManager, ServicesManager

# -------------------------------------------------------------- #
# Discord Recorder Service Manager
# -------------------------------------------------------------- #


class DiscordRecorderManagerService(BaseDiscordRecorderServiceManager):
    """
    Starts recording sessions and owns the session registry.

    Stopping a session belongs to the transcription manager, which drains the
    recordings; this service only aborts sessions on shutdown.
    """

    def __init__(
        self,
        context: "Context",
        storage: MutableMapping[int, RecordingSession] | None = None,
    ):
        super().__init__(context)
        self._registry = SessionRegistry(storage)

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    # -------------------------------------------------------------- #
    # Manager Methods
    # -------------------------------------------------------------- #

    async def on_start(self, services_manager: ServicesManager) -> None:
        await super().on_start(services_manager)
        await self.services.logging_service.info("Discord Recorder Service Manager started")

    async def on_close(self) -> None:
        """Abort every active session so no voice connection outlives the bot."""
        for guild_id in self._registry.guild_ids():
            await self.abort_session(guild_id)

        await self.services.logging_service.info("Discord Recorder Service Manager stopped")

    # -------------------------------------------------------------- #
    # Session Management Methods
    # -------------------------------------------------------------- #

    async def start_session(
        self,
        discord_voice_client: discord.VoiceClient,
        guild_id: int,
    ) -> RecordingSession:
        """
        Register a session for the guild and start receiving audio.

        Args:
            discord_voice_client: Voice client already connected to the channel
            guild_id: Discord guild ID

        Returns:
            The new session

        Raises:
            SessionAlreadyActiveError: If the guild is already recording
        """
        session = self._registry.start(
            guild_id,
            discord_voice_client,
            self.services.recording_file_service_manager.build_capture_path,
        )

        sink = CaptureSink(session.handle_frame, asyncio.get_running_loop())
        try:
            discord_voice_client.start_recording(
                sink, self._recording_finished_callback, guild_id
            )
        except Exception:
            self._registry.remove(guild_id)
            raise

        await self.services.logging_service.info(
            f"Started recording session for guild {guild_id} "
            f"in channel {getattr(discord_voice_client.channel, 'id', 'unknown')}"
        )
        return session

    def get_active_session(self, guild_id: int) -> RecordingSession | None:
        return self._registry.get(guild_id)

    def is_recording(self, guild_id: int) -> bool:
        return guild_id in self._registry

    async def abort_session(self, guild_id: int) -> bool:
        """
        Tear a session down without transcribing it.

        The connection is destroyed, every capture file is closed and deleted.

        Returns:
            False if the guild had no session
        """
        session = self._registry.remove(guild_id)
        if session is None:
            return False

        try:
            await session.destroy_connection()
        except discord.DiscordException as e:
            await self.services.logging_service.error(
                f"Failed to disconnect voice client for guild {guild_id}: {e}"
            )
        finally:
            session.close_all()

        for pipeline in session.speakers.values():
            await self.services.recording_file_service_manager.delete_recording(pipeline.path)

        await self.services.logging_service.warning(
            f"Aborted recording session for guild {guild_id} "
            f"({len(session.speakers)} speaker recording(s) discarded)"
        )
        return True

    # -------------------------------------------------------------- #
    # Callbacks
    # -------------------------------------------------------------- #

    async def _recording_finished_callback(self, _sink: CaptureSink, guild_id: int) -> None:
        """Called by py-cord once the receive thread has stopped."""
        await self.services.logging_service.debug(
            f"Recording finished callback for guild {guild_id}"
        )

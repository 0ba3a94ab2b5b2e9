import asyncio
import logging

import discord
from discord.ext import commands

from scribe.context import Context
from scribe.services.discord_recorder.registry import SessionAlreadyActiveError

logger = logging.getLogger(__name__)

NO_VOICE_REPLY = "Join a voice channel first."
ALREADY_RECORDING_REPLY = "A recording is already running in this server."
RECORDING_STARTED_REPLY = "Recording started."
NOTHING_RECORDING_REPLY = "Nothing is being recorded."
RECORDING_SAVED_REPLY = "Recording stopped and saved."

VOICE_CONNECT_TIMEOUT = 10.0


# -------------------------------------------------------------- #
# Cog
# -------------------------------------------------------------- #


class Voice(commands.Cog):
    """Voice recording commands."""

    def __init__(self, context: Context):
        self.context = context
        self.bot = context.bot
        self.server = context.server_manager
        self.services = context.services_manager

    # -------------------------------------------------------------- #
    # Utils
    # -------------------------------------------------------------- #

    def find_user_vc(self, ctx: discord.ApplicationContext) -> discord.VoiceChannel | None:
        """Find the voice channel the invoking member is in.

        Returns:
            Voice channel if the member is connected, None otherwise
        """
        voice = getattr(ctx.author, "voice", None)
        return voice.channel if voice else None

    async def connect_to_vc(
        self,
        target_channel: discord.VoiceChannel,
    ) -> tuple[discord.VoiceClient | None, str | None]:
        """Connect to a voice channel.

        Returns:
            Tuple of (VoiceClient or None, Error message or None)
        """
        try:
            voice_client = await target_channel.connect(timeout=VOICE_CONNECT_TIMEOUT)
            return voice_client, None
        except (discord.DiscordException, asyncio.TimeoutError) as e:
            logger.warning(f"Failed to connect to voice channel {target_channel.id}: {e}")
            return None, f"Failed to connect to voice channel: {e}"

    # -------------------------------------------------------------- #
    # Slash Commands
    # -------------------------------------------------------------- #

    @commands.slash_command(
        name="start_recording", description="Start recording the voice channel you are in"
    )
    async def start_recording(self, ctx: discord.ApplicationContext) -> None:
        """Join the caller's voice channel and start capturing each speaker."""
        voice_channel = self.find_user_vc(ctx)
        if ctx.guild is None or voice_channel is None:
            await ctx.respond(NO_VOICE_REPLY, ephemeral=True)
            return

        recorder = self.services.discord_recorder_service_manager
        if recorder.get_active_session(ctx.guild.id) is not None:
            await ctx.respond(ALREADY_RECORDING_REPLY, ephemeral=True)
            return

        logger.info(
            f"start_recording called by {ctx.author.id} in guild {ctx.guild.id}, "
            f"channel {voice_channel.id}"
        )

        # connecting can outlast the interaction window
        await ctx.defer()

        voice_client, error = await self.connect_to_vc(voice_channel)
        if voice_client is None:
            await ctx.respond(error, ephemeral=True)
            return

        try:
            await recorder.start_session(voice_client, ctx.guild.id)
        except SessionAlreadyActiveError:
            # another start won the race while we were connecting; its client is shared
            await ctx.respond(ALREADY_RECORDING_REPLY, ephemeral=True)
            return
        except Exception:
            await voice_client.disconnect(force=True)
            raise

        await ctx.respond(RECORDING_STARTED_REPLY)

    @commands.slash_command(
        name="stop_recording", description="Stop recording and save the transcript"
    )
    async def stop_recording(self, ctx: discord.ApplicationContext) -> None:
        """Stop the guild's recording, transcribe it and append it to the notes."""
        recorder = self.services.discord_recorder_service_manager
        if ctx.guild is None or recorder.get_active_session(ctx.guild.id) is None:
            await ctx.respond(NOTHING_RECORDING_REPLY, ephemeral=True)
            return

        # transcription runs one speaker at a time and can take a while
        await ctx.defer()

        summary = await self.services.transcription_manager.stop_session(ctx.guild.id)
        if summary is None:
            await ctx.respond(NOTHING_RECORDING_REPLY, ephemeral=True)
            return

        logger.info(
            f"stop_recording saved {summary.speaker_count} speaker(s) for guild {ctx.guild.id} "
            f"({len(summary.failed_speakers)} failed)"
        )
        await ctx.respond(RECORDING_SAVED_REPLY)


def setup(context: Context) -> Voice:
    voice = Voice(context)
    context.bot.add_cog(voice)
    return voice

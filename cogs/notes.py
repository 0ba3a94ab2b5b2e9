import logging

import discord
from discord.ext import commands

from scribe.context import Context
from scribe.utils import format_character_note

logger = logging.getLogger(__name__)


# -------------------------------------------------------------- #
# Cog
# -------------------------------------------------------------- #


class Notes(commands.Cog):
    """Campaign notes lookup."""

    def __init__(self, context: Context):
        self.context = context
        self.bot = context.bot
        self.services = context.services_manager

    @commands.slash_command(name="get_notes", description="Look up the notes for a character")
    async def get_notes(
        self,
        ctx: discord.ApplicationContext,
        character: str = discord.Option(
            str, description="Name of the character to look up", required=True
        ),
    ) -> None:
        note = await self.services.notes_store_service.get_character_note(character)
        if note is None:
            logger.info(f"No notes found for character {character!r}")
        await ctx.respond(format_character_note(character, note))


def setup(context: Context) -> Notes:
    notes = Notes(context)
    context.bot.add_cog(notes)
    return notes

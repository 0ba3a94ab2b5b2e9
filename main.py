# Main File

import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path

import discord

from scribe.config import load_settings
from scribe.constructor import resolve_environment
from scribe.context import Context
from scribe.server.constructor import construct_server_manager
from scribe.services.constructor import construct_services_manager

settings = load_settings()

# Configure Python's built-in logging for server initialization
# (before AsyncLoggingService is available)
logs_dir = Path(settings.log_dir)
logs_dir.mkdir(parents=True, exist_ok=True)
timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
log_file = logs_dir / f"app_{timestamp}.log"

logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(log_file, mode="a", encoding="utf-8"),
    ],
    force=True,
)

# -------------------------------------------------------------- #
# Discord Bot Setup
# -------------------------------------------------------------- #

intents = discord.Intents.default()
intents.voice_states = True

# Commands register instantly in DISCORD_GUILD_IDS, globally (up to 1 hour) otherwise
bot = discord.Bot(intents=intents, debug_guilds=settings.guild_ids or None)


async def load_cogs(context: Context):
    """Load all cog extensions with context."""
    from cogs.notes import setup as setup_notes
    from cogs.voice import setup as setup_voice

    setup_voice(context)
    await context.services_manager.logging_service.info("Loaded cogs.voice")

    setup_notes(context)
    await context.services_manager.logging_service.info("Loaded cogs.notes")


# -------------------------------------------------------------- #
# Events
# -------------------------------------------------------------- #


@bot.event
async def on_ready():
    """Called when the bot is ready and connected to Discord."""
    logger = bot.context.services_manager.logging_service

    await logger.info(f"Logged in as {bot.user.name} (ID: {bot.user.id})")
    await logger.info(f"Connected to {len(bot.guilds)} guild(s):")
    for guild in bot.guilds:
        await logger.info(f"  {guild.name} (ID: {guild.id})")

    await logger.info("Registered slash commands:")
    slash_commands = [
        cmd for cmd in bot.pending_application_commands if isinstance(cmd, discord.SlashCommand)
    ]
    for cmd in slash_commands:
        await logger.info(f"  /{cmd.name} - {cmd.description}")

    if settings.guild_ids:
        await logger.info(f"Commands registered for guilds: {settings.guild_ids}")
    else:
        await logger.info("Commands registered globally, they can take up to an hour to appear")


@bot.event
async def on_application_command_error(
    ctx: discord.ApplicationContext, error: discord.DiscordException
):
    """Handle errors in application commands."""
    logger = bot.context.services_manager.logging_service
    original = getattr(error, "original", error)
    await logger.error(
        f"Error in command {ctx.command.name}: {type(original).__name__}: {original}"
    )

    message = f"An error occurred: {original}"
    if ctx.response.is_done():
        await ctx.followup.send(message, ephemeral=True)
    else:
        await ctx.respond(message, ephemeral=True)


# -------------------------------------------------------------- #
# Run Bot
# -------------------------------------------------------------- #


async def main():
    """Main function to start services, load cogs and run the bot."""
    logging.info("Syncing services...")

    if not settings.discord_token:
        logging.error("DISCORD_API_TOKEN not found in environment variables")
        return

    environment = resolve_environment(settings.environment)
    logging.info(f"Running in {environment.value} mode")

    context = Context(settings=settings)

    server_manager = construct_server_manager(environment, context)
    context.set_server_manager(server_manager)
    await server_manager.connect_all()
    logging.info("Connected all servers.")

    # Use the same log file that was created for built-in logging
    services_manager = construct_services_manager(
        environment,
        context=context,
        log_file=log_file.name,
    )
    context.set_services_manager(services_manager)
    await services_manager.initialize_all()

    logger = services_manager.logging_service
    await logger.info("Initialized all services.")

    context.set_bot(bot)
    bot.context = context

    async with bot:
        await load_cogs(context)
        try:
            await bot.start(settings.discord_token)
        finally:
            # abort open recordings while voice connections can still be closed
            await services_manager.shutdown_all(timeout=60.0)


if __name__ == "__main__":
    asyncio.run(main())

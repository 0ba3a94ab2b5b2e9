from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import discord

    from scribe.config import Settings
    from scribe.server.server import ServerManager
    from scribe.services.manager import ServicesManager

# -------------------------------------------------------------- #
# Context Class
# -------------------------------------------------------------- #


class Context:
    """
    Central context object that provides access to the external server handlers,
    the services, the loaded settings and the Discord bot instance.

    Services reach each other through this object instead of importing each
    other directly.
    """

    def __init__(self, settings: "Settings | None" = None):
        self.settings = settings
        self.server_manager: ServerManager | None = None
        self.services_manager: ServicesManager | None = None
        self.bot: discord.Bot | None = None
        self._shutting_down: bool = False

    def set_server_manager(self, server_manager: "ServerManager") -> None:
        """Set the server manager instance."""
        self.server_manager = server_manager

    def set_services_manager(self, services_manager: "ServicesManager") -> None:
        """Set the services manager instance."""
        self.services_manager = services_manager

    def set_bot(self, bot: "discord.Bot") -> None:
        """Set the Discord bot instance."""
        self.bot = bot

    def is_shutting_down(self) -> bool:
        """Check if the application is shutting down."""
        return self._shutting_down

    def mark_shutdown_started(self) -> None:
        """Mark that shutdown has been initiated."""
        self._shutting_down = True

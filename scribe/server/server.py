"""
Server handlers for external services.

The bot talks to one external server, the speech-to-text service. The manager
keeps the same connect/disconnect lifecycle so more handlers can be added
without touching callers.
"""

import logging
from typing import TYPE_CHECKING

from scribe.server.services import BaseServerHandler, SpeechToTextHandler

if TYPE_CHECKING:
    from scribe.context import Context

logger = logging.getLogger(__name__)

# -------------------------------------------------------------- #
# Server Manager
# -------------------------------------------------------------- #


class ServerManager:
    """Manager for handling external server instances."""

    def __init__(self, context: "Context", speech_to_text_client: SpeechToTextHandler):
        self.context = context
        self._initialized = False
        self._speech_to_text_client = speech_to_text_client

        self._servers: dict[str, BaseServerHandler] = {
            "speech_to_text": speech_to_text_client,
        }

    # ------------------------------------------------------ #
    # Server Management
    # ------------------------------------------------------ #

    async def connect_all(self) -> None:
        """Connect to all servers."""
        logger.info("[ServerManager] Connecting all servers...")

        for server in self._servers.values():
            logger.info(f"[ServerManager] Connecting to '{server.name}' server...")
            await server.connect()
            await server.on_startup()
            logger.info(f"[ServerManager] '{server.name}' server is ready.")

        self._initialized = True
        logger.info("[ServerManager] All servers connected successfully.")

    async def disconnect_all(self) -> None:
        """Disconnect from all servers."""
        logger.info("[ServerManager] Disconnecting all servers...")

        for server in self._servers.values():
            await server.on_close()
            await server.disconnect()
            logger.info(f"[ServerManager] '{server.name}' server disconnected.")

        self._initialized = False
        logger.info("[ServerManager] All servers disconnected successfully.")

    async def health_check_all(self) -> dict[str, bool]:
        """Check health of all registered servers."""
        results = {}
        for name, server in self._servers.items():
            results[name] = await server.health_check()
        return results

    def list_servers(self) -> list[str]:
        """Get list of all registered server names."""
        return list(self._servers.keys())

    # ------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------ #

    @property
    def speech_to_text_client(self) -> SpeechToTextHandler:
        """Get the speech-to-text client."""
        return self._speech_to_text_client

    @property
    def is_initialized(self) -> bool:
        """Check if the server manager is initialized."""
        return self._initialized

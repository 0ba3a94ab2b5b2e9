from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from scribe.context import Context
    from scribe.services.discord_recorder.registry import RecordingSession, SessionRegistry
    from scribe.services.notes_store.manager import NotesDocument, SessionRecord
    from scribe.services.transcription_manager.manager import SessionSummary


# -------------------------------------------------------------- #
# Services Manager Class
# -------------------------------------------------------------- #


class ServicesManager:
    """Manager for handling multiple service instances."""

    def __init__(
        self,
        context: Context,
        logging_service: BaseAsyncLoggingService,
        file_service_manager: BaseFileServiceManager,
        recording_file_service_manager: BaseRecordingFileServiceManager,
        ffmpeg_service_manager: BaseFFmpegServiceManager,
        notes_store_service: BaseNotesStoreServiceManager,
        discord_recorder_service_manager: BaseDiscordRecorderServiceManager,
        transcription_manager: BaseTranscriptionServiceManager,
    ):
        self.context = context
        self.server = context.server_manager

        self.logging_service = logging_service

        # file services
        self.file_service_manager = file_service_manager
        self.recording_file_service_manager = recording_file_service_manager
        self.notes_store_service = notes_store_service
        self.ffmpeg_service_manager = ffmpeg_service_manager

        # recording and transcription
        self.discord_recorder_service_manager = discord_recorder_service_manager
        self.transcription_manager = transcription_manager

    async def initialize_all(self) -> None:
        """Initialize all service managers, dependencies first."""
        await self.logging_service.on_start(self)

        await self.file_service_manager.on_start(self)
        await self.recording_file_service_manager.on_start(self)
        await self.notes_store_service.on_start(self)
        await self.ffmpeg_service_manager.on_start(self)

        await self.discord_recorder_service_manager.on_start(self)
        await self.transcription_manager.on_start(self)

    async def shutdown_all(self, timeout: float = 30.0) -> None:
        """
        Shut down all service managers.

        Active recording sessions are aborted first so voice connections are
        released before anything else closes. Logging is always flushed last,
        even if an earlier phase fails.

        Args:
            timeout: Maximum time in seconds for the recorder phase
        """
        import asyncio

        await self.logging_service.info("Starting shutdown of all services...")

        if self.context:
            self.context.mark_shutdown_started()

        try:
            await self.logging_service.info("Phase 1: Aborting active recording sessions...")
            await asyncio.wait_for(self.discord_recorder_service_manager.on_close(), timeout=timeout)

            await self.logging_service.info("Phase 2: Closing transcription and storage services...")
            await self.transcription_manager.on_close()
            await self.ffmpeg_service_manager.on_close()
            await self.notes_store_service.on_close()
            await self.recording_file_service_manager.on_close()
            await self.file_service_manager.on_close()

            await self.logging_service.info("Phase 3: Disconnecting from all servers...")
            if self.context and self.context.server_manager:
                await self.context.server_manager.disconnect_all()

            await self.logging_service.info("Shutdown completed successfully")

        except asyncio.TimeoutError:
            await self.logging_service.error(f"Shutdown timeout exceeded ({timeout}s)")
        except Exception as e:
            await self.logging_service.error(f"Error during shutdown: {e}")

        try:
            await asyncio.wait_for(self.logging_service.on_close(), timeout=5.0)
        except asyncio.TimeoutError:
            pass


# -------------------------------------------------------------- #
# Base Service Manager Class
# -------------------------------------------------------------- #


class Manager(ABC):
    """Base class for all manager services."""

    def __init__(self, context: Context):
        self.context = context
        self.server = context.server_manager
        self.services: ServicesManager | None = None

        # check if server has been initialized
        if self.server is not None and not self.server.is_initialized:
            raise RuntimeError(
                "ServerManager must be initialized before creating Manager instances."
            )

    # -------------------------------------------------------------- #
    # Manager Methods
    # -------------------------------------------------------------- #

    async def on_start(self, services: ServicesManager) -> None:
        """Actions to perform on manager start."""
        self.services = services

    async def on_close(self) -> None:
        """Actions to perform on manager close."""
        pass


# -------------------------------------------------------------- #
# Specialized Manager Classes
# -------------------------------------------------------------- #


class BaseAsyncLoggingService(Manager):
    """Specialized manager for asynchronous logging services."""

    @abstractmethod
    async def log(self, message: str, level: str = "INFO") -> None:
        """Log a message asynchronously."""
        pass

    @abstractmethod
    async def debug(self, message: str) -> None:
        """Log a debug message asynchronously."""
        pass

    @abstractmethod
    async def info(self, message: str) -> None:
        """Log an info message asynchronously."""
        pass

    @abstractmethod
    async def warning(self, message: str) -> None:
        """Log a warning message asynchronously."""
        pass

    @abstractmethod
    async def error(self, message: str) -> None:
        """Log an error message asynchronously."""
        pass

    @abstractmethod
    async def critical(self, message: str) -> None:
        """Log a critical message asynchronously."""
        pass


class BaseFileServiceManager(Manager):
    """Specialized manager for file services."""

    @abstractmethod
    async def read_file(self, filepath: str) -> bytes:
        """Read data from a file."""
        pass

    @abstractmethod
    async def write_file(self, filepath: str, data: bytes) -> None:
        """Atomically create or replace a file."""
        pass

    @abstractmethod
    async def update_file(
        self, filepath: str, transform: Callable[[bytes | None], bytes]
    ) -> bytes:
        """Read-modify-write a file under its lock."""
        pass

    @abstractmethod
    async def delete_file(self, filepath: str) -> None:
        """Delete a file."""
        pass

    @abstractmethod
    async def file_exists(self, filepath: str) -> bool:
        """Check if a file exists."""
        pass


class BaseRecordingFileServiceManager(Manager):
    """Specialized manager for temporary recording files."""

    @abstractmethod
    def get_recording_storage_path(self) -> str:
        """Get the absolute recordings directory."""
        pass

    @abstractmethod
    def build_capture_path(self, speaker_id: int) -> str:
        """Build a unique capture file path for a speaker."""
        pass

    @abstractmethod
    async def delete_recording(self, path: str) -> bool:
        """Delete a finished recording file."""
        pass


class BaseNotesStoreServiceManager(Manager):
    """Specialized manager for the notes document."""

    @abstractmethod
    async def load(self) -> NotesDocument:
        """Load the notes document from disk."""
        pass

    @abstractmethod
    async def save(self, document: NotesDocument) -> None:
        """Rewrite the notes document."""
        pass

    @abstractmethod
    async def get_character_note(self, name: str) -> str | None:
        """Look up a character note."""
        pass

    @abstractmethod
    async def append_session(self, record: SessionRecord) -> NotesDocument:
        """Append a session record and persist the document."""
        pass


class BaseDiscordRecorderServiceManager(Manager):
    """Specialized manager for Discord recorder services."""

    @property
    @abstractmethod
    def registry(self) -> SessionRegistry:
        """Registry of active sessions."""
        pass

    @abstractmethod
    async def start_session(self, discord_voice_client: Any, guild_id: int) -> RecordingSession:
        """Start a new recording session."""
        pass

    @abstractmethod
    def get_active_session(self, guild_id: int) -> RecordingSession | None:
        """Get the active session for a guild."""
        pass


class BaseTranscriptionServiceManager(Manager):
    """Specialized manager for the stop-and-transcribe flow."""

    @abstractmethod
    async def stop_session(self, guild_id: int) -> SessionSummary | None:
        """Stop a session, transcribe its recordings and persist the transcript."""
        pass


class BaseFFmpegServiceManager(Manager):
    """Specialized manager for FFmpeg services."""

    @abstractmethod
    def get_ffmpeg_path(self) -> str:
        """Get the FFmpeg executable path."""
        pass

    @abstractmethod
    async def encode_for_upload(self, input_path: str) -> str:
        """Encode a finished recording for upload and return the encoded path."""
        pass

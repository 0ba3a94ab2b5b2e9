from abc import ABC, abstractmethod

# -------------------------------------------------------------- #
# Errors
# -------------------------------------------------------------- #


class TranscriptionServiceError(RuntimeError):
    """Raised when the speech-to-text service rejects or fails a request."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


# -------------------------------------------------------------- #
# Base Server Handler
# -------------------------------------------------------------- #


class BaseServerHandler(ABC):
    """Abstract base class for all server handlers."""

    def __init__(self, name: str):
        self.name = name
        self._connected = False

    # -------------------------------------------------------------- #
    # Handler Methods
    # -------------------------------------------------------------- #

    async def on_startup(self) -> None:
        """Actions to perform on server startup."""
        pass

    async def on_close(self) -> None:
        """Actions to perform on server close."""
        pass

    # -------------------------------------------------------------- #
    # Abstract Methods
    # -------------------------------------------------------------- #

    @abstractmethod
    async def connect(self) -> None:
        """Establish connection to the server."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close connection to the server."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the server is healthy and responding."""
        pass

    @property
    def is_connected(self) -> bool:
        """Check if currently connected to the server."""
        return self._connected


# -------------------------------------------------------------- #
# Speech-to-Text Handler
# -------------------------------------------------------------- #


class SpeechToTextHandler(BaseServerHandler):
    """Speech-to-text server handler."""

    def __init__(self, name: str, endpoint: str, model: str):
        super().__init__(name)
        self.endpoint = endpoint
        self.model = model

    @abstractmethod
    async def transcribe(self, audio_path: str, model: str | None = None) -> str:
        """
        Transcribe an audio file.

        Args:
            audio_path: Path to a readable audio file
            model: Model identifier, defaults to the handler's configured model

        Returns:
            Transcribed text

        Raises:
            TranscriptionServiceError: If the service fails the request
        """
        pass

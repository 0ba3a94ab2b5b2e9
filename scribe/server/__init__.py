"""Handlers for external server connections."""

from .server import ServerManager
from .services import BaseServerHandler, SpeechToTextHandler, TranscriptionServiceError

__all__ = [
    "BaseServerHandler",
    "SpeechToTextHandler",
    "TranscriptionServiceError",
    "ServerManager",
]

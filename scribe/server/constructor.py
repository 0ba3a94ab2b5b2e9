from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from scribe.context import Context

from scribe.config import Settings, load_settings
from scribe.constructor import ServerManagerType
from scribe.server.server import ServerManager

# -------------------------------------------------------------- #
# Constructor for Dynamic Creation of Server Manager
# -------------------------------------------------------------- #


def load_speech_to_text_client(settings: Settings):
    """Load the real speech-to-text client for development and production."""
    from scribe.server.common.speech_to_text import construct_speech_to_text_client

    if not settings.openai_api_key:
        raise ValueError("Missing required OPENAI_API_KEY environment variable.")

    return construct_speech_to_text_client(
        endpoint=settings.transcription_endpoint,
        model=settings.transcription_model,
        api_key=settings.openai_api_key,
    )


def load_mock_speech_to_text_client(settings: Settings):
    """Load the mock speech-to-text client for tests."""
    from scribe.server.testing.speech_to_text import MockSpeechToTextClient

    return MockSpeechToTextClient(model=settings.transcription_model)


def construct_server_manager(client_type: ServerManagerType, context: "Context") -> ServerManager:
    """Construct and return a ServerManager for the given environment."""
    settings = context.settings or load_settings()

    if client_type in (ServerManagerType.DEVELOPMENT, ServerManagerType.PRODUCTION):
        speech_to_text_client = load_speech_to_text_client(settings)
    elif client_type == ServerManagerType.TESTING:
        speech_to_text_client = load_mock_speech_to_text_client(settings)
    else:
        raise ValueError(f"Unsupported ServerManagerType: {client_type}")

    return ServerManager(context=context, speech_to_text_client=speech_to_text_client)

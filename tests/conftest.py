"""
Pytest configuration and shared fixtures.

This file is automatically loaded by pytest and provides
fixtures and configuration that can be used across all tests.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

# Configure pytest-asyncio
pytest_plugins = ("pytest_asyncio",)


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "slow: Slow running tests")


# ============================================================================
# Logging Fixtures
# ============================================================================


@pytest.fixture(scope="session")
def shared_test_log_file(tmp_path_factory) -> str:
    """
    Create a single shared log file for all tests in the session.

    Returns:
        str: Absolute path to the shared log file
    """
    from datetime import datetime

    logs_dir = tmp_path_factory.mktemp("logs")
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return str(logs_dir / f"test_run_{timestamp}.log")


# ============================================================================
# Mock Discord Fixtures
# ============================================================================


@pytest.fixture
def mock_discord_bot() -> MagicMock:
    """Create a mock Discord bot instance."""
    bot = MagicMock()
    bot.user = MagicMock()
    bot.user.name = "TestBot"
    bot.user.id = 123456789
    bot.guilds = []
    return bot


@pytest.fixture
def mock_discord_context() -> MagicMock:
    """Create a mock Discord application context (py-cord)."""
    ctx = MagicMock()
    ctx.author = MagicMock()
    ctx.author.name = "TestUser"
    ctx.author.id = 987654321
    ctx.author.voice = None
    ctx.guild = MagicMock()
    ctx.guild.id = 111222333
    ctx.guild.name = "Test Guild"
    ctx.defer = AsyncMock()
    ctx.respond = AsyncMock()
    ctx.followup = MagicMock()
    ctx.followup.send = AsyncMock()
    return ctx


@pytest.fixture
def mock_voice_client() -> MagicMock:
    """Create a mock connected voice client that is not yet recording."""
    voice_client = MagicMock()
    voice_client.recording = False
    voice_client.channel = MagicMock()
    voice_client.channel.id = 444555666
    voice_client.disconnect = AsyncMock()

    def start_recording(_sink, _callback, *_args):
        voice_client.recording = True

    def stop_recording():
        voice_client.recording = False

    voice_client.start_recording = MagicMock(side_effect=start_recording)
    voice_client.stop_recording = MagicMock(side_effect=stop_recording)
    return voice_client


@pytest.fixture
def mock_voice_channel(mock_voice_client: MagicMock) -> MagicMock:
    """Create a mock Discord voice channel whose connect yields mock_voice_client."""
    channel = MagicMock()
    channel.id = 444555666
    channel.name = "Test Voice Channel"
    channel.connect = AsyncMock(return_value=mock_voice_client)
    return channel


@pytest.fixture
def mock_discord_user_in_voice(
    mock_discord_context: MagicMock,
    mock_voice_channel: MagicMock,
) -> MagicMock:
    """Create a mock Discord context whose author is in a voice channel."""
    mock_discord_context.author.voice = MagicMock()
    mock_discord_context.author.voice.channel = mock_voice_channel
    return mock_discord_context


# ============================================================================
# Testing Environment Fixtures
# ============================================================================


@pytest.fixture
def test_settings(tmp_path):
    """Settings pointing every path into the test's temporary directory."""
    from scribe.config import Settings

    return Settings(
        discord_token="test-token",
        guild_ids=[111222333],
        openai_api_key=None,
        notes_file_path=str(tmp_path / "data" / "notes.json"),
        recording_storage_path=str(tmp_path / "data" / "recordings"),
        log_dir=str(tmp_path / "logs"),
    )


@pytest.fixture
async def test_context(test_settings):
    """
    Create a test context instance.

    Yields:
        Context: Test context instance
    """
    from scribe.context import Context

    context = Context(settings=test_settings)
    yield context


@pytest.fixture
async def test_server_manager(test_context):
    """
    Create and connect a server manager backed by the mock speech-to-text client.

    Yields:
        ServerManager: Connected test server manager instance
    """
    from scribe.constructor import ServerManagerType
    from scribe.server.constructor import construct_server_manager

    server = construct_server_manager(ServerManagerType.TESTING, test_context)
    test_context.set_server_manager(server)
    await server.connect_all()

    yield server

    await server.disconnect_all()


@pytest.fixture
def mock_speech_to_text(test_server_manager):
    """The mock speech-to-text client of the test server manager."""
    return test_server_manager.speech_to_text_client


@pytest.fixture
async def services_manager(
    test_context, test_server_manager, shared_test_log_file  # noqa: ARG001
):
    """
    Create and initialize a services manager with temporary storage.

    Yields:
        ServicesManager: Initialized services manager instance
    """
    from scribe.constructor import ServerManagerType
    from scribe.services.constructor import construct_services_manager

    services = construct_services_manager(
        ServerManagerType.TESTING,
        context=test_context,
        log_file=shared_test_log_file,
        use_timestamp_logs=False,
    )
    test_context.set_services_manager(services)
    await services.initialize_all()

    yield services

    await services.logging_service.on_close()

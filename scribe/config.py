import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

# prefer a project-local .env.local file, then fall back to the process environment
load_dotenv(dotenv_path=".env.local")

# -------------------------------------------------------------- #
# Defaults
# -------------------------------------------------------------- #

DEFAULT_TRANSCRIPTION_ENDPOINT = "https://api.openai.com/v1"
DEFAULT_TRANSCRIPTION_MODEL = "whisper-1"
DEFAULT_NOTES_FILE_PATH = os.path.join("assets", "data", "notes.json")
DEFAULT_RECORDING_STORAGE_PATH = os.path.join("assets", "data", "recordings")
DEFAULT_LOG_DIR = "logs"
DEFAULT_ENVIRONMENT = "development"
DEFAULT_FFMPEG_PATH = "ffmpeg"
DEFAULT_UPLOAD_BITRATE = "24k"


# -------------------------------------------------------------- #
# Settings
# -------------------------------------------------------------- #


@dataclass
class Settings:
    """Runtime configuration read from the environment."""

    discord_token: str | None = None
    guild_ids: list[int] = field(default_factory=list)
    openai_api_key: str | None = None
    transcription_endpoint: str = DEFAULT_TRANSCRIPTION_ENDPOINT
    transcription_model: str = DEFAULT_TRANSCRIPTION_MODEL
    notes_file_path: str = DEFAULT_NOTES_FILE_PATH
    recording_storage_path: str = DEFAULT_RECORDING_STORAGE_PATH
    log_dir: str = DEFAULT_LOG_DIR
    environment: str = DEFAULT_ENVIRONMENT
    ffmpeg_path: str = DEFAULT_FFMPEG_PATH
    upload_bitrate: str = DEFAULT_UPLOAD_BITRATE


def parse_guild_ids(raw: str | None) -> list[int]:
    """Parse a comma-separated list of guild IDs, ignoring blanks.

    Raises:
        ValueError: If an entry is not an integer
    """
    if not raw:
        return []

    guild_ids = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        if not part.isdigit():
            raise ValueError(f"Invalid guild ID in DISCORD_GUILD_IDS: {part!r}")
        guild_ids.append(int(part))
    return guild_ids


def load_settings() -> Settings:
    """Build a Settings instance from environment variables."""
    return Settings(
        discord_token=os.getenv("DISCORD_API_TOKEN"),
        guild_ids=parse_guild_ids(os.getenv("DISCORD_GUILD_IDS")),
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        transcription_endpoint=os.getenv(
            "TRANSCRIPTION_ENDPOINT", DEFAULT_TRANSCRIPTION_ENDPOINT
        ).rstrip("/"),
        transcription_model=os.getenv("TRANSCRIPTION_MODEL", DEFAULT_TRANSCRIPTION_MODEL),
        notes_file_path=os.getenv("NOTES_FILE_PATH", DEFAULT_NOTES_FILE_PATH),
        recording_storage_path=os.getenv(
            "RECORDING_STORAGE_PATH", DEFAULT_RECORDING_STORAGE_PATH
        ),
        log_dir=os.getenv("LOG_DIR", DEFAULT_LOG_DIR),
        environment=os.getenv("SCRIBE_ENV", DEFAULT_ENVIRONMENT).strip().lower(),
        ffmpeg_path=os.getenv("FFMPEG_PATH", DEFAULT_FFMPEG_PATH),
        upload_bitrate=os.getenv("TRANSCRIPTION_AUDIO_BITRATE", DEFAULT_UPLOAD_BITRATE),
    )

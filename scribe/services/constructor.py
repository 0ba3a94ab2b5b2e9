import os
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from scribe.context import Context

from scribe.config import load_settings
from scribe.constructor import ServerManagerType
from scribe.services.discord_recorder.manager import DiscordRecorderManagerService
from scribe.services.ffmpeg_manager.manager import FFmpegManagerService
from scribe.services.file_manager.manager import FileManagerService
from scribe.services.logger import AsyncLoggingService
from scribe.services.manager import ServicesManager
from scribe.services.notes_store.manager import NotesStoreService
from scribe.services.recording_file_manager.manager import RecordingFileManagerService
from scribe.services.testing.ffmpeg_manager import MockFFmpegManagerService
from scribe.services.transcription_manager.manager import TranscriptionManagerService

# -------------------------------------------------------------- #
# Constructor for Dynamic Creation of Services Manager
# -------------------------------------------------------------- #


def construct_services_manager(
    service_type: ServerManagerType,
    context: "Context",
    storage_path: str | None = None,
    recording_storage_path: str | None = None,
    notes_file_path: str | None = None,
    default_logging_path: str | None = None,
    log_file: str | None = None,
    use_timestamp_logs: bool = True,
    console_output: bool | None = None,
) -> ServicesManager:
    """Construct a services manager for the given environment.

    Paths left as None come from the context's settings.

    Args:
        service_type: DEVELOPMENT, PRODUCTION or TESTING
        context: Context with an initialized server manager
        storage_path: Root directory for general file storage
        recording_storage_path: Directory for temporary speaker recordings
        notes_file_path: Location of the notes JSON document
        default_logging_path: Directory for log files
        log_file: Specific log file name (overrides use_timestamp_logs)
        use_timestamp_logs: Create a timestamped log file when log_file is None
        console_output: Echo log lines to stdout (off by default for TESTING)
    """
    if service_type not in ServerManagerType:
        raise ValueError(f"Unsupported service type: {service_type}")

    settings = context.settings or load_settings()

    recording_storage_path = recording_storage_path or settings.recording_storage_path
    notes_file_path = notes_file_path or settings.notes_file_path
    storage_path = storage_path or os.path.dirname(notes_file_path) or "."
    if console_output is None:
        console_output = service_type != ServerManagerType.TESTING

    logging_service = AsyncLoggingService(
        context=context,
        log_dir=default_logging_path or settings.log_dir,
        log_file=log_file,
        use_timestamp=use_timestamp_logs,
        console_output=console_output,
        min_level="DEBUG" if service_type != ServerManagerType.PRODUCTION else "INFO",
    )

    file_service_manager = FileManagerService(context=context, storage_path=storage_path)
    recording_file_service_manager = RecordingFileManagerService(
        context=context, recording_storage_path=recording_storage_path
    )
    notes_store_service = NotesStoreService(context=context, notes_file_path=notes_file_path)

    if service_type == ServerManagerType.TESTING:
        ffmpeg_service_manager = MockFFmpegManagerService(context=context)
    else:
        ffmpeg_service_manager = FFmpegManagerService(
            context=context,
            ffmpeg_path=settings.ffmpeg_path,
            bitrate=settings.upload_bitrate,
        )

    discord_recorder_service_manager = DiscordRecorderManagerService(context=context)
    transcription_manager = TranscriptionManagerService(context=context)

    return ServicesManager(
        context=context,
        logging_service=logging_service,
        file_service_manager=file_service_manager,
        recording_file_service_manager=recording_file_service_manager,
        ffmpeg_service_manager=ffmpeg_service_manager,
        notes_store_service=notes_store_service,
        discord_recorder_service_manager=discord_recorder_service_manager,
        transcription_manager=transcription_manager,
    )

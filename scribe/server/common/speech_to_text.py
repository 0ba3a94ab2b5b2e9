"""Speech-to-text client for OpenAI-compatible transcription endpoints."""

import logging
import os

import aiohttp

from scribe.server.services import SpeechToTextHandler, TranscriptionServiceError

logger = logging.getLogger(__name__)


class SpeechToTextClient(SpeechToTextHandler):
    """Client for a `/audio/transcriptions` endpoint (OpenAI or a self-hosted Whisper API)."""

    def __init__(
        self,
        name: str = "speech_to_text",
        endpoint: str = "https://api.openai.com/v1",
        model: str = "whisper-1",
        api_key: str | None = None,
    ):
        """
        Initialize speech-to-text client.

        Args:
            name: Name of the client
            endpoint: Base URL of the API (without the `/audio/transcriptions` suffix)
            model: Default model identifier
            api_key: Bearer token, omitted from requests when None
        """
        super().__init__(name, endpoint.rstrip("/"), model)
        self.api_key = api_key
        self.session: aiohttp.ClientSession | None = None

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            return {}
        return {"Authorization": f"Bearer {self.api_key}"}

    # -------------------------------------------------------------- #
    # Server Management
    # -------------------------------------------------------------- #

    async def connect(self) -> None:
        """Open the HTTP session and check the service is reachable."""
        try:
            self.session = aiohttp.ClientSession(headers=self._headers())
            if not await self.health_check():
                logger.warning(
                    f"Speech-to-text service at {self.endpoint} did not pass the health check; "
                    "transcriptions may fail"
                )
            self._connected = True
            logger.info(f"Connected to speech-to-text service at {self.endpoint}")
        except Exception as e:
            logger.error(f"Failed to connect to speech-to-text service: {e}")
            if self.session:
                await self.session.close()
                self.session = None
            raise

    async def disconnect(self) -> None:
        """Close the HTTP session."""
        if self.session:
            await self.session.close()
            self.session = None
        self._connected = False
        logger.info("Disconnected from speech-to-text service")

    async def health_check(self) -> bool:
        """Check that the model listing endpoint answers."""
        try:
            if not self.session:
                return False

            async with self.session.get(f"{self.endpoint}/models") as response:
                return response.status == 200
        except aiohttp.ClientError as e:
            logger.error(f"Speech-to-text health check failed: {e}")
            return False

    # -------------------------------------------------------------- #
    # Transcription
    # -------------------------------------------------------------- #

    async def transcribe(self, audio_path: str, model: str | None = None) -> str:
        """
        Upload an audio file and return the transcript text.

        Args:
            audio_path: Path to the audio file
            model: Model identifier, defaults to the client's model

        Returns:
            Transcribed text

        Raises:
            RuntimeError: If the client is not connected
            TranscriptionServiceError: If the service answers with an error
        """
        if not self.session:
            raise RuntimeError("Not connected to speech-to-text service")

        data = aiohttp.FormData()
        with open(audio_path, "rb") as f:
            data.add_field("file", f, filename=os.path.basename(audio_path))
            data.add_field("model", model or self.model)
            data.add_field("response_format", "json")

            async with self.session.post(
                f"{self.endpoint}/audio/transcriptions", data=data
            ) as response:
                body = await response.text()

                if response.status != 200:
                    raise TranscriptionServiceError(
                        f"Transcription failed ({response.status}): {body}",
                        status=response.status,
                    )

                try:
                    result = await response.json(content_type=None)
                except ValueError as e:
                    raise TranscriptionServiceError(
                        f"Transcription returned a non-JSON body: {body[:200]}"
                    ) from e

        text = result.get("text") if isinstance(result, dict) else None
        if not isinstance(text, str):
            raise TranscriptionServiceError("Transcription response has no 'text' field")
        return text


def construct_speech_to_text_client(
    endpoint: str,
    model: str,
    api_key: str | None,
) -> SpeechToTextClient:
    """
    Construct and return a speech-to-text client.

    Args:
        endpoint: Base URL of the API
        model: Default model identifier
        api_key: Bearer token

    Returns:
        Configured SpeechToTextClient instance
    """
    return SpeechToTextClient(
        name="speech_to_text", endpoint=endpoint, model=model, api_key=api_key
    )

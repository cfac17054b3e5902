"""Whisper transcription over OpenAI-compatible REST endpoints.

OpenAI and Groq both expose POST /audio/transcriptions with a multipart
upload; with response_format=text the body is the transcript itself.
"""

from __future__ import annotations

import logging
import os

import httpx

from voice_to_notion.asr.interface import ASREngine
from voice_to_notion.utils.errors import ServiceResponseError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 300.0


class WhisperEngine(ASREngine):
    """Whisper engine for an OpenAI-compatible transcription API.

    Args:
        api_key: Provider API key sent as a bearer token.
        base_url: API base URL without trailing slash.
        model: Whisper model name.
        timeout: Request timeout in seconds.
    """

    name = "whisper"
    display_name = "Whisper"
    default_base_url = ""
    default_model = ""

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        if not api_key:
            raise ValueError("api_key is required")
        self._api_key = api_key
        self._base_url = (base_url or self.default_base_url).rstrip("/")
        self._model = model or self.default_model
        self._timeout = timeout

    @property
    def model(self) -> str:
        return self._model

    async def transcribe(self, audio_path: str) -> str:
        """Upload one audio file and return its transcript.

        Raises:
            ServiceResponseError: On a non-2xx response.
            httpx.HTTPError: On transport failures.
            OSError: If the audio file cannot be read.
        """
        url = f"{self._base_url}/audio/transcriptions"
        headers = {"Authorization": f"Bearer {self._api_key}"}
        data = {"model": self._model, "response_format": "text"}
        file_name = os.path.basename(audio_path) or "audio.mp3"

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            with open(audio_path, "rb") as audio_file:
                files = {"file": (file_name, audio_file, "application/octet-stream")}
                response = await client.post(
                    url, headers=headers, data=data, files=files
                )

        if response.status_code != 200:
            raise ServiceResponseError(
                self.display_name,
                response.status_code,
                _error_detail(response),
            )

        text = response.text.strip()
        logger.debug(
            "%s returned %d characters for %s",
            self.display_name,
            len(text),
            file_name,
            extra={"provider": self.name},
        )
        return text


class OpenAIWhisperEngine(WhisperEngine):
    """OpenAI Whisper (whisper-1)."""

    name = "openai"
    display_name = "OpenAI"
    default_base_url = "https://api.openai.com/v1"
    default_model = "whisper-1"


class GroqWhisperEngine(WhisperEngine):
    """Groq-hosted Whisper large v3 turbo."""

    name = "groq"
    display_name = "Groq"
    default_base_url = "https://api.groq.com/openai/v1"
    default_model = "whisper-large-v3-turbo"


def _error_detail(response: httpx.Response) -> str:
    """Extract an error message from an OpenAI-style error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text.strip()[:500]
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return response.text.strip()[:500]

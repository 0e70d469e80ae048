"""Speech-to-text via the OpenAI Whisper API."""
import logging
from pathlib import Path
from typing import Optional

import httpx

from promptcut.config import settings
from promptcut.errors import TranscriptionError
from promptcut.services.openai_http import auth_headers, extract_error_detail

logger = logging.getLogger(__name__)


class WhisperTranscriber:
    """Uploads an audio file and returns the transcript as SRT."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = api_key or settings.openai_api_key
        self.base_url = (base_url or settings.openai_base_url).rstrip("/")
        self.model = model or settings.transcription_model
        self.timeout = timeout or settings.transcription_timeout_seconds

    async def transcribe(self, audio_path: Path) -> str:
        if not self.api_key:
            raise TranscriptionError("OpenAI API key is not configured")

        url = f"{self.base_url}/audio/transcriptions"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                with open(audio_path, "rb") as audio_file:
                    response = await client.post(
                        url,
                        headers=auth_headers(self.api_key),
                        data={"model": self.model, "response_format": "srt"},
                        files={"file": (audio_path.name, audio_file, "audio/mpeg")},
                    )
        except httpx.TimeoutException as e:
            raise TranscriptionError("Transcription request timed out") from e
        except httpx.HTTPError as e:
            raise TranscriptionError(f"Transcription request failed: {e}") from e
        except OSError as e:
            raise TranscriptionError(f"Could not read {audio_path.name}: {e}") from e

        if response.status_code != 200:
            detail = extract_error_detail(response)
            logger.error(f"Transcription rejected ({response.status_code}): {detail}")
            raise TranscriptionError(f"Transcription failed: {detail}")

        return response.text

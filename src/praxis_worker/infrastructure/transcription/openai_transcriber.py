"""OpenAI Whisper implementation of the TranscriptionService interface."""

from datetime import datetime, timezone
from pathlib import Path

from openai import OpenAI, OpenAIError

from praxis_worker.config import OpenAIConfig
from praxis_worker.domain.models import TranscriptionResult
from praxis_worker.exceptions import TranscriptionError
from praxis_worker.infrastructure.interfaces import TranscriptionService
from praxis_worker.logging import setup_logging

logger = setup_logging()


class OpenAITranscriber(TranscriptionService):
    """Synchronous transcription with Whisper; produces text without speakers."""

    def __init__(self, client: OpenAI, config: OpenAIConfig):
        self._client = client
        self._config = config

    def transcribe(self, file_path: Path) -> TranscriptionResult:
        try:
            with file_path.open("rb") as audio_file:
                response = self._client.audio.transcriptions.create(
                    model=self._config.model,
                    file=audio_file,
                    prompt=self._config.prompt,
                    response_format="text",
                )
        except (OpenAIError, OSError) as e:
            logger.exception("OpenAI transcription failed")
            raise TranscriptionError(file_path.name, e) from e

        text = response if isinstance(response, str) else response.text
        logger.info(
            "Audio transcription successful",
            extra={"model": self._config.model, "length": len(text)},
        )
        return TranscriptionResult(
            text=text.strip(),
            model=f"openai/{self._config.model}",
            timestamp=datetime.now(timezone.utc),
        )

"""Abstract interface for transcription providers."""

from abc import ABC, abstractmethod
from pathlib import Path

from praxis_worker.domain.models import TranscriptionResult


class TranscriptionService(ABC):
    """Abstract base class for audio transcription backends."""

    @abstractmethod
    def transcribe(self, file_path: Path) -> TranscriptionResult:
        """
        Transcribes a local audio file.

        Args:
            file_path: Path to the assembled audio file.

        Returns:
            TranscriptionResult with text and, when the backend provides
            them, speaker-labelled segments.

        Raises:
            TranscriptionError: If transcription fails.
        """

"""AssemblyAI implementation of the TranscriptionService interface."""

from datetime import datetime, timezone
from pathlib import Path

import assemblyai as aai

from praxis_worker.domain.models import Segment, TranscriptionResult
from praxis_worker.exceptions import TranscriptionError
from praxis_worker.infrastructure.interfaces import TranscriptionService
from praxis_worker.logging import setup_logging

logger = setup_logging()


class AssemblyAITranscriber(TranscriptionService):
    """Handles audio transcription with speaker diarization using AssemblyAI."""

    def __init__(self, transcriber: aai.Transcriber):
        self._transcriber = transcriber

    def transcribe(self, file_path: Path) -> TranscriptionResult:
        """
        Transcribes a local audio file using AssemblyAI.

        Speaker letters reported by AssemblyAI (A, B, ...) become
        `speaker_1`, `speaker_2`, ... in order of first appearance.
        """
        try:
            transcript = self._transcriber.transcribe(str(file_path))
        except Exception as e:
            logger.exception("AssemblyAI transcription failed")
            raise TranscriptionError(file_path.name, e) from e

        if transcript.status == aai.TranscriptStatus.error:
            raise TranscriptionError(file_path.name, Exception(transcript.error))
        if transcript.text is None:
            raise TranscriptionError(
                file_path.name, Exception("Transcription returned no text")
            )

        speakers: dict[str, str] = {}
        segments = []
        for utterance in transcript.utterances or []:
            speaker = speakers.setdefault(
                utterance.speaker, f"speaker_{len(speakers) + 1}"
            )
            segments.append(
                Segment(
                    start_ms=utterance.start,
                    end_ms=utterance.end,
                    speaker=speaker,
                    content=utterance.text,
                )
            )

        logger.info(
            "Audio transcription successful",
            extra={"utterance_count": len(segments), "speaker_count": len(speakers)},
        )
        return TranscriptionResult(
            text=transcript.text,
            model="assemblyai/default",
            timestamp=datetime.now(timezone.utc),
            segments=segments or None,
            classified=False,
        )

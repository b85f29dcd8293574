"""Handler for audio transcription tasks."""

import tempfile
from pathlib import Path

from praxis_worker.domain import (
    AccountContext,
    ArtifactsGenerateTask,
    AudioTranscribeTask,
    Recording,
    TaskOutcome,
    TranscriptionResult,
)
from praxis_worker.domain.artifact_service import ArtifactService
from praxis_worker.domain.media_assembler import MediaAssembler
from praxis_worker.domain.speaker_classifier import SpeakerRoleClassifier
from praxis_worker.domain.transcript_formatter import TranscriptFormatter
from praxis_worker.exceptions import (
    MissingSessionError,
    NoRecordingChunksError,
    RecordingNotFoundError,
)
from praxis_worker.infrastructure.interfaces import StorageClient
from praxis_worker.infrastructure.transcription import TranscriptionProviderRegistry
from praxis_worker.logging import setup_logging
from praxis_worker.repositories import RecordingRepository, SessionRepository

logger = setup_logging()


class AudioTranscriptionHandler:
    """Orchestrates recording-to-transcript processing."""

    def __init__(
        self,
        recordings: RecordingRepository,
        sessions: SessionRepository,
        storage: StorageClient,
        assembler: MediaAssembler,
        providers: TranscriptionProviderRegistry,
        classifier: SpeakerRoleClassifier,
        formatter: TranscriptFormatter,
        artifacts: ArtifactService,
    ):
        self._recordings = recordings
        self._sessions = sessions
        self._storage = storage
        self._assembler = assembler
        self._providers = providers
        self._classifier = classifier
        self._formatter = formatter
        self._artifacts = artifacts

    def handle(self, task: AudioTranscribeTask, context: AccountContext) -> TaskOutcome:
        """
        Transcribes a recording, stores the transcript and removes the recording.

        Args:
            task: The transcription task.
            context: Account scope of the task.

        Returns:
            TaskOutcome carrying the artifact regeneration follow-up, if any.

        Raises:
            RecordingNotFoundError: If the recording does not exist.
            NoRecordingChunksError: If the recording has no chunks.
            MissingSessionError: If the recording has no session.
            ChunkDownloadError, AudioAssemblyError: If assembly fails.
            TranscriptionError and its provider-specific variants.
            PersistenceError, StorageDeleteError: If storing or cleanup fails.
        """
        recording = self._recordings.get_recording(context.account_id, task.recording_id)
        if recording is None:
            raise RecordingNotFoundError(task.recording_id, context.account_id)
        if not recording.session_id:
            raise MissingSessionError(task.recording_id)

        chunks = self._recordings.list_chunks(context.account_id, task.recording_id)
        if not chunks:
            raise NoRecordingChunksError(task.recording_id)

        engine = self._providers.resolve_engine(recording.transcription_engine)
        logger.info(
            "Processing recording",
            extra={
                "account_id": context.account_id,
                "recording_id": task.recording_id,
                "chunk_count": len(chunks),
                "engine": engine.value,
            },
        )

        with tempfile.TemporaryDirectory(prefix="audio-processing-") as work_dir:
            audio_path = self._assembler.assemble(
                chunks, recording.standalone_chunks, Path(work_dir), context
            )
            result = self._providers.get(engine).transcribe(audio_path)

        result = self._classify(result, task.recording_id)
        text = self._render_text(result)

        transcript_id = self._sessions.save_transcript(
            context.account_id, recording.session_id, recording.recording_id, text, result
        )
        follow_up = self._refresh_artifacts(recording, transcript_id, context)
        self._delete_recording(recording, chunks, context)

        logger.info(
            "Recording transcribed",
            extra={
                "account_id": context.account_id,
                "recording_id": task.recording_id,
                "transcript_id": transcript_id,
                "model": result.model,
                "classified": result.classified,
            },
        )
        return TaskOutcome(follow_up_tasks=follow_up)

    def _classify(self, result: TranscriptionResult, recording_id: str) -> TranscriptionResult:
        """Classifies speaker roles, keeping the generic labels on failure."""
        try:
            return self._classifier.classify(result)
        except Exception:
            logger.exception(
                "Speaker classification failed, keeping generic labels",
                extra={"recording_id": recording_id},
            )
            return result

    def _render_text(self, result: TranscriptionResult) -> str:
        if result.segments:
            return self._formatter.render(result.segments)
        return result.text

    def _refresh_artifacts(
        self, recording: Recording, transcript_id: int, context: AccountContext
    ) -> list[ArtifactsGenerateTask]:
        """Invalidates derived artifacts and requests their regeneration."""
        try:
            client_id = self._sessions.get_client_id(context.account_id, recording.session_id)
            self._artifacts.invalidate_session(recording.session_id, client_id)
        except Exception:
            logger.exception(
                "Failed to invalidate artifacts",
                extra={"session_id": recording.session_id},
            )
            return []

        return [
            ArtifactsGenerateTask(
                account_id=context.account_id,
                session_id=recording.session_id,
                priority="normal",
                idempotency_key=f"artifacts-generate-{recording.session_id}-{transcript_id}",
            )
        ]

    def _delete_recording(self, recording: Recording, chunks, context: AccountContext) -> None:
        prefix = f"{context.account_id}/{recording.recording_id}/"
        for bucket in sorted({chunk.storage_bucket for chunk in chunks}):
            self._storage.delete_prefix(bucket, prefix)
        self._recordings.delete_recording(context.account_id, recording.recording_id)

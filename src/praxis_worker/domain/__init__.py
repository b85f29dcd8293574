"""Domain layer exports."""

from .models import (
    AccountContext,
    ArtifactResult,
    ArtifactsGenerateTask,
    ArtifactType,
    AudioTranscribeTask,
    QueueMessage,
    Recording,
    RecordingChunk,
    ReferenceType,
    Segment,
    Task,
    TaskOutcome,
    TranscriptionResult,
)

__all__ = [
    "AccountContext",
    "ArtifactResult",
    "ArtifactsGenerateTask",
    "ArtifactType",
    "AudioTranscribeTask",
    "QueueMessage",
    "Recording",
    "RecordingChunk",
    "ReferenceType",
    "Segment",
    "Task",
    "TaskOutcome",
    "TranscriptionResult",
]

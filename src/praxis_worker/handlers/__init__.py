from .artifacts_generation_handler import ArtifactsGenerationHandler
from .audio_transcription_handler import AudioTranscriptionHandler
from .task_router import TaskRouter

__all__ = ["ArtifactsGenerationHandler", "AudioTranscriptionHandler", "TaskRouter"]

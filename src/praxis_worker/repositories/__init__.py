from .artifact_repository import ArtifactRepository
from .recording_repository import RecordingRepository
from .session_repository import SessionRepository

__all__ = ["ArtifactRepository", "RecordingRepository", "SessionRepository"]

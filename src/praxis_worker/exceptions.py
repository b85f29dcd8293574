"""Custom exceptions for the background worker."""


class InvalidTaskError(Exception):
    """Raised when a queue message is not a valid task."""

    def __init__(self, reason: str, cause: Exception | None = None):
        self.reason = reason
        self.cause = cause
        super().__init__(f"Invalid task: {reason}")


class StorageDownloadError(Exception):
    """Raised when downloading a file from storage fails."""

    def __init__(self, object_name: str, cause: Exception | None = None):
        self.object_name = object_name
        self.cause = cause
        super().__init__(f"Failed to download '{object_name}' from storage")


class StorageUploadError(Exception):
    """Raised when uploading a file to storage fails."""

    def __init__(self, object_name: str, cause: Exception | None = None):
        self.object_name = object_name
        self.cause = cause
        super().__init__(f"Failed to upload '{object_name}' to storage")


class StorageDeleteError(Exception):
    """Raised when deleting objects from storage fails."""

    def __init__(self, object_name: str, cause: Exception | None = None):
        self.object_name = object_name
        self.cause = cause
        super().__init__(f"Failed to delete '{object_name}' from storage")


class ChunkDownloadError(Exception):
    """Raised when a recording chunk cannot be downloaded after all retries."""

    def __init__(self, chunk_number: int, cause: Exception | None = None):
        self.chunk_number = chunk_number
        self.cause = cause
        super().__init__(f"Failed to download chunk {chunk_number}")


class FFmpegError(Exception):
    """Raised when an ffmpeg or ffprobe invocation fails."""

    def __init__(self, command: str, stderr: str = "", cause: Exception | None = None):
        self.command = command
        self.stderr = stderr
        self.cause = cause
        super().__init__(f"{command} failed: {stderr.strip()[-500:]}")


class AudioAssemblyError(Exception):
    """Raised when recording chunks cannot be combined into one file."""

    def __init__(self, reason: str, cause: Exception | None = None):
        self.reason = reason
        self.cause = cause
        super().__init__(f"Audio assembly failed: {reason}")


class RecordingNotFoundError(Exception):
    """Raised when a recording does not exist for the account."""

    def __init__(self, recording_id: str, account_id: str):
        self.recording_id = recording_id
        self.account_id = account_id
        super().__init__(
            f"Recording '{recording_id}' not found for account '{account_id}'"
        )


class NoRecordingChunksError(Exception):
    """Raised when a recording has no chunks to transcribe."""

    def __init__(self, recording_id: str):
        self.recording_id = recording_id
        super().__init__(f"No chunks found for recording '{recording_id}'")


class MissingSessionError(Exception):
    """Raised when a recording is not attached to a session."""

    def __init__(self, recording_id: str):
        self.recording_id = recording_id
        super().__init__(f"Recording '{recording_id}' has no session")


class UnsupportedTranscriptionEngineError(Exception):
    """Raised when no provider is registered for a transcription engine."""

    def __init__(self, engine: str):
        self.engine = engine
        super().__init__(f"No transcription provider registered for '{engine}'")


class TranscriptionError(Exception):
    """Raised when audio transcription fails."""

    def __init__(self, file_name: str, cause: Exception | None = None):
        self.file_name = file_name
        self.cause = cause
        super().__init__(f"Failed to transcribe audio file '{file_name}'")


class TranscriptionSubmissionError(Exception):
    """Raised when the provider refuses a recognition job."""

    def __init__(self, reason: str, cause: Exception | None = None):
        self.reason = reason
        self.cause = cause
        super().__init__(f"Recognition job submission failed: {reason}")


class TranscriptionJobError(Exception):
    """Raised when the provider reports a failed recognition job."""

    def __init__(self, operation_id: str, reason: str):
        self.operation_id = operation_id
        self.reason = reason
        super().__init__(f"Recognition operation '{operation_id}' failed: {reason}")


class TranscriptionTimeoutError(Exception):
    """Raised when a recognition job does not finish within its wait window."""

    def __init__(self, operation_id: str, waited_seconds: float):
        self.operation_id = operation_id
        self.waited_seconds = waited_seconds
        super().__init__(
            f"Recognition operation '{operation_id}' timed out "
            f"after {int(waited_seconds)} seconds"
        )


class SpeakerClassificationError(Exception):
    """Raised when speaker roles cannot be determined."""

    def __init__(self, reason: str, cause: Exception | None = None):
        self.reason = reason
        self.cause = cause
        super().__init__(f"Speaker classification failed: {reason}")


class LLMServiceError(Exception):
    """Raised when LLM service call fails."""

    def __init__(self, message: str, cause: Exception | None = None):
        self.cause = cause
        super().__init__(message)


class SessionNotFoundError(Exception):
    """Raised when a session does not exist for the account."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session '{session_id}' not found")


class MissingClientError(Exception):
    """Raised when a session is not linked to a client."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session '{session_id}' has no client")


class ArtifactGenerationError(Exception):
    """Raised when one or more artifacts of a session failed to generate."""

    def __init__(
        self,
        session_id: str,
        client_id: str,
        errors: dict[str, str],
        total_artifacts: int,
    ):
        self.session_id = session_id
        self.client_id = client_id
        self.errors = errors
        self.failed_artifacts = list(errors)
        self.total_artifacts = total_artifacts
        self.failed_count = len(errors)
        details = "; ".join(f"{kind}: {message}" for kind, message in errors.items())
        super().__init__(
            f"Failed to generate {self.failed_count}/{total_artifacts} artifacts "
            f"for session {session_id}, client {client_id}: {details}"
        )


class CacheServiceError(Exception):
    """Raised when cache operations fail."""

    def __init__(self, key: str, operation: str, cause: Exception | None = None):
        self.key = key
        self.operation = operation
        self.cause = cause
        super().__init__(f"Cache {operation} failed for key '{key}'")


class PersistenceError(Exception):
    """Raised when a database operation fails."""

    def __init__(self, entity: str, entity_id: str, cause: Exception | None = None):
        self.entity = entity
        self.entity_id = entity_id
        self.cause = cause
        super().__init__(f"Failed to persist {entity} '{entity_id}'")


class EventPublishError(Exception):
    """Raised when publishing a message to the broker fails."""

    def __init__(self, routing_key: str, cause: Exception | None = None):
        self.routing_key = routing_key
        self.cause = cause
        super().__init__(f"Failed to publish message with routing key '{routing_key}'")


class MissingArtifactInputError(Exception):
    """Raised when the source material an artifact depends on is unavailable."""

    def __init__(self, artifact_type: str, reason: str):
        self.artifact_type = artifact_type
        self.reason = reason
        super().__init__(f"Cannot generate '{artifact_type}': {reason}")

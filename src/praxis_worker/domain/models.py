"""Domain models for the background worker."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, model_validator

TaskPriority = Literal["high", "normal", "low"]
SpeakerRole = Literal["therapist", "client"]


class QueueMessage(BaseModel, frozen=True):
    """A message received from the task queue."""

    message_id: str
    receipt_handle: int
    body: bytes
    delivery_count: int = 1


class AudioTranscribeTask(BaseModel, frozen=True, populate_by_name=True):
    """Transcribe a finished recording and store its transcript."""

    operation: Literal["audio:transcribe"] = "audio:transcribe"
    account_id: str = Field(alias="accountId", min_length=1)
    recording_id: str = Field(alias="recordingId", min_length=1)
    priority: TaskPriority | None = None
    idempotency_key: str | None = Field(default=None, alias="idempotencyKey")


class ArtifactsGenerateTask(BaseModel, frozen=True, populate_by_name=True):
    """Regenerate the derived artifacts of a session and its client."""

    operation: Literal["artifacts:generate"] = "artifacts:generate"
    account_id: str = Field(alias="accountId", min_length=1)
    session_id: str = Field(alias="sessionId", min_length=1)
    priority: TaskPriority | None = None
    idempotency_key: str | None = Field(default=None, alias="idempotencyKey")


Task = Annotated[
    Union[AudioTranscribeTask, ArtifactsGenerateTask],
    Field(discriminator="operation"),
]

TASK_ADAPTER: TypeAdapter[Task] = TypeAdapter(Task)


class AccountContext(BaseModel, frozen=True):
    """Account scope that every unit of work for a task runs under."""

    account_id: str
    message_id: str
    operation: str


class TaskOutcome(BaseModel, frozen=True):
    """What a handler produced besides its side effects."""

    follow_up_tasks: list[Task] = Field(default_factory=list)


class RecordingChunk(BaseModel, frozen=True):
    """One uploaded fragment of a recording."""

    storage_bucket: str
    storage_path: str
    chunk_number: int


class Recording(BaseModel, frozen=True):
    """A recording waiting to be transcribed."""

    recording_id: str
    account_id: str
    session_id: str | None = None
    standalone_chunks: bool = False
    transcription_engine: str | None = None


class Segment(BaseModel, frozen=True):
    """A timed piece of speech attributed to one speaker."""

    start_ms: int
    end_ms: int
    speaker: str
    content: str


class TranscriptionResult(BaseModel, frozen=True):
    """Result of transcribing one audio file."""

    text: str
    model: str
    timestamp: datetime
    segments: list[Segment] | None = None
    classified: bool = False


class Utterance(BaseModel, frozen=True):
    """A recognised utterance on one channel, before speakers are assigned."""

    text: str
    start_time: float
    end_time: float
    confidence: float
    refined: bool = False


class SpeakerRoleMapping(BaseModel, frozen=True):
    """
    Speaker-to-role mapping returned by the classification prompt.

    The reply is a flat JSON object: every key other than `confidence` and
    `reasoning` is a speaker label whose value is a role, matched
    case-insensitively.
    """

    roles: dict[str, SpeakerRole]
    confidence: Annotated[float, Field(strict=True, ge=0, le=1)] | None = None
    reasoning: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _split_roles(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        metadata = {key: data[key] for key in ("confidence", "reasoning") if key in data}
        roles = {
            speaker: role.lower() if isinstance(role, str) else role
            for speaker, role in data.items()
            if speaker not in metadata
        }
        return {**metadata, "roles": roles}


class ReferenceType(str, Enum):
    SESSION = "session"
    CLIENT = "client"


class ArtifactType(str, Enum):
    SESSION_THERAPIST_SUMMARY = "session_therapist_summary"
    SESSION_CLIENT_SUMMARY = "session_client_summary"
    CLIENT_BIO = "client_bio"
    CLIENT_CONCEPTUALIZATION = "client_conceptualization"
    CLIENT_PREP_NOTE = "client_prep_note"
    SESSION_SPEAKER_ROLES_CLASSIFICATION = "session_speaker_roles_classification"


class StoredArtifact(BaseModel, frozen=True):
    """An artifact as persisted in the artifact store."""

    reference_type: ReferenceType
    reference_id: str
    artifact_type: ArtifactType
    content: str
    stale: bool = False


class ArtifactResult(BaseModel, frozen=True):
    """Content of an artifact and whether it was generated just now."""

    content: str
    is_new: bool

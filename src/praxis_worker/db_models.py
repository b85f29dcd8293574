from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import Text
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecordingEntity(SQLModel, table=True):
    __tablename__ = "recordings"

    id: str = Field(primary_key=True, max_length=64)
    account_id: str = Field(index=True, max_length=64)
    session_id: Optional[str] = Field(default=None, max_length=64)
    standalone_chunks: bool = False
    transcription_engine: Optional[str] = Field(default=None, max_length=64)
    created_at: datetime = Field(default_factory=_utcnow)


class RecordingChunkEntity(SQLModel, table=True):
    __tablename__ = "recordings_chunks"

    id: Optional[int] = Field(default=None, primary_key=True)
    recording_id: str = Field(foreign_key="recordings.id", index=True, max_length=64)
    account_id: str = Field(max_length=64)
    chunk_number: int
    storage_bucket: str = Field(max_length=255)
    storage_path: str = Field(max_length=1024)


class SessionEntity(SQLModel, table=True):
    __tablename__ = "sessions"

    id: str = Field(primary_key=True, max_length=64)
    account_id: str = Field(index=True, max_length=64)
    client_id: Optional[str] = Field(default=None, index=True, max_length=64)
    created_at: datetime = Field(default_factory=_utcnow)


class TranscriptEntity(SQLModel, table=True):
    __tablename__ = "transcripts"

    id: Optional[int] = Field(default=None, primary_key=True)
    account_id: str = Field(max_length=64)
    session_id: str = Field(index=True, max_length=64)
    recording_id: str = Field(unique=True, max_length=64)
    transcription_model: str = Field(max_length=128)
    content: str = Field(sa_column=Column(Text, nullable=False))
    content_json: Optional[Dict[str, Any]] = Field(
        default=None,
        sa_column=Column(JSON().with_variant(JSONB, "postgresql"), nullable=True),
    )
    created_at: datetime = Field(default_factory=_utcnow)


class ArtifactEntity(SQLModel, table=True):
    __tablename__ = "artifacts"
    __table_args__ = (
        UniqueConstraint("reference_type", "reference_id", "artifact_type"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    reference_type: str = Field(max_length=16)
    reference_id: str = Field(index=True, max_length=64)
    artifact_type: str = Field(max_length=64)
    content: str = Field(sa_column=Column(Text, nullable=False))
    stale: bool = False
    updated_at: datetime = Field(default_factory=_utcnow)

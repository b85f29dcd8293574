"""Repository for recordings and their chunks."""

from sqlalchemy import delete
from sqlmodel import select

from praxis_worker.db_models import RecordingChunkEntity, RecordingEntity
from praxis_worker.domain.models import Recording, RecordingChunk
from praxis_worker.exceptions import PersistenceError
from praxis_worker.logging import setup_logging

logger = setup_logging()


class RecordingRepository:
    """
    Reads recordings waiting for transcription and removes them afterwards.

    Every query is scoped to the account that owns the recording.
    """

    def __init__(self, session_factory):
        """
        Initializes the repository.

        Args:
            session_factory: Callable that returns a SQLModel Session context manager.
        """
        self._session_factory = session_factory

    def get_recording(self, account_id: str, recording_id: str) -> Recording | None:
        with self._session_factory() as db_session:
            entity = db_session.exec(
                select(RecordingEntity).where(
                    RecordingEntity.id == recording_id,
                    RecordingEntity.account_id == account_id,
                )
            ).first()
            if entity is None:
                return None
            return Recording(
                recording_id=entity.id,
                account_id=entity.account_id,
                session_id=entity.session_id,
                standalone_chunks=entity.standalone_chunks,
                transcription_engine=entity.transcription_engine,
            )

    def list_chunks(self, account_id: str, recording_id: str) -> list[RecordingChunk]:
        """Returns the recording's chunks ordered by chunk number."""
        with self._session_factory() as db_session:
            entities = db_session.exec(
                select(RecordingChunkEntity)
                .where(
                    RecordingChunkEntity.recording_id == recording_id,
                    RecordingChunkEntity.account_id == account_id,
                )
                .order_by(RecordingChunkEntity.chunk_number)
            ).all()
            return [
                RecordingChunk(
                    storage_bucket=e.storage_bucket,
                    storage_path=e.storage_path,
                    chunk_number=e.chunk_number,
                )
                for e in entities
            ]

    def delete_recording(self, account_id: str, recording_id: str) -> None:
        """
        Deletes the recording row and its chunk rows in one transaction.

        Raises:
            PersistenceError: If the deletion fails.
        """
        try:
            with self._session_factory() as db_session:
                db_session.exec(
                    delete(RecordingChunkEntity).where(
                        RecordingChunkEntity.recording_id == recording_id,
                        RecordingChunkEntity.account_id == account_id,
                    )
                )
                db_session.exec(
                    delete(RecordingEntity).where(
                        RecordingEntity.id == recording_id,
                        RecordingEntity.account_id == account_id,
                    )
                )
                db_session.commit()
            logger.info(
                "Recording deleted",
                extra={"account_id": account_id, "recording_id": recording_id},
            )
        except Exception as e:
            logger.exception(
                "Failed to delete recording",
                extra={"account_id": account_id, "recording_id": recording_id},
            )
            raise PersistenceError("recording", recording_id, cause=e) from e

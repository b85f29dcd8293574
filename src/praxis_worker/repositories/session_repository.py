"""Repository for sessions and their transcripts."""

from sqlmodel import select

from praxis_worker.db_models import SessionEntity, TranscriptEntity
from praxis_worker.domain.models import TranscriptionResult
from praxis_worker.exceptions import PersistenceError, SessionNotFoundError
from praxis_worker.logging import setup_logging

logger = setup_logging()


class SessionRepository:
    """Handles session lookups and transcript persistence."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def get_client_id(self, account_id: str, session_id: str) -> str | None:
        """
        Returns the client that owns a session.

        Raises:
            SessionNotFoundError: If the session does not exist for the account.
        """
        with self._session_factory() as db_session:
            entity = db_session.exec(
                select(SessionEntity).where(
                    SessionEntity.id == session_id,
                    SessionEntity.account_id == account_id,
                )
            ).first()
            if entity is None:
                raise SessionNotFoundError(session_id)
            return entity.client_id

    def save_transcript(
        self,
        account_id: str,
        session_id: str,
        recording_id: str,
        text: str,
        result: TranscriptionResult,
    ) -> int:
        """
        Stores the transcript of a recording.

        A transcript already stored for the same recording is overwritten, so
        redelivered tasks do not create duplicates.

        Returns:
            The transcript id.

        Raises:
            PersistenceError: If persistence fails.
        """
        content_json = None
        if result.segments is not None:
            content_json = {
                "segments": [s.model_dump() for s in result.segments],
                "classified": result.classified,
            }

        try:
            with self._session_factory() as db_session:
                entity = db_session.exec(
                    select(TranscriptEntity).where(
                        TranscriptEntity.recording_id == recording_id
                    )
                ).first()
                if entity is None:
                    entity = TranscriptEntity(
                        account_id=account_id,
                        session_id=session_id,
                        recording_id=recording_id,
                        transcription_model=result.model,
                        content=text,
                        content_json=content_json,
                    )
                else:
                    entity.session_id = session_id
                    entity.transcription_model = result.model
                    entity.content = text
                    entity.content_json = content_json
                db_session.add(entity)
                db_session.commit()
                db_session.refresh(entity)

                logger.info(
                    "Transcript saved",
                    extra={
                        "account_id": account_id,
                        "session_id": session_id,
                        "transcript_id": entity.id,
                        "model": result.model,
                    },
                )
                return entity.id
        except Exception as e:
            logger.exception(
                "Failed to save transcript",
                extra={"session_id": session_id, "recording_id": recording_id},
            )
            raise PersistenceError("transcript", recording_id, cause=e) from e

    def get_transcript_content(self, account_id: str, session_id: str) -> str | None:
        """Returns the text of the session's most recent transcript."""
        with self._session_factory() as db_session:
            entity = db_session.exec(
                select(TranscriptEntity)
                .where(
                    TranscriptEntity.session_id == session_id,
                    TranscriptEntity.account_id == account_id,
                )
                .order_by(TranscriptEntity.created_at.desc(), TranscriptEntity.id.desc())
            ).first()
            return entity.content if entity else None

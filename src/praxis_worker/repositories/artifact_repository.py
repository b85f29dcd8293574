"""Repository for generated artifacts."""

from datetime import datetime, timezone

from sqlalchemy import or_, update
from sqlmodel import select

from praxis_worker.db_models import ArtifactEntity, SessionEntity
from praxis_worker.domain.models import ArtifactType, ReferenceType, StoredArtifact
from praxis_worker.exceptions import PersistenceError
from praxis_worker.logging import setup_logging

logger = setup_logging()


class ArtifactRepository:
    """Reads, writes and invalidates artifacts keyed by their reference."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def get(
        self,
        reference_type: ReferenceType,
        reference_id: str,
        artifact_type: ArtifactType,
    ) -> StoredArtifact | None:
        with self._session_factory() as db_session:
            entity = db_session.exec(
                select(ArtifactEntity).where(
                    ArtifactEntity.reference_type == reference_type.value,
                    ArtifactEntity.reference_id == reference_id,
                    ArtifactEntity.artifact_type == artifact_type.value,
                )
            ).first()
            if entity is None:
                return None
            return StoredArtifact(
                reference_type=ReferenceType(entity.reference_type),
                reference_id=entity.reference_id,
                artifact_type=ArtifactType(entity.artifact_type),
                content=entity.content,
                stale=entity.stale,
            )

    def upsert(
        self,
        reference_type: ReferenceType,
        reference_id: str,
        artifact_type: ArtifactType,
        content: str,
    ) -> None:
        """
        Saves fresh content for an artifact, creating it if needed.

        Raises:
            PersistenceError: If persistence fails.
        """
        try:
            with self._session_factory() as db_session:
                entity = db_session.exec(
                    select(ArtifactEntity).where(
                        ArtifactEntity.reference_type == reference_type.value,
                        ArtifactEntity.reference_id == reference_id,
                        ArtifactEntity.artifact_type == artifact_type.value,
                    )
                ).first()
                if entity is None:
                    entity = ArtifactEntity(
                        reference_type=reference_type.value,
                        reference_id=reference_id,
                        artifact_type=artifact_type.value,
                        content=content,
                    )
                else:
                    entity.content = content
                    entity.stale = False
                    entity.updated_at = datetime.now(timezone.utc)
                db_session.add(entity)
                db_session.commit()
        except Exception as e:
            logger.exception(
                "Failed to save artifact",
                extra={
                    "reference_id": reference_id,
                    "artifact_type": artifact_type.value,
                },
            )
            raise PersistenceError(artifact_type.value, reference_id, cause=e) from e

    def mark_stale(self, session_id: str, client_id: str | None) -> int:
        """
        Marks every artifact of a session, and of its client, as stale.

        Returns:
            Number of artifacts marked.

        Raises:
            PersistenceError: If the update fails.
        """
        conditions = [
            (ArtifactEntity.reference_type == ReferenceType.SESSION.value)
            & (ArtifactEntity.reference_id == session_id)
        ]
        if client_id:
            conditions.append(
                (ArtifactEntity.reference_type == ReferenceType.CLIENT.value)
                & (ArtifactEntity.reference_id == client_id)
            )

        try:
            with self._session_factory() as db_session:
                result = db_session.exec(
                    update(ArtifactEntity)
                    .where(or_(*conditions))
                    .values(stale=True)
                )
                db_session.commit()
                count = result.rowcount
        except Exception as e:
            logger.exception(
                "Failed to invalidate artifacts", extra={"session_id": session_id}
            )
            raise PersistenceError("artifacts", session_id, cause=e) from e

        logger.info(
            "Artifacts marked stale",
            extra={"session_id": session_id, "client_id": client_id, "count": count},
        )
        return count

    def list_session_contents(
        self, account_id: str, client_id: str, artifact_type: ArtifactType
    ) -> list[str]:
        """Returns one session artifact type across a client's sessions, oldest first."""
        with self._session_factory() as db_session:
            rows = db_session.exec(
                select(ArtifactEntity.content)
                .join(SessionEntity, SessionEntity.id == ArtifactEntity.reference_id)
                .where(
                    SessionEntity.client_id == client_id,
                    SessionEntity.account_id == account_id,
                    ArtifactEntity.reference_type == ReferenceType.SESSION.value,
                    ArtifactEntity.artifact_type == artifact_type.value,
                )
                .order_by(SessionEntity.created_at)
            ).all()
            return list(rows)

"""Ordered regeneration of a session's artifacts."""

from praxis_worker.exceptions import ArtifactGenerationError, MissingClientError
from praxis_worker.logging import setup_logging
from praxis_worker.repositories import SessionRepository

from .artifact_service import ArtifactService
from .models import AccountContext, ArtifactResult, ArtifactType, ReferenceType

logger = setup_logging()

# Client artifacts are built from session artifacts, and each client artifact
# from the one before it.
ARTIFACT_PLAN: tuple[tuple[ReferenceType, ArtifactType], ...] = (
    (ReferenceType.SESSION, ArtifactType.SESSION_THERAPIST_SUMMARY),
    (ReferenceType.SESSION, ArtifactType.SESSION_CLIENT_SUMMARY),
    (ReferenceType.CLIENT, ArtifactType.CLIENT_BIO),
    (ReferenceType.CLIENT, ArtifactType.CLIENT_CONCEPTUALIZATION),
    (ReferenceType.CLIENT, ArtifactType.CLIENT_PREP_NOTE),
)


class ArtifactPipeline:
    """Generates the fixed artifact sequence of a session and its client."""

    def __init__(self, sessions: SessionRepository, artifacts: ArtifactService):
        self._sessions = sessions
        self._artifacts = artifacts

    def regenerate(
        self, session_id: str, context: AccountContext
    ) -> dict[ArtifactType, ArtifactResult]:
        """
        Generates every artifact of the plan, continuing past failures.

        Args:
            session_id: The session whose artifacts are regenerated.
            context: Account scope of the task.

        Returns:
            Results of all artifacts, keyed by type.

        Raises:
            SessionNotFoundError: If the session does not exist.
            MissingClientError: If the session has no client.
            ArtifactGenerationError: If one or more artifacts failed; the
                others are still generated and stored.
        """
        client_id = self._sessions.get_client_id(context.account_id, session_id)
        if not client_id:
            raise MissingClientError(session_id)

        logger.info(
            "Regenerating artifacts",
            extra={
                "account_id": context.account_id,
                "session_id": session_id,
                "client_id": client_id,
            },
        )

        results: dict[ArtifactType, ArtifactResult] = {}
        errors: dict[str, str] = {}
        for reference_type, artifact_type in ARTIFACT_PLAN:
            reference_id = session_id if reference_type is ReferenceType.SESSION else client_id
            try:
                results[artifact_type] = self._artifacts.get_or_create(
                    reference_id, reference_type, artifact_type, context
                )
            except Exception as e:
                logger.exception(
                    "Artifact generation failed",
                    extra={
                        "artifact_type": artifact_type.value,
                        "reference_id": reference_id,
                    },
                )
                errors[artifact_type.value] = str(e)

        if errors:
            raise ArtifactGenerationError(
                session_id, client_id, errors, total_artifacts=len(ARTIFACT_PLAN)
            )

        logger.info(
            "Artifacts regenerated",
            extra={
                "session_id": session_id,
                "generated": sum(1 for r in results.values() if r.is_new),
                "total": len(results),
            },
        )
        return results

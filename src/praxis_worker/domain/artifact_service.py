"""Cache-backed access to generated artifacts."""

from praxis_worker.exceptions import MissingArtifactInputError
from praxis_worker.infrastructure.interfaces import ContentGenerator
from praxis_worker.logging import setup_logging
from praxis_worker.repositories import ArtifactRepository, SessionRepository

from .models import AccountContext, ArtifactResult, ArtifactType, ReferenceType

logger = setup_logging()

SUMMARY_SEPARATOR = "\n\n---\n\n"


class ArtifactService:
    """Returns fresh artifacts from the store and generates the rest."""

    def __init__(
        self,
        artifacts: ArtifactRepository,
        sessions: SessionRepository,
        generator: ContentGenerator,
    ):
        self._artifacts = artifacts
        self._sessions = sessions
        self._generator = generator

    def get_or_create(
        self,
        reference_id: str,
        reference_type: ReferenceType,
        artifact_type: ArtifactType,
        context: AccountContext,
    ) -> ArtifactResult:
        """
        Returns an artifact, generating it when missing or stale.

        Args:
            reference_id: Session or client id the artifact belongs to.
            reference_type: Whether the reference is a session or a client.
            artifact_type: Which artifact to return.
            context: Account scope of the task.

        Returns:
            ArtifactResult with the content and whether it was just generated.

        Raises:
            MissingArtifactInputError: If the inputs of the artifact are missing.
            LLMServiceError: If generation fails.
            PersistenceError: If the new content cannot be saved.
        """
        existing = self._artifacts.get(reference_type, reference_id, artifact_type)
        if existing is not None and not existing.stale:
            logger.info(
                "Artifact is fresh",
                extra={"reference_id": reference_id, "artifact_type": artifact_type.value},
            )
            return ArtifactResult(content=existing.content, is_new=False)

        variables = self._collect_inputs(reference_id, reference_type, artifact_type, context)
        content = self._generator.generate(artifact_type, variables)
        self._artifacts.upsert(reference_type, reference_id, artifact_type, content)

        logger.info(
            "Artifact generated",
            extra={
                "account_id": context.account_id,
                "reference_id": reference_id,
                "artifact_type": artifact_type.value,
                "regenerated": existing is not None,
            },
        )
        return ArtifactResult(content=content, is_new=True)

    def invalidate_session(self, session_id: str, client_id: str | None) -> int:
        """Marks the session's and its client's artifacts stale."""
        return self._artifacts.mark_stale(session_id, client_id)

    def _collect_inputs(
        self,
        reference_id: str,
        reference_type: ReferenceType,
        artifact_type: ArtifactType,
        context: AccountContext,
    ) -> dict[str, str]:
        if reference_type is ReferenceType.SESSION:
            transcript = self._sessions.get_transcript_content(
                context.account_id, reference_id
            )
            if not transcript:
                raise MissingArtifactInputError(artifact_type.value, "session has no transcript")
            return {"session_transcript": transcript}

        summaries = self._artifacts.list_session_contents(
            context.account_id, reference_id, ArtifactType.SESSION_THERAPIST_SUMMARY
        )
        if not summaries:
            raise MissingArtifactInputError(artifact_type.value, "client has no session summaries")
        variables = {"session_summaries": SUMMARY_SEPARATOR.join(summaries)}

        if artifact_type is ArtifactType.CLIENT_CONCEPTUALIZATION:
            variables["client_bio"] = self._required_content(
                reference_id, ArtifactType.CLIENT_BIO, artifact_type
            )
        elif artifact_type is ArtifactType.CLIENT_PREP_NOTE:
            variables["client_conceptualization"] = self._required_content(
                reference_id, ArtifactType.CLIENT_CONCEPTUALIZATION, artifact_type
            )
        return variables

    def _required_content(
        self, client_id: str, dependency: ArtifactType, artifact_type: ArtifactType
    ) -> str:
        stored = self._artifacts.get(ReferenceType.CLIENT, client_id, dependency)
        if stored is None or stored.stale:
            raise MissingArtifactInputError(
                artifact_type.value, f"{dependency.value} is not available"
            )
        return stored.content

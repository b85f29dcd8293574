"""Handler for artifact regeneration tasks."""

from praxis_worker.domain import AccountContext, ArtifactsGenerateTask, TaskOutcome
from praxis_worker.domain.artifact_pipeline import ArtifactPipeline
from praxis_worker.logging import setup_logging

logger = setup_logging()


class ArtifactsGenerationHandler:
    """Runs the artifact pipeline for a session."""

    def __init__(self, pipeline: ArtifactPipeline):
        self._pipeline = pipeline

    def handle(self, task: ArtifactsGenerateTask, context: AccountContext) -> TaskOutcome:
        results = self._pipeline.regenerate(task.session_id, context)
        logger.info(
            "Artifacts task completed",
            extra={
                "account_id": context.account_id,
                "session_id": task.session_id,
                "artifact_count": len(results),
                "priority": task.priority or "normal",
            },
        )
        return TaskOutcome()

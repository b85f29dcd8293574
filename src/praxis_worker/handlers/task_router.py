"""Validation and dispatch of queue tasks."""

from typing import Any

from pydantic import ValidationError

from praxis_worker.domain import (
    AccountContext,
    ArtifactsGenerateTask,
    AudioTranscribeTask,
    Task,
    TaskOutcome,
)
from praxis_worker.domain.models import TASK_ADAPTER
from praxis_worker.exceptions import CacheServiceError, InvalidTaskError
from praxis_worker.infrastructure.interfaces import IdempotencyStore
from praxis_worker.logging import setup_logging

from .artifacts_generation_handler import ArtifactsGenerationHandler
from .audio_transcription_handler import AudioTranscriptionHandler

logger = setup_logging()


class TaskRouter:
    """
    Turns a decoded message body into a task and runs its handler.

    Each handler receives an AccountContext built from the task, so every
    database and storage access downstream is scoped to that account.
    """

    def __init__(
        self,
        audio_handler: AudioTranscriptionHandler,
        artifacts_handler: ArtifactsGenerationHandler,
        idempotency_store: IdempotencyStore | None = None,
    ):
        self._audio_handler = audio_handler
        self._artifacts_handler = artifacts_handler
        self._idempotency = idempotency_store

    def parse(self, payload: Any) -> Task:
        """
        Validates a message body against the known task types.

        Raises:
            InvalidTaskError: If the operation is missing or unknown, or a
                required field is absent.
        """
        try:
            return TASK_ADAPTER.validate_python(payload)
        except ValidationError as e:
            reason = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'body'}: {error['msg']}"
                for error in e.errors()
            )
            raise InvalidTaskError(reason, cause=e) from e

    def route(self, payload: Any, message_id: str) -> TaskOutcome:
        """
        Validates and dispatches one task.

        Args:
            payload: The decoded JSON body of the message.
            message_id: Id of the queue message, for log correlation.

        Returns:
            The handler's TaskOutcome.

        Raises:
            InvalidTaskError: If the payload is not a valid task.
            Exception: Whatever the handler raises.
        """
        task = self.parse(payload)
        context = AccountContext(
            account_id=task.account_id,
            message_id=message_id,
            operation=task.operation,
        )

        if self._already_completed(task):
            logger.info(
                "Skipping duplicate task",
                extra={"operation": task.operation, "idempotency_key": task.idempotency_key},
            )
            return TaskOutcome()

        logger.info(
            "Dispatching task",
            extra={
                "operation": task.operation,
                "account_id": context.account_id,
                "message_id": message_id,
            },
        )
        if isinstance(task, AudioTranscribeTask):
            outcome = self._audio_handler.handle(task, context)
        elif isinstance(task, ArtifactsGenerateTask):
            outcome = self._artifacts_handler.handle(task, context)
        else:
            raise InvalidTaskError(f"unsupported operation '{task.operation}'")

        self._mark_completed(task)
        return outcome

    def _already_completed(self, task: Task) -> bool:
        if self._idempotency is None or not task.idempotency_key:
            return False
        try:
            return self._idempotency.is_completed(task.idempotency_key)
        except CacheServiceError:
            logger.warning(
                "Idempotency lookup failed, processing anyway",
                extra={"idempotency_key": task.idempotency_key},
            )
            return False

    def _mark_completed(self, task: Task) -> None:
        if self._idempotency is None or not task.idempotency_key:
            return
        try:
            self._idempotency.mark_completed(task.idempotency_key)
        except CacheServiceError:
            logger.warning(
                "Could not record idempotency key",
                extra={"idempotency_key": task.idempotency_key},
            )

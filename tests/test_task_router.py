from unittest.mock import Mock

import pytest

from praxis_worker.domain import ArtifactsGenerateTask, AudioTranscribeTask, TaskOutcome
from praxis_worker.exceptions import CacheServiceError, InvalidTaskError
from praxis_worker.handlers import TaskRouter


class MemoryIdempotencyStore:
    def __init__(self, completed=(), fail=False):
        self.completed = set(completed)
        self.fail = fail

    def is_completed(self, key):
        if self.fail:
            raise CacheServiceError(key, "exists")
        return key in self.completed

    def mark_completed(self, key):
        if self.fail:
            raise CacheServiceError(key, "set")
        self.completed.add(key)


@pytest.fixture
def handlers():
    audio = Mock()
    audio.handle.return_value = TaskOutcome()
    artifacts = Mock()
    artifacts.handle.return_value = TaskOutcome()
    return audio, artifacts


def test_audio_task_is_dispatched_with_account_context(handlers):
    audio, artifacts = handlers
    router = TaskRouter(audio, artifacts)

    router.route(
        {"operation": "audio:transcribe", "accountId": "acc-1", "recordingId": "rec-1"},
        message_id="msg-1",
    )

    task, context = audio.handle.call_args.args
    assert isinstance(task, AudioTranscribeTask)
    assert task.recording_id == "rec-1"
    assert context.account_id == "acc-1"
    assert context.message_id == "msg-1"
    assert context.operation == "audio:transcribe"
    artifacts.handle.assert_not_called()


def test_artifacts_task_is_dispatched(handlers):
    audio, artifacts = handlers
    router = TaskRouter(audio, artifacts)

    router.route(
        {
            "operation": "artifacts:generate",
            "accountId": "acc-1",
            "sessionId": "s-1",
            "priority": "low",
        },
        message_id="msg-2",
    )

    task, _ = artifacts.handle.call_args.args
    assert isinstance(task, ArtifactsGenerateTask)
    assert task.session_id == "s-1"
    assert task.priority == "low"


@pytest.mark.parametrize(
    "payload",
    [
        {"accountId": "acc-1", "recordingId": "rec-1"},
        {"operation": "video:extract", "accountId": "acc-1"},
        {"operation": "audio:transcribe", "recordingId": "rec-1"},
        {"operation": "audio:transcribe", "accountId": "", "recordingId": "rec-1"},
        {"operation": "artifacts:generate", "accountId": "acc-1"},
        {"operation": "audio:transcribe", "accountId": "acc-1", "recordingId": "r", "priority": "urgent"},
    ],
)
def test_invalid_payloads_are_rejected(handlers, payload):
    audio, artifacts = handlers

    with pytest.raises(InvalidTaskError):
        TaskRouter(audio, artifacts).route(payload, message_id="msg-3")

    audio.handle.assert_not_called()
    artifacts.handle.assert_not_called()


def test_missing_account_reason_names_the_field(handlers):
    with pytest.raises(InvalidTaskError, match="accountId"):
        TaskRouter(*handlers).parse({"operation": "audio:transcribe", "recordingId": "rec-1"})


def test_completed_task_is_skipped(handlers):
    audio, artifacts = handlers
    store = MemoryIdempotencyStore(completed={"artifacts-generate-s-1-7"})
    router = TaskRouter(audio, artifacts, store)

    outcome = router.route(
        {
            "operation": "artifacts:generate",
            "accountId": "acc-1",
            "sessionId": "s-1",
            "idempotencyKey": "artifacts-generate-s-1-7",
        },
        message_id="msg-4",
    )

    assert outcome.follow_up_tasks == []
    artifacts.handle.assert_not_called()


def test_successful_task_records_its_key(handlers):
    audio, artifacts = handlers
    store = MemoryIdempotencyStore()
    router = TaskRouter(audio, artifacts, store)

    router.route(
        {
            "operation": "audio:transcribe",
            "accountId": "acc-1",
            "recordingId": "rec-1",
            "idempotencyKey": "transcribe-rec-1",
        },
        message_id="msg-5",
    )

    assert store.completed == {"transcribe-rec-1"}


def test_failed_task_does_not_record_its_key(handlers):
    audio, artifacts = handlers
    audio.handle.side_effect = RuntimeError("provider down")
    store = MemoryIdempotencyStore()

    with pytest.raises(RuntimeError):
        TaskRouter(audio, artifacts, store).route(
            {
                "operation": "audio:transcribe",
                "accountId": "acc-1",
                "recordingId": "rec-1",
                "idempotencyKey": "transcribe-rec-1",
            },
            message_id="msg-6",
        )

    assert store.completed == set()


def test_unavailable_idempotency_store_does_not_block_processing(handlers):
    audio, artifacts = handlers
    router = TaskRouter(audio, artifacts, MemoryIdempotencyStore(fail=True))

    router.route(
        {
            "operation": "audio:transcribe",
            "accountId": "acc-1",
            "recordingId": "rec-1",
            "idempotencyKey": "transcribe-rec-1",
        },
        message_id="msg-7",
    )

    audio.handle.assert_called_once()

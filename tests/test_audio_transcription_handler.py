from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import Mock

import pytest
from sqlmodel import select

from praxis_worker.db_models import (
    ArtifactEntity,
    RecordingChunkEntity,
    RecordingEntity,
    SessionEntity,
    TranscriptEntity,
)
from praxis_worker.domain import AudioTranscribeTask
from praxis_worker.domain.artifact_service import ArtifactService
from praxis_worker.domain.models import Segment, TranscriptionResult
from praxis_worker.domain.transcript_formatter import TranscriptFormatter
from praxis_worker.exceptions import (
    MissingSessionError,
    NoRecordingChunksError,
    RecordingNotFoundError,
    SpeakerClassificationError,
)
from praxis_worker.handlers import AudioTranscriptionHandler
from praxis_worker.infrastructure.transcription import (
    TranscriptionEngine,
    TranscriptionProviderRegistry,
)
from praxis_worker.repositories import (
    ArtifactRepository,
    RecordingRepository,
    SessionRepository,
)

SEGMENTED = TranscriptionResult(
    text="Hello.\nHi.",
    model="yandex-v3/general",
    timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc),
    segments=[
        Segment(start_ms=0, end_ms=1200, speaker="speaker_1", content="Hello."),
        Segment(start_ms=1300, end_ms=2000, speaker="speaker_2", content="Hi."),
    ],
)


class FakeAssembler:
    def __init__(self):
        self.calls = []

    def assemble(self, chunks, standalone_chunks, output_dir, context):
        self.calls.append((chunks, standalone_chunks))
        output = Path(output_dir) / "combined.webm"
        output.write_bytes(b"audio")
        return output


class RoleClassifier:
    def __init__(self, fail=False):
        self.fail = fail

    def classify(self, result):
        if self.fail:
            raise SpeakerClassificationError("unparseable response")
        roles = {"speaker_1": "therapist", "speaker_2": "client"}
        segments = [s.model_copy(update={"speaker": roles[s.speaker]}) for s in result.segments]
        return result.model_copy(update={"segments": segments, "classified": True})


@pytest.fixture
def seeded(session_factory, fake_storage):
    with session_factory() as db_session:
        db_session.add(SessionEntity(id="s-1", account_id="acc-1", client_id="c-1"))
        db_session.add(
            RecordingEntity(
                id="rec-1", account_id="acc-1", session_id="s-1", transcription_engine="assemblyai"
            )
        )
        db_session.add(RecordingEntity(id="rec-orphan", account_id="acc-1"))
        db_session.add(RecordingEntity(id="rec-empty", account_id="acc-1", session_id="s-1"))
        for number in (1, 2):
            path = f"acc-1/rec-1/{number}.webm"
            db_session.add(
                RecordingChunkEntity(
                    recording_id="rec-1",
                    account_id="acc-1",
                    chunk_number=number,
                    storage_bucket="recordings",
                    storage_path=path,
                )
            )
            fake_storage.put("recordings", path, b"chunk")
        db_session.add(
            ArtifactEntity(
                reference_type="client",
                reference_id="c-1",
                artifact_type="client_bio",
                content="old bio",
            )
        )
        db_session.commit()
    fake_storage.put("recordings", "acc-1/rec-2/1.webm", b"other")
    return session_factory


def _handler(session_factory, fake_storage, provider, classifier=None):
    sessions = SessionRepository(session_factory)
    registry = TranscriptionProviderRegistry(
        {TranscriptionEngine.ASSEMBLYAI: lambda: provider},
        default_engine=TranscriptionEngine.YANDEX_V3_RU,
    )
    return AudioTranscriptionHandler(
        recordings=RecordingRepository(session_factory),
        sessions=sessions,
        storage=fake_storage,
        assembler=FakeAssembler(),
        providers=registry,
        classifier=classifier or RoleClassifier(),
        formatter=TranscriptFormatter(),
        artifacts=ArtifactService(ArtifactRepository(session_factory), sessions, Mock()),
    )


def _task(recording_id="rec-1"):
    return AudioTranscribeTask(account_id="acc-1", recording_id=recording_id)


def test_recording_is_transcribed_stored_and_removed(seeded, fake_storage, account_context):
    provider = Mock()
    provider.transcribe.return_value = SEGMENTED

    outcome = _handler(seeded, fake_storage, provider).handle(_task(), account_context)

    with seeded() as db_session:
        transcript = db_session.exec(select(TranscriptEntity)).one()
        assert transcript.content == (
            "[00:00-00:01] therapist: Hello.\n[00:01-00:02] client: Hi."
        )
        assert transcript.content_json["classified"] is True
        assert transcript.session_id == "s-1"
        assert db_session.exec(select(RecordingEntity).where(RecordingEntity.id == "rec-1")).first() is None
        assert db_session.exec(select(RecordingChunkEntity)).all() == []
        bio = db_session.exec(select(ArtifactEntity)).one()
        assert bio.stale is True

    assert ("recordings", "acc-1/rec-1/1.webm") not in fake_storage.objects
    assert ("recordings", "acc-1/rec-2/1.webm") in fake_storage.objects

    (follow_up,) = outcome.follow_up_tasks
    assert follow_up.operation == "artifacts:generate"
    assert follow_up.session_id == "s-1"
    assert follow_up.idempotency_key == f"artifacts-generate-s-1-{transcript.id}"


def test_classification_failure_keeps_generic_labels(seeded, fake_storage, account_context):
    provider = Mock()
    provider.transcribe.return_value = SEGMENTED

    _handler(seeded, fake_storage, provider, RoleClassifier(fail=True)).handle(
        _task(), account_context
    )

    with seeded() as db_session:
        transcript = db_session.exec(select(TranscriptEntity)).one()
        assert "speaker_1: Hello." in transcript.content
        assert transcript.content_json["classified"] is False


def test_unsegmented_result_stores_plain_text(seeded, fake_storage, account_context):
    provider = Mock()
    provider.transcribe.return_value = TranscriptionResult(
        text="Hello. Hi.",
        model="openai/whisper-1",
        timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )

    _handler(seeded, fake_storage, provider).handle(_task(), account_context)

    with seeded() as db_session:
        transcript = db_session.exec(select(TranscriptEntity)).one()
        assert transcript.content == "Hello. Hi."
        assert transcript.content_json is None


def test_transcription_failure_leaves_recording_in_place(seeded, fake_storage, account_context):
    provider = Mock()
    provider.transcribe.side_effect = RuntimeError("provider unavailable")

    with pytest.raises(RuntimeError):
        _handler(seeded, fake_storage, provider).handle(_task(), account_context)

    with seeded() as db_session:
        assert db_session.exec(select(TranscriptEntity)).all() == []
        assert len(db_session.exec(select(RecordingChunkEntity)).all()) == 2
    assert ("recordings", "acc-1/rec-1/1.webm") in fake_storage.objects


@pytest.mark.parametrize(
    ("recording_id", "error"),
    [
        ("rec-missing", RecordingNotFoundError),
        ("rec-orphan", MissingSessionError),
        ("rec-empty", NoRecordingChunksError),
    ],
)
def test_unprocessable_recordings(seeded, fake_storage, account_context, recording_id, error):
    provider = Mock()

    with pytest.raises(error):
        _handler(seeded, fake_storage, provider).handle(_task(recording_id), account_context)

    provider.transcribe.assert_not_called()


def test_recording_of_another_account_is_not_found(seeded, fake_storage, account_context):
    other = account_context.model_copy(update={"account_id": "acc-2"})

    with pytest.raises(RecordingNotFoundError):
        _handler(seeded, fake_storage, Mock()).handle(
            AudioTranscribeTask(account_id="acc-2", recording_id="rec-1"), other
        )

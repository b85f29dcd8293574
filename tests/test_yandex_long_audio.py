import json
from unittest.mock import Mock

import pytest
import requests
from urllib3.exceptions import MaxRetryError, NewConnectionError

from praxis_worker.config import YandexConfig
from praxis_worker.exceptions import (
    TranscriptionError,
    TranscriptionJobError,
    TranscriptionSubmissionError,
    TranscriptionTimeoutError,
)
from praxis_worker.infrastructure.transcription.yandex_long_audio import (
    YandexLongAudioTranscriber,
    initial_wait_seconds,
    max_wait_seconds,
    poll_interval_seconds,
)

RESULT_BODY = "\n".join(
    json.dumps(o)
    for o in [
        {
            "result": {
                "channelTag": "0",
                "audioCursors": {"finalIndex": "0"},
                "final": {
                    "alternatives": [
                        {"text": "добрый день", "startTimeMs": "0", "endTimeMs": "1500"}
                    ]
                },
            }
        },
        {
            "result": {
                "channelTag": "0",
                "finalRefinement": {
                    "finalIndex": "0",
                    "normalizedText": {
                        "alternatives": [
                            {"text": "Добрый день.", "startTimeMs": "0", "endTimeMs": "1500"}
                        ]
                    },
                },
            }
        },
    ]
)


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def __call__(self) -> float:
        return self.now


def _response(status_code=200, payload=None, text=None):
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.text = text if text is not None else json.dumps(payload or {})
    response.json = Mock(return_value=payload if payload is not None else {})
    return response


@pytest.fixture
def config():
    return YandexConfig(
        api_key="key",
        folder_id="folder",
        storage_bucket="staging",
        throughput_factor=15,
        max_wait_multiplier=2,
    )


@pytest.fixture
def ffmpeg():
    runner = Mock()
    runner.probe_duration.return_value = 600.0
    return runner


@pytest.fixture
def audio_file(tmp_path):
    path = tmp_path / "combined.mp3"
    path.write_bytes(b"ID3" + b"\x00" * 64)
    return path


def _transcriber(http, fake_storage, ffmpeg, config, clock):
    return YandexLongAudioTranscriber(
        http, fake_storage, ffmpeg, config, sleep=clock.sleep, clock=clock
    )


def test_wait_window_for_ten_minute_recording(config):
    initial = initial_wait_seconds(600, config.throughput_factor)

    assert initial == 40
    assert max_wait_seconds(initial, config) == 80


def test_wait_window_bounds(config):
    assert initial_wait_seconds(3, 15) == 1
    assert max_wait_seconds(1, config) == 60
    assert max_wait_seconds(10_000, config) == 7200


def test_poll_interval_grows_per_minute_and_caps(config):
    assert poll_interval_seconds(0, config) == 5
    assert poll_interval_seconds(59, config) == 5
    assert poll_interval_seconds(60, config) == 10
    assert poll_interval_seconds(185, config) == 20
    assert poll_interval_seconds(3600, config) == 60


def test_transcribe_success_uploads_submits_polls_and_cleans_up(
    fake_storage, ffmpeg, config, audio_file
):
    clock = FakeClock()
    http = Mock()
    http.post.return_value = _response(payload={"id": "op-1"})
    http.get.side_effect = [_response(status_code=404), _response(text=RESULT_BODY)]
    http.delete.return_value = _response()

    result = _transcriber(http, fake_storage, ffmpeg, config, clock).transcribe(audio_file)

    assert result.model == "yandex-v3/general"
    assert result.classified is False
    assert [s.content for s in result.segments] == ["Добрый день."]
    assert result.segments[0].speaker == "speaker_1"

    request = http.post.call_args.kwargs["json"]
    assert request["uri"].startswith("https://staging.storage.yandexcloud.net/transcription/")
    assert request["uri"].endswith("-combined.mp3")
    model = request["recognitionModel"]
    assert model["audioFormat"]["containerAudio"]["containerAudioType"] == "MP3"
    assert model["languageRestriction"] == {
        "restrictionType": "WHITELIST",
        "languageCode": ["ru-RU"],
    }
    assert model["textNormalization"]["literatureText"] is True
    assert model["textNormalization"]["profanityFilter"] is False
    assert request["speakerLabeling"]["speakerLabeling"] == "SPEAKER_LABELING_ENABLED"
    assert http.post.call_args.kwargs["headers"]["Authorization"] == "Api-Key key"

    assert clock.sleeps[0] == 40
    assert http.get.call_args.kwargs["params"] == {"operationId": "op-1"}
    assert fake_storage.objects == {}
    assert len(fake_storage.deleted) == 1
    http.delete.assert_called_once()


def test_transcribe_times_out_after_wait_window(fake_storage, ffmpeg, config, audio_file):
    clock = FakeClock()
    http = Mock()
    http.post.return_value = _response(payload={"id": "op-2"})
    http.get.return_value = _response(status_code=404)
    http.delete.return_value = _response()

    with pytest.raises(TranscriptionTimeoutError) as exc_info:
        _transcriber(http, fake_storage, ffmpeg, config, clock).transcribe(audio_file)

    assert exc_info.value.operation_id == "op-2"
    assert clock.now == pytest.approx(80)
    assert fake_storage.objects == {}
    http.delete.assert_called_once()


def test_submission_error_payload_is_fatal(fake_storage, ffmpeg, config, audio_file):
    clock = FakeClock()
    http = Mock()
    http.post.return_value = _response(
        status_code=400, payload={"error": {"code": 3, "message": "invalid uri"}}
    )

    with pytest.raises(TranscriptionSubmissionError, match="invalid uri"):
        _transcriber(http, fake_storage, ffmpeg, config, clock).transcribe(audio_file)

    http.get.assert_not_called()
    http.delete.assert_not_called()
    assert fake_storage.objects == {}


def test_missing_operation_id_is_fatal(fake_storage, ffmpeg, config, audio_file):
    clock = FakeClock()
    http = Mock()
    http.post.return_value = _response(payload={"done": False})

    with pytest.raises(TranscriptionSubmissionError, match="no operation id"):
        _transcriber(http, fake_storage, ffmpeg, config, clock).transcribe(audio_file)


def test_poll_bad_request_fails_immediately(fake_storage, ffmpeg, config, audio_file):
    clock = FakeClock()
    http = Mock()
    http.post.return_value = _response(payload={"id": "op-3"})
    http.get.return_value = _response(status_code=400, text="operation expired")
    http.delete.return_value = _response()

    with pytest.raises(TranscriptionJobError):
        _transcriber(http, fake_storage, ffmpeg, config, clock).transcribe(audio_file)

    assert http.get.call_count == 1
    http.delete.assert_called_once()


def test_cleanup_failures_do_not_mask_result(fake_storage, ffmpeg, config, audio_file):
    clock = FakeClock()
    http = Mock()
    http.post.return_value = _response(payload={"id": "op-4"})
    http.get.return_value = _response(text=RESULT_BODY)
    http.delete.side_effect = requests.ConnectionError("reset")
    fake_storage.fail_delete = True

    result = _transcriber(http, fake_storage, ffmpeg, config, clock).transcribe(audio_file)

    assert [s.content for s in result.segments] == ["Добрый день."]


def test_unsupported_container_is_converted_to_mp3(fake_storage, config, tmp_path):
    source = tmp_path / "combined.webm"
    source.write_bytes(b"\x1a\x45\xdf\xa3")
    ffmpeg = Mock()
    ffmpeg.probe_duration.return_value = None
    ffmpeg.convert_to_mp3.side_effect = lambda src, dst: dst.write_bytes(b"ID3")
    clock = FakeClock()
    http = Mock()
    http.post.return_value = _response(payload={"id": "op-5"})
    http.get.return_value = _response(text=RESULT_BODY)
    http.delete.return_value = _response()

    _transcriber(http, fake_storage, ffmpeg, config, clock).transcribe(source)

    ffmpeg.convert_to_mp3.assert_called_once()
    request = http.post.call_args.kwargs["json"]
    assert request["uri"].endswith("-combined.mp3")
    assert request["recognitionModel"]["audioFormat"]["containerAudio"]["containerAudioType"] == "MP3"
    # Three bytes of audio fall back to the one-second minimum wait.
    assert clock.sleeps[0] == 1


def test_submit_read_timeout_is_not_resubmitted(fake_storage, ffmpeg, config, audio_file):
    clock = FakeClock()
    http = Mock()
    http.post.side_effect = [requests.ReadTimeout("read timed out"), _response(payload={"id": "op-6"})]

    with pytest.raises(TranscriptionError):
        _transcriber(http, fake_storage, ffmpeg, config, clock).transcribe(audio_file)

    assert http.post.call_count == 1
    http.get.assert_not_called()
    http.delete.assert_not_called()
    assert fake_storage.objects == {}


def test_submit_is_retried_when_connection_was_never_made(
    fake_storage, ffmpeg, config, audio_file, monkeypatch
):
    monkeypatch.setattr(
        YandexLongAudioTranscriber._post_recognition.retry, "sleep", lambda seconds: None
    )
    refused = requests.ConnectionError(
        MaxRetryError(None, "/stt/v3/recognizeFileAsync", NewConnectionError(None, "refused"))
    )
    clock = FakeClock()
    http = Mock()
    http.post.side_effect = [refused, _response(payload={"id": "op-7"})]
    http.get.return_value = _response(text=RESULT_BODY)
    http.delete.return_value = _response()

    _transcriber(http, fake_storage, ffmpeg, config, clock).transcribe(audio_file)

    assert http.post.call_count == 2
    assert http.delete.call_args.kwargs["params"] == {"operationId": "op-7"}

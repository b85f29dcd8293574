"""Yandex SpeechKit v3 long-audio implementation of the TranscriptionService interface."""

import math
import secrets
import tempfile
import time
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

import requests
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential
from urllib3.exceptions import NewConnectionError

from praxis_worker.config import YandexConfig
from praxis_worker.domain.audio_formats import content_type_for, normalize_extension
from praxis_worker.domain.models import TranscriptionResult
from praxis_worker.exceptions import (
    FFmpegError,
    TranscriptionError,
    TranscriptionJobError,
    TranscriptionSubmissionError,
    TranscriptionTimeoutError,
)
from praxis_worker.infrastructure.ffmpeg import FFmpegRunner
from praxis_worker.infrastructure.interfaces import StorageClient, TranscriptionService
from praxis_worker.logging import setup_logging

from .yandex_response import ParsedRecognition, parse_recognition_response, reconcile_segments

logger = setup_logging()

CONTAINER_TYPES = {
    ".mp3": "MP3",
    ".ogg": "OGG_OPUS",
    ".opus": "OGG_OPUS",
    ".wav": "WAV",
}

# Rough size of one second of compressed speech, for when ffprobe is unavailable.
_BYTES_PER_SECOND = 10 * 1024
_DEFAULT_DURATION_SECONDS = 60.0


def _failed_before_sending(error: BaseException) -> bool:
    """True when the request never reached the server, so resubmitting is safe."""
    if isinstance(error, requests.ConnectTimeout):
        return True
    if isinstance(error, requests.ConnectionError) and error.args:
        return isinstance(getattr(error.args[0], "reason", None), NewConnectionError)
    return False


def initial_wait_seconds(duration_seconds: float, throughput_factor: int) -> int:
    """Expected processing time of a recording, at least one second."""
    return max(1, math.floor(duration_seconds / throughput_factor))


def max_wait_seconds(initial_wait: int, config: YandexConfig) -> int:
    """Total time allowed for an operation, bounded by the configured limits."""
    return max(
        config.min_wait_seconds,
        min(config.max_wait_seconds, initial_wait * config.max_wait_multiplier),
    )


def poll_interval_seconds(elapsed_seconds: float, config: YandexConfig) -> int:
    """Polling interval that grows by one step for every elapsed minute."""
    return min(
        config.poll_cap_seconds,
        config.poll_base_seconds + math.floor(elapsed_seconds / 60) * config.poll_step_seconds,
    )


class YandexLongAudioTranscriber(TranscriptionService):
    """
    Transcribes long recordings with asynchronous SpeechKit v3 operations.

    The audio is staged in Object Storage, a recognition operation is
    submitted for it, and the operation is polled until it returns results or
    the wait window closes. The staged object and the remote results are
    removed on every exit path.
    """

    def __init__(
        self,
        http: requests.Session,
        staging_storage: StorageClient,
        ffmpeg: FFmpegRunner,
        config: YandexConfig,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._http = http
        self._storage = staging_storage
        self._ffmpeg = ffmpeg
        self._config = config
        self._options = config.options
        self._sleep = sleep
        self._clock = clock
        self._base_url = f"https://{config.api_endpoint}/stt/v3"

    def transcribe(self, file_path: Path) -> TranscriptionResult:
        """
        Transcribes an audio file with speaker labelling.

        Raises:
            TranscriptionError: If the audio cannot be prepared or the API is
                unreachable.
            StorageUploadError: If staging the audio fails.
            TranscriptionSubmissionError: If the operation is refused.
            TranscriptionJobError: If the operation fails remotely.
            TranscriptionTimeoutError: If the operation outlives its window.
        """
        with tempfile.TemporaryDirectory(prefix="yandex-") as work_dir:
            audio_path, container = self._prepare_audio(file_path, Path(work_dir))
            duration = self._estimate_duration(audio_path)
            object_name = self._staging_key(audio_path.name)
            uploaded = False
            operation_id: str | None = None
            try:
                self._storage.upload_file(
                    self._config.storage_bucket,
                    object_name,
                    audio_path,
                    content_type_for(audio_path.name),
                )
                uploaded = True
                uri = (
                    f"https://{self._config.storage_bucket}."
                    f"{self._config.storage_endpoint}/{object_name}"
                )
                operation_id = self._submit(uri, container, file_path.name)
                parsed = self._wait_for_result(operation_id, duration)
            finally:
                self._cleanup(object_name if uploaded else None, operation_id)

        segments = reconcile_segments(parsed)
        logger.info(
            "Long-audio transcription completed",
            extra={
                "operation_id": operation_id,
                "segment_count": len(segments),
                "duration_seconds": duration,
            },
        )
        return TranscriptionResult(
            text="\n".join(segment.content for segment in segments),
            model=f"yandex-v3/{self._options.model}",
            timestamp=datetime.now(timezone.utc),
            segments=segments,
            classified=False,
        )

    def _prepare_audio(self, file_path: Path, work_dir: Path) -> tuple[Path, str]:
        """Returns a file in a supported container, converting to MP3 if needed."""
        extension = normalize_extension(file_path.name)
        container = CONTAINER_TYPES.get(extension)
        if container is not None:
            return file_path, container

        converted = work_dir / f"{file_path.stem}.mp3"
        logger.info(
            "Converting audio for recognition",
            extra={"source_extension": extension, "target": converted.name},
        )
        try:
            self._ffmpeg.convert_to_mp3(file_path, converted)
        except FFmpegError as e:
            raise TranscriptionError(file_path.name, cause=e) from e
        return converted, CONTAINER_TYPES[".mp3"]

    def _estimate_duration(self, audio_path: Path) -> float:
        duration = self._ffmpeg.probe_duration(audio_path)
        if duration and duration > 0:
            return duration

        size = audio_path.stat().st_size
        estimate = size / _BYTES_PER_SECOND if size else _DEFAULT_DURATION_SECONDS
        logger.warning(
            "Estimating duration from file size",
            extra={"size_bytes": size, "estimated_seconds": estimate},
        )
        return estimate

    def _staging_key(self, file_name: str) -> str:
        return f"transcription/{int(time.time() * 1000)}-{secrets.token_hex(8)}-{file_name}"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Api-Key {self._config.api_key}",
            "x-folder-id": self._config.folder_id,
        }

    def _recognition_request(self, uri: str, container: str) -> dict:
        options = self._options
        auto_language = options.language == "auto"
        return {
            "uri": uri,
            "recognitionModel": {
                "model": options.model,
                "audioFormat": {"containerAudio": {"containerAudioType": container}},
                "textNormalization": {
                    "textNormalization": "TEXT_NORMALIZATION_ENABLED",
                    "profanityFilter": options.profanity_filter,
                    "literatureText": options.literature_text,
                },
                "languageRestriction": {
                    "restrictionType": "BLACKLIST" if auto_language else "WHITELIST",
                    "languageCode": [] if auto_language else [options.language],
                },
                "audioProcessingType": "FULL_DATA",
            },
            "speechAnalysis": {
                "enableSpeakerAnalysis": options.speaker_labeling,
                "enableConversationAnalysis": False,
            },
            "speakerLabeling": {
                "speakerLabeling": (
                    "SPEAKER_LABELING_ENABLED"
                    if options.speaker_labeling
                    else "SPEAKER_LABELING_DISABLED"
                ),
            },
        }

    @retry(
        retry=retry_if_exception(_failed_before_sending),
        wait=wait_exponential(multiplier=1),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    def _post_recognition(self, body: dict) -> requests.Response:
        return self._http.post(
            f"{self._base_url}/recognizeFileAsync",
            json=body,
            headers=self._headers(),
            timeout=self._config.request_timeout_seconds,
        )

    def _submit(self, uri: str, container: str, file_name: str) -> str:
        """Starts a recognition operation and returns its id."""
        try:
            response = self._post_recognition(self._recognition_request(uri, container))
        except requests.RequestException as e:
            logger.exception("Recognition request could not be sent")
            raise TranscriptionError(file_name, cause=e) from e

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        error = payload.get("error")
        if error:
            reason = (
                f"{error.get('code')}: {error.get('message')}"
                if isinstance(error, dict)
                else str(error)
            )
            raise TranscriptionSubmissionError(reason)
        if response.status_code >= 400:
            raise TranscriptionSubmissionError(
                f"HTTP {response.status_code}: {response.text[:500]}"
            )

        operation_id = payload.get("id")
        if not operation_id:
            raise TranscriptionSubmissionError("response has no operation id")

        logger.info(
            "Recognition operation submitted",
            extra={"operation_id": operation_id, "container": container},
        )
        return operation_id

    def _wait_for_result(self, operation_id: str, duration: float) -> ParsedRecognition:
        """Sleeps for the expected processing time, then polls with growing intervals."""
        initial_wait = initial_wait_seconds(duration, self._config.throughput_factor)
        window = max_wait_seconds(initial_wait, self._config)
        started = self._clock()

        logger.info(
            "Waiting for recognition",
            extra={
                "operation_id": operation_id,
                "initial_wait_seconds": initial_wait,
                "max_wait_seconds": window,
            },
        )
        self._sleep(min(initial_wait, window))

        while True:
            elapsed = self._clock() - started
            if elapsed >= window:
                logger.error(
                    "Recognition timed out",
                    extra={"operation_id": operation_id, "elapsed_seconds": elapsed},
                )
                raise TranscriptionTimeoutError(operation_id, elapsed)

            parsed = self._poll(operation_id)
            if parsed is not None:
                return parsed

            interval = poll_interval_seconds(elapsed, self._config)
            remaining = window - (self._clock() - started)
            self._sleep(max(0, min(interval, remaining)))

    def _poll(self, operation_id: str) -> ParsedRecognition | None:
        """Fetches operation results; None means the operation is not finished."""
        try:
            response = self._http.get(
                f"{self._base_url}/getRecognition",
                params={"operationId": operation_id},
                headers=self._headers(),
                timeout=self._config.request_timeout_seconds,
            )
        except requests.RequestException as e:
            logger.warning(
                "Recognition poll failed",
                extra={"operation_id": operation_id, "error": str(e)},
            )
            return None

        if response.status_code == 400:
            raise TranscriptionJobError(operation_id, response.text[:500])
        if response.status_code != 200:
            logger.info(
                "Recognition not ready",
                extra={"operation_id": operation_id, "status_code": response.status_code},
            )
            return None

        response.encoding = "utf-8"
        parsed = parse_recognition_response(response.text)
        if parsed.errors:
            error = parsed.errors[0]
            raise TranscriptionJobError(
                operation_id, f"{error.get('code')}: {error.get('message')}"
            )
        if parsed.has_results or parsed.done:
            return parsed
        return None

    def _cleanup(self, object_name: str | None, operation_id: str | None) -> None:
        if object_name is not None:
            try:
                self._storage.delete(self._config.storage_bucket, object_name)
            except Exception:
                logger.warning(
                    "Failed to delete staged audio",
                    extra={"object_name": object_name},
                    exc_info=True,
                )

        if operation_id is not None:
            try:
                response = self._http.delete(
                    f"{self._base_url}/deleteRecognition",
                    params={"operationId": operation_id},
                    headers=self._headers(),
                    timeout=self._config.request_timeout_seconds,
                )
                if not response.ok:
                    logger.warning(
                        "Failed to delete recognition results",
                        extra={
                            "operation_id": operation_id,
                            "status_code": response.status_code,
                        },
                    )
            except requests.RequestException:
                logger.warning(
                    "Failed to delete recognition results",
                    extra={"operation_id": operation_id},
                    exc_info=True,
                )

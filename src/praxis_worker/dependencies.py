"""Dependency injection configuration for the background worker."""

from contextlib import contextmanager

import assemblyai as aai
import pika
import redis
import requests
from google import genai
from minio import Minio
from openai import OpenAI
from sqlmodel import Session, SQLModel, create_engine

from praxis_worker.config import AppConfig, load_config
from praxis_worker.domain.artifact_pipeline import ArtifactPipeline
from praxis_worker.domain.artifact_service import ArtifactService
from praxis_worker.domain.media_assembler import MediaAssembler
from praxis_worker.domain.speaker_classifier import SpeakerRoleClassifier
from praxis_worker.domain.transcript_formatter import TranscriptFormatter
from praxis_worker.handlers import (
    ArtifactsGenerationHandler,
    AudioTranscriptionHandler,
    TaskRouter,
)
from praxis_worker.infrastructure import (
    FFmpegRunner,
    GeminiLLMService,
    MinioStorageClient,
    PromptContentGenerator,
    RabbitMQBroker,
    RedisIdempotencyStore,
)
from praxis_worker.infrastructure.transcription import (
    AssemblyAITranscriber,
    OpenAITranscriber,
    TranscriptionEngine,
    TranscriptionProviderRegistry,
    YandexLongAudioTranscriber,
)
from praxis_worker.logging import setup_logging
from praxis_worker.repositories import (
    ArtifactRepository,
    RecordingRepository,
    SessionRepository,
)
from praxis_worker.worker import Worker

logger = setup_logging()


def build_session_factory(config: AppConfig):
    """Creates the database engine and returns a session context manager factory."""
    db_url = (
        f"postgresql+psycopg://{config.postgres.user}:{config.postgres.password}"
        f"@{config.postgres.host}:{config.postgres.port}/{config.postgres.database}"
    )
    engine = create_engine(db_url, pool_pre_ping=True)
    SQLModel.metadata.create_all(engine)
    logger.info("Database initialized", extra={"host": config.postgres.host})

    @contextmanager
    def session_factory():
        with Session(engine) as session:
            yield session

    return session_factory


def build_broker(config: AppConfig) -> RabbitMQBroker:
    credentials = pika.PlainCredentials(config.rabbitmq.user, config.rabbitmq.password)
    parameters = pika.ConnectionParameters(
        host=config.rabbitmq.host,
        credentials=credentials,
        heartbeat=0,
    )
    connection = pika.BlockingConnection(parameters)
    return RabbitMQBroker(
        connection.channel(),
        config.rabbitmq,
        poll_interval_seconds=config.consumer.poll_interval_seconds,
    )


def build_provider_registry(
    config: AppConfig, ffmpeg: FFmpegRunner
) -> TranscriptionProviderRegistry:
    """Registers a lazily constructed provider for every engine."""

    def yandex() -> YandexLongAudioTranscriber:
        staging = MinioStorageClient(
            Minio(
                endpoint=config.yandex.storage_endpoint,
                access_key=config.yandex.access_key_id,
                secret_key=config.yandex.secret_access_key,
                secure=True,
            )
        )
        return YandexLongAudioTranscriber(
            requests.Session(), staging, ffmpeg, config.yandex
        )

    def openai_whisper() -> OpenAITranscriber:
        return OpenAITranscriber(OpenAI(api_key=config.openai.api_key), config.openai)

    def assemblyai() -> AssemblyAITranscriber:
        aai.settings.api_key = config.assemblyai.api_key
        aai_config = aai.TranscriptionConfig(
            speaker_labels=True,
            speakers_expected=config.assemblyai.speakers_expected,
        )
        return AssemblyAITranscriber(aai.Transcriber(config=aai_config))

    return TranscriptionProviderRegistry(
        {
            TranscriptionEngine.YANDEX_V3_RU: yandex,
            TranscriptionEngine.OPENAI_WHISPER: openai_whisper,
            TranscriptionEngine.ASSEMBLYAI: assemblyai,
        },
        default_engine=TranscriptionEngine(config.default_transcription_engine),
    )


def build_worker(config: AppConfig) -> Worker:
    """Wires every component from configuration."""
    # Recording storage
    storage = MinioStorageClient(
        Minio(
            endpoint=config.minio.endpoint,
            access_key=config.minio.user,
            secret_key=config.minio.password,
            secure=config.minio.secure,
        )
    )
    storage.ensure_bucket_exists(config.minio.recordings_bucket)

    # Redis idempotency keys
    redis_client = redis.Redis(
        host=config.redis.host,
        port=config.redis.port,
        decode_responses=True,
    )
    if not redis_client.ping():
        logger.error("Redis connection failed", extra={"host": config.redis.host})
        raise ConnectionError("Redis connection failed")
    idempotency = RedisIdempotencyStore(redis_client, config.redis.idempotency_ttl_seconds)

    # Content generation
    llm = GeminiLLMService(genai.Client(api_key=config.gemini.api_key), config.gemini.model_name)
    generator = PromptContentGenerator(llm)

    # Persistence
    session_factory = build_session_factory(config)
    recordings = RecordingRepository(session_factory)
    sessions = SessionRepository(session_factory)
    artifact_service = ArtifactService(ArtifactRepository(session_factory), sessions, generator)

    # Transcription
    ffmpeg = FFmpegRunner()
    assembler = MediaAssembler(
        storage,
        ffmpeg,
        batch_size=config.assembler.download_batch_size,
        download_retries=config.assembler.download_retries,
        retry_backoff_seconds=config.assembler.retry_backoff_seconds,
    )
    formatter = TranscriptFormatter()

    audio_handler = AudioTranscriptionHandler(
        recordings=recordings,
        sessions=sessions,
        storage=storage,
        assembler=assembler,
        providers=build_provider_registry(config, ffmpeg),
        classifier=SpeakerRoleClassifier(generator, formatter),
        formatter=formatter,
        artifacts=artifact_service,
    )
    artifacts_handler = ArtifactsGenerationHandler(ArtifactPipeline(sessions, artifact_service))
    router = TaskRouter(audio_handler, artifacts_handler, idempotency)

    return Worker(build_broker(config), router, config.rabbitmq, config.consumer)


def get_worker() -> Worker:
    """Returns a worker configured from the environment."""
    return build_worker(load_config())

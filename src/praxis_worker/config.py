"""Application configuration loaded from environment variables."""

import os

from pydantic import BaseModel


class QueueConfig(BaseModel, frozen=True):
    """RabbitMQ task queue configuration."""

    name: str = "mypraxis-background-tasks"
    queue_type: str = "quorum"
    max_delivery_count: int = 5
    routing_key: str = "tasks.background"
    dlq_name: str = "mypraxis-background-tasks-dlq"
    dlq_exchange_name: str = "dead_letter_exchange"
    dlq_routing_key: str = "tasks.background.failed"
    visibility_timeout_seconds: int = 9000


class RabbitMQConfig(BaseModel, frozen=True):
    """RabbitMQ connection configuration."""

    host: str
    user: str
    password: str
    exchange_name: str = "tasks"
    queue_config: QueueConfig = QueueConfig()


class ConsumerConfig(BaseModel, frozen=True):
    """Polling behaviour of the queue consumer."""

    max_messages: int = 10
    wait_time_seconds: int = 20
    poll_interval_seconds: float = 1.0
    error_backoff_seconds: float = 5.0


class MinioConfig(BaseModel, frozen=True):
    """MinIO connection configuration for recording chunks."""

    endpoint: str
    user: str
    password: str
    secure: bool = False
    recordings_bucket: str = "recordings"


class AssemblerConfig(BaseModel, frozen=True):
    """Chunk download and assembly tuning."""

    download_batch_size: int = 5
    download_retries: int = 1
    retry_backoff_seconds: float = 1.0


class YandexRecognitionOptions(BaseModel, frozen=True):
    """Recognition options sent with every long-audio job."""

    model: str = "general"
    language: str = "ru-RU"
    literature_text: bool = True
    profanity_filter: bool = False
    speaker_labeling: bool = True


class YandexConfig(BaseModel, frozen=True):
    """Yandex SpeechKit v3 and Object Storage configuration."""

    api_key: str
    folder_id: str
    api_endpoint: str = "stt.api.cloud.yandex.net"
    storage_endpoint: str = "storage.yandexcloud.net"
    storage_bucket: str = ""
    access_key_id: str = ""
    secret_access_key: str = ""
    # Seconds of audio the provider processes per second of wall time.
    throughput_factor: int = 15
    max_wait_multiplier: int = 2
    min_wait_seconds: int = 60
    max_wait_seconds: int = 7200
    poll_base_seconds: int = 5
    poll_step_seconds: int = 5
    poll_cap_seconds: int = 60
    request_timeout_seconds: float = 30.0
    options: YandexRecognitionOptions = YandexRecognitionOptions()


class OpenAIConfig(BaseModel, frozen=True):
    """OpenAI Whisper configuration."""

    api_key: str
    model: str = "whisper-1"
    prompt: str = (
        "The following is a psychotherapy session between a therapist and a client."
    )


class AssemblyAIConfig(BaseModel, frozen=True):
    """AssemblyAI API configuration."""

    api_key: str
    speakers_expected: int = 2


class GeminiConfig(BaseModel, frozen=True):
    """Gemini content generation configuration."""

    api_key: str
    model_name: str = "gemini-2.5-flash"


class RedisConfig(BaseModel, frozen=True):
    """Redis connection configuration."""

    host: str
    port: int = 6379
    idempotency_ttl_seconds: int = 300


class PostgresConfig(BaseModel, frozen=True):
    """PostgreSQL connection configuration."""

    host: str
    user: str
    password: str
    port: int
    database: str


class AppConfig(BaseModel, frozen=True):
    """Root application configuration."""

    rabbitmq: RabbitMQConfig
    consumer: ConsumerConfig
    minio: MinioConfig
    assembler: AssemblerConfig
    yandex: YandexConfig
    openai: OpenAIConfig
    assemblyai: AssemblyAIConfig
    gemini: GeminiConfig
    redis: RedisConfig
    postgres: PostgresConfig
    default_transcription_engine: str = "yandex-v3-ru"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def load_config() -> AppConfig:
    """Loads configuration from environment variables."""
    return AppConfig(
        rabbitmq=RabbitMQConfig(
            host=os.getenv("RABBITMQ_HOST", "rabbitmq"),
            user=os.getenv("RABBITMQ_USER", ""),
            password=os.getenv("RABBITMQ_PASSWORD", ""),
            queue_config=QueueConfig(
                name=os.getenv("QUEUE_NAME", "mypraxis-background-tasks"),
                max_delivery_count=int(os.getenv("QUEUE_MAX_RECEIVE_COUNT", "5")),
                dlq_name=os.getenv("QUEUE_DLQ_NAME", "mypraxis-background-tasks-dlq"),
                visibility_timeout_seconds=int(
                    os.getenv("QUEUE_VISIBILITY_TIMEOUT_SECONDS", "9000")
                ),
            ),
        ),
        consumer=ConsumerConfig(
            max_messages=int(os.getenv("CONSUMER_MAX_MESSAGES", "10")),
            wait_time_seconds=int(os.getenv("CONSUMER_WAIT_TIME_SECONDS", "20")),
        ),
        minio=MinioConfig(
            endpoint=os.getenv("MINIO_ENDPOINT", "minio:9000"),
            user=os.getenv("MINIO_USER", ""),
            password=os.getenv("MINIO_PASSWORD", ""),
            secure=_env_bool("MINIO_SECURE", "false"),
            recordings_bucket=os.getenv("RECORDINGS_BUCKET", "recordings"),
        ),
        assembler=AssemblerConfig(
            download_batch_size=int(os.getenv("CHUNK_DOWNLOAD_BATCH_SIZE", "5")),
        ),
        yandex=YandexConfig(
            api_key=os.getenv("YANDEX_API_KEY", ""),
            folder_id=os.getenv("YANDEX_FOLDER_ID", ""),
            storage_bucket=os.getenv("YANDEX_STORAGE_BUCKET", ""),
            access_key_id=os.getenv("YANDEX_ACCESS_KEY_ID", ""),
            secret_access_key=os.getenv("YANDEX_SECRET_ACCESS_KEY", ""),
            throughput_factor=int(os.getenv("YANDEX_THROUGHPUT_FACTOR", "15")),
            max_wait_multiplier=int(os.getenv("YANDEX_MAX_WAIT_MULTIPLIER", "2")),
        ),
        openai=OpenAIConfig(
            api_key=os.getenv("OPENAI_API_KEY", ""),
        ),
        assemblyai=AssemblyAIConfig(
            api_key=os.getenv("ASSEMBLYAI_API_KEY", ""),
        ),
        gemini=GeminiConfig(
            api_key=os.getenv("GEMINI_API_KEY", ""),
            model_name=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        ),
        redis=RedisConfig(
            host=os.getenv("REDIS_HOST", "redis"),
            port=int(os.getenv("REDIS_PORT", "6379")),
            idempotency_ttl_seconds=int(os.getenv("IDEMPOTENCY_TTL_SECONDS", "300")),
        ),
        postgres=PostgresConfig(
            host=os.getenv("POSTGRES_HOST", "postgres"),
            user=os.getenv("POSTGRES_USER", ""),
            password=os.getenv("POSTGRES_PASSWORD", ""),
            port=int(os.getenv("POSTGRES_PORT", "5432")),
            database=os.getenv("POSTGRES_DB", ""),
        ),
        default_transcription_engine=os.getenv(
            "DEFAULT_TRANSCRIPTION_ENGINE", "yandex-v3-ru"
        ),
    )

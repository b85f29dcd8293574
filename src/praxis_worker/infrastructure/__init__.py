"""Infrastructure layer exports."""

from .ffmpeg import FFmpegRunner
from .gemini_llm import GeminiLLMService
from .minio_storage import MinioStorageClient
from .prompt_content_generator import PromptContentGenerator
from .rabbitmq_broker import RabbitMQBroker
from .redis_idempotency import RedisIdempotencyStore

__all__ = [
    "FFmpegRunner",
    "GeminiLLMService",
    "MinioStorageClient",
    "PromptContentGenerator",
    "RabbitMQBroker",
    "RedisIdempotencyStore",
]

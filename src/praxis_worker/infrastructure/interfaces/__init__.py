from .idempotency_store import IdempotencyStore
from .llm_service import ContentGenerator, LLMService
from .message_broker import MessageBroker, MessagePublisher
from .storage import StorageClient
from .transcription_service import TranscriptionService

__all__ = [
    "ContentGenerator",
    "IdempotencyStore",
    "LLMService",
    "MessageBroker",
    "MessagePublisher",
    "StorageClient",
    "TranscriptionService",
]

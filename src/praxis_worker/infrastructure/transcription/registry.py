"""Selection of transcription providers by engine name."""

import threading
from collections.abc import Callable, Mapping
from enum import Enum

from praxis_worker.exceptions import UnsupportedTranscriptionEngineError
from praxis_worker.infrastructure.interfaces import TranscriptionService
from praxis_worker.logging import setup_logging

logger = setup_logging()


class TranscriptionEngine(str, Enum):
    YANDEX_V3_RU = "yandex-v3-ru"
    OPENAI_WHISPER = "openai-whisper"
    ASSEMBLYAI = "assemblyai"


class TranscriptionProviderRegistry:
    """
    Builds each provider on first use and reuses it afterwards.

    Factories run at most once per engine, even when several worker threads
    ask for the same engine at the same time.
    """

    def __init__(
        self,
        factories: Mapping[TranscriptionEngine, Callable[[], TranscriptionService]],
        default_engine: TranscriptionEngine = TranscriptionEngine.YANDEX_V3_RU,
    ):
        self._factories = dict(factories)
        self._default_engine = default_engine
        self._providers: dict[TranscriptionEngine, TranscriptionService] = {}
        self._lock = threading.Lock()

    def resolve_engine(self, name: str | None) -> TranscriptionEngine:
        """Maps a stored engine name to an engine, falling back to the default."""
        if not name:
            return self._default_engine
        try:
            return TranscriptionEngine(name)
        except ValueError:
            logger.warning(
                "Unknown transcription engine, using default",
                extra={"engine": name, "default": self._default_engine.value},
            )
            return self._default_engine

    def get(self, engine: TranscriptionEngine) -> TranscriptionService:
        """
        Returns the provider for an engine.

        Raises:
            UnsupportedTranscriptionEngineError: If no factory is registered.
        """
        provider = self._providers.get(engine)
        if provider is not None:
            return provider

        with self._lock:
            provider = self._providers.get(engine)
            if provider is None:
                factory = self._factories.get(engine)
                if factory is None:
                    raise UnsupportedTranscriptionEngineError(engine.value)
                provider = factory()
                self._providers[engine] = provider
                logger.info("Transcription provider created", extra={"engine": engine.value})
        return provider

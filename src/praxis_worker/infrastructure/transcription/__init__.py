from .assemblyai_transcriber import AssemblyAITranscriber
from .openai_transcriber import OpenAITranscriber
from .registry import TranscriptionEngine, TranscriptionProviderRegistry
from .yandex_long_audio import YandexLongAudioTranscriber

__all__ = [
    "AssemblyAITranscriber",
    "OpenAITranscriber",
    "TranscriptionEngine",
    "TranscriptionProviderRegistry",
    "YandexLongAudioTranscriber",
]

"""Background task worker: recording transcription and artifact generation."""

__version__ = "0.1.0"

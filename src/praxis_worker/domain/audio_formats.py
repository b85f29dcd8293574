"""File extension and content type rules for recorded audio."""

from pathlib import PurePosixPath

DEFAULT_EXTENSION = ".webm"

# Aliases whose container is really one of the common formats.
EXTENSION_REMAP = {
    ".weba": ".webm",
    ".mpga": ".mp3",
    ".aif": ".aiff",
    ".oga": ".ogg",
}

CONTENT_TYPES = {
    ".mp3": "audio/mpeg",
    ".ogg": "audio/ogg",
    ".opus": "audio/opus",
    ".wav": "audio/wav",
    ".webm": "audio/webm",
}


def normalize_extension(name: str) -> str:
    """Returns the lower-cased, remapped extension of a file or object name."""
    extension = PurePosixPath(name).suffix.lower() or DEFAULT_EXTENSION
    return EXTENSION_REMAP.get(extension, extension)


def content_type_for(name: str) -> str:
    return CONTENT_TYPES.get(normalize_extension(name), "application/octet-stream")

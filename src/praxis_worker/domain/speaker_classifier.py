"""Assignment of therapist/client roles to generic speaker labels."""

import re

from pydantic import ValidationError

from praxis_worker.exceptions import LLMServiceError, SpeakerClassificationError
from praxis_worker.infrastructure.interfaces import ContentGenerator
from praxis_worker.logging import setup_logging

from .models import ArtifactType, SpeakerRoleMapping, TranscriptionResult
from .transcript_formatter import TranscriptFormatter

logger = setup_logging()

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class SpeakerRoleClassifier:
    """Rewrites speaker labels of a transcription into semantic roles."""

    def __init__(self, generator: ContentGenerator, formatter: TranscriptFormatter):
        self._generator = generator
        self._formatter = formatter

    def classify(self, result: TranscriptionResult) -> TranscriptionResult:
        """
        Classifies the speakers of a transcription.

        Results without segments or already classified are returned as is.

        Args:
            result: Transcription with generic speaker labels.

        Returns:
            A copy of the result with every segment's speaker replaced by its
            role and `classified` set.

        Raises:
            SpeakerClassificationError: If the role mapping cannot be obtained
                or fails validation.
        """
        if not result.segments or result.classified:
            return result

        transcript = self._formatter.render(result.segments, with_millis=True)
        try:
            raw = self._generator.generate(
                ArtifactType.SESSION_SPEAKER_ROLES_CLASSIFICATION,
                {"session_transcript": transcript},
            )
        except LLMServiceError as e:
            raise SpeakerClassificationError("role generation failed", cause=e) from e

        observed = {segment.speaker for segment in result.segments}
        mapping = parse_role_mapping(raw, observed)

        segments = [
            segment.model_copy(update={"speaker": mapping[segment.speaker]})
            for segment in result.segments
        ]
        logger.info(
            "Speaker roles classified",
            extra={"mapping": mapping, "segment_count": len(segments)},
        )
        return result.model_copy(update={"segments": segments, "classified": True})


def parse_role_mapping(raw: str, observed_speakers: set[str]) -> dict[str, str]:
    """
    Parses and validates the generator's speaker-to-role mapping.

    Args:
        raw: JSON document, optionally wrapped in a markdown code fence.
        observed_speakers: Speaker labels that must all be mapped.

    Returns:
        Mapping of speaker label to lower-cased role.

    Raises:
        SpeakerClassificationError: On malformed JSON, a missing speaker, an
            unknown role, or invalid metadata.
    """
    try:
        reply = SpeakerRoleMapping.model_validate_json(_CODE_FENCE.sub("", raw.strip()))
    except ValidationError as e:
        raise SpeakerClassificationError(f"invalid role mapping: {e}", cause=e) from e

    missing = sorted(observed_speakers - reply.roles.keys())
    if missing:
        raise SpeakerClassificationError(f"no role for speakers {', '.join(missing)}")

    return dict(reply.roles)

"""Parsing and reconciliation of SpeechKit v3 recognition results.

A finished operation returns a stream of JSON objects, one per recognition
event. Finals carry the raw alternatives of an utterance, final refinements
carry the normalised (punctuated, literary) text of the same utterance, and
speaker analysis blocks describe the channels. Everything is tagged with the
channel it was heard on.
"""

import json
import math
from typing import Any

from pydantic import BaseModel, Field

from praxis_worker.domain.models import Segment, Utterance
from praxis_worker.logging import setup_logging

logger = setup_logging()

REFINED_TEXT_CONFIDENCE = 0.95
REFINEMENT_CONFIDENCE = 0.9
ALTERNATIVE_CONFIDENCE = 0.8


class ChannelEntry(BaseModel, frozen=True):
    """One recognition payload and the channel it belongs to."""

    channel: str
    final_index: int | None = None
    payload: dict[str, Any]


class ParsedRecognition(BaseModel):
    """All events of a recognition operation, grouped by kind."""

    alternatives: list[ChannelEntry] = Field(default_factory=list)
    refinements: list[ChannelEntry] = Field(default_factory=list)
    speaker_analysis: list[ChannelEntry] = Field(default_factory=list)
    eou_updates: list[ChannelEntry] = Field(default_factory=list)
    errors: list[dict[str, Any]] = Field(default_factory=list)
    channel_order: list[str] = Field(default_factory=list)
    done: bool | None = None
    skipped_objects: int = 0

    @property
    def has_results(self) -> bool:
        return bool(self.alternatives or self.refinements or self.speaker_analysis)

    def _see(self, channel: str) -> None:
        if channel not in self.channel_order:
            self.channel_order.append(channel)


def split_json_objects(body: str) -> tuple[list[Any], int]:
    """
    Decodes a body made of concatenated or newline-delimited JSON values.

    Pieces that fail to decode are skipped up to the next line break.

    Returns:
        Tuple of (decoded values, number of skipped pieces).
    """
    decoder = json.JSONDecoder()
    values: list[Any] = []
    skipped = 0
    position = 0
    length = len(body)

    while position < length:
        while position < length and body[position].isspace():
            position += 1
        if position >= length:
            break
        try:
            value, position = decoder.raw_decode(body, position)
            values.append(value)
        except json.JSONDecodeError:
            skipped += 1
            next_line = body.find("\n", position)
            position = length if next_line == -1 else next_line + 1

    return values, skipped


def parse_recognition_response(body: str) -> ParsedRecognition:
    """Merges every object of a getRecognition body into one ParsedRecognition."""
    values, skipped = split_json_objects(body)
    parsed = ParsedRecognition(skipped_objects=skipped)

    for value in values:
        if not isinstance(value, dict):
            continue
        if isinstance(value.get("error"), dict):
            parsed.errors.append(value["error"])
            continue
        if isinstance(value.get("done"), bool):
            parsed.done = value["done"] if parsed.done is None else parsed.done and value["done"]

        result = value.get("result", value)
        if not isinstance(result, dict):
            continue
        channel = str(result.get("channelTag", "0"))
        cursors = result.get("audioCursors") or {}

        final = result.get("final")
        if isinstance(final, dict) and final.get("alternatives"):
            parsed._see(channel)
            parsed.alternatives.append(
                ChannelEntry(
                    channel=channel,
                    final_index=_as_int(cursors.get("finalIndex")),
                    payload=final["alternatives"][0],
                )
            )

        refinement = result.get("finalRefinement")
        if isinstance(refinement, dict):
            parsed._see(channel)
            parsed.refinements.append(
                ChannelEntry(
                    channel=channel,
                    final_index=_as_int(refinement.get("finalIndex")),
                    payload=refinement,
                )
            )

        analysis = result.get("speakerAnalysis")
        if isinstance(analysis, dict):
            parsed._see(channel)
            parsed.speaker_analysis.append(ChannelEntry(channel=channel, payload=analysis))

        eou = result.get("eouUpdate")
        if isinstance(eou, dict):
            parsed.eou_updates.append(ChannelEntry(channel=channel, payload=eou))

    if skipped:
        logger.warning("Skipped undecodable response objects", extra={"count": skipped})
    return parsed


def reconcile_segments(parsed: ParsedRecognition) -> list[Segment]:
    """
    Builds the final segment list from parsed recognition events.

    Refined text wins over raw alternatives that overlap it in time on the same
    channel. Utterances starting in the same half second on a channel are
    collapsed to the best one, and overlapping utterances within a channel are
    resolved the same way.

    Returns:
        Segments sorted by start time, without empty text.
    """
    buckets: dict[str, dict[float, Utterance]] = {}
    refined_windows: dict[str, list[tuple[float, float]]] = {}

    for entry in parsed.refinements:
        utterance = _refined_utterance(entry, parsed.alternatives)
        if utterance is None:
            continue
        _store(buckets.setdefault(entry.channel, {}), utterance)
        refined_windows.setdefault(entry.channel, []).append(
            (utterance.start_time, utterance.end_time)
        )

    for entry in parsed.alternatives:
        utterance = _utterance_from(entry.payload, ALTERNATIVE_CONFIDENCE, refined=False)
        if utterance is None:
            continue
        if _overlaps_any(utterance, refined_windows.get(entry.channel, [])):
            continue
        _store(buckets.setdefault(entry.channel, {}), utterance)

    speakers = _speaker_names(parsed)
    segments: list[Segment] = []
    for channel, bucket in buckets.items():
        speaker = speakers.get(channel, f"speaker_{len(speakers) + 1}")
        for utterance in _without_overlaps(bucket.values()):
            text = utterance.text.strip()
            if not text:
                continue
            segments.append(
                Segment(
                    start_ms=round(utterance.start_time * 1000),
                    end_ms=round(utterance.end_time * 1000),
                    speaker=speaker,
                    content=text,
                )
            )

    segments.sort(key=lambda s: (s.start_ms, s.end_ms))
    return segments


def time_bucket(start_time: float) -> float:
    """Rounds a start time to the nearest half second, halves rounding up."""
    return math.floor(start_time * 2 + 0.5) / 2


def _refined_utterance(
    entry: ChannelEntry, alternatives: list[ChannelEntry]
) -> Utterance | None:
    refinement = entry.payload
    normalized = (refinement.get("normalizedText") or {}).get("alternatives") or []
    matching = _matching_alternative(entry, alternatives)

    punctuated = refinement.get("punctuatedText")
    if punctuated and matching is not None:
        timed = _utterance_from(matching.payload, REFINED_TEXT_CONFIDENCE, refined=True)
        if timed is not None:
            return timed.model_copy(
                update={"text": punctuated, "confidence": REFINED_TEXT_CONFIDENCE}
            )

    if not normalized:
        return None
    utterance = _utterance_from(normalized[0], REFINEMENT_CONFIDENCE, refined=True)
    if utterance is None and matching is not None and normalized[0].get("text"):
        timed = _utterance_from(matching.payload, REFINEMENT_CONFIDENCE, refined=True)
        if timed is not None:
            utterance = timed.model_copy(update={"text": normalized[0]["text"]})
    return utterance


def _matching_alternative(
    entry: ChannelEntry, alternatives: list[ChannelEntry]
) -> ChannelEntry | None:
    if entry.final_index is None:
        return None
    for candidate in alternatives:
        if candidate.channel == entry.channel and candidate.final_index == entry.final_index:
            return candidate
    return None


def _utterance_from(
    alternative: dict[str, Any], default_confidence: float, refined: bool
) -> Utterance | None:
    """Builds an utterance, preferring first/last word timings when present."""
    text = alternative.get("text")
    start_ms = _as_int(alternative.get("startTimeMs"))
    end_ms = _as_int(alternative.get("endTimeMs"))
    if not text or start_ms is None or end_ms is None:
        return None

    words = alternative.get("words") or []
    if words:
        first_start = _as_int(words[0].get("startTimeMs"))
        last_end = _as_int(words[-1].get("endTimeMs"))
        if first_start is not None:
            start_ms = first_start
        if last_end is not None:
            end_ms = last_end

    confidence = _as_float(alternative.get("confidence"))
    if confidence is None:
        confidence = default_confidence
    return Utterance(
        text=text,
        start_time=start_ms / 1000,
        end_time=end_ms / 1000,
        confidence=confidence,
        refined=refined,
    )


def _outranks(candidate: Utterance, current: Utterance) -> bool:
    return (candidate.refined, candidate.confidence) > (current.refined, current.confidence)


def _store(bucket: dict[float, Utterance], utterance: Utterance) -> None:
    key = time_bucket(utterance.start_time)
    current = bucket.get(key)
    if current is None or _outranks(utterance, current):
        bucket[key] = utterance


def _overlaps_any(utterance: Utterance, windows: list[tuple[float, float]]) -> bool:
    for start, end in windows:
        if utterance.start_time < end and start < utterance.end_time:
            return True
    return False


def _without_overlaps(utterances) -> list[Utterance]:
    kept: list[Utterance] = []
    for utterance in sorted(utterances, key=lambda u: (u.start_time, u.end_time)):
        if kept and utterance.start_time < kept[-1].end_time:
            if _outranks(utterance, kept[-1]):
                kept[-1] = utterance
            continue
        kept.append(utterance)
    return kept


def _speaker_names(parsed: ParsedRecognition) -> dict[str, str]:
    analysed = {entry.channel for entry in parsed.speaker_analysis}
    names: dict[str, str] = {}
    for position, channel in enumerate(parsed.channel_order):
        if analysed and channel.isdigit():
            names[channel] = f"speaker_{int(channel) + 1}"
        else:
            names[channel] = f"speaker_{position + 1}"
    return names


def _as_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None

import json

from praxis_worker.infrastructure.transcription.yandex_response import (
    parse_recognition_response,
    reconcile_segments,
    split_json_objects,
    time_bucket,
)


def _final(channel, text, start_ms, end_ms, final_index=0, words=None, confidence=None):
    alternative = {"text": text, "startTimeMs": str(start_ms), "endTimeMs": str(end_ms)}
    if words is not None:
        alternative["words"] = words
    if confidence is not None:
        alternative["confidence"] = confidence
    return {
        "result": {
            "channelTag": channel,
            "audioCursors": {"finalIndex": str(final_index)},
            "final": {"alternatives": [alternative], "channelTag": channel},
        }
    }


def _refinement(channel, text, start_ms, end_ms, final_index=0):
    return {
        "result": {
            "channelTag": channel,
            "finalRefinement": {
                "finalIndex": str(final_index),
                "normalizedText": {
                    "alternatives": [
                        {"text": text, "startTimeMs": str(start_ms), "endTimeMs": str(end_ms)}
                    ]
                },
            },
        }
    }


def _body(*objects, separator="\n"):
    return separator.join(json.dumps(o, ensure_ascii=False) for o in objects)


def test_split_handles_newlines_and_back_to_back_objects():
    values, skipped = split_json_objects('{"a": 1}\n{"b": 2}{"c": 3}\n')

    assert values == [{"a": 1}, {"b": 2}, {"c": 3}]
    assert skipped == 0


def test_split_skips_broken_lines():
    values, skipped = split_json_objects('{"a": 1}\n{"broken": \n{"c": 3}')

    assert values == [{"a": 1}, {"c": 3}]
    assert skipped == 1


def test_parse_groups_events_by_kind_and_channel():
    body = _body(
        _final("0", "привет", 0, 900),
        _refinement("0", "Привет.", 0, 900),
        {"result": {"channelTag": "1", "speakerAnalysis": {"speakerTag": "1"}}},
        {"result": {"channelTag": "0", "eouUpdate": {"timeMs": "950"}}},
    )

    parsed = parse_recognition_response(body)

    assert len(parsed.alternatives) == 1
    assert len(parsed.refinements) == 1
    assert len(parsed.speaker_analysis) == 1
    assert len(parsed.eou_updates) == 1
    assert parsed.channel_order == ["0", "1"]
    assert parsed.has_results


def test_parse_collects_operation_errors():
    parsed = parse_recognition_response('{"error": {"code": 3, "message": "bad audio"}}')

    assert parsed.errors == [{"code": 3, "message": "bad audio"}]
    assert not parsed.has_results


def test_refinement_wins_over_alternative_in_same_bucket():
    body = _body(
        _final("0", "raw first pass", 1000, 2500),
        _refinement("0", "Refined first pass.", 1100, 2500),
    )

    segments = reconcile_segments(parse_recognition_response(body))

    assert [s.content for s in segments] == ["Refined first pass."]


def test_refinement_wins_even_when_alternative_is_more_confident():
    body = _body(
        _final("0", "raw", 1000, 2000, confidence=0.99),
        _refinement("0", "Refined.", 1000, 2000),
    )

    segments = reconcile_segments(parse_recognition_response(body))

    assert [s.content for s in segments] == ["Refined."]


def test_alternative_kept_where_no_refinement_exists():
    body = _body(
        _final("0", "one", 0, 1000, final_index=0),
        _refinement("0", "One.", 0, 1000, final_index=0),
        _final("0", "two", 5000, 6000, final_index=1),
    )

    segments = reconcile_segments(parse_recognition_response(body))

    assert [s.content for s in segments] == ["One.", "two"]


def test_word_timestamps_tighten_boundaries():
    words = [
        {"text": "hello", "startTimeMs": "1200", "endTimeMs": "1500"},
        {"text": "there", "startTimeMs": "1600", "endTimeMs": "1900"},
    ]
    body = _body(_final("0", "hello there", 1000, 2500, words=words))

    [segment] = reconcile_segments(parse_recognition_response(body))

    assert (segment.start_ms, segment.end_ms) == (1200, 1900)


def test_segments_sorted_and_empty_text_dropped():
    body = _body(
        _final("1", "second speaker", 3000, 4000),
        _final("0", "   ", 500, 900),
        _final("0", "first speaker", 1000, 2000),
    )

    segments = reconcile_segments(parse_recognition_response(body))

    starts = [s.start_ms for s in segments]
    assert starts == sorted(starts)
    assert all(s.content.strip() for s in segments)
    assert [s.content for s in segments] == ["first speaker", "second speaker"]


def test_speakers_synthesized_in_first_seen_channel_order():
    body = _body(
        _final("1", "I start", 0, 1000),
        _final("0", "I answer", 2000, 3000),
    )

    segments = reconcile_segments(parse_recognition_response(body))

    assert [(s.speaker, s.content) for s in segments] == [
        ("speaker_1", "I start"),
        ("speaker_2", "I answer"),
    ]


def test_speakers_follow_channel_tags_when_analysis_present():
    body = _body(
        _final("1", "I start", 0, 1000),
        _final("0", "I answer", 2000, 3000),
        {"result": {"channelTag": "0", "speakerAnalysis": {"speakerTag": "0"}}},
        {"result": {"channelTag": "1", "speakerAnalysis": {"speakerTag": "1"}}},
    )

    segments = reconcile_segments(parse_recognition_response(body))

    assert [(s.speaker, s.content) for s in segments] == [
        ("speaker_2", "I start"),
        ("speaker_1", "I answer"),
    ]


def test_overlapping_alternatives_on_one_channel_are_collapsed():
    body = _body(
        _final("0", "partial", 1000, 3000, final_index=0, confidence=0.5),
        _final("0", "better", 2000, 3500, final_index=1, confidence=0.9),
    )

    segments = reconcile_segments(parse_recognition_response(body))

    assert [s.content for s in segments] == ["better"]


def test_time_bucket_rounds_halves_up():
    assert time_bucket(1.24) == 1.0
    assert time_bucket(1.25) == 1.5
    assert time_bucket(1.74) == 1.5
    assert time_bucket(1.75) == 2.0


def test_explicit_zero_confidence_is_kept():
    parsed = parse_recognition_response(
        _body(
            {
                "result": {
                    "channelTag": "0",
                    "final": {
                        "alternatives": [
                            {"text": "uh", "startTimeMs": "0", "endTimeMs": "900", "confidence": 0.0}
                        ]
                    },
                }
            },
            {
                "result": {
                    "channelTag": "0",
                    "final": {
                        "alternatives": [
                            {"text": "okay", "startTimeMs": "100", "endTimeMs": "800", "confidence": 0.5}
                        ]
                    },
                }
            },
        )
    )

    assert [s.content for s in reconcile_segments(parsed)] == ["okay"]

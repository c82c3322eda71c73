from __future__ import annotations

from notewright.asr.base import TranscriptSegment
from notewright.diarization.base import SpeakerSegment
from notewright.nlp.attribution import attribute, best_speaker, has_overlap, overlap_seconds


def test_overlap_seconds() -> None:
    assert overlap_seconds(0.0, 5.0, 3.0, 8.0) == 2.0
    assert overlap_seconds(0.0, 1.0, 2.0, 3.0) == 0.0


def test_largest_overlap_wins() -> None:
    segment = TranscriptSegment(0.0, 10.0, "hello")
    speakers = [SpeakerSegment(0.0, 3.0, 0), SpeakerSegment(3.0, 10.0, 1)]

    assert best_speaker(segment, speakers) == 1


def test_ties_go_to_earliest_start() -> None:
    segment = TranscriptSegment(2.0, 6.0, "tie")
    speakers = [SpeakerSegment(4.0, 8.0, 2), SpeakerSegment(0.0, 4.0, 1)]

    assert best_speaker(segment, speakers) == 1


def test_no_overlap_defaults_to_first_speaker() -> None:
    segment = TranscriptSegment(20.0, 25.0, "late")

    assert best_speaker(segment, [SpeakerSegment(0.0, 5.0, 3)]) == 0


def test_attribute_preserves_order_and_length() -> None:
    segments = [
        TranscriptSegment(0.0, 2.0, "a"),
        TranscriptSegment(2.0, 4.0, "b"),
        TranscriptSegment(4.0, 6.0, "c"),
    ]
    speakers = [SpeakerSegment(0.0, 3.0, 0), SpeakerSegment(3.0, 6.0, 1)]

    attributed = attribute(segments, speakers)

    assert [item.text for item in attributed] == ["a", "b", "c"]
    assert [item.speaker_id for item in attributed] == [0, 0, 1]
    assert [(item.start, item.end) for item in attributed] == [(0.0, 2.0), (2.0, 4.0), (4.0, 6.0)]


def test_attribute_without_speakers_uses_default() -> None:
    attributed = attribute([TranscriptSegment(0.0, 1.0, "solo")], [])

    assert attributed[0].speaker_id == 0


def test_has_overlap() -> None:
    segments = [TranscriptSegment(0.0, 2.0, "Hello team."), TranscriptSegment(2.0, 4.0, "Let's ship.")]

    assert has_overlap(segments, [SpeakerSegment(3.5, 9.0, 1)])
    assert not has_overlap(segments, [SpeakerSegment(4.0, 9.0, 1), SpeakerSegment(100.0, 110.0, 0)])
    assert not has_overlap(segments, [])

from __future__ import annotations

from typing import Sequence

from notewright.asr.base import AttributedTranscriptSegment, TranscriptSegment
from notewright.diarization.base import SpeakerSegment

DEFAULT_SPEAKER_ID = 0


def overlap_seconds(start_a: float, end_a: float, start_b: float, end_b: float) -> float:
    return max(0.0, min(end_a, end_b) - max(start_a, start_b))


def has_overlap(
    transcript_segments: Sequence[TranscriptSegment],
    speaker_segments: Sequence[SpeakerSegment],
) -> bool:
    """True when at least one speaker turn overlaps some speech."""

    return any(
        overlap_seconds(segment.start, segment.end, speaker.start, speaker.end) > 0.0
        for segment in transcript_segments
        for speaker in speaker_segments
    )


def best_speaker(segment: TranscriptSegment, speakers: Sequence[SpeakerSegment]) -> int:
    """Speaker with the largest overlap; ties go to the earliest-starting turn."""

    best_id = DEFAULT_SPEAKER_ID
    best_overlap = 0.0
    best_start = float("inf")
    for speaker in speakers:
        overlap = overlap_seconds(segment.start, segment.end, speaker.start, speaker.end)
        if overlap <= 0.0:
            continue
        if overlap > best_overlap or (overlap == best_overlap and speaker.start < best_start):
            best_id = speaker.speaker_id
            best_overlap = overlap
            best_start = speaker.start
    return max(best_id, DEFAULT_SPEAKER_ID)


def attribute(
    transcript_segments: Sequence[TranscriptSegment],
    speaker_segments: Sequence[SpeakerSegment],
) -> list[AttributedTranscriptSegment]:
    """Label every transcript segment with a speaker id.

    Output order and length always match `transcript_segments`.
    """

    return [
        AttributedTranscriptSegment(
            start=segment.start,
            end=segment.end,
            text=segment.text,
            speaker_id=best_speaker(segment, speaker_segments) if speaker_segments else DEFAULT_SPEAKER_ID,
        )
        for segment in transcript_segments
    ]

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from notewright.asr.base import AttributedTranscriptSegment


@dataclass(frozen=True, slots=True)
class ScreenContextEvent:
    timestamp_seconds: float
    window_title: str
    summary: str


@dataclass(frozen=True, slots=True)
class TimelineEntry:
    timestamp_seconds: float
    text: str
    speaker_id: int | None = None

    @property
    def is_screen(self) -> bool:
        return self.speaker_id is None


def build_timeline(
    segments: Iterable[AttributedTranscriptSegment],
    events: Iterable[ScreenContextEvent] = (),
) -> list[TimelineEntry]:
    entries: list[TimelineEntry] = []
    for segment in segments:
        text = segment.text.strip()
        if text:
            entries.append(TimelineEntry(max(segment.start, 0.0), text, segment.speaker_id))
    for event in events:
        summary = " ".join(event.summary.split())
        if summary:
            entries.append(TimelineEntry(max(event.timestamp_seconds, 0.0), summary))

    # Stable sort keeps input order; transcript lines win timestamp ties.
    entries.sort(key=lambda entry: (entry.timestamp_seconds, entry.is_screen))
    return entries


def format_clock(seconds: float) -> str:
    total = max(0, int(seconds))
    return f"{total // 60:02d}:{total % 60:02d}"


def render_timeline(entries: Iterable[TimelineEntry]) -> str:
    lines: list[str] = []
    for entry in entries:
        stamp = format_clock(entry.timestamp_seconds)
        if entry.is_screen:
            lines.append(f"[{stamp}] Screen context - {entry.text}")
        else:
            lines.append(f"[{stamp}] Speaker {entry.speaker_id + 1}: {entry.text}")
    return "\n".join(lines)

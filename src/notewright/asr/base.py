from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol


@dataclass(frozen=True, slots=True)
class TranscriptSegment:
    start: float
    end: float
    text: str


@dataclass(frozen=True, slots=True)
class AttributedTranscriptSegment:
    start: float
    end: float
    text: str
    speaker_id: int


@dataclass(slots=True)
class TranscriptionResult:
    text: str
    segments: list[TranscriptSegment] = field(default_factory=list)
    language: str | None = None


class Transcriber(Protocol):
    def transcribe(self, audio_path: Path) -> TranscriptionResult:
        """Transcribe an audio file into timestamped segments."""

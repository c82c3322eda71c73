from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass(frozen=True, slots=True)
class SpeakerSegment:
    start: float
    end: float
    speaker_id: int


class Diarizer(Protocol):
    def diarize(self, audio_path: Path) -> list[SpeakerSegment]:
        """Return speaker turns for an audio file. Failures may raise."""


class NullDiarizer:
    def diarize(self, audio_path: Path) -> list[SpeakerSegment]:
        return []

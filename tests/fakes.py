from __future__ import annotations

import datetime as dt
from pathlib import Path

from notewright.asr.base import TranscriptSegment, TranscriptionResult
from notewright.diarization.base import SpeakerSegment
from notewright.errors import EngineFailed
from notewright.models.manager import ModelProgress, ModelValidation

STARTED_AT = dt.datetime(2025, 12, 19, 10, 0)
PROCESSED_AT = dt.datetime(2025, 12, 19, 11, 0)

VALID_JSON = (
    '{"title": "Weekly Sync", "date": "2025-12-19", "summary": "Status update.", '
    '"decisions": ["Ship Friday"], '
    '"action_items": [{"owner": "Ana", "task": "Update notes", "due": "2025-12-22"}], '
    '"open_questions": [], "key_points": ["Latency improved"]}'
)


class FakeModelManager:
    def __init__(self, fractions: tuple[float, ...] = (0.0, 0.5, 1.0), error: Exception | None = None) -> None:
        self.fractions = fractions
        self.error = error
        self.calls = 0

    def ensure_ready(self, on_progress=None) -> None:
        self.calls += 1
        for fraction in self.fractions:
            if on_progress is not None:
                on_progress(ModelProgress(fraction, "models"))
        if self.error is not None:
            raise self.error

    def validate(self) -> ModelValidation:
        return ModelValidation()

    def remove(self, ids) -> None:
        pass


class FakeTranscriber:
    def __init__(self, result: TranscriptionResult | None = None, error: Exception | None = None) -> None:
        self.result = result or TranscriptionResult(
            text="Hello team. Let's ship.",
            segments=[
                TranscriptSegment(0.0, 2.0, "Hello team."),
                TranscriptSegment(2.0, 4.0, "Let's ship."),
            ],
        )
        self.error = error
        self.calls: list[Path] = []
        self.on_call = None

    def transcribe(self, audio_path: Path) -> TranscriptionResult:
        self.calls.append(audio_path)
        if self.on_call is not None:
            self.on_call()
        if self.error is not None:
            raise self.error
        return self.result


class FakeDiarizer:
    def __init__(self, segments: list[SpeakerSegment] | None = None, error: Exception | None = None) -> None:
        self.segments = segments or []
        self.error = error

    def diarize(self, audio_path: Path) -> list[SpeakerSegment]:
        if self.error is not None:
            raise self.error
        return list(self.segments)


class FakeSummarizer:
    """Replays canned outputs; an exception in either list is raised instead."""

    def __init__(self, outputs: list[str | Exception], repairs: list[str | Exception] | None = None) -> None:
        self.outputs = list(outputs)
        self.repairs = list(repairs or [])
        self.summarize_calls: list[str] = []
        self.repair_calls: list[str] = []
        self.on_summarize = None

    @staticmethod
    def _next(queue: list[str | Exception]) -> str:
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def summarize(self, timeline_text: str, meeting_date) -> str:
        self.summarize_calls.append(timeline_text)
        if self.on_summarize is not None:
            self.on_summarize()
        return self._next(self.outputs)

    def repair_json(self, raw_text: str) -> str:
        self.repair_calls.append(raw_text)
        return self._next(self.repairs)


def engine_failure() -> EngineFailed:
    return EngineFailed("transcription", exit_code=1, output="decoder crashed")

from __future__ import annotations

import datetime as dt
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Union

from notewright.errors import CancelledRun, NotewrightError
from notewright.nlp.extraction import Extraction
from notewright.nlp.timeline import ScreenContextEvent
from notewright.vault.contract import VaultFolders


class PipelineStage(str, Enum):
    DOWNLOADING_MODELS = "downloadingModels"
    TRANSCRIBING = "transcribing"
    SUMMARIZING = "summarizing"
    WRITING = "writing"


# Lower bound of each stage's progress band.
STAGE_START: dict[PipelineStage, float] = {
    PipelineStage.DOWNLOADING_MODELS: 0.0,
    PipelineStage.TRANSCRIBING: 0.1,
    PipelineStage.SUMMARIZING: 0.5,
    PipelineStage.WRITING: 0.85,
}


@dataclass(frozen=True, slots=True)
class ProgressUpdate:
    stage: PipelineStage
    fraction: float
    extraction: Extraction | None = None


# `None` signals completion: progress is cleared rather than reported as 1.0.
ProgressCallback = Callable[[Union[ProgressUpdate, None]], None]


@dataclass(frozen=True, slots=True)
class RunContext:
    """Everything one run needs. Built by the caller, never mutated."""

    folders: VaultFolders
    audio_path: Path
    audio_duration_seconds: float
    started_at: dt.datetime
    stopped_at: dt.datetime
    scratch_dir: Path
    keep_audio: bool = True
    keep_transcript: bool = True
    screen_events: tuple[ScreenContextEvent, ...] = ()


@dataclass(frozen=True, slots=True)
class PipelineResult:
    note_path: Path
    audio_path: Path | None = None


@dataclass(frozen=True, slots=True)
class PipelineFailure:
    error: NotewrightError

    @property
    def message(self) -> str:
        return self.error.user_message

    @property
    def debug_output(self) -> str:
        return self.error.debug_summary


@dataclass(frozen=True, slots=True)
class PipelineCancelled:
    pass


RunOutcome = Union[PipelineResult, PipelineFailure, PipelineCancelled]


class CancellationToken:
    """Cooperative cancellation flag checked at pipeline checkpoints."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancelledRun()


@dataclass(frozen=True, slots=True)
class Idle:
    label = "Idle"


@dataclass(frozen=True, slots=True)
class Recording:
    started_at: dt.datetime
    label = "Recording"


@dataclass(frozen=True, slots=True)
class Recorded:
    audio_path: Path
    duration_seconds: float
    label = "Recorded"


@dataclass(frozen=True, slots=True)
class Processing:
    stage: PipelineStage

    @property
    def label(self) -> str:
        return f"Processing - {self.stage.value}"


@dataclass(frozen=True, slots=True)
class Writing:
    extraction: Extraction | None = None
    label = "Writing"


@dataclass(frozen=True, slots=True)
class Done:
    result: PipelineResult
    label = "Done"


@dataclass(frozen=True, slots=True)
class Failed:
    error: NotewrightError
    label = "Failed"


PipelineState = Union[Idle, Recording, Recorded, Processing, Writing, Done, Failed]

from __future__ import annotations

import datetime as dt
import logging
import math
import shutil
from pathlib import Path
from typing import Callable, TypeVar

from notewright.asr.base import AttributedTranscriptSegment, Transcriber, TranscriptionResult
from notewright.diarization.base import Diarizer, SpeakerSegment
from notewright.errors import CancelledRun, JSONInvalid, NotewrightError
from notewright.export.md import render_note, render_transcript
from notewright.models.manager import ModelManager, ModelProgress
from notewright.nlp.attribution import attribute, has_overlap
from notewright.nlp.extraction import Extraction, decode_extraction, fallback_extraction, validate_extraction
from notewright.nlp.summarizer import Summarizer
from notewright.nlp.timeline import build_timeline, render_timeline
from notewright.pipeline.types import (
    STAGE_START,
    CancellationToken,
    PipelineCancelled,
    PipelineFailure,
    PipelineResult,
    PipelineStage,
    ProgressCallback,
    ProgressUpdate,
    RunContext,
    RunOutcome,
)
from notewright.vault.contract import destination_paths, iso_date
from notewright.vault.writer import VaultArtifacts, VaultWriteTransaction

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Model download progress is squeezed into [0, 0.1).
_DOWNLOAD_BAND_CEILING = math.nextafter(STAGE_START[PipelineStage.TRANSCRIBING], 0.0)


class _ProgressReporter:
    """Forwards progress while keeping fractions non-decreasing."""

    def __init__(self, callback: ProgressCallback | None) -> None:
        self._callback = callback
        self._last = 0.0

    def __call__(self, stage: PipelineStage, fraction: float, extraction: Extraction | None = None) -> None:
        self._last = max(self._last, fraction)
        if self._callback is not None:
            self._callback(ProgressUpdate(stage=stage, fraction=self._last, extraction=extraction))

    def clear(self) -> None:
        if self._callback is not None:
            self._callback(None)


class MeetingPipelineCoordinator:
    """Runs transcription, attribution, summarization and vault writes for one recording."""

    def __init__(
        self,
        *,
        transcriber: Transcriber,
        diarizer: Diarizer,
        summarizer_factory: Callable[[], Summarizer],
        model_manager: ModelManager,
        vault_writer: VaultWriteTransaction,
        clock: Callable[[], dt.datetime] = dt.datetime.now,
        scratch_root: Path | None = None,
    ) -> None:
        self.transcriber = transcriber
        self.diarizer = diarizer
        self.summarizer_factory = summarizer_factory
        self.model_manager = model_manager
        self.vault_writer = vault_writer
        self.clock = clock
        # Only scratch directories strictly inside this root are removed after a run.
        self.scratch_root = scratch_root

    def execute(
        self,
        context: RunContext,
        on_progress: ProgressCallback | None = None,
        token: CancellationToken | None = None,
    ) -> RunOutcome:
        token = token or CancellationToken()
        progress = _ProgressReporter(on_progress)
        try:
            result = self._run(context, progress, token)
        except CancelledRun:
            logger.info("Pipeline cancelled")
            return PipelineCancelled()
        except NotewrightError as exc:
            logger.error("Pipeline failed: %s", exc.debug_summary)
            return PipelineFailure(exc)
        finally:
            self._cleanup(context)
        progress.clear()
        return result

    def _run(self, context: RunContext, progress: _ProgressReporter, token: CancellationToken) -> PipelineResult:
        token.raise_if_cancelled()
        progress(PipelineStage.DOWNLOADING_MODELS, 0.0)

        def on_model_progress(update: ModelProgress) -> None:
            clamped = min(max(update.fraction, 0.0), 1.0)
            progress(PipelineStage.DOWNLOADING_MODELS, min(clamped * 0.1, _DOWNLOAD_BAND_CEILING))

        self._checkpoint(token, self.model_manager.ensure_ready, on_model_progress)

        token.raise_if_cancelled()
        progress(PipelineStage.TRANSCRIBING, STAGE_START[PipelineStage.TRANSCRIBING])
        transcription: TranscriptionResult = self._checkpoint(token, self.transcriber.transcribe, context.audio_path)
        logger.info("Transcribed %d segments", len(transcription.segments))

        speaker_segments = self._checkpoint(token, self._diarize_if_possible, context)
        attributed = attribute(transcription.segments, speaker_segments)
        timeline_text = render_timeline(build_timeline(attributed, context.screen_events))

        token.raise_if_cancelled()
        progress(PipelineStage.SUMMARIZING, STAGE_START[PipelineStage.SUMMARIZING])
        summarizer = self.summarizer_factory()
        raw_output = self._checkpoint(token, summarizer.summarize, timeline_text, context.started_at)
        extraction = self._decode_or_repair(raw_output, context.started_at, summarizer, token)

        token.raise_if_cancelled()
        progress(PipelineStage.WRITING, STAGE_START[PipelineStage.WRITING], extraction)
        return self._write_outputs(
            context,
            extraction,
            transcription,
            attributed if has_overlap(transcription.segments, speaker_segments) else [],
        )

    @staticmethod
    def _checkpoint(token: CancellationToken, call: Callable[..., T], *args) -> T:
        token.raise_if_cancelled()
        value = call(*args)
        token.raise_if_cancelled()
        return value

    def _diarize_if_possible(self, context: RunContext) -> list[SpeakerSegment]:
        try:
            return list(self.diarizer.diarize(context.audio_path))
        except Exception as exc:
            logger.warning("Diarization failed; continuing without speakers: %s", exc)
            return []

    def _decode_or_repair(
        self,
        raw_output: str,
        recording_date: dt.datetime,
        summarizer: Summarizer,
        token: CancellationToken,
    ) -> Extraction:
        try:
            return validate_extraction(decode_extraction(raw_output), recording_date)
        except JSONInvalid as exc:
            logger.info("Extraction JSON invalid (%s); attempting repair", exc)

        repaired = self._checkpoint(token, summarizer.repair_json, raw_output)
        try:
            return validate_extraction(decode_extraction(repaired), recording_date)
        except JSONInvalid as exc:
            logger.error("Extraction still invalid after repair (%s); using fallback", exc)
            return fallback_extraction(recording_date)

    def _write_outputs(
        self,
        context: RunContext,
        extraction: Extraction,
        transcription: TranscriptionResult,
        attributed: list[AttributedTranscriptSegment],
    ) -> PipelineResult:
        paths = destination_paths(
            context.folders,
            context.started_at,
            extraction.title,
            keep_audio=context.keep_audio,
            keep_transcript=context.keep_transcript,
            audio_extension=context.audio_path.suffix or ".wav",
        )

        transcript_bytes: bytes | None = None
        if paths.transcript is not None:
            transcript_bytes = render_transcript(
                title=extraction.title,
                date_iso=extraction.date or iso_date(context.started_at),
                text=transcription.text,
                attributed=attributed,
            ).encode("utf-8")

        note = render_note(
            extraction,
            processed_at=self.clock(),
            audio_path=paths.audio,
            transcript_path=paths.transcript,
        )
        committed = self.vault_writer.commit(
            VaultArtifacts(
                note=note.encode("utf-8"),
                transcript=transcript_bytes,
                audio_source=context.audio_path if paths.audio is not None else None,
            ),
            paths,
        )
        return PipelineResult(note_path=committed.note_path, audio_path=committed.audio_path)

    def _cleanup(self, context: RunContext) -> None:
        if self.scratch_root is None:
            return
        root = self.scratch_root.resolve()
        scratch = context.scratch_dir.resolve()
        if root not in scratch.parents:
            logger.warning("Leaving scratch directory outside %s in place: %s", root, scratch)
            return
        shutil.rmtree(scratch, ignore_errors=True)

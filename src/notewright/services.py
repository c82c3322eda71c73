from __future__ import annotations

import datetime as dt
import logging
import uuid
from pathlib import Path
from typing import Callable

from notewright.asr.faster_whisper_backend import FasterWhisperTranscriber
from notewright.audio.ffmpeg import convert_to_contract_wav, wav_duration_seconds
from notewright.config import SUMMARIZER_BACKENDS, Settings, get_settings
from notewright.diarization.base import Diarizer, NullDiarizer
from notewright.diarization.pyannote_backend import PyannoteDiarizer
from notewright.models.manager import LocalModelManager, model_specs_from_settings
from notewright.nlp.summarizer import ExtractiveSummarizer, LlamaSummarizer, Summarizer
from notewright.pipeline.coordinator import MeetingPipelineCoordinator
from notewright.pipeline.session import Dispatch, PipelineSession
from notewright.pipeline.types import PipelineState, RunContext
from notewright.vault.access import VaultAccess
from notewright.vault.writer import VaultWriteTransaction

logger = logging.getLogger(__name__)


class NotewrightService:
    """Builds live collaborators from settings and prepares runs."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.settings.ensure_dirs()

    def _scratch_dir(self) -> Path:
        run_dir = self.settings.temp_dir / f"run_{uuid.uuid4().hex[:8]}"
        run_dir.mkdir(parents=True, exist_ok=True)
        return run_dir

    def model_manager(self, asr_model: str | None = None, *, allow_download: bool | None = None) -> LocalModelManager:
        return LocalModelManager(
            model_specs_from_settings(self.settings, asr_model),
            allow_download=self.settings.allow_model_download if allow_download is None else allow_download,
        )

    def summarizer_factory(self) -> Callable[[], Summarizer]:
        backend = self.settings.summarizer_backend.strip().lower()
        if backend not in SUMMARIZER_BACKENDS:
            raise ValueError(
                f"Unsupported summarizer '{self.settings.summarizer_backend}'. Allowed: {', '.join(SUMMARIZER_BACKENDS)}"
            )
        if backend == "extractive":
            return ExtractiveSummarizer

        settings = self.settings
        return lambda: LlamaSummarizer(
            settings.llm_model_path,
            temperature=settings.llm_temperature,
            top_p=settings.llm_top_p,
            seed=settings.llm_seed,
            max_tokens=settings.llm_max_tokens,
            context_size=settings.llm_context_size,
            max_output_bytes=settings.llm_max_output_bytes,
        )

    def diarizer(self) -> Diarizer:
        if not self.settings.diarization_enabled:
            return NullDiarizer()
        return PyannoteDiarizer(
            self.settings.diarization_model,
            device=self.settings.diarization_device,
            hf_token=self.settings.hf_token,
        )

    def build_coordinator(self, *, vault_dir: Path | None = None, asr_model: str | None = None) -> MeetingPipelineCoordinator:
        model_name = asr_model or self.settings.default_asr_model
        manager = self.model_manager(model_name)
        return MeetingPipelineCoordinator(
            transcriber=FasterWhisperTranscriber(
                self.settings.resolve_asr_model_path(model_name),
                language=self.settings.default_language,
                compute_type=self.settings.default_compute_type,
            ),
            diarizer=self.diarizer(),
            summarizer_factory=self.summarizer_factory(),
            model_manager=manager,
            vault_writer=VaultWriteTransaction(VaultAccess(vault_dir or self.settings.vault_dir)),
            scratch_root=self.settings.temp_dir,
        )

    def open_session(
        self,
        *,
        vault_dir: Path | None = None,
        asr_model: str | None = None,
        dispatch: Dispatch | None = None,
        on_state: Callable[[PipelineState], None] | None = None,
    ) -> PipelineSession:
        coordinator = self.build_coordinator(vault_dir=vault_dir, asr_model=asr_model)
        return PipelineSession(coordinator, dispatch=dispatch, on_state=on_state)

    def prepare_context(
        self,
        audio_file: Path,
        *,
        started_at: dt.datetime | None = None,
        keep_audio: bool | None = None,
        keep_transcript: bool | None = None,
    ) -> RunContext:
        if not audio_file.exists():
            raise FileNotFoundError(f"Input audio file does not exist: {audio_file}")

        scratch_dir = self._scratch_dir()
        wav_path = convert_to_contract_wav(audio_file, scratch_dir / "audio.wav", self.settings.ffmpeg_path)
        duration = wav_duration_seconds(wav_path)
        if started_at is None:
            started_at = dt.datetime.fromtimestamp(audio_file.stat().st_mtime) - dt.timedelta(seconds=duration)
        logger.info("Prepared %s (%.1fs)", audio_file.name, duration)

        return RunContext(
            folders=self.settings.vault_folders(),
            audio_path=wav_path,
            audio_duration_seconds=duration,
            started_at=started_at,
            stopped_at=started_at + dt.timedelta(seconds=duration),
            scratch_dir=scratch_dir,
            keep_audio=self.settings.keep_audio if keep_audio is None else keep_audio,
            keep_transcript=self.settings.keep_transcript if keep_transcript is None else keep_transcript,
        )

from __future__ import annotations

import logging
from pathlib import Path

from notewright.asr.base import TranscriptSegment, TranscriptionResult
from notewright.errors import EngineFailed, EngineMissing

logger = logging.getLogger(__name__)


def _auto_device() -> str:
    try:
        import ctranslate2  # type: ignore

        count = int(getattr(ctranslate2, "get_cuda_device_count", lambda: 0)())
        return "cuda" if count > 0 else "cpu"
    except Exception:
        return "cpu"


class FasterWhisperTranscriber:
    """Local faster-whisper transcription from an explicit model directory."""

    def __init__(
        self,
        model_path: Path,
        *,
        language: str | None = None,
        device: str = "auto",
        compute_type: str = "int8",
    ) -> None:
        self.model_path = model_path
        self.language = None if language in (None, "auto") else language
        self.device = device
        self.compute_type = compute_type
        self.active_device: str | None = None
        self.active_compute_type: str | None = None
        self._model = None

    @staticmethod
    def _whisper_model_class():
        from faster_whisper import WhisperModel  # type: ignore

        return WhisperModel

    def _load_model(self):
        if self._model is not None:
            return self._model

        if not self.model_path.exists():
            raise EngineMissing(
                "transcription",
                f"Model path not found: {self.model_path}. "
                "Run `notewright models ensure` or place the model there manually.",
            )
        try:
            whisper_model_class = self._whisper_model_class()
        except ImportError as exc:
            raise EngineMissing("transcription", "faster-whisper is not installed.") from exc

        device = _auto_device() if self.device == "auto" else self.device
        candidates: list[tuple[str, str]] = [(device, self.compute_type)]
        if device == "cuda":
            candidates.append(("cpu", "int8"))

        errors: list[str] = []
        for candidate_device, candidate_compute in candidates:
            try:
                self._model = whisper_model_class(
                    str(self.model_path),
                    device=candidate_device,
                    compute_type=candidate_compute,
                    local_files_only=True,
                )
                self.active_device = candidate_device
                self.active_compute_type = candidate_compute
                break
            except Exception as exc:  # pragma: no cover - hardware and package dependent
                logger.warning("faster-whisper init failed on %s/%s: %s", candidate_device, candidate_compute, exc)
                errors.append(f"{candidate_device}/{candidate_compute}: {exc}")

        if self._model is None:
            raise EngineFailed("transcription", output="Failed to initialize faster-whisper model. " + " | ".join(errors))
        logger.info("faster-whisper ready on %s/%s", self.active_device, self.active_compute_type)
        return self._model

    def transcribe(self, audio_path: Path) -> TranscriptionResult:
        model = self._load_model()
        try:
            segments_iter, info = model.transcribe(
                str(audio_path),
                language=self.language,
                beam_size=5,
                condition_on_previous_text=False,
                vad_filter=False,
            )
            segments: list[TranscriptSegment] = []
            for item in segments_iter:
                text = item.text.strip()
                if not text:
                    continue
                start = max(float(item.start), 0.0)
                segments.append(TranscriptSegment(start=start, end=max(float(item.end), start), text=text))
        except Exception as exc:
            raise EngineFailed("transcription", output=str(exc)) from exc

        return TranscriptionResult(
            text=" ".join(segment.text for segment in segments),
            segments=segments,
            language=getattr(info, "language", self.language),
        )

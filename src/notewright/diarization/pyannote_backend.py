from __future__ import annotations

import logging
from pathlib import Path

from notewright.diarization.base import SpeakerSegment
from notewright.errors import EngineFailed, EngineMissing

logger = logging.getLogger(__name__)


def label_turns(turns: list[tuple[float, float, str]]) -> list[SpeakerSegment]:
    """Map string speaker labels to integer ids in order of first appearance."""

    ids: dict[str, int] = {}
    segments: list[SpeakerSegment] = []
    for start, end, label in turns:
        speaker_id = ids.setdefault(label, len(ids))
        start = max(float(start), 0.0)
        segments.append(SpeakerSegment(start=start, end=max(float(end), start), speaker_id=speaker_id))
    return segments


class PyannoteDiarizer:
    def __init__(self, model: str, *, device: str = "cpu", hf_token: str | None = None) -> None:
        self.model = model
        self.device = device
        self.hf_token = hf_token
        self._pipeline = None

    def _load_pipeline(self):
        if self._pipeline is not None:
            return self._pipeline
        try:
            from pyannote.audio import Pipeline  # type: ignore
        except ImportError as exc:
            raise EngineMissing("diarization", "pyannote.audio is not installed.") from exc

        logger.info("Loading diarization model: %s (device=%s)", self.model, self.device)
        try:
            pipeline = Pipeline.from_pretrained(self.model, use_auth_token=self.hf_token)
            if pipeline is None:
                raise RuntimeError(f"Pipeline {self.model} could not be loaded (gated model or missing token?)")
            import torch  # type: ignore

            pipeline.to(torch.device(self.device))
        except Exception as exc:
            raise EngineFailed("diarization", output=str(exc)) from exc
        self._pipeline = pipeline
        return pipeline

    def diarize(self, audio_path: Path) -> list[SpeakerSegment]:
        pipeline = self._load_pipeline()
        try:
            annotation = pipeline(str(audio_path))
        except Exception as exc:
            raise EngineFailed("diarization", output=str(exc)) from exc

        turns = [
            (float(turn.start), float(turn.end), str(speaker))
            for turn, _, speaker in annotation.itertracks(yield_label=True)
        ]
        turns.sort(key=lambda item: item[0])
        segments = label_turns(turns)
        logger.info("Diarization produced %d segments, %d speakers", len(segments), len({s.speaker_id for s in segments}))
        return segments

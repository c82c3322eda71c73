from __future__ import annotations

import datetime as dt
import itertools
from pathlib import Path

import pytest

from fakes import PROCESSED_AT, STARTED_AT, VALID_JSON, FakeDiarizer, FakeModelManager, FakeSummarizer, FakeTranscriber
from notewright.pipeline.coordinator import MeetingPipelineCoordinator
from notewright.pipeline.types import RunContext
from notewright.vault.access import VaultAccess
from notewright.vault.contract import VaultFolders
from notewright.vault.writer import VaultWriteTransaction


@pytest.fixture
def vault(tmp_path: Path) -> Path:
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture
def run_context(tmp_path: Path):
    counter = itertools.count()

    def build(**overrides) -> RunContext:
        scratch = tmp_path / "scratch" / f"run_{next(counter)}"
        scratch.mkdir(parents=True)
        audio = scratch / "audio.wav"
        audio.write_bytes(b"RIFF-fake-audio")
        values = dict(
            folders=VaultFolders(),
            audio_path=audio,
            audio_duration_seconds=4.0,
            started_at=STARTED_AT,
            stopped_at=STARTED_AT + dt.timedelta(seconds=4),
            scratch_dir=scratch,
        )
        values.update(overrides)
        return RunContext(**values)

    return build


@pytest.fixture
def make_coordinator(vault: Path, tmp_path: Path):
    def build(
        *,
        summarizer: FakeSummarizer | None = None,
        transcriber: FakeTranscriber | None = None,
        diarizer: FakeDiarizer | None = None,
        model_manager: FakeModelManager | None = None,
    ) -> MeetingPipelineCoordinator:
        summarizer = summarizer or FakeSummarizer([VALID_JSON])
        return MeetingPipelineCoordinator(
            transcriber=transcriber or FakeTranscriber(),
            diarizer=diarizer or FakeDiarizer(),
            summarizer_factory=lambda: summarizer,
            model_manager=model_manager or FakeModelManager(),
            vault_writer=VaultWriteTransaction(VaultAccess(vault)),
            clock=lambda: PROCESSED_AT,
            scratch_root=tmp_path / "scratch",
        )

    return build

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from notewright.diarization.base import NullDiarizer, SpeakerSegment
from notewright.diarization.pyannote_backend import PyannoteDiarizer, label_turns
from notewright.errors import EngineMissing


def test_label_turns_numbers_speakers_by_first_appearance() -> None:
    segments = label_turns(
        [
            (0.0, 2.0, "SPEAKER_07"),
            (2.0, 3.0, "SPEAKER_02"),
            (3.0, 5.0, "SPEAKER_07"),
            (-1.0, -2.0, "SPEAKER_09"),
        ]
    )

    assert segments == [
        SpeakerSegment(0.0, 2.0, 0),
        SpeakerSegment(2.0, 3.0, 1),
        SpeakerSegment(3.0, 5.0, 0),
        SpeakerSegment(0.0, 0.0, 2),
    ]


def test_null_diarizer_returns_no_turns(tmp_path: Path) -> None:
    assert NullDiarizer().diarize(tmp_path / "a.wav") == []


def test_pyannote_not_installed_is_engine_missing(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setitem(sys.modules, "pyannote", None)
    monkeypatch.setitem(sys.modules, "pyannote.audio", None)

    with pytest.raises(EngineMissing):
        PyannoteDiarizer("pyannote/speaker-diarization-3.1").diarize(tmp_path / "a.wav")

from __future__ import annotations

from pathlib import Path

import pytest
from rich.console import Console
from typer.testing import CliRunner

from notewright import cli
from notewright.config import Settings, get_settings

runner = CliRunner()


@pytest.fixture
def isolated_settings(monkeypatch, tmp_path: Path) -> Settings:
    monkeypatch.setenv("NOTEWRIGHT_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("NOTEWRIGHT_SUMMARIZER_BACKEND", "extractive")
    monkeypatch.setattr(cli, "console", Console(width=200))
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


def test_models_validate_reports_missing(isolated_settings: Settings) -> None:
    result = runner.invoke(cli.app, ["models", "validate"])

    assert result.exit_code == 1
    assert "asr:small" in result.output
    assert "MISSING" in result.output


def test_models_ensure_without_download_fails(isolated_settings: Settings) -> None:
    result = runner.invoke(cli.app, ["models", "ensure"])

    assert result.exit_code == 2
    assert "Required model files are missing." in result.output


def test_models_remove_rejects_unknown_id(isolated_settings: Settings) -> None:
    result = runner.invoke(cli.app, ["models", "remove", "nope"])

    assert result.exit_code == 2
    assert "Unknown model ids" in result.output


def test_process_rejects_bad_asr_model(isolated_settings: Settings, tmp_path: Path) -> None:
    audio = tmp_path / "meeting.wav"
    audio.write_bytes(b"RIFF")

    result = runner.invoke(cli.app, ["process", str(audio), "--model", "tiny"])

    assert result.exit_code == 2
    assert "Unsupported ASR model" in result.output

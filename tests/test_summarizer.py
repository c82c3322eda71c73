from __future__ import annotations

import datetime as dt
import json
from pathlib import Path

import pytest

from notewright.errors import EngineFailed, EngineMissing, ModelUnavailable
from notewright.nlp.extraction import decode_extraction
from notewright.nlp.prompts import clip_transcript, repair_prompt, summarization_prompt
from notewright.nlp.summarizer import ExtractiveSummarizer, LlamaSummarizer, strip_to_object

MEETING_DAY = dt.date(2025, 12, 19)


def _fake_llama(outputs: list[str], prompts: list[str]):
    class FakeLlama:
        def __init__(self, **kwargs) -> None:
            self.kwargs = kwargs

        def __call__(self, prompt: str, **kwargs):
            prompts.append(prompt)
            return {"choices": [{"text": outputs.pop(0)}]}

    return FakeLlama


def _model_file(tmp_path: Path) -> Path:
    path = tmp_path / "model.gguf"
    path.write_bytes(b"gguf")
    return path


def test_strip_to_object() -> None:
    assert strip_to_object('  {"title": "T"}\n') == '{"title": "T"}'
    assert strip_to_object('Sure: {"title": "T"}') == 'Sure: {"title": "T"}'
    assert strip_to_object("nothing") == "nothing"


def test_prompts_embed_schema_and_date() -> None:
    prompt = summarization_prompt("[00:00] Speaker 1: hi", MEETING_DAY)

    assert '"action_items"' in prompt
    assert 'date must be "2025-12-19"' in prompt
    assert prompt.rstrip().endswith("[00:00] Speaker 1: hi")
    assert "Invalid output:\n{broken" in repair_prompt("{broken")


def test_clip_transcript_keeps_head_and_tail() -> None:
    text = "a" * 50 + "b" * 50

    clipped = clip_transcript(text, limit=20)

    assert clipped == "a" * 10 + "\n[...]\n" + "b" * 10
    assert clip_transcript("short", limit=20) == "short"


def test_llama_summarize_and_repair(monkeypatch, tmp_path: Path) -> None:
    prompts: list[str] = []
    outputs = ['{"title": "Sync"}', '  {"title": "Fixed"}  ']
    monkeypatch.setattr(LlamaSummarizer, "_llama_class", staticmethod(lambda: _fake_llama(outputs, prompts)))

    summarizer = LlamaSummarizer(_model_file(tmp_path))

    assert summarizer.summarize("[00:00] Speaker 1: hi", MEETING_DAY) == '{"title": "Sync"}'
    assert summarizer.repair_json("{bad") == '{"title": "Fixed"}'
    assert prompts[0].startswith("You must output JSON only.")
    assert "Invalid output:\n{bad" in prompts[1]


def test_llama_output_over_limit_fails(monkeypatch, tmp_path: Path) -> None:
    outputs = ["x" * 64]
    monkeypatch.setattr(LlamaSummarizer, "_llama_class", staticmethod(lambda: _fake_llama(outputs, [])))

    summarizer = LlamaSummarizer(_model_file(tmp_path), max_output_bytes=16)

    with pytest.raises(EngineFailed):
        summarizer.summarize("text", MEETING_DAY)


def test_llama_missing_model_file(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr(LlamaSummarizer, "_llama_class", staticmethod(lambda: _fake_llama([], [])))

    with pytest.raises(ModelUnavailable):
        LlamaSummarizer(tmp_path / "absent.gguf").summarize("text", MEETING_DAY)


def test_llama_not_installed(monkeypatch, tmp_path: Path) -> None:
    def missing():
        raise ImportError("No module named 'llama_cpp'")

    monkeypatch.setattr(LlamaSummarizer, "_llama_class", staticmethod(missing))

    with pytest.raises(EngineMissing, match="pip install"):
        LlamaSummarizer(_model_file(tmp_path)).summarize("text", MEETING_DAY)


def test_extractive_summarizer_emits_schema_json() -> None:
    timeline = "\n".join(
        [
            "[00:00] Speaker 1: The release planning covers the release date.",
            "[00:05] Speaker 2: Ana will update the release notes.",
            "[00:09] Screen context - Release board open.",
            "[00:12] Speaker 1: Who owns the release checklist?",
        ]
    )

    raw = ExtractiveSummarizer(max_key_points=2).summarize(timeline, MEETING_DAY)
    payload = json.loads(raw)
    extraction = decode_extraction(raw)

    assert extraction.title == "Meeting 2025-12-19"
    assert extraction.date == "2025-12-19"
    assert len(extraction.key_points) == 2
    assert extraction.action_items[0].task == "Ana will update the release notes."
    assert extraction.open_questions == ["Who owns the release checklist?"]
    assert payload["decisions"] == []
    assert not any("Speaker" in point for point in extraction.key_points)


def test_extractive_repair_is_identity() -> None:
    assert ExtractiveSummarizer().repair_json("{x") == "{x"

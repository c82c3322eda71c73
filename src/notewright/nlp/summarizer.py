from __future__ import annotations

import datetime as dt
import json
import logging
import os
import re
from pathlib import Path
from typing import Protocol

from notewright.errors import EngineFailed, EngineMissing, ModelUnavailable
from notewright.nlp.json_extract import extract_first_object
from notewright.nlp.prompts import repair_prompt, summarization_prompt
from notewright.vault.contract import iso_date

logger = logging.getLogger(__name__)


class Summarizer(Protocol):
    def summarize(self, timeline_text: str, meeting_date: dt.date | dt.datetime) -> str:
        """Return raw model output that should contain one extraction JSON object."""

    def repair_json(self, raw_text: str) -> str:
        """Ask the model to turn invalid output into a schema-conforming object."""


def strip_to_object(raw_output: str) -> str:
    """Return the bare JSON object when the output holds nothing else.

    Output with extra text around the object is returned trimmed but otherwise
    intact, so the strict decoder can decide whether a repair pass is needed.
    """

    trimmed = raw_output.strip()
    found = extract_first_object(trimmed)
    if found is not None and not found.has_extraneous_content:
        return found.text
    return trimmed


class LlamaSummarizer:
    """Schema extraction with a local GGUF model through llama-cpp-python."""

    def __init__(
        self,
        model_path: Path,
        *,
        temperature: float = 0.2,
        top_p: float = 0.9,
        seed: int = 42,
        max_tokens: int = 1024,
        context_size: int = 4096,
        max_output_bytes: int = 5 * 1024 * 1024,
    ) -> None:
        self.model_path = model_path
        self.temperature = temperature
        self.top_p = top_p
        self.seed = seed
        self.max_tokens = max_tokens
        self.context_size = context_size
        self.max_output_bytes = max_output_bytes
        self._llm = None

    @staticmethod
    def _llama_class():
        from llama_cpp import Llama  # type: ignore

        return Llama

    def _load(self):
        if self._llm is not None:
            return self._llm
        try:
            llama_class = self._llama_class()
        except ImportError as exc:
            raise EngineMissing(
                "summarization",
                "llama-cpp-python not installed. Install with: pip install -e '.[llm]'",
            ) from exc
        if not self.model_path.exists():
            raise ModelUnavailable(["llm"], f"LLM model not found: {self.model_path}")

        n_threads = max((os.cpu_count() or 4) - 1, 1)
        try:
            self._llm = llama_class(
                model_path=str(self.model_path),
                n_ctx=self.context_size,
                n_threads=n_threads,
                seed=self.seed,
                verbose=False,
            )
        except Exception as exc:
            raise EngineFailed("summarization", output=f"Failed to load {self.model_path.name}: {exc}") from exc
        return self._llm

    def _run(self, prompt: str) -> str:
        llm = self._load()
        logger.info("Running llama: model=%s", self.model_path.name)
        try:
            response = llm(
                prompt,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                top_p=self.top_p,
                stop=["</s>"],
            )
            text = response["choices"][0]["text"]
        except Exception as exc:
            raise EngineFailed("summarization", output=str(exc)) from exc

        if len(text.encode("utf-8")) > self.max_output_bytes:
            raise EngineFailed("summarization", output="llama output exceeded limit")
        logger.debug("llama raw output: %s", text)
        return strip_to_object(text)

    def summarize(self, timeline_text: str, meeting_date: dt.date | dt.datetime) -> str:
        return self._run(summarization_prompt(timeline_text, meeting_date))

    def repair_json(self, raw_text: str) -> str:
        return self._run(repair_prompt(raw_text))


_STOPWORDS = {
    "the", "a", "an", "and", "or", "to", "for", "of", "in", "on", "with", "is", "are",
    "was", "were", "be", "it", "that", "this", "we", "they", "you", "i",
}
_LINE_PREFIX = re.compile(r"^\[\d{2}:\d{2}\]\s+(?:Speaker \d+:|Screen context -)\s*")
_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")
_WORD_SPLIT = re.compile(r"[A-Za-z0-9_]+")
_ACTION_MARKERS = ("action", "todo", "next step", "will ")
_QUESTION_MARKERS = ("?",)


def _tokenize(text: str) -> list[str]:
    return [match.group(0).lower() for match in _WORD_SPLIT.finditer(text)]


class ExtractiveSummarizer:
    """Model-free summarizer that emits the extraction schema from scored sentences."""

    def __init__(self, max_key_points: int = 6) -> None:
        self.max_key_points = max_key_points

    def summarize(self, timeline_text: str, meeting_date: dt.date | dt.datetime) -> str:
        spoken = "\n".join(_LINE_PREFIX.sub("", line) for line in timeline_text.splitlines())
        sentences = [item.strip() for item in _SENTENCE_SPLIT.split(spoken.replace("\n", " ")) if item.strip()]

        freq: dict[str, int] = {}
        for token in _tokenize(spoken):
            if token in _STOPWORDS or len(token) < 3:
                continue
            freq[token] = freq.get(token, 0) + 1

        scored: list[tuple[float, int]] = []
        for idx, sentence in enumerate(sentences):
            tokens = _tokenize(sentence)
            if tokens:
                scored.append((sum(freq.get(token, 0) for token in tokens) / len(tokens), idx))
        top = sorted(idx for _, idx in sorted(scored, reverse=True)[: self.max_key_points])
        key_points = [sentences[idx] for idx in top]

        actions = [s for s in sentences if any(marker in s.lower() for marker in _ACTION_MARKERS)][:4]
        questions = [s for s in sentences if s.endswith(_QUESTION_MARKERS)][:4]

        iso = iso_date(meeting_date)
        payload = {
            "title": f"Meeting {iso}",
            "date": iso,
            "summary": " ".join(key_points[:2]),
            "decisions": [],
            "action_items": [{"owner": "", "task": sentence, "due": ""} for sentence in actions],
            "open_questions": questions,
            "key_points": key_points,
        }
        return json.dumps(payload, ensure_ascii=False)

    def repair_json(self, raw_text: str) -> str:
        return raw_text

from __future__ import annotations

import datetime as dt

from notewright.vault.contract import iso_date

EXTRACTION_SCHEMA = """{
  "title": string,
  "date": "YYYY-MM-DD",
  "summary": string,
  "decisions": [string],
  "action_items": [{"owner": string, "task": string, "due": string}],
  "open_questions": [string],
  "key_points": [string]
}"""

MAX_TRANSCRIPT_CHARS = 12_000


def clip_transcript(text: str, limit: int = MAX_TRANSCRIPT_CHARS) -> str:
    """Keep the opening and closing parts of an over-long transcript."""

    if len(text) <= limit:
        return text
    half = limit // 2
    return f"{text[:half]}\n[...]\n{text[-half:]}"


def summarization_prompt(timeline_text: str, meeting_date: dt.date | dt.datetime) -> str:
    iso = iso_date(meeting_date)
    return (
        "You must output JSON only.\n\n"
        "Return exactly one JSON object matching this schema:\n"
        f"{EXTRACTION_SCHEMA}\n\n"
        "Rules:\n"
        "- Output must be a single JSON object.\n"
        "- No markdown, no code fences, no commentary.\n"
        "- All arrays must be present (use [] if none).\n"
        f'- date must be "{iso}" unless the transcript clearly indicates a different meeting date.\n'
        '- action_items.due must be "YYYY-MM-DD" or "".\n'
        f'- If the title is unknown, use "Meeting {iso}".\n\n'
        "Transcript:\n"
        f"{clip_transcript(timeline_text)}\n"
    )


def repair_prompt(invalid_output: str) -> str:
    return (
        "You must output JSON only.\n\n"
        "The following text was intended to be a JSON object but is invalid or does not match the schema.\n"
        "Produce a corrected JSON object that matches this schema exactly:\n"
        f"{EXTRACTION_SCHEMA}\n\n"
        "Rules:\n"
        "- Output must be a single JSON object.\n"
        "- No markdown, no code fences, no commentary.\n"
        "- All arrays must be present.\n"
        "- If a field cannot be recovered, use an empty string or empty array as appropriate.\n"
        '- action_items.due must be "YYYY-MM-DD" or "".\n\n'
        "Invalid output:\n"
        f"{clip_transcript(invalid_output)}\n"
    )

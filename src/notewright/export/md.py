from __future__ import annotations

import datetime as dt
from typing import Sequence

from notewright.asr.base import AttributedTranscriptSegment
from notewright.nlp.extraction import ActionItem, Extraction
from notewright.vault.contract import UNTITLED, sanitize_title

SOURCE_TAG = "notewright"


def _normalize_paragraph(value: str) -> str:
    return value.replace("\r\n", "\n").replace("\r", "\n").strip()


def _normalize_inline(value: str) -> str:
    return " ".join(_normalize_paragraph(value).split())


def _yaml_quoted(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


def _bullets(items: Sequence[str]) -> list[str]:
    return [f"- {text}" for text in (_normalize_inline(item) for item in items) if text]


def _action_lines(items: Sequence[ActionItem]) -> list[str]:
    lines: list[str] = []
    for item in items:
        task = _normalize_inline(item.task)
        owner = _normalize_inline(item.owner)
        due = _normalize_inline(item.due)
        if not task and not owner:
            continue
        line = f"- [ ] {task}"
        if owner:
            line += f" (Owner: {owner})"
        if due:
            line += f" (Due: {due})"
        lines.append(line)
    return lines


def render_note(
    extraction: Extraction,
    *,
    processed_at: dt.datetime,
    audio_path: str | None = None,
    transcript_path: str | None = None,
) -> str:
    """Render the meeting note. Links appear only for artifacts being written."""

    title = _normalize_inline(extraction.title) or UNTITLED

    lines: list[str] = ["---", "type: meeting", f"date: {extraction.date}", f"title: {_yaml_quoted(title)}"]
    if audio_path:
        lines.append(f"audio: {_yaml_quoted(audio_path)}")
    if transcript_path:
        lines.append(f"transcript: {_yaml_quoted(transcript_path)}")
    lines.append(f"processed: {processed_at.replace(microsecond=0).isoformat()}")
    lines.append(f'source: "{SOURCE_TAG}"')
    lines.extend(["---", "", f"# {title}", ""])

    lines.extend(["## Summary", _normalize_paragraph(extraction.summary), ""])
    lines.extend(["## Decisions", *_bullets(extraction.decisions), ""])
    lines.extend(["## Action Items", *_action_lines(extraction.action_items), ""])
    lines.extend(["## Open Questions", *_bullets(extraction.open_questions), ""])
    lines.extend(["## Key Points", *_bullets(extraction.key_points), ""])

    if audio_path:
        lines.extend(["## Audio", f"[[{audio_path}]]", ""])
    if transcript_path:
        lines.extend(["## Transcript", f"[[{transcript_path}]]", ""])

    return "\n".join(lines).rstrip("\n") + "\n"


def merge_adjacent_turns(segments: Sequence[AttributedTranscriptSegment]) -> list[AttributedTranscriptSegment]:
    """Collapse consecutive segments from the same speaker into one turn."""

    merged: list[AttributedTranscriptSegment] = []
    for segment in segments:
        text = segment.text.strip()
        if not text:
            continue
        if merged and merged[-1].speaker_id == segment.speaker_id:
            last = merged[-1]
            merged[-1] = AttributedTranscriptSegment(
                start=last.start,
                end=segment.end,
                text=f"{last.text} {text}",
                speaker_id=last.speaker_id,
            )
        else:
            merged.append(
                AttributedTranscriptSegment(
                    start=segment.start, end=segment.end, text=text, speaker_id=segment.speaker_id
                )
            )
    return merged


def format_timestamp(seconds: float) -> str:
    total = max(0, int(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def render_transcript(
    *,
    title: str,
    date_iso: str,
    text: str,
    attributed: Sequence[AttributedTranscriptSegment] = (),
) -> str:
    """Render the transcript file; speaker turns when speaker data exists, else plain text."""

    safe_title = sanitize_title(title)
    lines: list[str] = [
        "---",
        "type: meeting_transcript",
        f"date: {date_iso}",
        f"title: {_yaml_quoted(safe_title)}",
        f'source: "{SOURCE_TAG}"',
        "---",
        "",
        f"# {safe_title} - Transcript",
        "",
    ]

    turns = merge_adjacent_turns(attributed)
    if turns:
        for index, turn in enumerate(turns):
            lines.append(f"Speaker {turn.speaker_id + 1} [{format_timestamp(turn.start)} - {format_timestamp(turn.end)}]")
            lines.append(turn.text)
            if index < len(turns) - 1:
                lines.append("")
    else:
        body = _normalize_paragraph(text)
        if body:
            lines.append(body)

    return "\n".join(lines).rstrip("\n") + "\n"

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from datetime import date, datetime

UNTITLED = "Untitled"
MAX_TITLE_LENGTH = 120

# Path separators plus characters that break on common filesystems and sync tools.
_FORBIDDEN_CHARS = set('/\\:?%*|"<>')
_WHITESPACE_RUN = re.compile(r"\s+")


@dataclass(frozen=True, slots=True)
class VaultFolders:
    """Folder layout inside the vault, relative to the vault root."""

    notes_root: str = "Meetings"
    audio_root: str = "Meetings/_audio"
    transcripts_root: str = "Meetings/_transcripts"


@dataclass(frozen=True, slots=True)
class DestinationPaths:
    note: str
    audio: str | None = None
    transcript: str | None = None


def iso_date(value: date | datetime) -> str:
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def sanitize_title(raw_title: str) -> str:
    """Produce a filename-safe title component.

    Not reversible. Slashes are replaced so a title can never traverse out of
    its folder.
    """

    chars: list[str] = []
    last_was_space = False
    for char in raw_title.strip():
        if (
            char in _FORBIDDEN_CHARS
            or char.isspace()
            or unicodedata.category(char).startswith("C")
        ):
            if not last_was_space:
                chars.append(" ")
                last_was_space = True
            continue
        chars.append(char)
        last_was_space = False

    result = _WHITESPACE_RUN.sub(" ", "".join(chars)).strip()
    if not result or set(result) == {"."}:
        return UNTITLED
    if len(result) > MAX_TITLE_LENGTH:
        result = result[:MAX_TITLE_LENGTH].strip()
    return result


def _stem(day: date | datetime, title: str) -> str:
    return f"{iso_date(day)} - {sanitize_title(title)}"


def note_relative_path(folders: VaultFolders, day: date | datetime, title: str) -> str:
    return "/".join(
        [
            folders.notes_root.strip("/"),
            f"{day.year:04d}",
            f"{day.month:02d}",
            f"{_stem(day, title)}.md",
        ]
    )


def audio_relative_path(
    folders: VaultFolders,
    day: date | datetime,
    title: str,
    extension: str = "wav",
) -> str:
    return f"{folders.audio_root.strip('/')}/{_stem(day, title)}.{extension.lstrip('.')}"


def transcript_relative_path(folders: VaultFolders, day: date | datetime, title: str) -> str:
    return f"{folders.transcripts_root.strip('/')}/{_stem(day, title)}.md"


def destination_paths(
    folders: VaultFolders,
    day: date | datetime,
    title: str,
    *,
    keep_audio: bool,
    keep_transcript: bool,
    audio_extension: str = "wav",
) -> DestinationPaths:
    return DestinationPaths(
        note=note_relative_path(folders, day, title),
        audio=audio_relative_path(folders, day, title, audio_extension) if keep_audio else None,
        transcript=transcript_relative_path(folders, day, title) if keep_transcript else None,
    )

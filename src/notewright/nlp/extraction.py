from __future__ import annotations

import datetime as dt
import logging
import re

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from notewright.errors import JSONInvalid
from notewright.nlp.json_extract import extract_first_object
from notewright.vault.contract import iso_date

logger = logging.getLogger(__name__)

FALLBACK_SUMMARY = "Failed to structure output; see the transcript or audio for details."

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def is_iso_date(value: str) -> bool:
    value = value.strip()
    if not _ISO_DATE.match(value):
        return False
    try:
        dt.date.fromisoformat(value)
    except ValueError:
        return False
    return True


class ActionItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    owner: str = ""
    task: str = ""
    due: str = ""

    @field_validator("owner", "task", "due", mode="before")
    @classmethod
    def _none_as_blank(cls, value):
        return "" if value is None else value


class Extraction(BaseModel):
    """Fixed schema the summarizer must produce.

    List fields are always present; a missing or null list decodes to `[]`.
    """

    model_config = ConfigDict(extra="ignore")

    title: str
    date: str = ""
    summary: str = ""
    decisions: list[str] = Field(default_factory=list)
    action_items: list[ActionItem] = Field(default_factory=list)
    open_questions: list[str] = Field(default_factory=list)
    key_points: list[str] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("title must not be empty")
        return value

    @field_validator("date", "summary", mode="before")
    @classmethod
    def _none_as_blank(cls, value):
        return "" if value is None else value

    @field_validator("decisions", "action_items", "open_questions", "key_points", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return [] if value is None else value


def decode_extraction(raw_output: str) -> Extraction:
    """Decode the first JSON object in `raw_output` against the schema.

    Raises `JSONInvalid` when no object is found or it does not fit the schema.
    """

    found = extract_first_object(raw_output.strip())
    if found is None:
        raise JSONInvalid("No JSON object found in summarizer output.")
    if found.has_extraneous_content:
        logger.debug("Summarizer output has text outside the JSON object")
    try:
        return Extraction.model_validate_json(found.text)
    except ValidationError as exc:
        raise JSONInvalid(f"Extraction does not match schema: {exc.error_count()} error(s)") from exc


def validate_extraction(decoded: Extraction, recording_date: dt.date | dt.datetime) -> Extraction:
    """Reconcile dates; every other field is passed through untouched."""

    updates: dict[str, object] = {}
    if is_iso_date(decoded.date):
        updates["date"] = decoded.date.strip()
    else:
        updates["date"] = iso_date(recording_date)

    if any(item.due and not is_iso_date(item.due) for item in decoded.action_items):
        updates["action_items"] = [
            item if not item.due or is_iso_date(item.due) else item.model_copy(update={"due": ""})
            for item in decoded.action_items
        ]
    return decoded.model_copy(update=updates)


def fallback_extraction(recording_date: dt.date | dt.datetime) -> Extraction:
    iso = iso_date(recording_date)
    return Extraction(
        title=f"Untitled Meeting {iso}",
        date=iso,
        summary=FALLBACK_SUMMARY,
    )

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ExtractedObject:
    text: str
    has_extraneous_content: bool


def extract_first_object(text: str) -> ExtractedObject | None:
    """Locate the first balanced top-level `{...}` span in `text`.

    Single forward scan tracking brace depth. Braces inside double-quoted
    strings (including escaped quotes) are ignored. The span is not validated
    as JSON; that is left to the schema decoder.
    """

    start = text.find("{")
    if start < 0:
        return None

    depth = 0
    in_string = False
    escaped = False
    end = -1
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                end = index
                break

    if end < 0:
        return None

    outside = text[:start] + text[end + 1 :]
    return ExtractedObject(text=text[start : end + 1], has_extraneous_content=bool(outside.strip()))

"""
Response Decoder
================
Flattens a model response into a single answer string: every part of every
candidate, in order, with no separator.  Binary payloads (inline images,
file references) render as the empty string, which is also how history
entries strip images.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from google.genai import types


@dataclass(frozen=True)
class HistoryEntry:
    role: str
    answer: str


def part_to_text(part: types.Part) -> str:
    if part.text is not None:
        return part.text
    if part.executable_code is not None:
        return part.executable_code.code or ""
    if part.code_execution_result is not None:
        return part.code_execution_result.output or ""
    return ""


def content_to_answer(content: Optional[types.Content]) -> str:
    if content is None:
        return ""
    return "".join(part_to_text(part) for part in content.parts or [])


def response_to_answer(response: Optional[types.GenerateContentResponse]) -> str:
    if response is None:
        return ""
    return "".join(content_to_answer(candidate.content) for candidate in response.candidates or [])


def to_history(contents: Iterable[types.Content]) -> Tuple[HistoryEntry, ...]:
    return tuple(
        HistoryEntry(role=content.role or "", answer=content_to_answer(content))
        for content in contents
    )

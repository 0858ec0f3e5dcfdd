"""Extraction of validated quiz questions from free-form LLM output.

Models wrap JSON in Markdown fences, add prose before or after it, and have
answered both ``{"questions": [...]}`` and a bare ``[...]`` over time. The
extractor strips fences, scans for balanced JSON spans (string-aware, so
braces inside option text do not break it), and validates the first span
with the expected shape. Anything unusable yields the canonical fallback
question instead of an exception.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, Sequence

from pydantic import ValidationError

from app.domain.models import QuizQuestion

logger = logging.getLogger(__name__)

FALLBACK_QUESTION = QuizQuestion(
    question="What was the main topic of the video?",
    options=["Topic A", "Topic B", "Topic C", "Topic D"],
    correctAnswer="Topic A",
)

_FENCE_PATTERN = re.compile(r"```[A-Za-z0-9_-]*[ \t]*")
_CLOSERS = {"{": "}", "[": "]"}


class ExtractionSource(str, Enum):
    PARSED = "parsed"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class QuizExtraction:
    """Outcome of :func:`extract_quiz`: parsed questions or the fallback."""

    questions: tuple[QuizQuestion, ...]
    source: ExtractionSource
    reason: str | None = None

    @property
    def is_fallback(self) -> bool:
        return self.source is ExtractionSource.FALLBACK


def strip_code_fences(payload: str) -> str:
    """Remove Markdown code-fence markers (```json, ```), keeping their content."""
    return _FENCE_PATTERN.sub("", payload).strip()


def _balanced_end(text: str, start: int) -> int | None:
    """Index just past the bracket that closes ``text[start]``, or None if unbalanced."""

    stack = [_CLOSERS[text[start]]]
    in_string = False
    escaped = False
    for index in range(start + 1, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char in _CLOSERS:
            stack.append(_CLOSERS[char])
        elif char in ("}", "]"):
            if char != stack[-1]:
                return None
            stack.pop()
            if not stack:
                return index + 1
    return None


def iter_json_candidates(text: str) -> Iterator[Any]:
    """Yield each outermost JSON object/array in ``text`` that parses, left to right.

    A balanced span that does not parse is skipped whole, never re-entered.
    An unbalanced span means the output was cut off, so scanning stops there.
    """

    position = 0
    while position < len(text):
        starts = [i for i in (text.find("{", position), text.find("[", position)) if i != -1]
        if not starts:
            return
        start = min(starts)
        end = _balanced_end(text, start)
        if end is None:
            return
        position = end
        try:
            yield json.loads(text[start:end])
        except json.JSONDecodeError:
            continue


def _question_entries(candidate: Any) -> list[Any] | None:
    if isinstance(candidate, dict) and isinstance(candidate.get("questions"), list):
        return candidate["questions"]
    if isinstance(candidate, list) and all(isinstance(item, dict) for item in candidate):
        return candidate
    return None


def _fallback(reason: str) -> QuizExtraction:
    logger.warning("Quiz extraction fell back to the default question: %s", reason)
    return QuizExtraction(
        questions=(FALLBACK_QUESTION,),
        source=ExtractionSource.FALLBACK,
        reason=reason,
    )


def extract_quiz(raw_text: str | None) -> QuizExtraction:
    """Parse quiz questions out of model text; never raises."""

    if not raw_text or not raw_text.strip():
        return _fallback("empty response")

    cleaned = strip_code_fences(raw_text)
    entries = None
    for candidate in iter_json_candidates(cleaned):
        entries = _question_entries(candidate)
        if entries is not None:
            break

    if entries is None:
        return _fallback("no JSON quiz payload found")
    if not entries:
        return _fallback("quiz payload contained no questions")

    try:
        questions = tuple(QuizQuestion.model_validate(entry) for entry in entries)
    except ValidationError as exc:
        return _fallback(f"invalid question entry: {exc.errors()[0].get('msg')}")

    for index, question in enumerate(questions, start=1):
        if not question.answer_in_options:
            logger.warning(
                "Quiz question %s has a correctAnswer outside its options: %r",
                index,
                question.correct_answer,
            )

    return QuizExtraction(questions=questions, source=ExtractionSource.PARSED)


def build_answer_key(questions: Sequence[QuizQuestion]) -> str:
    """One ``Q{i}: {correctAnswer}`` line per question, 1-based."""
    return "\n".join(
        f"Q{index}: {question.correct_answer}"
        for index, question in enumerate(questions, start=1)
    )


__all__ = [
    "FALLBACK_QUESTION",
    "ExtractionSource",
    "QuizExtraction",
    "build_answer_key",
    "extract_quiz",
    "iter_json_candidates",
    "strip_code_fences",
]

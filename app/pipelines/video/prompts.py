"""Prompt templates for the generative calls of the video pipeline."""

from __future__ import annotations

import logging

logger = logging.getLogger("app.pipelines.video")

# Keeps summary/quiz prompts inside the text model's context window.
MAX_CONTENT_CHARS = 60_000

VIDEO_OVERVIEW_PROMPT = """Analyze this video and provide:
1. Full transcript of all dialogue and speech
2. Detailed description of all scenes
3. Key moments and topics
4. Complete breakdown of what happens

Be very detailed."""

FRAME_DESCRIPTION_PROMPT = (
    "This image is a frame sampled from an educational video. "
    "Describe what it shows in 2-4 sentences: people, objects, diagrams, slides "
    "and any activity. Do not transcribe long passages of text."
)

_QUIZ_FORMAT_EXAMPLE = (
    '{"questions": [{"question": "Question?", '
    '"options": ["A", "B", "C", "D"], "correctAnswer": "A"}]}'
)


def _truncate(value: str, max_length: int = MAX_CONTENT_CHARS) -> str:
    if len(value) <= max_length:
        return value
    logger.info("Content truncated from %s to %s characters", len(value), max_length)
    return value[: max_length - 3] + "..."


def build_summary_prompt(content: str) -> str:
    return f"Provide a 2-3 sentence summary of this video:\n\n{_truncate(content)}"


def build_quiz_prompt(content: str, question_count: int = 3) -> str:
    return (
        f"Create {question_count} multiple choice questions based on this video content.\n"
        "Each question must have exactly 4 options and correctAnswer must repeat "
        "one of the options verbatim.\n\n"
        "Respond ONLY with valid JSON:\n"
        f"{_QUIZ_FORMAT_EXAMPLE}\n\n"
        f"Content:\n{_truncate(content)}"
    )


__all__ = [
    "FRAME_DESCRIPTION_PROMPT",
    "VIDEO_OVERVIEW_PROMPT",
    "build_quiz_prompt",
    "build_summary_prompt",
]

"""Summary and quiz generation (Stage 04)."""

from __future__ import annotations

import logging

from app.application.interfaces import CapabilityError
from app.services.response_contract import (
    FALLBACK_QUESTION,
    ExtractionSource,
    build_answer_key,
    extract_quiz,
)
from app.services.retry import call_with_retry

from .flow import stage_boundary
from .prompts import build_quiz_prompt, build_summary_prompt
from .types import Capabilities, PipelineContent, StageResult, SynthesisOutput

logger = logging.getLogger("app.pipelines.video")

STAGE_NAME = "synthesis"


def fallback_synthesis(summary: str = "") -> SynthesisOutput:
    questions = (FALLBACK_QUESTION,)
    return SynthesisOutput(
        summary=summary,
        questions=questions,
        answer_key=build_answer_key(questions),
        quiz_source=ExtractionSource.FALLBACK,
    )


@stage_boundary(STAGE_NAME, default=fallback_synthesis)
async def run_synthesis_stage(
    content: PipelineContent,
    *,
    capabilities: Capabilities,
    question_count: int = 3,
) -> StageResult[SynthesisOutput]:
    """Produce summary, quiz and answer key from the gathered content.

    The summary and quiz calls fail independently: a failed summary leaves it
    empty, a failed or unparseable quiz yields the fallback question. With no
    content at all no model call is made.
    """

    if not content.has_content:
        return StageResult.degraded(
            STAGE_NAME,
            fallback_synthesis(),
            "no transcript, on-screen text or visual description to work from",
        )

    combined = content.combined()
    problems: list[str] = []

    summary = ""
    try:
        summary = await call_with_retry(
            "generate.summary",
            capabilities.generator.generate,
            build_summary_prompt(combined),
            policy=capabilities.retry,
        )
        summary = (summary or "").strip()
    except CapabilityError as exc:
        logger.warning("Summary generation failed: %s", exc)
        problems.append(f"summary: {exc}")

    raw_quiz = ""
    try:
        raw_quiz = await call_with_retry(
            "generate.quiz",
            capabilities.generator.generate,
            build_quiz_prompt(combined, question_count),
            policy=capabilities.retry,
        )
    except CapabilityError as exc:
        logger.warning("Quiz generation failed: %s", exc)
        problems.append(f"quiz: {exc}")

    extraction = extract_quiz(raw_quiz)
    if extraction.is_fallback and not problems:
        problems.append(f"quiz: {extraction.reason}")

    output = SynthesisOutput(
        summary=summary,
        questions=extraction.questions,
        answer_key=build_answer_key(extraction.questions),
        quiz_source=extraction.source,
    )
    if problems:
        return StageResult.degraded(STAGE_NAME, output, "; ".join(problems))
    return StageResult.ok(STAGE_NAME, output)


__all__ = ["fallback_synthesis", "run_synthesis_stage"]

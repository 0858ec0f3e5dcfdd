"""Whole-video multimodal analysis (monolithic shape, Stage 01)."""

from __future__ import annotations

import logging
import os

from app.application.interfaces import InlineMedia
from app.services.media import read_bytes
from app.services.retry import call_with_retry

from .flow import stage_boundary
from .prompts import VIDEO_OVERVIEW_PROMPT
from .types import Capabilities, StageResult

logger = logging.getLogger("app.pipelines.video")

STAGE_NAME = "overview"


@stage_boundary(STAGE_NAME, default=str)
async def run_overview_stage(
    video_path: str,
    mime_type: str,
    *,
    capabilities: Capabilities,
    max_inline_bytes: int,
) -> StageResult[str]:
    """Describe the full video in one call; the answer is the transcript equivalent."""

    size = os.path.getsize(video_path)
    if size > max_inline_bytes:
        return StageResult.degraded(
            STAGE_NAME,
            "",
            f"video is {size} bytes, above the inline limit of {max_inline_bytes}",
        )

    video_bytes = await read_bytes(video_path)
    logger.info("Submitting %s bytes of %s for whole-video analysis", size, mime_type)
    description = await call_with_retry(
        "generate.video",
        capabilities.generator.generate,
        VIDEO_OVERVIEW_PROMPT,
        InlineMedia(data=video_bytes, mime_type=mime_type),
        policy=capabilities.retry,
    )

    description = (description or "").strip()
    if not description:
        return StageResult.degraded(STAGE_NAME, "", "model returned no description")
    return StageResult.ok(STAGE_NAME, description)


__all__ = ["run_overview_stage"]

"""Frame sampling, OCR and per-frame description (decomposed shape, Stage 03)."""

from __future__ import annotations

import logging

from app.application.interfaces import CapabilityError, InlineMedia
from app.services.media import TempMediaManager, read_bytes
from app.services.retry import call_with_retry

from .flow import stage_boundary
from .prompts import FRAME_DESCRIPTION_PROMPT
from .types import Capabilities, StageResult, VisualOutput

logger = logging.getLogger("app.pipelines.video")

STAGE_NAME = "visual"


async def _frame_text(frame_bytes: bytes, capabilities: Capabilities) -> str:
    try:
        text = await call_with_retry(
            "detect_text",
            capabilities.text_detector.detect_text,
            frame_bytes,
            policy=capabilities.retry,
        )
    except CapabilityError as exc:
        logger.warning("Text detection skipped for frame: %s", exc)
        return ""
    return (text or "").strip()


async def _frame_description(frame_bytes: bytes, capabilities: Capabilities) -> str:
    try:
        description = await call_with_retry(
            "generate.image",
            capabilities.generator.generate,
            FRAME_DESCRIPTION_PROMPT,
            InlineMedia(data=frame_bytes, mime_type="image/jpeg"),
            policy=capabilities.retry,
        )
    except CapabilityError as exc:
        logger.warning("Frame description skipped: %s", exc)
        return ""
    return (description or "").strip()


@stage_boundary(STAGE_NAME, default=VisualOutput)
async def run_visual_stage(
    video_path: str,
    *,
    media: TempMediaManager,
    capabilities: Capabilities,
    interval_seconds: float,
    max_frames: int,
) -> StageResult[VisualOutput]:
    """Collect on-screen text and scene descriptions from sampled frames.

    Each frame is analysed independently; a capability failure on one frame
    only drops that frame's contribution. Results keep frame order.
    """

    frames = await media.sample_frames(video_path, interval_seconds, max_frames)
    if not frames:
        return StageResult.degraded(STAGE_NAME, VisualOutput(), "no frames could be sampled")

    texts: list[str] = []
    descriptions: list[str] = []
    for index, frame_path in enumerate(frames, start=1):
        try:
            frame_bytes = await read_bytes(frame_path)
        finally:
            media.release(frame_path)

        text = await _frame_text(frame_bytes, capabilities)
        if text:
            texts.append(f"[Frame {index}] {text}")

        description = await _frame_description(frame_bytes, capabilities)
        if description:
            descriptions.append(f"[Frame {index}] {description}")

    output = VisualOutput(
        extracted_text="\n".join(texts),
        visual_description="\n".join(descriptions),
    )
    logger.info(
        "Analysed %s frames: %s with text, %s described",
        len(frames),
        len(texts),
        len(descriptions),
    )
    if not texts and not descriptions:
        return StageResult.degraded(STAGE_NAME, output, "no frame produced text or a description")
    return StageResult.ok(STAGE_NAME, output)


__all__ = ["run_visual_stage"]

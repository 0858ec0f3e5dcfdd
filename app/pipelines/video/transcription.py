"""Audio extraction + speech-to-text stage (decomposed shape, Stage 02)."""

from __future__ import annotations

import logging

from app.services.media import TempMediaManager, read_bytes
from app.services.retry import call_with_retry

from .flow import stage_boundary
from .types import Capabilities, StageResult

logger = logging.getLogger("app.pipelines.video")
transcript_logger = logging.getLogger("app.logs.transcript")

STAGE_NAME = "transcription"


@stage_boundary(STAGE_NAME, default=str)
async def run_audio_stage(
    video_path: str,
    *,
    media: TempMediaManager,
    capabilities: Capabilities,
    sample_rate_hz: int,
    language_code: str,
) -> StageResult[str]:
    """Return the spoken transcript; an empty one means the stage degraded."""

    audio_path = await media.extract_audio(video_path)
    if audio_path is None:
        return StageResult.degraded(STAGE_NAME, "", "no audio track could be extracted")

    try:
        audio_bytes = await read_bytes(audio_path)
    finally:
        media.release(audio_path)

    transcript = await call_with_retry(
        "transcribe",
        capabilities.transcriber.transcribe,
        audio_bytes,
        sample_rate_hz,
        language_code,
        policy=capabilities.retry,
    )

    transcript = (transcript or "").strip()
    if not transcript:
        return StageResult.degraded(STAGE_NAME, "", "transcription returned no speech")

    transcript_logger.info("video=%s | chars=%s | text=%s", video_path, len(transcript), transcript)
    return StageResult.ok(STAGE_NAME, transcript)


__all__ = ["run_audio_stage"]

"""High-level orchestration map for the video processing pipeline.

``orchestrator.VideoPipelineOrchestrator`` runs the stages; this module
documents the canonical execution order for each pipeline shape and provides
the boundary every stage runs behind:

1. ``overview`` – (monolithic) one multimodal call over the whole video.
2. ``transcription`` – (decomposed) ffmpeg audio track → speech-to-text.
3. ``visual`` – (decomposed) sampled frames → OCR + per-frame description.
4. ``synthesis`` – summary + quiz generation and quiz extraction.
5. ``persistence`` – orchestrator writes the terminal job state.

Stages never raise: :func:`stage_boundary` converts capability failures into
``degraded`` results and anything unexpected into ``fatal`` ones.
"""

from __future__ import annotations

import functools
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, List, TypeVar

from app.application.interfaces import CapabilityError
from app.config.settings import PipelineShape
from app.telemetry import observe_stage

from .types import StageResult, StageStatus

logger = logging.getLogger("app.pipelines.video")

T = TypeVar("T")


@dataclass(frozen=True)
class PipelineStage:
    """Human-readable description of one stage in the video pipeline."""

    order: int
    name: str
    module: str
    summary: str


_OVERVIEW = PipelineStage(
    1,
    "Overview",
    "app.pipelines.video.overview",
    "Send the whole video inline to the multimodal model; its answer stands in for the transcript.",
)
_TRANSCRIPTION = PipelineStage(
    2,
    "Transcription",
    "app.pipelines.video.transcription",
    "Extract the audio track with ffmpeg and stream it to Amazon Transcribe.",
)
_VISUAL = PipelineStage(
    3,
    "Visual Analysis",
    "app.pipelines.video.visual",
    "Sample up to N frames; run Rekognition OCR and a Bedrock description per frame.",
)
_SYNTHESIS = PipelineStage(
    4,
    "Synthesis",
    "app.pipelines.video.synthesis",
    "Generate the summary and the quiz; extract quiz JSON and derive the answer key.",
)
_PERSISTENCE = PipelineStage(
    5,
    "Persistence",
    "app.pipelines.video.orchestrator",
    "Save content fields and the terminal status (completed or failed).",
)


class VideoProcessingPipeline:
    """Utility wrapper for documenting the upload → quiz flow."""

    _STAGES: dict[PipelineShape, List[PipelineStage]] = {
        PipelineShape.MONOLITHIC: [_OVERVIEW, _SYNTHESIS, _PERSISTENCE],
        PipelineShape.DECOMPOSED: [_TRANSCRIPTION, _VISUAL, _SYNTHESIS, _PERSISTENCE],
    }

    @classmethod
    def describe(cls, shape: PipelineShape = PipelineShape.MONOLITHIC) -> Iterable[PipelineStage]:
        """Expose the ordered list of stages for debugging and documentation."""

        return tuple(cls._STAGES[shape])


def stage_boundary(
    stage: str,
    default: Callable[[], T],
) -> Callable[[Callable[..., Awaitable[StageResult[T]]]], Callable[..., Awaitable[StageResult[T]]]]:
    """Wrap a stage coroutine so it always returns a tagged ``StageResult``."""

    def decorator(func: Callable[..., Awaitable[StageResult[T]]]):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> StageResult[T]:
            started = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
                if result.status is StageStatus.DEGRADED:
                    logger.info("Stage %s completed degraded: %s", stage, result.reason)
            except CapabilityError as exc:
                logger.warning("Stage %s degraded: %s", stage, exc)
                result = StageResult.degraded(stage, default(), str(exc))
            except Exception as exc:
                logger.exception("Stage %s failed unexpectedly", stage)
                result = StageResult.fatal(stage, default(), exc)
            observe_stage(stage, result.status.value, time.perf_counter() - started)
            return result

        return wrapper

    return decorator


__all__ = ["PipelineStage", "VideoProcessingPipeline", "stage_boundary"]

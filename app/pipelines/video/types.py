"""Typed containers shared across the video processing pipeline.

These dataclasses live in their own module so the stage modules
(`overview`, `transcription`, `visual`, `synthesis`) and the orchestrator can
import them without creating circular dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

from app.application.interfaces import GenerativePort, TextDetectionPort, TranscriptionPort
from app.domain.models import QuizQuestion
from app.services.response_contract import ExtractionSource
from app.services.retry import RetryPolicy

T = TypeVar("T")


class StageStatus(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"
    FATAL = "fatal"


@dataclass(frozen=True)
class StageResult(Generic[T]):
    """Explicitly tagged outcome of one stage.

    ``degraded`` results carry a usable (possibly empty/default) value and the
    run continues; ``fatal`` results carry the exception that escaped the
    stage and abort the run.
    """

    stage: str
    status: StageStatus
    value: T
    reason: str | None = None
    error: BaseException | None = None

    @classmethod
    def ok(cls, stage: str, value: T) -> "StageResult[T]":
        return cls(stage=stage, status=StageStatus.OK, value=value)

    @classmethod
    def degraded(cls, stage: str, value: T, reason: str) -> "StageResult[T]":
        return cls(stage=stage, status=StageStatus.DEGRADED, value=value, reason=reason)

    @classmethod
    def fatal(cls, stage: str, value: T, error: BaseException) -> "StageResult[T]":
        return cls(
            stage=stage,
            status=StageStatus.FATAL,
            value=value,
            reason=str(error) or error.__class__.__name__,
            error=error,
        )

    @property
    def is_ok(self) -> bool:
        return self.status is StageStatus.OK

    @property
    def is_fatal(self) -> bool:
        return self.status is StageStatus.FATAL


@dataclass(frozen=True)
class Capabilities:
    """External services a run may call, plus the retry policy wrapping each call."""

    transcriber: TranscriptionPort
    text_detector: TextDetectionPort
    generator: GenerativePort
    retry: RetryPolicy = field(default_factory=RetryPolicy)


@dataclass(frozen=True)
class VisualOutput:
    extracted_text: str = ""
    visual_description: str = ""


@dataclass(frozen=True)
class PipelineContent:
    """Text gathered by the content stages, before synthesis."""

    transcript: str = ""
    extracted_text: str = ""
    visual_description: str = ""

    @property
    def has_content(self) -> bool:
        return any(
            part.strip()
            for part in (self.transcript, self.extracted_text, self.visual_description)
        )

    def combined(self) -> str:
        """Merge the non-empty parts into one labelled content blob."""

        sections = (
            ("Transcript", self.transcript),
            ("On-screen text", self.extracted_text),
            ("Visual description", self.visual_description),
        )
        return "\n\n".join(
            f"{title}:\n{body.strip()}" for title, body in sections if body.strip()
        )


@dataclass(frozen=True)
class SynthesisOutput:
    summary: str
    questions: tuple[QuizQuestion, ...]
    answer_key: str
    quiz_source: ExtractionSource


__all__ = [
    "Capabilities",
    "PipelineContent",
    "StageResult",
    "StageStatus",
    "SynthesisOutput",
    "VisualOutput",
]

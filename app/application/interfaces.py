from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional
from uuid import UUID

from app.domain.models import VideoJob


class CapabilityError(RuntimeError):
    """Base error for external AI/service capability failures.

    ``transient`` marks failures worth retrying (throttling, timeouts,
    unavailable endpoints); permanent ones (bad input, access denied) are not.
    """

    def __init__(self, message: str, *, transient: bool = False) -> None:
        super().__init__(message)
        self.transient = transient


class TranscriptionError(CapabilityError):
    """Raised when the speech-to-text capability fails."""


class TextDetectionError(CapabilityError):
    """Raised when the OCR capability fails."""


class LlmInvocationError(CapabilityError):
    """Raised when the generative model invocation fails."""


class JobStoreError(RuntimeError):
    """Raised when the job record store cannot read or write a record."""


class JobNotFoundError(JobStoreError):
    """Raised when no job record exists for the requested id."""


@dataclass(frozen=True)
class InlineMedia:
    """Binary payload attached to a generative prompt (image or video)."""

    data: bytes
    mime_type: str


class TranscriptionPort(ABC):
    """Speech-to-text contract"""

    @abstractmethod
    async def transcribe(
        self,
        audio_bytes: bytes,
        sample_rate_hz: int,
        language_code: str,
    ) -> str:
        ...


class TextDetectionPort(ABC):
    """OCR contract for single images"""

    @abstractmethod
    async def detect_text(self, image_bytes: bytes) -> str:
        ...


class GenerativePort(ABC):
    """Prompt-with-optional-media generation contract"""

    @abstractmethod
    async def generate(self, prompt: str, media: Optional[InlineMedia] = None) -> str:
        ...


class JobRepositoryInterface(ABC):
    """Persistence contract for video job records"""

    @abstractmethod
    async def create(self, job: VideoJob) -> VideoJob:
        ...

    @abstractmethod
    async def get(self, job_id: UUID) -> VideoJob:
        ...

    @abstractmethod
    async def save(self, job: VideoJob) -> VideoJob:
        ...

    @abstractmethod
    async def list_for_owner(self, owner_id: str) -> List[VideoJob]:
        ...

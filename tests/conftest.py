"""Shared fakes for the video pipeline tests."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable, Optional

import pytest

from app.application.interfaces import (
    GenerativePort,
    InlineMedia,
    JobStoreError,
    LlmInvocationError,
    TextDetectionError,
    TextDetectionPort,
    TranscriptionPort,
)
from app.config.settings import PipelineConfig, PipelineShape, TranscribeConfig
from app.domain.models import JobStatus, VideoJob
from app.infrastructure.persistence.repositories_memory import InMemoryJobRepository
from app.pipelines.video import Capabilities, VideoPipelineOrchestrator
from app.services.media import TempMediaManager
from app.services.retry import RetryPolicy

QUIZ_RESPONSE = """Here is your quiz:
```json
{"questions": [
  {"question": "What is photosynthesis?", "options": ["Making food from light", "Breathing", "Digestion", "Sleeping"], "correctAnswer": "Making food from light"},
  {"question": "Where does it happen?", "options": ["Roots", "Chloroplasts", "Bark", "Seeds"], "correctAnswer": "Chloroplasts"}
]}
```"""

SUMMARY_PROMPT_PREFIX = "Provide a 2-3 sentence summary"


@pytest.fixture
def anyio_backend():
    return "asyncio"


class FakeTranscriber(TranscriptionPort):
    def __init__(self, transcript: str = "plants turn light into sugar", error: Exception | None = None):
        self.transcript = transcript
        self.error = error
        self.calls: list[tuple[int, int, str]] = []

    async def transcribe(self, audio_bytes: bytes, sample_rate_hz: int, language_code: str) -> str:
        self.calls.append((len(audio_bytes), sample_rate_hz, language_code))
        if self.error is not None:
            raise self.error
        return self.transcript


class FakeTextDetector(TextDetectionPort):
    def __init__(self, text: str = "PHOTOSYNTHESIS", fail_on: Optional[set[int]] = None):
        self.text = text
        self.fail_on = fail_on or set()
        self.calls = 0

    async def detect_text(self, image_bytes: bytes) -> str:
        self.calls += 1
        if self.calls in self.fail_on:
            raise TextDetectionError("rekognition refused the frame")
        return self.text


class FakeGenerator(GenerativePort):
    """Answers by prompt kind; ``errors`` maps a kind to the exception to raise.

    Kinds: ``video`` (inline video), ``image`` (frame), ``summary`` and ``quiz``.
    """

    def __init__(
        self,
        *,
        overview: str = "Transcript: plants turn light into sugar. Scenes: a leaf diagram.",
        frame: str = "A slide showing a green leaf",
        summary: str = "The video explains photosynthesis.",
        quiz: str = QUIZ_RESPONSE,
        errors: Optional[dict[str, Exception]] = None,
        delay: float = 0.0,
    ):
        self.responses = {"video": overview, "image": frame, "summary": summary, "quiz": quiz}
        self.errors = errors or {}
        self.delay = delay
        self.calls: list[str] = []

    @staticmethod
    def kind_of(prompt: str, media: InlineMedia | None) -> str:
        if media is not None:
            return "video" if media.mime_type.startswith("video/") else "image"
        return "summary" if prompt.startswith(SUMMARY_PROMPT_PREFIX) else "quiz"

    async def generate(self, prompt: str, media: InlineMedia | None = None) -> str:
        kind = self.kind_of(prompt, media)
        self.calls.append(kind)
        if self.delay:
            await asyncio.sleep(self.delay)
        if kind in self.errors:
            raise self.errors[kind]
        return self.responses[kind]


class FakeFfmpegMediaManager(TempMediaManager):
    """Real temp-file bookkeeping, with ffmpeg replaced by writing placeholder outputs."""

    def __init__(self, *, audio: bool = True, frames: int = 3, **kwargs):
        super().__init__(sample_rate_hz=16000, **kwargs)
        self.audio = audio
        self.frames = frames
        self.created: list[str] = []

    def _run_ffmpeg(self, args: list[str]) -> bool:
        target = args[-1]
        if target.endswith(".pcm"):
            if not self.audio:
                return False
            Path(target).write_bytes(b"\x00\x01" * 1600)
            self.created.append(target)
            return True

        limit = int(args[args.index("-frames:v") + 1])
        for index in range(1, min(self.frames, limit) + 1):
            frame = Path(target.replace("%05d", f"{index:05d}"))
            frame.write_bytes(b"\xff\xd8jpeg")
            self.created.append(str(frame))
        return True


class FlakyRepository(InMemoryJobRepository):
    """In-memory store whose saves fail while ``fail_saves`` is set."""

    def __init__(self, *, fail_saves: bool = False, fail_failed_saves: bool = False):
        super().__init__()
        self.fail_saves = fail_saves
        self.fail_failed_saves = fail_failed_saves
        self.saves: list[JobStatus] = []

    async def save(self, job: VideoJob) -> VideoJob:
        self.saves.append(job.status)
        if self.fail_saves or (self.fail_failed_saves and job.status is JobStatus.FAILED):
            raise JobStoreError("database unavailable")
        return await super().save(job)


def make_config(**overrides) -> PipelineConfig:
    values = {
        "shape": PipelineShape.MONOLITHIC,
        "fallback_to_decomposed": True,
        "frame_interval_seconds": 1.0,
        "max_frames": 5,
        "max_inline_video_bytes": 1024 * 1024,
        "job_deadline_seconds": 5.0,
        "call_timeout_seconds": 1.0,
        "retry_attempts": 2,
        "retry_base_delay_seconds": 0.0,
        "retry_max_delay_seconds": 0.0,
    }
    values.update(overrides)
    return PipelineConfig(**values)


@pytest.fixture
def video_file(tmp_path: Path) -> Path:
    path = tmp_path / "lesson.mp4"
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 256)
    return path


@pytest.fixture
def make_video(tmp_path: Path) -> Callable[[str], Path]:
    def build(name: str = "clip.mp4", size: int = 256) -> Path:
        path = tmp_path / name
        path.write_bytes(b"\x00\x00\x00\x18ftypmp42" + b"\x00" * size)
        return path

    return build


@pytest.fixture
def repository() -> FlakyRepository:
    return FlakyRepository()


@pytest.fixture
def capabilities() -> Capabilities:
    return Capabilities(
        transcriber=FakeTranscriber(),
        text_detector=FakeTextDetector(),
        generator=FakeGenerator(),
        retry=RetryPolicy(attempts=2, base_delay=0.0, max_delay=0.0, timeout=1.0),
    )


@pytest.fixture
def media_managers() -> list[FakeFfmpegMediaManager]:
    """Every media manager an orchestrator built, for asserting on cleanup."""
    return []


@pytest.fixture
def media_factory(tmp_path: Path, media_managers) -> Callable[..., Callable[[], FakeFfmpegMediaManager]]:
    def build(**kwargs) -> Callable[[], FakeFfmpegMediaManager]:
        def factory() -> FakeFfmpegMediaManager:
            manager = FakeFfmpegMediaManager(temp_root=str(tmp_path / "work"), **kwargs)
            media_managers.append(manager)
            return manager

        return factory

    return build


@pytest.fixture
def make_orchestrator(repository, capabilities, media_factory):
    def build(
        *,
        config: PipelineConfig | None = None,
        caps: Capabilities | None = None,
        repo=None,
        media_options: Optional[dict] = None,
    ) -> VideoPipelineOrchestrator:
        return VideoPipelineOrchestrator(
            repo or repository,
            capabilities=caps or capabilities,
            media_factory=media_factory(**(media_options or {})),
            config=config or make_config(),
            transcribe_config=TranscribeConfig(sample_rate_hz=16000, language_code="en-US"),
        )

    return build


@pytest.fixture
def make_job(repository, video_file):
    async def build(owner_id: str = "user-1", repo=None, path: Path | None = None) -> VideoJob:
        job = VideoJob(
            owner_id=owner_id,
            source_filename="lesson.mp4",
            source_path=str(path or video_file),
            mime_type="video/mp4",
        )
        return await (repo or repository).create(job)

    return build


def llm_error(message: str = "model refused", transient: bool = False) -> LlmInvocationError:
    return LlmInvocationError(message, transient=transient)

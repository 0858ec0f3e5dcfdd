"""Drive one video job from ``processing`` to ``completed`` or ``failed``."""

from __future__ import annotations

import asyncio
import functools
import logging
import os
from typing import Callable, Optional
from uuid import UUID

from app.application.interfaces import (
    JobNotFoundError,
    JobRepositoryInterface,
    JobStoreError,
)
from app.config.settings import PipelineConfig, PipelineShape, TranscribeConfig, settings
from app.domain.models import JobStatus, VideoJob
from app.services.llm_client import get_llm_client
from app.services.media import TempMediaManager
from app.services.retry import RetryPolicy
from app.services.text_detection import get_text_detector
from app.services.transcribe import get_transcribe_service
from app.telemetry import record_job_outcome, record_stuck_job

from .overview import run_overview_stage
from .synthesis import run_synthesis_stage
from .transcription import run_audio_stage
from .types import Capabilities, PipelineContent, StageResult
from .visual import run_visual_stage

logger = logging.getLogger("app.pipelines.video")


class StageFailedError(RuntimeError):
    """A stage returned a ``fatal`` result; the run is aborted."""

    def __init__(self, result: StageResult) -> None:
        super().__init__(f"{result.stage} stage failed: {result.reason}")
        self.result = result

    @property
    def stage(self) -> str:
        return self.result.stage


def default_capabilities(config: PipelineConfig | None = None) -> Capabilities:
    """AWS-backed capabilities wrapped in the configured retry policy."""

    return Capabilities(
        transcriber=get_transcribe_service(),
        text_detector=get_text_detector(),
        generator=get_llm_client(),
        retry=RetryPolicy.from_config(config or settings.pipeline),
    )


class VideoPipelineOrchestrator:
    """Run the configured pipeline shape for a job and persist its terminal state."""

    def __init__(
        self,
        repository: JobRepositoryInterface,
        *,
        capabilities: Capabilities,
        media_factory: Optional[Callable[[], TempMediaManager]] = None,
        config: PipelineConfig | None = None,
        transcribe_config: TranscribeConfig | None = None,
        delete_source: bool = True,
    ) -> None:
        self._repository = repository
        self._capabilities = capabilities
        self._config = config or settings.pipeline
        self._transcribe = transcribe_config or settings.transcribe
        self._media_factory = media_factory or functools.partial(
            TempMediaManager,
            sample_rate_hz=self._transcribe.sample_rate_hz,
            temp_root=self._config.temp_dir,
            ffmpeg_timeout=self._config.call_timeout_seconds,
        )
        self._delete_source = delete_source

    async def run(self, job_id: UUID) -> VideoJob | None:
        """Process ``job_id`` once. Returns the final record, or None if it could not be saved."""

        try:
            job = await self._repository.get(job_id)
        except JobNotFoundError:
            logger.error("Job %s does not exist; nothing to process", job_id)
            return None
        except JobStoreError as exc:
            logger.error("Job %s could not be loaded: %s", job_id, exc)
            await self.mark_failed(job_id, f"Job store error: {exc}")
            return None

        if job.status.is_terminal:
            logger.info("Job %s is already %s; not re-running", job_id, job.status.value)
            return job

        logger.info("Processing job %s (%s, shape=%s)", job_id, job.source_filename, self._config.shape.value)
        deadline = self._config.job_deadline_seconds
        try:
            completed = await asyncio.wait_for(self._execute(job), timeout=deadline)
        except asyncio.CancelledError:
            logger.warning("Job %s was cancelled", job_id)
            await self.mark_failed(job_id, "Processing was cancelled")
            raise
        except asyncio.TimeoutError:
            logger.error("Job %s exceeded its %ss deadline", job_id, deadline)
            return await self.mark_failed(job_id, f"Processing exceeded the {deadline}s deadline")
        except StageFailedError as exc:
            logger.error("Job %s aborted: %s", job_id, exc)
            return await self.mark_failed(job_id, str(exc))
        except JobStoreError as exc:
            logger.error("Job %s aborted on a store error: %s", job_id, exc)
            return await self.mark_failed(job_id, f"Job store error: {exc}")
        except Exception as exc:
            logger.exception("Job %s aborted unexpectedly", job_id)
            return await self.mark_failed(job_id, str(exc) or exc.__class__.__name__)

        record_job_outcome(JobStatus.COMPLETED.value)
        logger.info("Job %s completed with %s quiz questions", job_id, len(completed.quiz_questions))
        return completed

    async def _execute(self, job: VideoJob) -> VideoJob:
        async with self._media_factory() as media:
            if self._delete_source:
                media.adopt(job.source_path)
            if not os.path.exists(job.source_path):
                raise FileNotFoundError(f"Uploaded video is missing: {job.source_path}")

            content = await self._gather_content(job, media)
            synthesis = self._check(
                await run_synthesis_stage(
                    content,
                    capabilities=self._capabilities,
                    question_count=self._config.quiz_question_count,
                )
            ).value

            job.transcript = content.transcript
            job.extracted_text = content.extracted_text
            job.visual_description = content.visual_description
            job.summary = synthesis.summary
            job.quiz_questions = list(synthesis.questions)
            job.answer_key = synthesis.answer_key
            job.status = JobStatus.COMPLETED
            job.error = None
            return await self._repository.save(job)

    async def _gather_content(self, job: VideoJob, media: TempMediaManager) -> PipelineContent:
        if self._config.shape is PipelineShape.MONOLITHIC:
            overview = self._check(
                await run_overview_stage(
                    job.source_path,
                    job.mime_type,
                    capabilities=self._capabilities,
                    max_inline_bytes=self._config.max_inline_video_bytes,
                )
            )
            if overview.is_ok or not self._config.fallback_to_decomposed:
                return PipelineContent(transcript=overview.value)
            logger.info("Job %s falling back to the decomposed pipeline: %s", job.id, overview.reason)

        transcript = self._check(
            await run_audio_stage(
                job.source_path,
                media=media,
                capabilities=self._capabilities,
                sample_rate_hz=self._transcribe.sample_rate_hz,
                language_code=self._transcribe.language_code,
            )
        )
        visual = self._check(
            await run_visual_stage(
                job.source_path,
                media=media,
                capabilities=self._capabilities,
                interval_seconds=self._config.frame_interval_seconds,
                max_frames=self._config.max_frames,
            )
        )
        return PipelineContent(
            transcript=transcript.value,
            extracted_text=visual.value.extracted_text,
            visual_description=visual.value.visual_description,
        )

    @staticmethod
    def _check(result: StageResult) -> StageResult:
        if result.is_fatal:
            raise StageFailedError(result)
        return result

    async def mark_failed(self, job_id: UUID, message: str) -> VideoJob | None:
        """Re-fetch the record and persist ``failed``; a failure here leaves the job stuck."""

        try:
            job = await self._repository.get(job_id)
            if job.status.is_terminal:
                logger.warning("Job %s is already %s; not marking failed", job_id, job.status.value)
                return job
            job.status = JobStatus.FAILED
            job.error = message
            saved = await self._repository.save(job)
        except Exception as exc:
            logger.critical(
                "Job %s could not be marked failed and remains processing: %s (original error: %s)",
                job_id,
                exc,
                message,
            )
            record_stuck_job()
            return None

        record_job_outcome(JobStatus.FAILED.value)
        return saved


__all__ = ["StageFailedError", "VideoPipelineOrchestrator", "default_capabilities"]

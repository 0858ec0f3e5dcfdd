"""Bounded asyncio worker pool that runs submitted jobs in the background."""

from __future__ import annotations

import asyncio
import logging
from uuid import UUID

from app.telemetry import ACTIVE_JOBS, QUEUE_DEPTH

from .orchestrator import VideoPipelineOrchestrator

logger = logging.getLogger("app.pipelines.video")


class PipelineBusyError(RuntimeError):
    """Raised by :meth:`JobRunner.submit` when the queue is full."""


class DuplicateJobError(RuntimeError):
    """Raised when a job id is already queued or running."""


class JobRunner:
    """Feed job ids to ``max_workers`` tasks through a bounded queue.

    ``submit`` never blocks: it either enqueues the job or raises
    :class:`PipelineBusyError`. ``cancel`` skips a queued job or cancels the
    task running it; the orchestrator then marks the job failed.
    """

    def __init__(
        self,
        orchestrator: VideoPipelineOrchestrator,
        *,
        max_workers: int = 4,
        queue_size: int = 32,
    ) -> None:
        self._orchestrator = orchestrator
        self._max_workers = max_workers
        self._queue: asyncio.Queue[UUID] = asyncio.Queue(maxsize=queue_size)
        self._workers: list[asyncio.Task] = []
        self._queued: set[UUID] = set()
        self._cancelled: set[UUID] = set()
        self._running: dict[UUID, asyncio.Task] = {}
        self._stopping = False

    @property
    def started(self) -> bool:
        return bool(self._workers)

    @property
    def pending(self) -> int:
        return len(self._queued)

    @property
    def running(self) -> int:
        return len(self._running)

    def start(self) -> None:
        if self._workers:
            return
        for index in range(self._max_workers):
            self._workers.append(
                asyncio.create_task(self._worker(), name=f"video-pipeline-worker-{index}")
            )
        logger.info("Started %s pipeline workers", self._max_workers)

    def submit(self, job_id: UUID) -> None:
        if self._stopping:
            raise PipelineBusyError("Processing is shutting down; try again later")
        if job_id in self._queued or job_id in self._running:
            raise DuplicateJobError(f"Job {job_id} is already queued or running")
        try:
            self._queue.put_nowait(job_id)
        except asyncio.QueueFull as exc:
            raise PipelineBusyError("Processing queue is full; try again later") from exc
        self._queued.add(job_id)
        QUEUE_DEPTH.set(len(self._queued))
        logger.info("Queued job %s (%s pending)", job_id, len(self._queued))

    def cancel(self, job_id: UUID) -> bool:
        """Cancel a queued or running job. Returns False when the id is unknown."""

        task = self._running.get(job_id)
        if task is not None:
            task.cancel()
            return True
        if job_id in self._queued:
            self._cancelled.add(job_id)
            return True
        return False

    async def join(self) -> None:
        """Wait until every queued job has been processed."""
        await self._queue.join()

    async def shutdown(self) -> None:
        """Fail every queued job, cancel running ones and stop the workers."""

        self._stopping = True
        backlog = self._drain_queue()

        for task in list(self._running.values()):
            task.cancel()
        if self._running:
            await asyncio.gather(*self._running.values(), return_exceptions=True)

        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers.clear()

        for job_id in backlog:
            logger.warning("Job %s was still queued at shutdown", job_id)
            await self._orchestrator.mark_failed(job_id, "Processing was cancelled by shutdown")
        self._stopping = False
        logger.info("Pipeline workers stopped (%s queued jobs failed)", len(backlog))

    def _drain_queue(self) -> list[UUID]:
        backlog: list[UUID] = []
        while True:
            try:
                job_id = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            self._queue.task_done()
            self._queued.discard(job_id)
            self._cancelled.discard(job_id)
            backlog.append(job_id)
        QUEUE_DEPTH.set(len(self._queued))
        return backlog

    async def _worker(self) -> None:
        while True:
            job_id = await self._queue.get()
            try:
                self._queued.discard(job_id)
                QUEUE_DEPTH.set(len(self._queued))
                if job_id in self._cancelled:
                    self._cancelled.discard(job_id)
                    await self._run_cancelled(job_id)
                    continue
                await self._run(job_id)
            finally:
                self._queue.task_done()

    async def _run(self, job_id: UUID) -> None:
        task = asyncio.create_task(self._orchestrator.run(job_id), name=f"video-job-{job_id}")
        self._running[job_id] = task
        ACTIVE_JOBS.set(len(self._running))
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.done():
                # The worker itself is being stopped; stop the job with it.
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
                raise
            if self._stopping:
                raise
            logger.info("Job %s was cancelled", job_id)
        except Exception:
            logger.exception("Job %s crashed its worker task", job_id)
        finally:
            self._running.pop(job_id, None)
            ACTIVE_JOBS.set(len(self._running))

    async def _run_cancelled(self, job_id: UUID) -> None:
        logger.info("Job %s was cancelled before it started", job_id)
        await self._orchestrator.mark_failed(job_id, "Processing was cancelled before it started")


__all__ = ["DuplicateJobError", "JobRunner", "PipelineBusyError"]

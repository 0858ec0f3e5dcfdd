import asyncio
from typing import Dict, List
from uuid import UUID

from app.application.interfaces import (
    JobNotFoundError,
    JobRepositoryInterface,
    JobStoreError,
)
from app.domain.models import VideoJob, utc_now


class InMemoryJobRepository(JobRepositoryInterface):
    """Process-local job store for one-off runs and tests; nothing survives a restart"""

    def __init__(self) -> None:
        self._jobs: Dict[UUID, VideoJob] = {}
        self._lock = asyncio.Lock()

    async def create(self, job: VideoJob) -> VideoJob:
        async with self._lock:
            if job.id in self._jobs:
                raise JobStoreError(f"Job {job.id} already exists")
            self._jobs[job.id] = job.model_copy(deep=True)
            return job.model_copy(deep=True)

    async def get(self, job_id: UUID) -> VideoJob:
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(f"Job {job_id} not found")
            return job.model_copy(deep=True)

    async def save(self, job: VideoJob) -> VideoJob:
        async with self._lock:
            stored = job.model_copy(update={"updated_at": utc_now()}, deep=True)
            self._jobs[job.id] = stored
            return stored.model_copy(deep=True)

    async def list_for_owner(self, owner_id: str) -> List[VideoJob]:
        async with self._lock:
            jobs = [job for job in self._jobs.values() if job.owner_id == owner_id]
        jobs.sort(key=lambda job: job.created_at, reverse=True)
        return [job.model_copy(deep=True) for job in jobs]

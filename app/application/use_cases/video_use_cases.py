from typing import List, Optional
from uuid import UUID

from app.application.interfaces import JobNotFoundError, JobRepositoryInterface
from app.domain.models import JobStatus, VideoJob


class CreateVideoJobUseCase:
    """Use case for registering an uploaded video as a processing job"""

    def __init__(self, repository: JobRepositoryInterface):
        self.repository = repository

    async def execute(
        self,
        owner_id: str,
        source_filename: str,
        source_path: str,
        mime_type: str,
    ) -> VideoJob:
        job = VideoJob(
            owner_id=owner_id,
            source_filename=source_filename,
            source_path=source_path,
            mime_type=mime_type,
            status=JobStatus.PROCESSING,
        )
        return await self.repository.create(job)


class GetVideoJobUseCase:
    """Use case for retrieving one of the caller's jobs"""

    def __init__(self, repository: JobRepositoryInterface):
        self.repository = repository

    async def execute(self, job_id: UUID, owner_id: str) -> Optional[VideoJob]:
        """Return the job, or None when it is missing or belongs to someone else"""
        try:
            job = await self.repository.get(job_id)
        except JobNotFoundError:
            return None
        if job.owner_id != owner_id:
            return None
        return job


class ListVideoJobsUseCase:
    """Use case for listing the caller's jobs, newest first"""

    def __init__(self, repository: JobRepositoryInterface):
        self.repository = repository

    async def execute(self, owner_id: str) -> List[VideoJob]:
        return await self.repository.list_for_owner(owner_id)


class RejectVideoJobUseCase:
    """Use case for failing a job that could not be admitted for processing"""

    def __init__(self, repository: JobRepositoryInterface):
        self.repository = repository

    async def execute(self, job: VideoJob, reason: str) -> VideoJob:
        job.status = JobStatus.FAILED
        job.error = reason
        return await self.repository.save(job)

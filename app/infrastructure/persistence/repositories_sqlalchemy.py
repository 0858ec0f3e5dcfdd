from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.application.interfaces import (
    JobNotFoundError,
    JobRepositoryInterface,
    JobStoreError,
)
from app.domain.models import VideoJob
from app.models.video_job import VideoJobEntity

_WRITABLE_FIELDS = (
    "owner_id",
    "source_filename",
    "source_path",
    "mime_type",
    "status",
    "transcript",
    "extracted_text",
    "visual_description",
    "summary",
    "answer_key",
    "error",
    "created_at",
)


def _apply(entity: VideoJobEntity, job: VideoJob) -> None:
    for field in _WRITABLE_FIELDS:
        setattr(entity, field, getattr(job, field))
    entity.quiz_questions = [question.to_document() for question in job.quiz_questions]


class SQLAlchemyJobRepository(JobRepositoryInterface):
    """SQLAlchemy implementation of the video job store"""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def create(self, job: VideoJob) -> VideoJob:
        db_job = VideoJobEntity(id=job.id)
        _apply(db_job, job)
        try:
            async with self._session_factory() as session:
                session.add(db_job)
                await session.commit()
                await session.refresh(db_job)
        except SQLAlchemyError as exc:
            raise JobStoreError(f"Failed to create job {job.id}: {exc}") from exc
        return VideoJob.model_validate(db_job)

    async def get(self, job_id: UUID) -> VideoJob:
        try:
            async with self._session_factory() as session:
                db_job = await session.get(VideoJobEntity, job_id)
        except SQLAlchemyError as exc:
            raise JobStoreError(f"Failed to load job {job_id}: {exc}") from exc
        if db_job is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        return VideoJob.model_validate(db_job)

    async def save(self, job: VideoJob) -> VideoJob:
        """Upsert the full record; saving the same state twice is a no-op."""
        try:
            async with self._session_factory() as session:
                db_job = await session.get(VideoJobEntity, job.id)
                if db_job is None:
                    db_job = VideoJobEntity(id=job.id)
                    session.add(db_job)
                _apply(db_job, job)
                await session.commit()
                await session.refresh(db_job)
        except SQLAlchemyError as exc:
            raise JobStoreError(f"Failed to save job {job.id}: {exc}") from exc
        return VideoJob.model_validate(db_job)

    async def list_for_owner(self, owner_id: str) -> List[VideoJob]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(VideoJobEntity)
                    .where(VideoJobEntity.owner_id == owner_id)
                    .order_by(VideoJobEntity.created_at.desc())
                )
                rows = result.scalars().all()
        except SQLAlchemyError as exc:
            raise JobStoreError(f"Failed to list jobs for {owner_id}: {exc}") from exc
        return [VideoJob.model_validate(row) for row in rows]

"""Video upload and quiz retrieval endpoints.

POST `/api/videos/upload` stores the file, creates a ``processing`` job and
hands it to the background runner; see
`app.pipelines.video.flow.VideoProcessingPipeline` for what happens next.
The list/detail endpoints only read job records.
"""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, File, HTTPException, UploadFile, status

from app.application.interfaces import JobStoreError
from app.application.use_cases.video_use_cases import (
    CreateVideoJobUseCase,
    GetVideoJobUseCase,
    ListVideoJobsUseCase,
    RejectVideoJobUseCase,
)
from app.config.settings import settings
from app.controllers.dependencies import CurrentUserIdDep, JobRepositoryDep, JobRunnerDep
from app.pipelines.video import (
    DuplicateJobError,
    PipelineBusyError,
    discard_upload,
    resolve_video_content_type,
    store_upload,
)
from app.views import ErrorResponse, VideoJobResponse, VideoUploadResponse

router = APIRouter(prefix="/api/videos", tags=["videos"])

logger = logging.getLogger(__name__)

_VIDEO_FILE_UPLOAD = File(...)


@router.post(
    "/upload",
    response_model=VideoUploadResponse,
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def upload_video(
    owner_id: CurrentUserIdDep,
    repository: JobRepositoryDep,
    runner: JobRunnerDep,
    video: UploadFile = _VIDEO_FILE_UPLOAD,
) -> VideoUploadResponse:
    """Accept a video and start processing it in the background."""

    content_type = resolve_video_content_type(video)
    source_path = await store_upload(video, content_type, settings.pipeline.upload_dir)

    try:
        job = await CreateVideoJobUseCase(repository).execute(
            owner_id=owner_id,
            source_filename=video.filename or "video",
            source_path=source_path,
            mime_type=content_type,
        )
    except JobStoreError as exc:
        logger.exception("Could not create a job for upload %s", video.filename)
        discard_upload(source_path)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not save the video job, please retry later",
        ) from exc

    try:
        runner.submit(job.id)
    except (PipelineBusyError, DuplicateJobError) as exc:
        logger.warning("Job %s rejected: %s", job.id, exc)
        try:
            await RejectVideoJobUseCase(repository).execute(job, str(exc))
        except JobStoreError:
            logger.exception("Job %s could not be marked failed after rejection", job.id)
        discard_upload(source_path)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Video processing is at capacity, please retry later",
        ) from exc

    logger.info("Video %s uploaded by %s as job %s", video.filename, owner_id, job.id)
    return VideoUploadResponse(video_id=job.id)


@router.get("", response_model=List[VideoJobResponse])
async def list_videos(
    owner_id: CurrentUserIdDep,
    repository: JobRepositoryDep,
) -> List[VideoJobResponse]:
    jobs = await ListVideoJobsUseCase(repository).execute(owner_id)
    return [VideoJobResponse.from_job(job) for job in jobs]


@router.get(
    "/{video_id}",
    response_model=VideoJobResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_video(
    video_id: UUID,
    owner_id: CurrentUserIdDep,
    repository: JobRepositoryDep,
) -> VideoJobResponse:
    job = await GetVideoJobUseCase(repository).execute(video_id, owner_id)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Video not found",
        )
    return VideoJobResponse.from_job(job)

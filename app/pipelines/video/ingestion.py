"""Upload ingestion helpers (before Stage 01 of the video pipeline)."""

from __future__ import annotations

import logging
import mimetypes
import os
import shutil
from pathlib import Path
from typing import Final
from uuid import uuid4

from fastapi import HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool

logger = logging.getLogger("app.pipelines.video")

_ALLOWED_CONTENT_TYPES: Final[dict[str, str]] = {
    "video/mp4": ".mp4",
    "video/quicktime": ".mov",
    "video/x-msvideo": ".avi",
    "video/webm": ".webm",
}
_GENERIC_CONTENT_TYPES: Final[set[str]] = {"", "application/octet-stream"}


def resolve_video_content_type(video_file: UploadFile) -> str:
    """Accept common video containers, guessing from the filename when the client did not say."""

    content_type = (video_file.content_type or "").lower()
    if content_type in _GENERIC_CONTENT_TYPES and video_file.filename:
        guessed_type, _ = mimetypes.guess_type(video_file.filename)
        content_type = (guessed_type or "").lower()

    if content_type not in _ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only MP4, MOV, AVI or WebM video files are supported",
        )
    return content_type


def _copy_to_disk(video_file: UploadFile, destination: Path) -> int:
    video_file.file.seek(0)
    with destination.open("wb") as buffer:
        shutil.copyfileobj(video_file.file, buffer)
    return destination.stat().st_size


async def store_upload(video_file: UploadFile, content_type: str, upload_dir: str) -> str:
    """Persist the upload under ``upload_dir`` with a unique name, rejecting empty payloads."""

    directory = Path(upload_dir)
    directory.mkdir(parents=True, exist_ok=True)
    destination = directory / f"{uuid4().hex}{_ALLOWED_CONTENT_TYPES[content_type]}"

    try:
        size = await run_in_threadpool(_copy_to_disk, video_file, destination)
    finally:
        await video_file.close()

    if size == 0:
        os.remove(destination)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded video file is empty",
        )

    logger.info("Stored upload %s (%s bytes) at %s", video_file.filename, size, destination)
    return str(destination)


def discard_upload(path: str) -> None:
    """Delete a stored upload that will never be processed."""

    try:
        os.remove(path)
    except FileNotFoundError:
        return
    except OSError as exc:
        logger.warning("Could not delete rejected upload %s: %s", path, exc)


__all__ = ["discard_upload", "resolve_video_content_type", "store_upload"]

"""Pydantic schemas used as views in the MVC architecture."""

from .common import ErrorResponse
from .videos import (
    QuizQuestionView,
    VideoJobResponse,
    VideoUploadResponse,
)

__all__ = [
    "ErrorResponse",
    "QuizQuestionView",
    "VideoJobResponse",
    "VideoUploadResponse",
]

"""SQLAlchemy models for the MVC architecture."""

from .base import Base
from .video_job import VideoJobEntity  # noqa: F401

__all__ = [
    "Base",
    "VideoJobEntity",
]

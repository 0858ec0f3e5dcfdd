"""SQLAlchemy model for video processing jobs."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, String, Text, Uuid
from sqlalchemy import Enum as SqlEnum

from app.domain.models import JobStatus
from app.models.base import Base


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class VideoJobEntity(Base):
    __tablename__ = "video_jobs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(String(128), nullable=False, index=True)
    source_filename = Column(String(512), nullable=False)
    source_path = Column(String(1024), nullable=False)
    mime_type = Column(String(64), nullable=False, default="video/mp4")
    status = Column(
        SqlEnum(
            JobStatus,
            name="video_job_status",
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=JobStatus.PROCESSING,
        index=True,
    )
    transcript = Column(Text, nullable=False, default="")
    extracted_text = Column(Text, nullable=False, default="")
    visual_description = Column(Text, nullable=False, default="")
    summary = Column(Text, nullable=False, default="")
    # Ordered list of {"question", "options", "correctAnswer"} documents.
    quiz_questions = Column(JSON, nullable=False, default=list)
    answer_key = Column(Text, nullable=False, default="")
    error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utc_now)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=True,
        default=_utc_now,
        onupdate=_utc_now,
    )


__all__ = ["VideoJobEntity"]

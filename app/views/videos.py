"""Pydantic schemas for video job endpoints."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.domain.models import JobStatus, VideoJob


class QuizQuestionView(BaseModel):
    question: str
    options: List[str]
    correct_answer: str = Field(..., serialization_alias="correctAnswer")

    model_config = ConfigDict(from_attributes=True)


class VideoUploadResponse(BaseModel):
    message: str = "Video uploaded"
    video_id: UUID = Field(..., serialization_alias="videoId")


class VideoJobResponse(BaseModel):
    """Persisted job document as returned to its owner."""

    video_id: UUID = Field(..., serialization_alias="videoId")
    owner_id: str = Field(..., serialization_alias="ownerId")
    filename: str
    status: JobStatus
    transcript: str = ""
    extracted_text: str = Field("", serialization_alias="extractedText")
    visual_description: str = Field("", serialization_alias="visualDescription")
    summary: str = ""
    quiz_questions: List[QuizQuestionView] = Field(
        default_factory=list, serialization_alias="quizQuestions"
    )
    answer_key: str = Field("", serialization_alias="answerKey")
    error: Optional[str] = None
    created_at: datetime = Field(..., serialization_alias="createdAt")
    updated_at: Optional[datetime] = Field(None, serialization_alias="updatedAt")

    @classmethod
    def from_job(cls, job: VideoJob) -> "VideoJobResponse":
        return cls(
            video_id=job.id,
            owner_id=job.owner_id,
            filename=job.source_filename,
            status=job.status,
            transcript=job.transcript,
            extracted_text=job.extracted_text,
            visual_description=job.visual_description,
            summary=job.summary,
            quiz_questions=[
                QuizQuestionView.model_validate(question) for question in job.quiz_questions
            ],
            answer_key=job.answer_key,
            error=job.error,
            created_at=job.created_at,
            updated_at=job.updated_at,
        )


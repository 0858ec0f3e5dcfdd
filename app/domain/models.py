from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.PROCESSING


class QuizQuestion(BaseModel):
    """One multiple-choice question with exactly four options."""

    question: str = Field(min_length=1)
    options: List[str] = Field(min_length=4, max_length=4)
    correct_answer: str = Field(alias="correctAnswer")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("question")
    @classmethod
    def question_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("question must not be blank")
        return value

    @property
    def answer_in_options(self) -> bool:
        return self.correct_answer in self.options

    def to_document(self) -> dict:
        """Return the persisted shape: question, options, correctAnswer."""
        return self.model_dump(by_alias=True)


class VideoJob(BaseModel):
    """Domain model for one uploaded video and its processing outcome"""

    id: UUID = Field(default_factory=uuid4)
    owner_id: str
    source_filename: str
    source_path: str
    mime_type: str = "video/mp4"
    status: JobStatus = JobStatus.PROCESSING
    transcript: str = ""
    extracted_text: str = ""
    visual_description: str = ""
    summary: str = ""
    quiz_questions: List[QuizQuestion] = Field(default_factory=list)
    answer_key: str = ""
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

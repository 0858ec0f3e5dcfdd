"""SQLAlchemy job store against an in-memory SQLite database."""

from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.application.interfaces import JobNotFoundError, JobStoreError
from app.domain.models import JobStatus, QuizQuestion, VideoJob
from app.infrastructure.persistence.repositories_sqlalchemy import SQLAlchemyJobRepository
from app.models import Base


@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def sql_repository(session_factory) -> SQLAlchemyJobRepository:
    return SQLAlchemyJobRepository(session_factory)


def new_job(owner_id: str = "user-1") -> VideoJob:
    return VideoJob(
        owner_id=owner_id,
        source_filename="lesson.mp4",
        source_path="/tmp/uploads/lesson.mp4",
        mime_type="video/mp4",
    )


@pytest.mark.anyio
async def test_create_then_get_round_trips_fields(sql_repository):
    job = new_job()

    created = await sql_repository.create(job)
    loaded = await sql_repository.get(job.id)

    assert created.id == job.id
    assert loaded.status is JobStatus.PROCESSING
    assert loaded.owner_id == "user-1"
    assert loaded.quiz_questions == []
    assert loaded.error is None


@pytest.mark.anyio
async def test_save_persists_quiz_documents(sql_repository):
    job = await sql_repository.create(new_job())
    job.status = JobStatus.COMPLETED
    job.summary = "About leaves."
    job.quiz_questions = [
        QuizQuestion(question="Q?", options=["A", "B", "C", "D"], correctAnswer="B")
    ]
    job.answer_key = "Q1: B"

    await sql_repository.save(job)
    await sql_repository.save(job)
    loaded = await sql_repository.get(job.id)

    assert loaded.status is JobStatus.COMPLETED
    assert loaded.quiz_questions[0].correct_answer == "B"
    assert loaded.quiz_questions[0].to_document() == {
        "question": "Q?",
        "options": ["A", "B", "C", "D"],
        "correctAnswer": "B",
    }
    assert loaded.answer_key == "Q1: B"
    assert loaded.updated_at is not None


@pytest.mark.anyio
async def test_get_unknown_job_raises_not_found(sql_repository):
    with pytest.raises(JobNotFoundError):
        await sql_repository.get(uuid4())


@pytest.mark.anyio
async def test_save_upserts_missing_record(sql_repository):
    job = new_job()

    await sql_repository.save(job)

    assert (await sql_repository.get(job.id)).source_filename == "lesson.mp4"


@pytest.mark.anyio
async def test_list_for_owner_filters_and_orders_newest_first(sql_repository):
    first = await sql_repository.create(new_job("alice"))
    await asyncio.sleep(0.01)
    second = await sql_repository.create(new_job("alice"))
    await sql_repository.create(new_job("bob"))

    jobs = await sql_repository.list_for_owner("alice")

    assert [job.id for job in jobs] == [second.id, first.id]


@pytest.mark.anyio
async def test_duplicate_create_is_a_store_error(sql_repository):
    job = await sql_repository.create(new_job())

    with pytest.raises(JobStoreError):
        await sql_repository.create(job)

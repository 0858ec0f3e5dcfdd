"""HTTP surface: upload, listing and detail of video jobs."""

from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from app.application.interfaces import JobStoreError
from app.config.settings import PipelineShape, settings
from app.controllers.dependencies import get_current_user_id, get_job_repository, get_job_runner
from app.domain.models import JobStatus, QuizQuestion, VideoJob
from app.infrastructure.persistence.repositories_memory import InMemoryJobRepository
from app.main import app
from app.pipelines.video import PipelineBusyError


class RecordingRunner:
    def __init__(self, busy: bool = False):
        self.busy = busy
        self.submitted: list = []

    def submit(self, job_id) -> None:
        if self.busy:
            raise PipelineBusyError("Job queue is full")
        self.submitted.append(job_id)


@pytest.fixture
def repository() -> InMemoryJobRepository:
    return InMemoryJobRepository()


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    target = tmp_path / "uploads"
    monkeypatch.setattr(settings.pipeline, "upload_dir", str(target))
    return target


@pytest.fixture
def client(repository, runner, upload_dir):
    current_user = {"id": "alice"}
    app.dependency_overrides[get_current_user_id] = lambda: current_user["id"]
    app.dependency_overrides[get_job_repository] = lambda: repository
    app.dependency_overrides[get_job_runner] = lambda: runner
    test_client = TestClient(app)
    test_client.current_user = current_user
    yield test_client
    app.dependency_overrides.clear()


def upload(client: TestClient, name: str = "lesson.mp4", data: bytes = b"\x00" * 64, content_type="video/mp4"):
    return client.post(
        "/api/videos/upload",
        files={"video": (name, data, content_type)},
    )


def stored_jobs(repository: InMemoryJobRepository, owner_id: str = "alice") -> list[VideoJob]:
    return asyncio.run(repository.list_for_owner(owner_id))


def test_upload_creates_processing_job_and_submits_it(client, repository, runner, upload_dir):
    response = upload(client)

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Video uploaded"
    (job,) = stored_jobs(repository)
    assert body["videoId"] == str(job.id)
    assert job.status is JobStatus.PROCESSING
    assert job.source_filename == "lesson.mp4"
    assert runner.submitted == [job.id]
    assert [p.suffix for p in upload_dir.iterdir()] == [".mp4"]


def test_octet_stream_upload_is_typed_from_filename(client, repository):
    response = upload(client, name="lesson.mov", content_type="application/octet-stream")

    assert response.status_code == 200
    (job,) = stored_jobs(repository)
    assert job.mime_type == "video/quicktime"


def test_non_video_upload_is_rejected(client, repository):
    response = upload(client, name="notes.pdf", content_type="application/pdf")

    assert response.status_code == 400
    assert stored_jobs(repository) == []


def test_empty_upload_is_rejected(client, repository, upload_dir):
    response = upload(client, data=b"")

    assert response.status_code == 400
    assert response.json() == {"detail": "Uploaded video file is empty"}
    assert list(upload_dir.iterdir()) == []


def test_missing_file_field_is_unprocessable(client):
    assert client.post("/api/videos/upload").status_code == 422


def test_busy_runner_rejects_upload_and_fails_job(client, repository, runner, upload_dir):
    runner.busy = True

    response = upload(client)

    assert response.status_code == 503
    (job,) = stored_jobs(repository)
    assert job.status is JobStatus.FAILED
    assert job.error == "Job queue is full"
    assert list(upload_dir.iterdir()) == []


def test_store_failure_on_create_discards_the_upload(client, repository, runner, upload_dir, monkeypatch):
    async def refuse(job):
        raise JobStoreError("database unavailable")

    monkeypatch.setattr(repository, "create", refuse)

    response = upload(client)

    assert response.status_code == 500
    assert response.json() == {"detail": "Could not save the video job, please retry later"}
    assert runner.submitted == []
    assert list(upload_dir.iterdir()) == []


def test_list_returns_only_callers_jobs_in_camel_case(client, repository):
    upload(client, name="first.mp4")
    client.current_user["id"] = "bob"
    upload(client, name="other.mp4")
    client.current_user["id"] = "alice"

    response = client.get("/api/videos")

    assert response.status_code == 200
    (item,) = response.json()
    assert item["filename"] == "first.mp4"
    assert item["ownerId"] == "alice"
    assert item["status"] == "processing"
    assert {"videoId", "extractedText", "visualDescription", "quizQuestions", "answerKey", "createdAt"} <= set(item)


def test_detail_returns_completed_quiz(client, repository):
    job = VideoJob(
        owner_id="alice",
        source_filename="lesson.mp4",
        source_path="/tmp/lesson.mp4",
        status=JobStatus.COMPLETED,
        summary="About leaves.",
        quiz_questions=[QuizQuestion(question="Q?", options=["A", "B", "C", "D"], correctAnswer="C")],
        answer_key="Q1: C",
    )
    asyncio.run(repository.create(job))

    response = client.get(f"/api/videos/{job.id}")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "completed"
    assert body["quizQuestions"] == [{"question": "Q?", "options": ["A", "B", "C", "D"], "correctAnswer": "C"}]
    assert body["answerKey"] == "Q1: C"
    assert body["error"] is None


def test_detail_of_other_owners_job_is_not_found(client, repository):
    upload(client)
    (job,) = stored_jobs(repository)
    client.current_user["id"] = "mallory"

    response = client.get(f"/api/videos/{job.id}")

    assert response.status_code == 404
    assert response.json() == {"detail": "Video not found"}


def test_detail_of_unknown_job_is_not_found(client):
    assert client.get(f"/api/videos/{uuid4()}").status_code == 404


def test_malformed_video_id_is_unprocessable(client):
    assert client.get("/api/videos/not-a-uuid").status_code == 422


def test_health_and_metrics_endpoints(monkeypatch):
    monkeypatch.setattr(settings.pipeline, "shape", PipelineShape.DECOMPOSED)
    test_client = TestClient(app)

    health = test_client.get("/health").json()
    assert health["status"] == "healthy"
    assert health["pipeline"] == {
        "shape": "decomposed",
        "stages": ["Transcription", "Visual Analysis", "Synthesis", "Persistence"],
    }
    metrics = test_client.get("/metrics")
    assert metrics.status_code == 200
    assert "http_requests_total" in metrics.text


class TestAuthentication:
    @pytest.fixture
    def unauthenticated_client(self, repository, runner, upload_dir):
        app.dependency_overrides[get_job_repository] = lambda: repository
        app.dependency_overrides[get_job_runner] = lambda: runner
        yield TestClient(app)
        app.dependency_overrides.clear()

    @staticmethod
    def token(claims: dict, secret: str | None = None) -> str:
        key = secret or settings.security.jwt_secret_key.get_secret_value()
        return jwt.encode(claims, key, algorithm=settings.security.jwt_algorithm)

    def test_missing_token_is_unauthorized(self, unauthenticated_client):
        assert unauthenticated_client.get("/api/videos").status_code == 401

    def test_wrongly_signed_token_is_unauthorized(self, unauthenticated_client):
        headers = {"Authorization": f"Bearer {self.token({'sub': 'alice'}, secret='other')}"}

        assert unauthenticated_client.get("/api/videos", headers=headers).status_code == 401

    def test_token_without_subject_is_unauthorized(self, unauthenticated_client):
        headers = {"Authorization": f"Bearer {self.token({'role': 'student'})}"}

        assert unauthenticated_client.get("/api/videos", headers=headers).status_code == 401

    @pytest.mark.parametrize("claim", ["sub", "userId"])
    def test_subject_claim_scopes_jobs(self, unauthenticated_client, repository, claim):
        asyncio.run(
            repository.create(VideoJob(owner_id="carol", source_filename="c.mp4", source_path="/tmp/c.mp4"))
        )
        headers = {"Authorization": f"Bearer {self.token({claim: 'carol'})}"}

        response = unauthenticated_client.get("/api/videos", headers=headers)

        assert response.status_code == 200
        assert [item["ownerId"] for item in response.json()] == ["carol"]

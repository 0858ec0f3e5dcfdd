"""Common FastAPI dependencies reused across controllers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.application.interfaces import JobRepositoryInterface
from app.database import SessionFactory
from app.infrastructure.persistence.repositories_sqlalchemy import SQLAlchemyJobRepository
from app.pipelines.video import JobRunner
from app.utils import AuthenticationError, decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str:
    """Resolve the caller's identity from the bearer token subject."""

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        payload = decode_access_token(credentials.credentials)
    except AuthenticationError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    if not payload.subject.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has no subject",
        )
    return payload.subject


def get_job_repository(request: Request) -> JobRepositoryInterface:
    repository = getattr(request.app.state, "job_repository", None)
    if repository is None:
        repository = SQLAlchemyJobRepository(SessionFactory)
    return repository


def get_job_runner(request: Request) -> JobRunner:
    runner = getattr(request.app.state, "job_runner", None)
    if runner is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Video processing is not available",
        )
    return runner


CurrentUserIdDep = Annotated[str, Depends(get_current_user_id)]
JobRepositoryDep = Annotated[JobRepositoryInterface, Depends(get_job_repository)]
JobRunnerDep = Annotated[JobRunner, Depends(get_job_runner)]


__all__ = [
    "bearer_scheme",
    "get_current_user_id",
    "get_job_repository",
    "get_job_runner",
    "CurrentUserIdDep",
    "JobRepositoryDep",
    "JobRunnerDep",
]

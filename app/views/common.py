"""Response schemas shared by every endpoint."""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Body of every non-2xx answer produced by the exception handlers."""

    detail: str

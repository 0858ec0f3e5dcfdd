"""JWT handling for bearer tokens issued by the identity provider."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from jose import JWTError, jwt
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from app.config.settings import settings


class AuthenticationError(Exception):
    """Raised when a JWT cannot be decoded or is otherwise invalid."""


class TokenPayload(BaseModel):
    """Minimal payload structure expected in access tokens.

    Older tokens carry the caller in ``userId`` instead of ``sub``.
    """

    sub: str | None = None
    user_id: str | None = Field(default=None, alias="userId")
    exp: datetime | None = None
    iat: datetime | None = None
    user: dict[str, Any] | None = None

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def _require_subject(self) -> "TokenPayload":
        if not (self.sub or self.user_id):
            raise ValueError("token has no subject")
        return self

    @property
    def subject(self) -> str:
        return str(self.sub or self.user_id)


def decode_access_token(token: str) -> TokenPayload:
    """Decode and validate a JWT access token, returning its payload."""

    secret = settings.security.jwt_secret_key.get_secret_value()
    try:
        payload = jwt.decode(
            token, secret, algorithms=[settings.security.jwt_algorithm]
        )
        return TokenPayload.model_validate(payload)
    except (JWTError, ValidationError) as exc:
        raise AuthenticationError("Invalid authentication token") from exc


__all__ = ["AuthenticationError", "TokenPayload", "decode_access_token"]

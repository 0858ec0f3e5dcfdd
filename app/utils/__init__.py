"""Utility helpers for the video lesson backend."""

from .security import AuthenticationError, TokenPayload, decode_access_token

__all__ = [
    "AuthenticationError",
    "TokenPayload",
    "decode_access_token",
]

"""Bearer-token header parsing."""

from __future__ import annotations

from .exceptions import UnauthenticatedError

BEARER_PREFIX = "Bearer "


def extract_bearer_token(authorization: str | None) -> str:
    """Return the token from an ``Authorization: Bearer <token>`` value.

    Raises:
        UnauthenticatedError: Header missing or not using the Bearer scheme
    """
    if authorization is None or not authorization.strip():
        raise UnauthenticatedError("Missing authorization header")
    if not authorization.startswith(BEARER_PREFIX):
        raise UnauthenticatedError("Invalid authorization format")
    token = authorization[len(BEARER_PREFIX) :].strip()
    if not token:
        raise UnauthenticatedError("Invalid authorization format")
    return token

"""Identity provider access: bearer tokens to principals."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Protocol

from jose import JWTError, jwt

from campus_board.core.settings import settings
from campus_board.db.time import utcnow

__all__ = [
    "IdentityProvider",
    "JwtIdentityProvider",
    "Principal",
    "create_access_token",
    "decode_access_token",
]


@dataclass(frozen=True)
class Principal:
    """Authenticated identity as issued by the identity provider."""

    id: str
    email: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)


class IdentityProvider(Protocol):
    """Source of the current session's principal."""

    async def get_current_session(self) -> Principal | None:
        """Return the signed-in principal, or ``None`` when signed out."""
        ...


def create_access_token(
    subject: str,
    *,
    email: str | None = None,
    user_metadata: Mapping[str, Any] | None = None,
    expires_minutes: int | None = None,
) -> str:
    """Create a JWT access token for ``subject``."""
    minutes = expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
    claims: dict[str, Any] = {
        "sub": subject,
        "exp": utcnow() + timedelta(minutes=minutes),
        "user_metadata": dict(user_metadata or {}),
    }
    if email is not None:
        claims["email"] = email
    if settings.jwt_audience:
        claims["aud"] = settings.jwt_audience
    encoded: str = jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)
    return encoded


def decode_access_token(token: str) -> Principal:
    """Validate ``token`` and return its principal.

    Raises:
        JWTError: If the signature, expiry or audience check fails or the
            token carries no subject.
    """
    payload = jwt.decode(
        token,
        settings.secret_key,
        algorithms=[settings.jwt_algorithm],
        audience=settings.jwt_audience,
        options={"verify_aud": settings.jwt_audience is not None},
    )
    subject = payload.get("sub")
    if not subject:
        raise JWTError("Token has no subject")
    metadata = payload.get("user_metadata")
    return Principal(
        id=str(subject),
        email=payload.get("email"),
        metadata=metadata if isinstance(metadata, dict) else {},
    )


class JwtIdentityProvider:
    """Identity provider backed by a single bearer token."""

    def __init__(self, token: str | None) -> None:
        """Initialize the provider with the request's bearer token."""
        self._token = token

    async def get_current_session(self) -> Principal | None:
        """Return the token's principal; invalid or missing tokens mean signed out."""
        if not self._token:
            return None
        try:
            return decode_access_token(self._token)
        except JWTError:
            return None

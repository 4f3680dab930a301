"""Principal resolution from Supabase-issued JWTs.

The database enforces row-level security with auth.uid(); the application
mirrors those rules and therefore needs the same identity. Requests without a
bearer token, or carrying an anon-role token, act as the anonymous principal.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Header, HTTPException, status

from researchai.core.config import settings

logger = logging.getLogger(__name__)

AUTHENTICATED_ROLE = "authenticated"
ANON_ROLE = "anon"


@dataclass(frozen=True)
class Principal:
    user_id: uuid.UUID | None
    role: str = ANON_ROLE

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None

    @classmethod
    def anonymous(cls) -> "Principal":
        return cls(user_id=None, role=ANON_ROLE)

    @classmethod
    def authenticated(cls, user_id: uuid.UUID) -> "Principal":
        return cls(user_id=user_id, role=AUTHENTICATED_ROLE)


class InvalidTokenError(ValueError):
    pass


def principal_from_token(token: str) -> Principal:
    secret = settings.supabase_jwt_secret
    if not secret:
        raise InvalidTokenError("token verification is not configured")

    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            options={"verify_aud": False, "require": ["exp"]},
        )
    except jwt.PyJWTError as exc:
        raise InvalidTokenError(str(exc)) from exc

    role = claims.get("role", AUTHENTICATED_ROLE)
    if role == ANON_ROLE:
        return Principal.anonymous()

    audience = claims.get("aud")
    audiences = audience if isinstance(audience, list) else [audience]
    if settings.supabase_jwt_audience not in audiences:
        raise InvalidTokenError("token audience mismatch")

    subject = claims.get("sub")
    if not subject:
        raise InvalidTokenError("token has no subject")
    try:
        return Principal.authenticated(uuid.UUID(str(subject)))
    except (TypeError, ValueError) as exc:
        raise InvalidTokenError("token subject is not a user id") from exc


def get_principal(authorization: Optional[str] = Header(default=None)) -> Principal:
    if not authorization:
        return Principal.anonymous()

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="expected a bearer token")

    try:
        return principal_from_token(token.strip())
    except InvalidTokenError as exc:
        logger.info("Rejected bearer token: %s", exc)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid token") from exc

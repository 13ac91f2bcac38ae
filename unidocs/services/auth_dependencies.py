"""Bearer-token authentication.

Verifies signed access tokens and resolves them to an active ``User``.
Each failure carries a distinct ``reason`` so clients can tell an expired
token from a deactivated account.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt
from fastapi import Depends, Header
from sqlalchemy.orm import Session

from unidocs.config import settings
from unidocs.db import get_db
from unidocs.errors import NotFoundError, UnauthenticatedError
from unidocs.models.user import User, UserRole
from unidocs.services import access
from unidocs.services.common import coerce_uuid

logger = logging.getLogger(__name__)

CLAIM_SUB = "sub"
CLAIM_ROLE = "role"
CLAIM_EXP = "exp"
CLAIM_IAT = "iat"


def create_access_token(
    user: User, expires_in: timedelta | None = None, now: datetime | None = None
) -> str:
    issued_at = now or datetime.now(timezone.utc)
    ttl = expires_in or timedelta(minutes=settings.jwt_access_ttl_minutes)
    payload = {
        CLAIM_SUB: str(user.id),
        CLAIM_ROLE: user.role.value,
        CLAIM_IAT: int(issued_at.timestamp()),
        CLAIM_EXP: int((issued_at + ttl).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": [CLAIM_SUB, CLAIM_EXP]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise UnauthenticatedError("Token expired", reason="token_expired") from exc
    except jwt.InvalidSignatureError as exc:
        raise UnauthenticatedError(
            "Invalid token signature", reason="invalid_signature"
        ) from exc
    except jwt.InvalidTokenError as exc:
        raise UnauthenticatedError("Invalid token", reason="malformed_token") from exc


def extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    parts = authorization.strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise UnauthenticatedError(
            "Authorization header must be 'Bearer <token>'",
            reason="malformed_token",
        )
    return parts[1].strip() or None


def resolve_principal(db: Session, token: str) -> User:
    payload = decode_access_token(token)
    try:
        user_id = coerce_uuid(payload[CLAIM_SUB], "User")
    except NotFoundError as exc:
        raise UnauthenticatedError("Invalid token", reason="malformed_token") from exc
    user = db.get(User, user_id)
    if not user:
        logger.warning("Token subject %s does not exist", user_id)
        raise UnauthenticatedError("Unknown user", reason="unknown_subject")
    if not user.is_active:
        logger.info("Rejected token for deactivated user %s", user.id)
        raise UnauthenticatedError(
            "Invalid or inactive user", reason="account_deactivated"
        )
    return user


def optional_principal(
    authorization: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> User | None:
    token = extract_bearer_token(authorization)
    if token is None:
        return None
    return resolve_principal(db, token)


def require_user_auth(
    authorization: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> User:
    token = extract_bearer_token(authorization)
    if token is None:
        raise UnauthenticatedError("Access token required", reason="no_token")
    return resolve_principal(db, token)


def require_role(minimum: UserRole | str) -> Callable:
    required = UserRole(minimum)

    def dependency(principal: User = Depends(require_user_auth)) -> User:
        return access.ensure_role(principal, required)

    return dependency

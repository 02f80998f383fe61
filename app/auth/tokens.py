"""Access and refresh token issuance, verification and rotation."""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.db import crud
from app.db.models import User
from app.errors import AuthenticationError, InternalError

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


@dataclass
class SessionTokens:
    """A freshly rotated access/refresh pair and the user it belongs to."""

    access_token: str
    refresh_token: str
    user: User


def _encode(claims: dict[str, Any], secret: str, expires_delta: timedelta) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        **claims,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_delta).timestamp()),
        # Two tokens minted in the same second must still differ
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)


def _decode(token: str, secret: str, token_type: str) -> dict[str, Any]:
    settings = get_settings()
    payload = jwt.decode(token, secret, algorithms=[settings.jwt_algorithm])
    if payload.get("type") != token_type or not payload.get("sub"):
        raise JWTError(f"Not a {token_type} token")
    return payload


def issue_access_token(user: User) -> str:
    """Sign a short-lived access token carrying the user's id, username and email."""
    settings = get_settings()
    return _encode(
        {
            "sub": user.id,
            "username": user.username,
            "email": user.email,
            "type": ACCESS_TOKEN_TYPE,
        },
        settings.access_token_secret,
        timedelta(minutes=settings.access_token_expire_minutes),
    )


def issue_refresh_token(user: User) -> str:
    """Sign a long-lived refresh token carrying only the user's id."""
    settings = get_settings()
    return _encode(
        {"sub": user.id, "type": REFRESH_TOKEN_TYPE},
        settings.refresh_token_secret,
        timedelta(days=settings.refresh_token_expire_days),
    )


def verify_access_token(token: str) -> dict[str, Any]:
    """Verify an access token's signature and expiry.

    Raises:
        AuthenticationError: if the token is invalid or expired
    """
    try:
        return _decode(token, get_settings().access_token_secret, ACCESS_TOKEN_TYPE)
    except JWTError as e:
        raise AuthenticationError("Invalid access token", errors=[str(e)]) from e


def verify_refresh_token(token: str) -> dict[str, Any]:
    """Verify a refresh token's signature and expiry.

    This only proves the token was minted by us; callers must still compare
    it with the value stored on the user before accepting it.

    Raises:
        AuthenticationError: if the token is invalid or expired
    """
    try:
        return _decode(token, get_settings().refresh_token_secret, REFRESH_TOKEN_TYPE)
    except JWTError as e:
        raise AuthenticationError("Invalid refresh token", errors=[str(e)]) from e


async def rotate_session(db: AsyncSession, user_id: str) -> SessionTokens:
    """Issue a new token pair and persist the refresh token on the user.

    The user is re-read by id so the write never acts on a stale copy. Any
    earlier refresh token stops being accepted once this commits.

    Raises:
        InternalError: if the user cannot be loaded or the write fails
    """
    try:
        user = await crud.get_user_by_id(db, user_id)
        if user is None:
            raise InternalError("Error in generating tokens")

        access_token = issue_access_token(user)
        refresh_token = issue_refresh_token(user)
        user = await crud.set_refresh_token(db, user, refresh_token)
    except (SQLAlchemyError, JWTError) as e:
        await db.rollback()
        raise InternalError("Error in generating tokens") from e

    logger.info(f"Session rotated: user_id={user.id}")
    return SessionTokens(access_token=access_token, refresh_token=refresh_token, user=user)

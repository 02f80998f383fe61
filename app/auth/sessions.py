"""Session lifecycle: login, logout, refresh-token exchange and password change.

These functions hold the rules; the router only moves tokens between the
request, these functions and the transport cookies.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.passwords import verify_password
from app.auth.tokens import SessionTokens, rotate_session, verify_refresh_token
from app.db import crud
from app.errors import AuthenticationError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


async def login(
    db: AsyncSession,
    password: str,
    username: str | None = None,
    email: str | None = None,
) -> SessionTokens:
    """Authenticate with username or email plus password and open a session.

    Raises:
        ValidationError: neither username nor email given
        NotFoundError: no matching user
        AuthenticationError: wrong password
    """
    if not (username and username.strip()) and not (email and email.strip()):
        raise ValidationError("Username or email is required to login")

    user = await crud.find_user_by_identifier(db, username=username, email=email)
    if user is None:
        raise NotFoundError("User does not exist")

    if not verify_password(password, user.password):
        logger.info(f"Login rejected, bad credentials: user_id={user.id}")
        raise AuthenticationError("Invalid user credentials")

    tokens = await rotate_session(db, user.id)
    logger.info(f"User logged in: user_id={user.id}")
    return tokens


async def logout(db: AsyncSession, user_id: str) -> None:
    """Forget the stored refresh token so it can no longer be exchanged."""
    await crud.clear_refresh_token(db, user_id)
    logger.info(f"User logged out: user_id={user_id}")


async def refresh(db: AsyncSession, incoming_refresh_token: str | None) -> SessionTokens:
    """Exchange a live refresh token for a new token pair.

    Raises:
        AuthenticationError: token missing, user gone, or token no longer the
            stored one (already rotated or revoked by logout)
        ValidationError: the presented token fails verification; the reason
            is carried in the message and errors
    """
    if not incoming_refresh_token:
        raise AuthenticationError("Refresh token is required")

    try:
        claims = verify_refresh_token(incoming_refresh_token)
    except AuthenticationError as e:
        logger.info(f"Refresh rejected, unverifiable token: {e.errors}")
        raise ValidationError(e.message, errors=e.errors) from e

    user = await crud.get_user_by_id(db, claims["sub"])
    if user is None:
        raise AuthenticationError("User for this token does not exist")

    if user.refresh_token != incoming_refresh_token:
        logger.info(f"Refresh rejected, token mismatch: user_id={user.id}")
        raise AuthenticationError("Refresh token mismatch. Please login again")

    return await rotate_session(db, user.id)


async def change_password(
    db: AsyncSession, user_id: str, current_password: str, new_password: str
) -> None:
    """Replace the password after checking the current one.

    Raises:
        ValidationError: new password is blank
        NotFoundError: user vanished
        AuthenticationError: current password does not match
    """
    if not new_password or not new_password.strip():
        raise ValidationError("New password is required")

    user = await crud.get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User does not exist")

    if not verify_password(current_password, user.password):
        raise AuthenticationError("Invalid current password")

    await crud.set_password(db, user, new_password)
    logger.info(f"Password changed: user_id={user.id}")

"""FastAPI dependency guarding routes behind a valid access token."""

from typing import Annotated

from fastapi import Cookie, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.tokens import verify_access_token
from app.db import crud
from app.db.models import User
from app.db.session import get_session
from app.errors import AuthenticationError

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() != "bearer" or not credentials.strip():
        return None
    return credentials.strip()


async def require_user(
    access_cookie: Annotated[str | None, Cookie(alias=ACCESS_TOKEN_COOKIE)] = None,
    authorization: Annotated[str | None, Header()] = None,
    db: AsyncSession = Depends(get_session),
) -> User:
    """
    FastAPI dependency that requires a valid access token.

    The token is read from the access token cookie, falling back to an
    ``Authorization: Bearer`` header.

    Args:
        access_cookie: The access token cookie value
        authorization: The Authorization header value
        db: Database session

    Returns:
        The authenticated User object

    Raises:
        AuthenticationError: if the token is missing or invalid, or the user is gone
    """
    token = access_cookie or _bearer_token(authorization)
    if not token:
        raise AuthenticationError("Unauthorized request")

    claims = verify_access_token(token)

    user = await crud.get_user_by_id(db, claims["sub"])
    if not user:
        raise AuthenticationError("Invalid access token")

    return user

"""FastAPI router for registration, login, logout and session refresh."""

import logging
from typing import Annotated

from fastapi import APIRouter, Cookie, Depends, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_media_storage, get_upload_dir
from app.api.envelope import api_response
from app.auth import sessions
from app.auth.dependencies import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    require_user,
)
from app.auth.tokens import SessionTokens
from app.db import crud
from app.db.models import User
from app.db.session import get_session
from app.errors import (
    ConflictError,
    InternalError,
    ValidationError,
)
from app.schemas import CamelModel, UserResponse
from app.storage import MediaStorage, stage_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/users", tags=["auth"])
limiter = Limiter(key_func=get_remote_address)

# Not readable from scripts, only sent over HTTPS
COOKIE_OPTIONS = {"httponly": True, "secure": True}


class LoginRequest(CamelModel):
    username: str | None = None
    email: str | None = None
    password: str


class RefreshTokenRequest(CamelModel):
    refresh_token: str | None = None


class ChangePasswordRequest(CamelModel):
    current_password: str
    new_password: str


def _set_session_cookies(response: JSONResponse, tokens: SessionTokens) -> None:
    response.set_cookie(ACCESS_TOKEN_COOKIE, tokens.access_token, **COOKIE_OPTIONS)
    response.set_cookie(REFRESH_TOKEN_COOKIE, tokens.refresh_token, **COOKIE_OPTIONS)


def _clear_session_cookies(response: JSONResponse) -> None:
    response.delete_cookie(ACCESS_TOKEN_COOKIE, **COOKIE_OPTIONS)
    response.delete_cookie(REFRESH_TOKEN_COOKIE, **COOKIE_OPTIONS)


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


@router.post("/register", status_code=201)
@limiter.limit("10/minute")
async def register(
    request: Request,
    full_name: Annotated[str | None, Form(alias="fullName")] = None,
    email: Annotated[str | None, Form()] = None,
    username: Annotated[str | None, Form()] = None,
    password: Annotated[str | None, Form()] = None,
    avatar: Annotated[UploadFile | None, File()] = None,
    cover_image: Annotated[UploadFile | None, File(alias="coverImage")] = None,
    db: AsyncSession = Depends(get_session),
    storage: MediaStorage = Depends(get_media_storage),
    upload_dir=Depends(get_upload_dir),
):
    """
    Register a new account.

    Expects multipart form data with fullName, email, username, password, a
    required avatar file and an optional coverImage file.

    Rate limit: 10 requests per minute per IP.
    """
    if any(_is_blank(field) for field in (full_name, email, username, password)):
        raise ValidationError("All fields are required")

    if await crud.user_exists(db, username, email):
        raise ConflictError("User with email or username already exists")

    avatar_path = await stage_upload(avatar, upload_dir)
    if avatar_path is None:
        raise ValidationError("Avatar file is required")
    cover_image_path = await stage_upload(cover_image, upload_dir)

    avatar_media = await storage.upload(avatar_path)
    cover_image_media = await storage.upload(cover_image_path)

    if avatar_media is None:
        if cover_image_media is not None:
            await storage.delete(cover_image_media.public_id)
        raise ValidationError("Error while uploading avatar")

    try:
        user = await crud.create_user(
            db,
            username=username,
            email=email,
            full_name=full_name,
            password=password,
            avatar=avatar_media.url,
            avatar_public_id=avatar_media.public_id,
            cover_image=cover_image_media.url if cover_image_media else "",
            cover_image_public_id=cover_image_media.public_id if cover_image_media else None,
        )
    except SQLAlchemyError as e:
        await db.rollback()
        await storage.delete(avatar_media.public_id)
        if cover_image_media is not None:
            await storage.delete(cover_image_media.public_id)
        if isinstance(e, IntegrityError):
            # Lost a race with a concurrent registration of the same username/email
            raise ConflictError("User with email or username already exists") from e
        raise InternalError("Something went wrong while registering the user") from e

    created_user = await crud.get_user_by_id(db, user.id)
    if created_user is None:
        raise InternalError("Something went wrong while registering the user")

    logger.info(f"User registered: user_id={created_user.id}")
    return api_response(
        UserResponse.model_validate(created_user),
        "User registered successfully",
        status_code=201,
    )


@router.post("/login")
@limiter.limit("10/minute")
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_session),
):
    """
    Log in with username or email and password.

    Sets the access and refresh token cookies and also returns both tokens
    in the body for clients that cannot use cookies.

    Rate limit: 10 requests per minute per IP.
    """
    tokens = await sessions.login(
        db, password=body.password, username=body.username, email=body.email
    )

    response = api_response(
        {
            "loggedInUser": UserResponse.model_validate(tokens.user),
            "accessToken": tokens.access_token,
            "refreshToken": tokens.refresh_token,
        },
        "User logged in successfully",
    )
    _set_session_cookies(response, tokens)
    return response


@router.post("/logout")
@limiter.limit("20/minute")
async def logout(
    request: Request,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """
    Revoke the stored refresh token and clear both session cookies.

    Rate limit: 20 requests per minute per IP.
    """
    await sessions.logout(db, user.id)

    response = api_response({}, "User logged out")
    _clear_session_cookies(response)
    return response


@router.post("/refresh-token")
@limiter.limit("30/minute")
async def refresh_access_token(
    request: Request,
    body: RefreshTokenRequest | None = None,
    refresh_cookie: Annotated[str | None, Cookie(alias=REFRESH_TOKEN_COOKIE)] = None,
    db: AsyncSession = Depends(get_session),
):
    """
    Exchange a refresh token for a new access/refresh pair.

    The token is taken from the refresh token cookie, or from the
    ``refreshToken`` body field when no cookie is sent.

    Rate limit: 30 requests per minute per IP.
    """
    incoming = refresh_cookie or (body.refresh_token if body else None)
    tokens = await sessions.refresh(db, incoming)

    response = api_response(
        {"accessToken": tokens.access_token, "refreshToken": tokens.refresh_token},
        "Access token refreshed successfully",
    )
    _set_session_cookies(response, tokens)
    return response


@router.post("/change-password")
@limiter.limit("10/minute")
async def change_password(
    request: Request,
    body: ChangePasswordRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """
    Change the current user's password.

    Rate limit: 10 requests per minute per IP.
    """
    await sessions.change_password(
        db, user.id, body.current_password, body.new_password
    )
    return api_response({}, "Password changed successfully")

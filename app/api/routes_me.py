"""Current-user endpoints: profile details and media updates."""

import logging

from fastapi import APIRouter, Depends, File, Request, UploadFile
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_media_storage, get_upload_dir
from app.api.envelope import api_response
from app.auth.dependencies import require_user
from app.db import crud
from app.db.models import User
from app.db.session import get_session
from app.errors import ConflictError, InternalError, ValidationError
from app.schemas import CamelModel, UserResponse
from app.storage import MediaStorage, UploadedMedia, stage_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/users", tags=["user"])
limiter = Limiter(key_func=get_remote_address)


class UpdateAccountRequest(CamelModel):
    """Request model for updating account details."""

    full_name: str | None = None
    email: str | None = None


async def _upload_single(
    upload: UploadFile | None,
    upload_dir,
    storage: MediaStorage,
    label: str,
) -> UploadedMedia:
    local_path = await stage_upload(upload, upload_dir)
    if local_path is None:
        raise ValidationError(f"{label} file is missing")

    media = await storage.upload(local_path)
    if media is None:
        raise ValidationError(f"Error while uploading {label.lower()}")
    return media


async def _save_media(
    db: AsyncSession, storage: MediaStorage, update, user: User, media: UploadedMedia
) -> User:
    """Persist a fresh upload; on a failed write the upload is removed again."""
    try:
        return await update(db, user, media.url, media.public_id)
    except SQLAlchemyError as e:
        await db.rollback()
        await storage.delete(media.public_id)
        raise InternalError("Error while saving uploaded media") from e


async def _delete_previous(storage: MediaStorage, public_id: str | None) -> None:
    if not public_id:
        return
    if await storage.delete(public_id) is None:
        logger.warning(f"Could not delete replaced media: public_id={public_id}")


@router.get("/me")
@limiter.limit("60/minute")
async def get_current_user(request: Request, user: User = Depends(require_user)):
    """
    Get the current authenticated user's profile.

    Rate limit: 60 requests per minute per IP.
    """
    return api_response(UserResponse.model_validate(user), "User fetched successfully")


@router.patch("/update-account")
@limiter.limit("20/minute")
async def update_account_details(
    request: Request,
    body: UpdateAccountRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """
    Update the current user's full name and email.

    Both fields are required.

    Rate limit: 20 requests per minute per IP.

    Raises:
        ValidationError: 400 if either field is missing or blank
        ConflictError: 409 if the email belongs to another account
    """
    if not body.full_name or not body.full_name.strip() or not body.email or not body.email.strip():
        raise ValidationError("All fields are required")

    existing = await crud.get_user_by_email(db, body.email.strip())
    if existing is not None and existing.id != user.id:
        raise ConflictError("Email is already in use")

    try:
        user = await crud.update_account_details(db, user, body.full_name, body.email)
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("Email is already in use") from e

    return api_response(
        UserResponse.model_validate(user), "Account details updated successfully"
    )


@router.patch("/update-avatar")
@limiter.limit("10/minute")
async def update_user_avatar(
    request: Request,
    avatar: UploadFile | None = File(default=None),
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
    storage: MediaStorage = Depends(get_media_storage),
    upload_dir=Depends(get_upload_dir),
):
    """
    Replace the current user's avatar.

    The previous avatar is removed from media storage once the new one is saved.

    Rate limit: 10 requests per minute per IP.
    """
    media = await _upload_single(avatar, upload_dir, storage, "Avatar")

    previous_public_id = user.avatar_public_id
    user = await _save_media(db, storage, crud.update_avatar, user, media)
    await _delete_previous(storage, previous_public_id)

    return api_response(UserResponse.model_validate(user), "Avatar updated successfully")


@router.patch("/update-cover-image")
@limiter.limit("10/minute")
async def update_user_cover_image(
    request: Request,
    cover_image: UploadFile | None = File(default=None, alias="coverImage"),
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
    storage: MediaStorage = Depends(get_media_storage),
    upload_dir=Depends(get_upload_dir),
):
    """
    Replace the current user's cover image.

    Rate limit: 10 requests per minute per IP.
    """
    media = await _upload_single(cover_image, upload_dir, storage, "Cover image")

    previous_public_id = user.cover_image_public_id
    user = await _save_media(db, storage, crud.update_cover_image, user, media)
    await _delete_previous(storage, previous_public_id)

    return api_response(
        UserResponse.model_validate(user), "Cover image updated successfully"
    )

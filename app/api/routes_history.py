"""Watch history endpoint."""

from fastapi import APIRouter, Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.envelope import api_response
from app.auth.dependencies import require_user
from app.db.models import User
from app.db.session import get_session
from app.profiles import get_watch_history

router = APIRouter(prefix="/api/v1/users", tags=["history"])
limiter = Limiter(key_func=get_remote_address)


@router.get("/history")
@limiter.limit("120/minute")
async def get_user_watch_history(
    request: Request,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """
    Get the current user's watch history.

    Each video carries its owner's fullName, username and avatar, or a null
    owner when that account no longer exists.

    Rate limit: 120 requests per minute per IP.

    Returns:
        List of watched videos, empty when nothing has been watched
    """
    history = await get_watch_history(db, user.id)
    return api_response(history, "Watch history fetched successfully")

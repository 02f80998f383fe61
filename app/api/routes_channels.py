"""Channel profile endpoint."""

from fastapi import APIRouter, Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.envelope import api_response
from app.auth.dependencies import require_user
from app.db.models import User
from app.db.session import get_session
from app.profiles import get_channel_profile

router = APIRouter(prefix="/api/v1/users", tags=["channels"])
limiter = Limiter(key_func=get_remote_address)


@router.get("/c/{username}")
@limiter.limit("120/minute")
async def get_user_channel_profile(
    request: Request,
    username: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """
    Get a channel's public profile with subscriber counts.

    ``isSubscribed`` tells whether the current user follows the channel.

    Rate limit: 120 requests per minute per IP.
    """
    profile = await get_channel_profile(db, user.id, username)
    return api_response(profile, "User channel fetched successfully")

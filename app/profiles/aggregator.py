"""Profile read models built from joins over users, subscriptions and videos."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from app.db.models import Subscription, User, Video, WatchHistoryEntry
from app.errors import NotFoundError, ValidationError
from app.profiles.models import ChannelProfile, VideoOwner, WatchedVideo


async def get_channel_profile(
    db: AsyncSession, viewer_id: str | None, channel_username: str
) -> ChannelProfile:
    """Build the channel page for a username as seen by a viewer.

    The match on username is exact but case-insensitive. Subscriber and
    subscription counts are computed with correlated subqueries, so the edge
    lists themselves are never loaded.

    Args:
        db: Database session
        viewer_id: The requesting user's ID (None for anonymous viewers)
        channel_username: Username of the channel to show

    Returns:
        ChannelProfile

    Raises:
        ValidationError: if the username is blank
        NotFoundError: if no user has that username
    """
    if not channel_username or not channel_username.strip():
        raise ValidationError("Username is missing")

    subscribers_count = (
        select(func.count(Subscription.id))
        .where(Subscription.channel_id == User.id)
        .scalar_subquery()
    )
    subscribed_to_count = (
        select(func.count(Subscription.id))
        .where(Subscription.subscriber_id == User.id)
        .scalar_subquery()
    )
    is_subscribed = (
        select(Subscription.id)
        .where(
            Subscription.channel_id == User.id,
            Subscription.subscriber_id == viewer_id,
        )
        .exists()
    )

    result = await db.execute(
        select(
            User.full_name,
            User.username,
            subscribers_count.label("subscribers_count"),
            subscribed_to_count.label("channels_subscribed_to_count"),
            is_subscribed.label("is_subscribed"),
            User.avatar,
            User.cover_image,
            User.email,
        )
        .where(func.lower(User.username) == channel_username.strip().lower())
        .limit(1)
    )
    row = result.one_or_none()
    if row is None:
        raise NotFoundError("Channel does not exist")

    return ChannelProfile(
        full_name=row.full_name,
        username=row.username,
        subscribers_count=row.subscribers_count,
        channels_subscribed_to_count=row.channels_subscribed_to_count,
        is_subscribed=bool(viewer_id) and bool(row.is_subscribed),
        avatar=row.avatar,
        cover_image=row.cover_image or "",
        email=row.email,
    )


async def get_watch_history(db: AsyncSession, user_id: str) -> list[WatchedVideo]:
    """Resolve a user's watch history into videos with their owners.

    History entries whose video no longer exists are skipped. Each video's
    owner is a one-to-one lookup: an owner object, or None when the owner
    is gone.

    Args:
        db: Database session
        user_id: The user's ID

    Returns:
        Watched videos in history order (oldest first); empty if none
    """
    owner = aliased(User)
    result = await db.execute(
        select(Video, owner.full_name, owner.username, owner.avatar)
        .join(WatchHistoryEntry, WatchHistoryEntry.video_id == Video.id)
        .outerjoin(owner, owner.id == Video.owner_id)
        .where(WatchHistoryEntry.user_id == user_id)
        .order_by(WatchHistoryEntry.position)
    )

    history = []
    for video, owner_full_name, owner_username, owner_avatar in result.all():
        video_owner = None
        if owner_username is not None:
            video_owner = VideoOwner(
                full_name=owner_full_name, username=owner_username, avatar=owner_avatar
            )
        history.append(
            WatchedVideo(
                id=video.id,
                video_file=video.video_file,
                thumbnail=video.thumbnail,
                title=video.title,
                description=video.description or "",
                duration=video.duration,
                views=video.views,
                is_published=video.is_published,
                created_at=video.created_at,
                owner=video_owner,
            )
        )
    return history

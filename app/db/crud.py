"""CRUD utilities for database operations."""

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.passwords import hash_password
from app.db.models import Subscription, User, WatchHistoryEntry


async def get_user_by_id(db: AsyncSession, user_id: str) -> User | None:
    """Get a user by their ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def find_user_by_identifier(
    db: AsyncSession, username: str | None = None, email: str | None = None
) -> User | None:
    """Find a user matching either the username or the email.

    Usernames are stored lowercase, so the lookup is case-insensitive on
    username and exact on email. Identifiers that are not provided are
    ignored rather than matched against NULL.
    """
    conditions = []
    if username:
        conditions.append(User.username == username.strip().lower())
    if email:
        conditions.append(User.email == email.strip())
    if not conditions:
        return None

    result = await db.execute(select(User).where(or_(*conditions)).limit(1))
    return result.scalar_one_or_none()


async def user_exists(db: AsyncSession, username: str, email: str) -> bool:
    """Check whether the username (case-insensitive) or email is taken."""
    result = await db.execute(
        select(User.id)
        .where(
            or_(
                func.lower(User.username) == username.strip().lower(),
                User.email == email.strip(),
            )
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def create_user(
    db: AsyncSession,
    username: str,
    email: str,
    full_name: str,
    password: str,
    avatar: str,
    avatar_public_id: str | None = None,
    cover_image: str = "",
    cover_image_public_id: str | None = None,
) -> User:
    """Create a new user, hashing the password on the way in."""
    user = User(
        username=username.strip().lower(),
        email=email.strip(),
        full_name=full_name.strip(),
        password=hash_password(password),
        avatar=avatar,
        avatar_public_id=avatar_public_id,
        cover_image=cover_image,
        cover_image_public_id=cover_image_public_id,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def set_refresh_token(db: AsyncSession, user: User, refresh_token: str | None) -> User:
    """Store (or with None, remove) the user's live refresh token."""
    user.refresh_token = refresh_token
    await db.commit()
    await db.refresh(user)
    return user


async def clear_refresh_token(db: AsyncSession, user_id: str) -> None:
    """Remove the stored refresh token. Harmless if already absent."""
    user = await get_user_by_id(db, user_id)
    if user is None or user.refresh_token is None:
        return
    await set_refresh_token(db, user, None)


async def set_password(db: AsyncSession, user: User, new_password: str) -> User:
    user.password = hash_password(new_password)
    await db.commit()
    await db.refresh(user)
    return user


async def update_account_details(
    db: AsyncSession, user: User, full_name: str, email: str
) -> User:
    user.full_name = full_name.strip()
    user.email = email.strip()
    await db.commit()
    await db.refresh(user)
    return user


async def update_avatar(
    db: AsyncSession, user: User, url: str, public_id: str | None
) -> User:
    user.avatar = url
    user.avatar_public_id = public_id
    await db.commit()
    await db.refresh(user)
    return user


async def update_cover_image(
    db: AsyncSession, user: User, url: str, public_id: str | None
) -> User:
    user.cover_image = url
    user.cover_image_public_id = public_id
    await db.commit()
    await db.refresh(user)
    return user


async def subscribe(db: AsyncSession, subscriber_id: str, channel_id: str) -> Subscription:
    """Create a subscription edge, returning the existing one if present."""
    result = await db.execute(
        select(Subscription).where(
            Subscription.subscriber_id == subscriber_id,
            Subscription.channel_id == channel_id,
        )
    )
    subscription = result.scalar_one_or_none()
    if subscription:
        return subscription

    subscription = Subscription(subscriber_id=subscriber_id, channel_id=channel_id)
    db.add(subscription)
    await db.commit()
    await db.refresh(subscription)
    return subscription


async def append_to_watch_history(
    db: AsyncSession, user_id: str, video_id: str
) -> WatchHistoryEntry:
    """Append a video at the end of the user's watch history.

    Args:
        db: Database session
        user_id: The user's ID
        video_id: The watched video's ID

    Returns:
        The new WatchHistoryEntry
    """
    result = await db.execute(
        select(func.max(WatchHistoryEntry.position)).where(
            WatchHistoryEntry.user_id == user_id
        )
    )
    last_position = result.scalar_one_or_none()
    entry = WatchHistoryEntry(
        user_id=user_id,
        video_id=video_id,
        position=0 if last_position is None else last_position + 1,
    )
    db.add(entry)
    await db.commit()
    await db.refresh(entry)
    return entry

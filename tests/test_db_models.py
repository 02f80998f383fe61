"""Tests for database models and CRUD operations."""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.passwords import verify_password
from app.db import crud
from app.db.models import Subscription, User, WatchHistoryEntry


async def _create(db: AsyncSession, username: str = "Bob", email: str = "bob@example.com") -> User:
    return await crud.create_user(
        db,
        username=username,
        email=email,
        full_name="  Bob Builder ",
        password="hunter22",
        avatar="https://cdn.test/bob.png",
    )


@pytest.mark.asyncio
async def test_create_user(db_session: AsyncSession):
    """Test that a new user is normalized and its password hashed."""
    user = await _create(db_session)

    assert user.id is not None
    assert user.username == "bob"
    assert user.full_name == "Bob Builder"
    assert user.cover_image == ""
    assert user.password != "hunter22"
    assert verify_password("hunter22", user.password)
    assert user.refresh_token is None
    assert user.created_at is not None
    assert user.updated_at is not None


@pytest.mark.asyncio
async def test_username_is_unique(db_session: AsyncSession):
    await _create(db_session)

    with pytest.raises(IntegrityError):
        await _create(db_session, username="BOB", email="other@example.com")


@pytest.mark.asyncio
async def test_user_exists(db_session: AsyncSession):
    await _create(db_session)

    assert await crud.user_exists(db_session, "BoB", "new@example.com")
    assert await crud.user_exists(db_session, "someone", "bob@example.com")
    assert not await crud.user_exists(db_session, "someone", "new@example.com")


@pytest.mark.asyncio
async def test_find_user_by_identifier(db_session: AsyncSession):
    user = await _create(db_session)

    assert (await crud.find_user_by_identifier(db_session, username="BOB")).id == user.id
    assert (
        await crud.find_user_by_identifier(db_session, email="bob@example.com")
    ).id == user.id
    assert await crud.find_user_by_identifier(db_session, email="BOB@example.com") is None
    assert await crud.find_user_by_identifier(db_session) is None


@pytest.mark.asyncio
async def test_find_user_ignores_missing_identifier(db_session: AsyncSession):
    """Test that an absent email does not match users by a NULL comparison."""
    user = await _create(db_session)

    found = await crud.find_user_by_identifier(db_session, username="bob", email=None)
    assert found.id == user.id


@pytest.mark.asyncio
async def test_set_and_clear_refresh_token(db_session: AsyncSession):
    user = await _create(db_session)

    await crud.set_refresh_token(db_session, user, "token-1")
    assert (await crud.get_user_by_id(db_session, user.id)).refresh_token == "token-1"

    await crud.clear_refresh_token(db_session, user.id)
    assert (await crud.get_user_by_id(db_session, user.id)).refresh_token is None

    # Clearing again or for an unknown user is a no-op
    await crud.clear_refresh_token(db_session, user.id)
    await crud.clear_refresh_token(db_session, "missing-user")


@pytest.mark.asyncio
async def test_update_media(db_session: AsyncSession):
    user = await _create(db_session)

    await crud.update_avatar(db_session, user, "https://cdn.test/a2.png", "a2.png")
    await crud.update_cover_image(db_session, user, "https://cdn.test/c1.png", "c1.png")

    stored = await crud.get_user_by_id(db_session, user.id)
    assert stored.avatar == "https://cdn.test/a2.png"
    assert stored.avatar_public_id == "a2.png"
    assert stored.cover_image == "https://cdn.test/c1.png"
    assert stored.cover_image_public_id == "c1.png"


@pytest.mark.asyncio
async def test_subscribe_is_idempotent(db_session: AsyncSession):
    bob = await _create(db_session)
    carol = await _create(db_session, username="carol", email="carol@example.com")

    first = await crud.subscribe(db_session, bob.id, carol.id)
    second = await crud.subscribe(db_session, bob.id, carol.id)

    assert first.id == second.id
    result = await db_session.execute(select(Subscription))
    assert len(result.scalars().all()) == 1


@pytest.mark.asyncio
async def test_append_to_watch_history(db_session: AsyncSession):
    """Test that history entries are appended in order, duplicates allowed."""
    user = await _create(db_session)

    await crud.append_to_watch_history(db_session, user.id, "v1")
    await crud.append_to_watch_history(db_session, user.id, "v2")
    await crud.append_to_watch_history(db_session, user.id, "v1")

    result = await db_session.execute(
        select(WatchHistoryEntry)
        .where(WatchHistoryEntry.user_id == user.id)
        .order_by(WatchHistoryEntry.position)
    )
    entries = result.scalars().all()

    assert [entry.video_id for entry in entries] == ["v1", "v2", "v1"]
    assert [entry.position for entry in entries] == [0, 1, 2]

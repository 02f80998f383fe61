"""Tests for the session lifecycle: login, logout, refresh and password change."""

import pytest

from app.auth import sessions
from app.auth.passwords import verify_password
from app.db import crud
from app.errors import AuthenticationError, NotFoundError, ValidationError

TEST_PASSWORD = "secret-password"


@pytest.mark.asyncio
async def test_login_with_email(db_session, test_user):
    tokens = await sessions.login(db_session, password=TEST_PASSWORD, email="alice@example.com")

    assert tokens.user.id == test_user.id
    assert tokens.access_token
    assert tokens.refresh_token


@pytest.mark.asyncio
async def test_login_with_username_is_case_insensitive(db_session, test_user):
    tokens = await sessions.login(db_session, password=TEST_PASSWORD, username="ALICE")
    assert tokens.user.id == test_user.id


@pytest.mark.asyncio
async def test_login_requires_an_identifier(db_session, test_user):
    with pytest.raises(ValidationError) as exc_info:
        await sessions.login(db_session, password=TEST_PASSWORD)

    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_login_unknown_user(db_session, test_user):
    with pytest.raises(NotFoundError):
        await sessions.login(db_session, password=TEST_PASSWORD, email="nobody@example.com")


@pytest.mark.asyncio
async def test_login_wrong_password_leaves_token_untouched(db_session, test_user):
    """Test that a failed login does not issue or store a refresh token."""
    with pytest.raises(AuthenticationError):
        await sessions.login(db_session, password="wrong", email="alice@example.com")

    stored = await crud.get_user_by_id(db_session, test_user.id)
    assert stored.refresh_token is None


@pytest.mark.asyncio
async def test_logout_revokes_refresh_token(db_session, test_user):
    """Test that login, logout, then refresh with the old token is rejected."""
    tokens = await sessions.login(db_session, password=TEST_PASSWORD, email="alice@example.com")

    await sessions.logout(db_session, test_user.id)

    stored = await crud.get_user_by_id(db_session, test_user.id)
    assert stored.refresh_token is None

    with pytest.raises(AuthenticationError) as exc_info:
        await sessions.refresh(db_session, tokens.refresh_token)
    assert "mismatch" in exc_info.value.message


@pytest.mark.asyncio
async def test_logout_is_idempotent(db_session, test_user):
    await sessions.logout(db_session, test_user.id)
    await sessions.logout(db_session, test_user.id)

    stored = await crud.get_user_by_id(db_session, test_user.id)
    assert stored.refresh_token is None


@pytest.mark.asyncio
async def test_refresh_rotates_tokens(db_session, test_user):
    login_tokens = await sessions.login(
        db_session, password=TEST_PASSWORD, email="alice@example.com"
    )

    refreshed = await sessions.refresh(db_session, login_tokens.refresh_token)

    assert refreshed.refresh_token != login_tokens.refresh_token
    stored = await crud.get_user_by_id(db_session, test_user.id)
    assert stored.refresh_token == refreshed.refresh_token


@pytest.mark.asyncio
async def test_refresh_token_is_single_use(db_session, test_user):
    """Test that reusing a rotated refresh token fails with a mismatch."""
    login_tokens = await sessions.login(
        db_session, password=TEST_PASSWORD, email="alice@example.com"
    )

    await sessions.refresh(db_session, login_tokens.refresh_token)

    with pytest.raises(AuthenticationError) as exc_info:
        await sessions.refresh(db_session, login_tokens.refresh_token)

    assert exc_info.value.status_code == 401
    assert exc_info.value.message == "Refresh token mismatch. Please login again"


@pytest.mark.asyncio
async def test_refresh_without_token(db_session):
    with pytest.raises(AuthenticationError) as exc_info:
        await sessions.refresh(db_session, None)

    assert exc_info.value.message == "Refresh token is required"


@pytest.mark.asyncio
async def test_refresh_with_unverifiable_token_is_client_error(db_session):
    """Test that a malformed token is reported as 400 carrying the reason."""
    with pytest.raises(ValidationError) as exc_info:
        await sessions.refresh(db_session, "not-a-jwt")

    assert exc_info.value.status_code == 400
    assert exc_info.value.message == "Invalid refresh token"
    assert exc_info.value.errors


@pytest.mark.asyncio
async def test_refresh_with_expired_token(db_session, test_user, token_settings):
    token_settings.refresh_token_expire_days = -1
    tokens = await sessions.login(db_session, password=TEST_PASSWORD, email="alice@example.com")

    with pytest.raises(ValidationError):
        await sessions.refresh(db_session, tokens.refresh_token)


@pytest.mark.asyncio
async def test_refresh_for_deleted_user(db_session, test_user):
    tokens = await sessions.login(db_session, password=TEST_PASSWORD, email="alice@example.com")

    await db_session.delete(tokens.user)
    await db_session.commit()

    with pytest.raises(AuthenticationError) as exc_info:
        await sessions.refresh(db_session, tokens.refresh_token)
    assert exc_info.value.message == "User for this token does not exist"


@pytest.mark.asyncio
async def test_change_password(db_session, test_user):
    await sessions.change_password(db_session, test_user.id, TEST_PASSWORD, "new-password")

    stored = await crud.get_user_by_id(db_session, test_user.id)
    assert stored.password != "new-password"
    assert verify_password("new-password", stored.password)
    assert not verify_password(TEST_PASSWORD, stored.password)


@pytest.mark.asyncio
async def test_change_password_wrong_current(db_session, test_user):
    with pytest.raises(AuthenticationError):
        await sessions.change_password(db_session, test_user.id, "wrong", "new-password")

    stored = await crud.get_user_by_id(db_session, test_user.id)
    assert verify_password(TEST_PASSWORD, stored.password)


@pytest.mark.asyncio
async def test_change_password_blank_new(db_session, test_user):
    with pytest.raises(ValidationError):
        await sessions.change_password(db_session, test_user.id, TEST_PASSWORD, "   ")

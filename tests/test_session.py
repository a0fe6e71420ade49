"""Session dependency tests — how protected routes resolve the caller.

Learn: Uses the real auth pipeline end to end. Cookies are passed as an
explicit Cookie header: the session cookies are Secure, so httpx's
cookie jar never replays them over http://test on its own.
"""

import uuid
from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError

from conftest import bearer, cookie
from mediahub.auth.jwt import create_token
from mediahub.db.models import User
from mediahub.services.user_service import UserService

ME = "/api/v1/users/current-user"


@pytest.mark.asyncio
async def test_no_credentials(client):
    r = await client.get(ME)
    assert r.status_code == 401
    assert r.json() == {"success": False, "message": "Unauthorized"}


@pytest.mark.asyncio
async def test_bearer_header(client, make_user, login):
    user = await make_user()
    tokens = await login(user.username)

    r = await client.get(ME, headers=bearer(tokens["access_token"]))
    assert r.status_code == 200
    assert r.json()["data"]["username"] == user.username


@pytest.mark.asyncio
async def test_access_cookie(client, make_user, login):
    user = await make_user()
    tokens = await login(user.username)

    r = await client.get(ME, headers=cookie("accessToken", tokens["access_token"]))
    assert r.status_code == 200
    assert r.json()["data"]["id"] == str(user.id)


@pytest.mark.asyncio
async def test_cookie_takes_precedence_over_header(client, make_user, login):
    alice = await make_user("alice")
    bob = await make_user("bob")
    alice_tokens = await login(alice.username)
    bob_tokens = await login(bob.username)

    r = await client.get(
        ME,
        headers={
            **cookie("accessToken", alice_tokens["access_token"]),
            **bearer(bob_tokens["access_token"]),
        },
    )
    assert r.status_code == 200
    assert r.json()["data"]["username"] == "alice"


@pytest.mark.asyncio
async def test_bad_cookie_is_not_rescued_by_header(client, make_user, login):
    user = await make_user()
    tokens = await login(user.username)

    r = await client.get(
        ME,
        headers={**cookie("accessToken", "garbage"), **bearer(tokens["access_token"])},
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_expired_cookie(client, settings, make_user):
    user = await make_user()
    expired = create_token(user.id, settings.access_token_secret, timedelta(seconds=-5))

    r = await client.get(ME, headers=cookie("accessToken", expired))
    assert r.status_code == 401
    assert r.json()["success"] is False


@pytest.mark.asyncio
async def test_token_signed_with_wrong_secret(client, make_user):
    user = await make_user()
    forged = create_token(user.id, "some-other-secret-0123456789abcdef0123", timedelta(hours=1))

    r = await client.get(ME, headers=bearer(forged))
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_deleted_identity(client, session_factory, make_user, login):
    user = await make_user()
    tokens = await login(user.username)

    async with session_factory() as s:
        await s.execute(delete(User).where(User.id == user.id))
        await s.commit()

    r = await client.get(ME, headers=cookie("accessToken", tokens["access_token"]))
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid access token"


@pytest.mark.asyncio
async def test_token_for_unknown_id(client, settings):
    token = create_token(uuid.uuid4(), settings.access_token_secret, timedelta(hours=1))

    r = await client.get(ME, headers=bearer(token))
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_current_user_hides_secrets(client, make_user, login):
    user = await make_user()
    tokens = await login(user.username)

    r = await client.get(ME, headers=bearer(tokens["access_token"]))
    data = r.json()["data"]
    assert "password_hash" not in data
    assert "password" not in data
    assert "refresh_token" not in data


@pytest.mark.asyncio
async def test_store_failure_is_500(client, make_user, login):
    user = await make_user()
    tokens = await login(user.username)

    with patch.object(
        UserService, "get_public", side_effect=SQLAlchemyError("connection reset by peer")
    ):
        r = await client.get(ME, headers=bearer(tokens["access_token"]))

    assert r.status_code == 500
    assert r.json() == {"success": False, "message": "Something went wrong"}
    assert "connection reset" not in r.text

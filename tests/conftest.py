"""Test fixtures — a fresh app and in-memory database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test builds its own app via create_app(settings) pointed at
   `sqlite+aiosqlite://` (in-memory, one shared connection via StaticPool).
2. Tables are created straight from the ORM metadata.
3. The media storage dependency is swapped for FakeMediaStorage, so no
   test talks to S3.
4. After the test the engine is disposed and the database vanishes with it.

Seed helpers open their own short sessions and always commit, so the
app's per-request sessions see the data.
"""

import uuid
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from mediahub.auth.password import hash_password
from mediahub.config import Settings
from mediahub.db.models import Base, Subscription, User, Video, WatchHistoryEntry
from mediahub.errors import UploadFailure
from mediahub.main import create_app
from mediahub.services.media_storage import get_media_storage

TEST_PASSWORD = "password123"


class FakeMediaStorage:
    """In-memory stand-in for S3MediaStorage."""

    def __init__(self):
        self.uploaded: list[str] = []
        self.deleted: list[str] = []
        self.fail = False
        # Succeed this many times, then fail
        self.fail_after: int | None = None

    async def upload(self, path: Path) -> str:
        path = Path(path)
        try:
            if self.fail or (
                self.fail_after is not None and len(self.uploaded) >= self.fail_after
            ):
                raise UploadFailure()
            url = f"https://media.test/{path.name}"
            self.uploaded.append(url)
            return url
        finally:
            path.unlink(missing_ok=True)

    async def delete(self, url: str) -> None:
        self.deleted.append(url)


@pytest_asyncio.fixture()
async def settings(tmp_path):
    return Settings(
        database_url="sqlite+aiosqlite://",
        access_token_secret="test-access-secret-0123456789abcdef0123",
        refresh_token_secret="test-refresh-secret-0123456789abcdef012",
        environment="test",
        bcrypt_rounds=4,
        upload_dir=str(tmp_path / "uploads"),
        log_level="WARNING",
    )


@pytest_asyncio.fixture()
async def storage():
    return FakeMediaStorage()


@pytest_asyncio.fixture()
async def app(settings, storage):
    app = create_app(settings)
    async with app.state.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    app.dependency_overrides[get_media_storage] = lambda: storage
    try:
        yield app
    finally:
        app.dependency_overrides.clear()
        await app.state.engine.dispose()


@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture()
async def session_factory(app):
    return app.state.session_factory


@pytest_asyncio.fixture()
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


# ─── Seed helpers ───────────────────────────────────────


@pytest_asyncio.fixture()
async def make_user(session_factory):
    """Insert a user row directly; returns the User."""

    async def _make(username: str | None = None, password: str = TEST_PASSWORD) -> User:
        username = username or f"user{uuid.uuid4().hex[:8]}"
        user = User(
            username=username,
            email=f"{username}@example.com",
            fullname=f"{username.title()} Fullname",
            avatar=f"https://media.test/{username}.png",
            password_hash=hash_password(password, rounds=4),
        )
        async with session_factory() as s:
            s.add(user)
            await s.commit()
        return user

    return _make


@pytest_asyncio.fixture()
async def make_video(session_factory):
    async def _make(owner: User, title: str = "A video") -> Video:
        video = Video(
            video_file=f"https://media.test/{uuid.uuid4().hex}.mp4",
            thumbnail=f"https://media.test/{uuid.uuid4().hex}.jpg",
            title=title,
            description=f"{title} description",
            duration=42.5,
            owner_id=owner.id,
        )
        async with session_factory() as s:
            s.add(video)
            await s.commit()
        return video

    return _make


@pytest_asyncio.fixture()
async def subscribe(session_factory):
    async def _subscribe(subscriber: User, channel: User) -> None:
        async with session_factory() as s:
            s.add(Subscription(subscriber_id=subscriber.id, channel_id=channel.id))
            await s.commit()

    return _subscribe


@pytest_asyncio.fixture()
async def add_history(session_factory):
    async def _add(user: User, video: Video, position: int) -> None:
        async with session_factory() as s:
            s.add(WatchHistoryEntry(user_id=user.id, video_id=video.id, position=position))
            await s.commit()

    return _add


@pytest_asyncio.fixture()
async def login(client):
    """Log in over HTTP; returns the response JSON `data`."""

    async def _login(username: str, password: str = TEST_PASSWORD) -> dict:
        r = await client.post(
            "/api/v1/users/login",
            json={"username": username, "password": password},
        )
        assert r.status_code == 200, r.text
        return r.json()["data"]

    return _login


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def cookie(name: str, value: str) -> dict:
    return {"Cookie": f"{name}={value}"}

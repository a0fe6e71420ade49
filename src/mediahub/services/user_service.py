"""User service — registration, credentials and profile changes.

Learn: Registration validates and uploads everything first, and only
inserts the user row once the avatar (and optional cover image) are
safely stored. A failed upload therefore never leaves a half-created
account behind, and objects it already stored are deleted again.

Text fields are checked against the column widths up front, so an
overlong value is a 400 rather than a database error.

Reads for responses go through get_public(), which selects
USER_PUBLIC_COLUMNS only.
"""

import re
import uuid
from typing import Optional

import structlog
from fastapi import UploadFile
from sqlalchemy import case, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mediahub.auth.password import hash_password, verify_password
from mediahub.config import Settings
from mediahub.db.models import USER_PUBLIC_COLUMNS, User
from mediahub.errors import (
    Conflict,
    NotFound,
    Unauthorized,
    UploadFailure,
    ValidationFailure,
)
from mediahub.schemas.user import UserPublic
from mediahub.services.media_storage import MediaStorage, store_upload

logger = structlog.get_logger()

MIN_PASSWORD_LENGTH = 6

# Mirror the column widths in db/models.py
MAX_USERNAME_LENGTH = 50
MAX_FULLNAME_LENGTH = 100
MAX_EMAIL_LENGTH = 255
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def _check_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailure(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def _check_length(label: str, value: str, limit: int) -> None:
    if len(value) > limit:
        raise ValidationFailure(f"{label} must be at most {limit} characters long")


def _check_email(email: str) -> None:
    _check_length("Email", email, MAX_EMAIL_LENGTH)
    if not _EMAIL_RE.match(email):
        raise ValidationFailure("Invalid email address")


class UserService:
    """Business logic for accounts."""

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings,
        storage: Optional[MediaStorage] = None,
    ):
        self.db = db
        self.settings = settings
        self.storage = storage

    # ─── Reads ──────────────────────────────────────────

    async def get_public(self, user_id: uuid.UUID) -> UserPublic | None:
        row = (
            await self.db.execute(
                select(*USER_PUBLIC_COLUMNS).where(User.id == user_id)
            )
        ).first()
        if row is None:
            return None
        return UserPublic.model_validate(row)

    async def _require_public(self, user_id: uuid.UUID) -> UserPublic:
        user = await self.get_public(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    # ─── Registration ───────────────────────────────────

    async def register(
        self,
        fullname: str,
        username: str,
        email: str,
        password: str,
        avatar: Optional[UploadFile],
        cover_image: Optional[UploadFile] = None,
    ) -> UserPublic:
        if any(not (field or "").strip() for field in (fullname, username, email, password)):
            raise ValidationFailure("All fields are required")
        _check_password(password)

        fullname = fullname.strip()
        username = normalize(username)
        email = normalize(email)
        _check_length("Full name", fullname, MAX_FULLNAME_LENGTH)
        _check_length("Username", username, MAX_USERNAME_LENGTH)
        _check_email(email)

        taken = await self.db.scalar(
            select(User.id).where(or_(User.username == username, User.email == email))
        )
        if taken is not None:
            raise Conflict("Username or email already exists")

        if avatar is None or not avatar.filename:
            raise ValidationFailure("Avatar is required")

        avatar_url = await store_upload(avatar, self.storage, self.settings)
        try:
            cover_image_url = await store_upload(cover_image, self.storage, self.settings)
        except UploadFailure:
            await self.storage.delete(avatar_url)
            raise

        user = User(
            fullname=fullname,
            username=username,
            email=email,
            password_hash=hash_password(password, self.settings.bcrypt_rounds),
            avatar=avatar_url,
            cover_image=cover_image_url or "",
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration
            await self.db.rollback()
            for url in (avatar_url, cover_image_url):
                if url:
                    await self.storage.delete(url)
            raise Conflict("Username or email already exists")

        logger.info("user.registered", user_id=str(user.id), username=username)
        return await self._require_public(user.id)

    # ─── Credentials ────────────────────────────────────

    async def authenticate(
        self, username: Optional[str], email: Optional[str], password: str
    ) -> uuid.UUID:
        """Check login credentials and return the user id."""
        username = normalize(username)
        email = normalize(email)
        if not (username or email):
            raise ValidationFailure("Username or email is required")
        if not password:
            raise ValidationFailure("Password is required")

        conditions = []
        if username:
            conditions.append(User.username == username)
        if email:
            conditions.append(User.email == email)

        # A username match wins when the two identifiers name different users
        query = select(User.id, User.password_hash).where(or_(*conditions))
        if username and email:
            query = query.order_by(case((User.username == username, 0), else_=1))

        row = (await self.db.execute(query.limit(1))).first()
        if row is None:
            raise NotFound("User not found")

        if not verify_password(password, row.password_hash):
            logger.info("auth.login_failed", user_id=str(row.id))
            raise Unauthorized("Invalid credentials")

        logger.info("auth.login", user_id=str(row.id))
        return row.id

    async def change_password(
        self, user_id: uuid.UUID, old_password: str, new_password: str
    ) -> None:
        current_hash = await self.db.scalar(
            select(User.password_hash).where(User.id == user_id)
        )
        if current_hash is None:
            raise NotFound("User not found")
        if not verify_password(old_password, current_hash):
            raise ValidationFailure("Invalid old password")
        _check_password(new_password)

        await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(password_hash=hash_password(new_password, self.settings.bcrypt_rounds))
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        logger.info("user.password_changed", user_id=str(user_id))

    # ─── Profile ────────────────────────────────────────

    async def update_profile(
        self,
        user_id: uuid.UUID,
        fullname: Optional[str] = None,
        email: Optional[str] = None,
    ) -> UserPublic:
        values: dict = {}
        if fullname is not None:
            fullname = fullname.strip()
            if not fullname:
                raise ValidationFailure("Full name cannot be empty")
            _check_length("Full name", fullname, MAX_FULLNAME_LENGTH)
            values["fullname"] = fullname
        if email is not None:
            email = normalize(email)
            _check_email(email)
            taken = await self.db.scalar(
                select(User.id).where(User.email == email, User.id != user_id)
            )
            if taken is not None:
                raise Conflict("Email already exists")
            values["email"] = email
        if not values:
            raise ValidationFailure("Nothing to update")

        await self._set_fields(user_id, **values)
        return await self._require_public(user_id)

    async def update_avatar(
        self, user_id: uuid.UUID, avatar: Optional[UploadFile]
    ) -> UserPublic:
        if avatar is None or not avatar.filename:
            raise ValidationFailure("Avatar file is missing")
        url = await store_upload(avatar, self.storage, self.settings)
        await self._set_fields(user_id, avatar=url)
        return await self._require_public(user_id)

    async def update_cover_image(
        self, user_id: uuid.UUID, cover_image: Optional[UploadFile]
    ) -> UserPublic:
        if cover_image is None or not cover_image.filename:
            raise ValidationFailure("Cover image file is missing")
        url = await store_upload(cover_image, self.storage, self.settings)
        await self._set_fields(user_id, cover_image=url)
        return await self._require_public(user_id)

    async def _set_fields(self, user_id: uuid.UUID, **values) -> None:
        try:
            result = await self.db.execute(
                update(User)
                .where(User.id == user_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise Conflict("Username or email already exists")
        if result.rowcount != 1:
            raise NotFound("User not found")
        logger.info("user.updated", user_id=str(user_id), fields=sorted(values))

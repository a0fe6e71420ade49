"""Token service — issue, verify, rotate and revoke session tokens.

Learn: The users.refresh_token column holds the one refresh token that
is currently valid for that user. Issuing a pair overwrites it, logging
out clears it, and refreshing only works if the presented token equals
the stored one. That turns refresh-token reuse detection into a single
equality check instead of a revocation list.

Trade-off: all devices of one user share that slot, so refreshing on
one device invalidates the refresh token held by another.
"""

import uuid
from dataclasses import dataclass
from datetime import timedelta

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mediahub.auth.jwt import TokenError, create_token, verify_token
from mediahub.config import Settings
from mediahub.db.models import User
from mediahub.errors import NotFound, TokenIssuanceFailure, Unauthorized

logger = structlog.get_logger()


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


def _claimed_user_id(payload: dict) -> uuid.UUID | None:
    raw = payload.get("_id")
    if not raw:
        return None
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        return None


class TokenService:
    """Business logic for access/refresh token pairs."""

    def __init__(self, db: AsyncSession, settings: Settings):
        self.db = db
        self.settings = settings

    # ─── Minting ────────────────────────────────────────

    def _mint_pair(self, user_id: uuid.UUID) -> TokenPair:
        s = self.settings
        return TokenPair(
            access_token=create_token(
                user_id,
                s.access_token_secret,
                timedelta(minutes=s.access_token_expire_minutes),
                s.jwt_algorithm,
            ),
            refresh_token=create_token(
                user_id,
                s.refresh_token_secret,
                timedelta(days=s.refresh_token_expire_days),
                s.jwt_algorithm,
            ),
        )

    async def issue_token_pair(
        self, user_id: uuid.UUID, *, replacing: str | None = None
    ) -> TokenPair:
        """Mint a pair and store its refresh token on the user.

        With `replacing`, the store only happens if the user's current
        refresh token is still exactly that value; if another request
        rotated it first, this one fails Unauthorized.
        """
        exists = await self.db.scalar(select(User.id).where(User.id == user_id))
        if exists is None:
            raise NotFound("User not found")

        pair = self._mint_pair(user_id)

        stmt = update(User).where(User.id == user_id)
        if replacing is not None:
            stmt = stmt.where(User.refresh_token == replacing)
        stmt = stmt.values(refresh_token=pair.refresh_token).execution_options(
            synchronize_session=False
        )

        try:
            result = await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise TokenIssuanceFailure() from e

        if result.rowcount != 1:
            if replacing is not None:
                logger.info("auth.refresh_rejected", user_id=str(user_id), reason="raced")
                raise Unauthorized("Refresh token is expired or used")
            raise TokenIssuanceFailure()

        logger.info("auth.tokens_issued", user_id=str(user_id))
        return pair

    # ─── Verification ───────────────────────────────────

    def verify_access_token(self, token: str) -> uuid.UUID:
        """Return the user id an access token was issued for."""
        try:
            payload = verify_token(
                token, self.settings.access_token_secret, self.settings.jwt_algorithm
            )
        except TokenError as e:
            raise Unauthorized(str(e))

        user_id = _claimed_user_id(payload)
        if user_id is None:
            raise Unauthorized("Invalid access token")
        return user_id

    # ─── Rotation / revocation ──────────────────────────

    async def rotate_on_refresh(self, refresh_token: str) -> TokenPair:
        """Exchange the current refresh token for a fresh pair."""
        try:
            payload = verify_token(
                refresh_token,
                self.settings.refresh_token_secret,
                self.settings.jwt_algorithm,
            )
        except TokenError as e:
            raise Unauthorized(str(e))

        user_id = _claimed_user_id(payload)
        if user_id is None:
            raise Unauthorized("Invalid refresh token")

        row = (
            await self.db.execute(
                select(User.id, User.refresh_token).where(User.id == user_id)
            )
        ).first()
        if row is None:
            raise Unauthorized("Invalid refresh token")

        if row.refresh_token != refresh_token:
            logger.info("auth.refresh_rejected", user_id=str(user_id), reason="mismatch")
            raise Unauthorized("Refresh token is expired or used")

        return await self.issue_token_pair(user_id, replacing=refresh_token)

    async def revoke(self, user_id: uuid.UUID) -> None:
        """Drop the stored refresh token. Issued access tokens stay valid."""
        await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(refresh_token=None)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        logger.info("auth.revoked", user_id=str(user_id))

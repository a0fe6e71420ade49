"""Channel service — read-only aggregation views.

Learn: Each view is a single composed SELECT:

- Channel profile: the target user's public columns plus three
  correlated subqueries over subscriptions (subscriber count,
  subscribed-to count, and whether the viewer is a subscriber).
- Watch history: watch_history → videos → users, two dependent joins,
  ordered by history position (append order).

Neither query is bounded by the database itself, so both run under
asyncio.wait_for with settings.query_timeout_seconds.
"""

import asyncio
import uuid
from collections.abc import Awaitable
from typing import TypeVar

import structlog
from sqlalchemy import exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mediahub.config import Settings
from mediahub.db.models import Subscription, User, Video, WatchHistoryEntry
from mediahub.errors import InternalFailure, NotFound
from mediahub.schemas.channel import ChannelProfile, OwnerSummary, WatchHistoryItem
from mediahub.services.user_service import normalize

logger = structlog.get_logger()

T = TypeVar("T")


class ChannelService:
    """Channel profile and watch history queries."""

    def __init__(self, db: AsyncSession, settings: Settings):
        self.db = db
        self.settings = settings

    async def _bounded(self, query: Awaitable[T], name: str) -> T:
        try:
            return await asyncio.wait_for(query, timeout=self.settings.query_timeout_seconds)
        except asyncio.TimeoutError:
            logger.error("query.timeout", query=name, timeout=self.settings.query_timeout_seconds)
            raise InternalFailure("Query timed out")

    # ─── Channel profile ────────────────────────────────

    async def get_channel_profile(
        self, viewer_id: uuid.UUID, username: str
    ) -> ChannelProfile:
        username = normalize(username)
        if not username:
            raise NotFound("Channel does not exist")

        subscribers_count = (
            select(func.count(Subscription.id))
            .where(Subscription.channel_id == User.id)
            .correlate(User)
            .scalar_subquery()
        )
        subscribed_to_count = (
            select(func.count(Subscription.id))
            .where(Subscription.subscriber_id == User.id)
            .correlate(User)
            .scalar_subquery()
        )
        is_subscribed = (
            exists()
            .where(
                Subscription.channel_id == User.id,
                Subscription.subscriber_id == viewer_id,
            )
            .correlate(User)
        )

        stmt = select(
            User.id,
            User.username,
            User.fullname,
            User.avatar,
            User.cover_image,
            subscribers_count.label("subscribers_count"),
            subscribed_to_count.label("channels_subscribed_to_count"),
            is_subscribed.label("is_subscribed"),
        ).where(User.username == username)

        result = await self._bounded(self.db.execute(stmt), "channel_profile")
        row = result.first()
        if row is None:
            raise NotFound("Channel does not exist")

        return ChannelProfile(
            id=row.id,
            username=row.username,
            fullname=row.fullname,
            avatar=row.avatar,
            cover_image=row.cover_image,
            subscribers_count=row.subscribers_count,
            channels_subscribed_to_count=row.channels_subscribed_to_count,
            is_subscribed=bool(row.is_subscribed),
        )

    # ─── Watch history ──────────────────────────────────

    async def get_watch_history(self, viewer_id: uuid.UUID) -> list[WatchHistoryItem]:
        stmt = (
            select(
                Video.id,
                Video.video_file,
                Video.thumbnail,
                Video.title,
                Video.description,
                Video.duration,
                Video.views,
                Video.is_published,
                Video.created_at,
                User.fullname.label("owner_fullname"),
                User.username.label("owner_username"),
                User.avatar.label("owner_avatar"),
            )
            .select_from(WatchHistoryEntry)
            .join(Video, Video.id == WatchHistoryEntry.video_id)
            .join(User, User.id == Video.owner_id)
            .where(WatchHistoryEntry.user_id == viewer_id)
            .order_by(WatchHistoryEntry.position)
        )

        result = await self._bounded(self.db.execute(stmt), "watch_history")
        return [
            WatchHistoryItem(
                id=row.id,
                video_file=row.video_file,
                thumbnail=row.thumbnail,
                title=row.title,
                description=row.description,
                duration=row.duration,
                views=row.views,
                is_published=row.is_published,
                created_at=row.created_at,
                owner=OwnerSummary(
                    fullname=row.owner_fullname,
                    username=row.owner_username,
                    avatar=row.owner_avatar,
                ),
            )
            for row in result.all()
        ]

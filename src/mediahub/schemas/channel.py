"""Pydantic schemas for the channel profile and watch history views."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ChannelProfile(BaseModel):
    """Public channel page: profile fields plus subscription counters."""
    id: uuid.UUID
    username: str
    fullname: str
    avatar: str
    cover_image: str = ""
    subscribers_count: int
    channels_subscribed_to_count: int
    is_subscribed: bool


class OwnerSummary(BaseModel):
    """Minimal owner projection embedded in each history item."""
    fullname: str
    username: str
    avatar: str


class WatchHistoryItem(BaseModel):
    id: uuid.UUID
    video_file: str
    thumbnail: str
    title: str
    description: str
    duration: float
    views: int
    is_published: bool
    created_at: Optional[datetime] = None
    owner: OwnerSummary

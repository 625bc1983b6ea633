"""Channel service — subscriptions and the two read models.

Learn: Channel profile and watch history are pure reporting queries.
The counts are correlated scalar subqueries against the subscriptions
table, and watch history is one join (history → video → owner) ordered
newest first. Store failures surface as Conflict or InternalFailure,
the same way SqlUserRepository reports them.
"""

import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.db.models import Subscription, User, Video, WatchHistoryEntry
from vidtube.errors import Conflict, InternalFailure, NotFound, ValidationError

logger = structlog.get_logger()


@dataclass(frozen=True)
class ChannelProfile:
    id: uuid.UUID
    username: str
    fullname: str
    email: str
    avatar_url: Optional[str]
    cover_image_url: Optional[str]
    subscribers_count: int
    channels_subscribed_to_count: int
    is_subscribed: bool


@dataclass(frozen=True)
class VideoOwner:
    id: uuid.UUID
    username: str
    fullname: str
    avatar_url: Optional[str]


@dataclass(frozen=True)
class WatchedVideo:
    id: uuid.UUID
    title: str
    description: str
    video_url: str
    thumbnail_url: str
    duration_seconds: int
    views: int
    watched_at: datetime
    owner: VideoOwner


class ChannelService:
    """Business logic for channels."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def _store_errors(self, operation: str):
        try:
            yield
        except IntegrityError as e:
            await self.db.rollback()
            raise Conflict("Subscription could not be saved") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("channels.store_failed", operation=operation, error=str(e))
            raise InternalFailure("Channel store unavailable") from e

    async def _channel(self, username: str) -> User:
        result = await self.db.execute(
            select(User).where(User.username == username.strip().lower())
        )
        channel = result.scalars().first()
        if channel is None:
            raise NotFound("Channel does not exist")
        return channel

    async def _is_subscribed(self, subscriber_id: uuid.UUID, channel_id: uuid.UUID) -> bool:
        result = await self.db.execute(
            select(Subscription.id).where(
                Subscription.subscriber_id == subscriber_id,
                Subscription.channel_id == channel_id,
            )
        )
        return result.first() is not None

    # ─── Subscriptions ──────────────────────────────────

    async def subscribe(self, subscriber_id: uuid.UUID, channel_username: str) -> None:
        """Subscribe to a channel. Subscribing twice is a no-op."""
        async with self._store_errors("subscribe"):
            channel = await self._channel(channel_username)
            channel_id = channel.id
            if channel_id == subscriber_id:
                raise ValidationError("Cannot subscribe to your own channel")
            if await self._is_subscribed(subscriber_id, channel_id):
                return

            self.db.add(Subscription(subscriber_id=subscriber_id, channel_id=channel_id))
            try:
                await self.db.commit()
            except IntegrityError:
                await self.db.rollback()
                # A concurrent subscribe inserting the same pair is the only
                # violation that counts as success.
                if not await self._is_subscribed(subscriber_id, channel_id):
                    raise

    async def unsubscribe(self, subscriber_id: uuid.UUID, channel_username: str) -> None:
        async with self._store_errors("unsubscribe"):
            channel = await self._channel(channel_username)
            await self.db.execute(
                delete(Subscription).where(
                    Subscription.subscriber_id == subscriber_id,
                    Subscription.channel_id == channel.id,
                )
            )
            await self.db.commit()

    # ─── Read models ────────────────────────────────────

    async def get_channel_profile(
        self, username: str, viewer_id: Optional[uuid.UUID] = None
    ) -> ChannelProfile:
        async with self._store_errors("get_channel_profile"):
            channel = await self._channel(username)

            subscribers = (
                select(func.count(Subscription.id))
                .where(Subscription.channel_id == channel.id)
                .scalar_subquery()
            )
            subscribed_to = (
                select(func.count(Subscription.id))
                .where(Subscription.subscriber_id == channel.id)
                .scalar_subquery()
            )
            viewer_follows = (
                select(func.count(Subscription.id))
                .where(
                    Subscription.channel_id == channel.id,
                    Subscription.subscriber_id == viewer_id,
                )
                .scalar_subquery()
            )
            row = (
                await self.db.execute(select(subscribers, subscribed_to, viewer_follows))
            ).one()

        return ChannelProfile(
            id=channel.id,
            username=channel.username,
            fullname=channel.fullname,
            email=channel.email,
            avatar_url=channel.avatar_url,
            cover_image_url=channel.cover_image_url,
            subscribers_count=row[0],
            channels_subscribed_to_count=row[1],
            is_subscribed=viewer_id is not None and row[2] > 0,
        )

    async def get_watch_history(self, user_id: uuid.UUID) -> list[WatchedVideo]:
        async with self._store_errors("get_watch_history"):
            result = await self.db.execute(
                select(WatchHistoryEntry.watched_at, Video, User)
                .join(Video, Video.id == WatchHistoryEntry.video_id)
                .join(User, User.id == Video.owner_id)
                .where(WatchHistoryEntry.user_id == user_id)
                .order_by(WatchHistoryEntry.watched_at.desc())
            )
            rows = result.all()
        return [
            WatchedVideo(
                id=video.id,
                title=video.title,
                description=video.description,
                video_url=video.video_url,
                thumbnail_url=video.thumbnail_url,
                duration_seconds=video.duration_seconds,
                views=video.views,
                watched_at=watched_at,
                owner=VideoOwner(
                    id=owner.id,
                    username=owner.username,
                    fullname=owner.fullname,
                    avatar_url=owner.avatar_url,
                ),
            )
            for watched_at, video, owner in rows
        ]

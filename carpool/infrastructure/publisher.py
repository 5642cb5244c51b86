"""
Redis pub/sub fan-out for committed notifications.

Each recipient has a channel ``<prefix>:<recipient_id>``.  Publishing is
fire-and-forget: delivery is at-most-once and the inbox table stays the
source of truth.

Consumers use ``NotificationSubscription`` explicitly::

    async with publisher.subscribe(user_id) as subscription:
        async for payload in subscription:
            ...

Leaving the ``async with`` block unsubscribes and closes the connection.
"""

from __future__ import annotations

import json
from typing import Any, AsyncIterator

import redis.asyncio as aioredis

from carpool.config import settings
from carpool.infrastructure.models import NotificationModel


def channel_for(recipient_id: str) -> str:
    return f"{settings.notification_channel_prefix}:{recipient_id}"


def serialize(notification: NotificationModel) -> str:
    return json.dumps(
        {
            "id": notification.id,
            "recipient_id": notification.recipient_id,
            "sender_id": notification.sender_id,
            "category": getattr(notification.category, "value", notification.category),
            "context": notification.context,
            "ride_id": notification.ride_id,
            "request_id": notification.request_id,
            "is_read": bool(notification.is_read),
            "created_at": (
                notification.created_at.isoformat() if notification.created_at else None
            ),
        }
    )


class NotificationPublisher:
    def __init__(self, client: aioredis.Redis):
        self.redis = client

    async def publish(self, notification: NotificationModel) -> int:
        """Returns the number of live subscribers that received it."""
        return await self.redis.publish(
            channel_for(notification.recipient_id), serialize(notification)
        )

    def subscribe(self, recipient_id: str) -> "NotificationSubscription":
        return NotificationSubscription(self.redis, recipient_id)


class NotificationSubscription:
    def __init__(self, client: aioredis.Redis, recipient_id: str):
        self.redis = client
        self.channel = channel_for(recipient_id)
        self._pubsub = None

    async def __aenter__(self) -> "NotificationSubscription":
        self._pubsub = self.redis.pubsub()
        await self._pubsub.subscribe(self.channel)
        return self

    async def __aexit__(self, *args) -> None:
        if self._pubsub is None:
            return
        try:
            await self._pubsub.unsubscribe(self.channel)
        finally:
            await self._pubsub.aclose()
            self._pubsub = None

    async def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        if self._pubsub is None:
            raise RuntimeError("Subscription is not active; use 'async with'")
        async for message in self._pubsub.listen():
            if message.get("type") != "message":
                continue
            yield json.loads(message["data"])

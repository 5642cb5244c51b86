"""
Notification Emitter
====================

Append-only creation of inbox records as a side effect of ledger and
catalog transitions.  Records are added to the caller's session so they
commit (or roll back) together with the transition that produced them.

``atomic()`` wraps a transition: it commits the unit of work, then hands the
queued records to the Redis publisher.  On rollback the queue is dropped, so
nothing is ever published for a transition that did not happen.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from carpool.domain.enums import NotificationCategory
from carpool.domain.errors import AuthorizationError, NotFoundError
from carpool.infrastructure.database import unit_of_work
from carpool.infrastructure.models import NotificationModel
from carpool.infrastructure.publisher import NotificationPublisher
from carpool.infrastructure.repositories import NotificationRepository

logger = logging.getLogger(__name__)


class NotificationEmitter:
    def __init__(
        self,
        session: AsyncSession,
        publisher: Optional[NotificationPublisher] = None,
    ):
        self.session = session
        self.repo = NotificationRepository(session)
        self.publisher = publisher
        self._outbox: list[NotificationModel] = []

    # ── Emission ──────────────────────────────────────────────────────

    def emit(
        self,
        recipient_id: str,
        category: NotificationCategory,
        context: str,
        *,
        sender_id: str | None = None,
        ride_id: str | None = None,
        request_id: str | None = None,
    ) -> NotificationModel:
        notification = NotificationModel(
            recipient_id=recipient_id,
            sender_id=sender_id,
            category=category,
            context=context,
            ride_id=ride_id,
            request_id=request_id,
            is_read=False,
        )
        self.repo.add(notification)
        self._outbox.append(notification)
        return notification

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[AsyncSession]:
        """Commit the enclosed transition, then publish what it emitted."""
        try:
            async with unit_of_work(self.session) as session:
                yield session
        except Exception:
            self._outbox.clear()
            raise
        await self.dispatch()

    async def dispatch(self) -> None:
        pending, self._outbox = self._outbox, []
        if self.publisher is None:
            return
        for notification in pending:
            try:
                await self.publisher.publish(notification)
            except Exception:
                # Inbox row is committed; live delivery is best-effort
                logger.exception(
                    "Failed to publish notification %s to %s",
                    notification.id,
                    notification.recipient_id,
                )

    # ── Inbox ─────────────────────────────────────────────────────────

    async def list_notifications(
        self, recipient_id: str, unread_only: bool = False
    ) -> list[NotificationModel]:
        return await self.repo.list_for_recipient(recipient_id, unread_only)

    async def unread_count(self, recipient_id: str) -> int:
        return await self.repo.count_unread(recipient_id)

    async def mark_read(
        self, notification_id: str, recipient_id: str
    ) -> NotificationModel:
        async with unit_of_work(self.session):
            notification = await self.repo.get_by_id(notification_id)
            if notification is None:
                raise NotFoundError("Notification not found")
            if notification.recipient_id != recipient_id:
                raise AuthorizationError(
                    "Only the recipient can mark a notification as read"
                )
            notification.is_read = True
        return notification

"""Notification inbox, post-commit publishing and the live subscription."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from carpool.domain.enums import NotificationCategory
from carpool.domain.errors import AuthorizationError, NotFoundError, SelfRequestError
from carpool.infrastructure.models import NotificationModel
from carpool.infrastructure.publisher import (
    NotificationPublisher,
    NotificationSubscription,
    channel_for,
)
from tests.conftest import DRIVER, RIDER_A, build_services, make_ride


class TestInbox:
    @pytest.mark.asyncio
    async def test_mark_read(self, services):
        ride_id = await make_ride(services)
        await services.ledger.submit_request(RIDER_A, ride_id)
        [notification] = await services.notifier.list_notifications(DRIVER)
        assert notification.is_read is False
        assert await services.notifier.unread_count(DRIVER) == 1

        updated = await services.notifier.mark_read(notification.id, DRIVER)
        assert updated.is_read is True
        assert await services.notifier.unread_count(DRIVER) == 0
        assert await services.notifier.list_notifications(DRIVER, unread_only=True) == []

    @pytest.mark.asyncio
    async def test_only_recipient_may_mark_read(self, services):
        ride_id = await make_ride(services)
        await services.ledger.submit_request(RIDER_A, ride_id)
        [notification] = await services.notifier.list_notifications(DRIVER)
        notification_id = notification.id

        with pytest.raises(AuthorizationError):
            await services.notifier.mark_read(notification_id, RIDER_A)
        assert await services.notifier.unread_count(DRIVER) == 1

    @pytest.mark.asyncio
    async def test_missing_notification(self, services):
        with pytest.raises(NotFoundError):
            await services.notifier.mark_read("nope", DRIVER)

    @pytest.mark.asyncio
    async def test_newest_first(self, services):
        first = await make_ride(services, seats=2)
        second = await make_ride(services, seats=2, destination="Pacific Mall")
        await services.ledger.submit_request(RIDER_A, first)
        await services.ledger.submit_request(RIDER_A, second)

        inbox = await services.notifier.list_notifications(DRIVER)
        assert [n.ride_id for n in inbox] == [second, first]

    @pytest.mark.asyncio
    async def test_context_uses_profile_names(self, services):
        await services.profiles.upsert_profile(
            DRIVER, full_name="Voltaire Parraba", is_driver=True, driver_license="D01"
        )
        await services.profiles.upsert_profile(RIDER_A, full_name="Andrea Cruz")
        ride_id = await make_ride(services)
        request = await services.ledger.submit_request(RIDER_A, ride_id)
        await services.ledger.accept_request(request.id, DRIVER)

        [to_driver] = await services.notifier.list_notifications(DRIVER)
        [to_rider] = await services.notifier.list_notifications(RIDER_A)
        assert to_driver.context == "Andrea Cruz requested to ride with you."
        assert to_rider.context == "Voltaire Parraba accepted your request."


class TestPublishing:
    @pytest.mark.asyncio
    async def test_published_after_commit(self, db_session):
        publisher = AsyncMock()
        services = build_services(db_session, publisher=publisher)
        ride_id = await make_ride(services)

        request = await services.ledger.submit_request(RIDER_A, ride_id)

        publisher.publish.assert_awaited_once()
        published = publisher.publish.await_args.args[0]
        assert published.recipient_id == DRIVER
        assert published.request_id == request.id

    @pytest.mark.asyncio
    async def test_nothing_published_on_rollback(self, db_session):
        publisher = AsyncMock()
        services = build_services(db_session, publisher=publisher)
        ride_id = await make_ride(services)

        with pytest.raises(SelfRequestError):
            await services.ledger.submit_request(DRIVER, ride_id)

        publisher.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_publish_failure_does_not_fail_transition(self, db_session, caplog):
        publisher = AsyncMock()
        publisher.publish.side_effect = ConnectionError("redis down")
        services = build_services(db_session, publisher=publisher)
        ride_id = await make_ride(services)

        request = await services.ledger.submit_request(RIDER_A, ride_id)

        assert (await services.ledger.get_request(request.id)).id == request.id
        assert await services.notifier.unread_count(DRIVER) == 1
        assert "Failed to publish notification" in caplog.text


class TestRedisPublisher:
    @pytest.mark.asyncio
    async def test_publish_to_recipient_channel(self):
        client = AsyncMock()
        client.publish = AsyncMock(return_value=1)
        notification = NotificationModel(
            id="n-1",
            recipient_id=RIDER_A,
            sender_id=DRIVER,
            category=NotificationCategory.REQUEST_ACCEPTED,
            context="Voltaire Parraba accepted your request.",
            is_read=False,
        )

        delivered = await NotificationPublisher(client).publish(notification)

        assert delivered == 1
        channel, payload = client.publish.await_args.args
        assert channel == channel_for(RIDER_A) == f"notifications:{RIDER_A}"
        body = json.loads(payload)
        assert body["category"] == "request_accepted"
        assert body["created_at"] is None

    @pytest.mark.asyncio
    async def test_subscription_yields_messages_then_unsubscribes(self):
        async def listen():
            yield {"type": "subscribe", "channel": channel_for(RIDER_A), "data": 1}
            yield {"type": "message", "data": json.dumps({"id": "n-1"})}
            yield {"type": "message", "data": json.dumps({"id": "n-2"})}

        pubsub = MagicMock()
        pubsub.subscribe = AsyncMock()
        pubsub.unsubscribe = AsyncMock()
        pubsub.aclose = AsyncMock()
        pubsub.listen = listen
        client = MagicMock()
        client.pubsub.return_value = pubsub

        async with NotificationSubscription(client, RIDER_A) as subscription:
            received = [payload["id"] async for payload in subscription]

        assert received == ["n-1", "n-2"]
        pubsub.subscribe.assert_awaited_once_with(channel_for(RIDER_A))
        pubsub.unsubscribe.assert_awaited_once_with(channel_for(RIDER_A))
        pubsub.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_iterating_outside_context_fails(self):
        subscription = NotificationSubscription(MagicMock(), RIDER_A)
        with pytest.raises(RuntimeError, match="not active"):
            async for _ in subscription:
                pass

"""
Request ledger lifecycle tests.

Covers submission guards, accept / reject / cancel transitions, seat
accounting invariants and the driver / rider listing queries.
"""

from __future__ import annotations

import pytest

from carpool.domain.enums import NotificationCategory, RequestStatus
from carpool.domain.errors import (
    AuthorizationError,
    CapacityError,
    ConflictError,
    NotFoundError,
    SelfRequestError,
    StateError,
)
from tests.conftest import DRIVER, RIDER_A, RIDER_B, make_ride


async def assert_seat_invariants(services, ride_id: str) -> None:
    ride = await services.catalog.get_ride(ride_id)
    assert 0 <= ride.available_seats <= ride.total_seats
    assert len(ride.passenger_ids) == ride.total_seats - ride.available_seats
    assert len(set(ride.passenger_ids)) == len(ride.passenger_ids)
    assert ride.driver_id not in ride.passenger_ids


class TestSubmitRequest:
    @pytest.mark.asyncio
    async def test_creates_pending_request_and_notifies_driver(self, services):
        ride_id = await make_ride(services)
        request = await services.ledger.submit_request(RIDER_A, ride_id)

        assert request.status == RequestStatus.PENDING
        assert request.rider_id == RIDER_A
        assert request.driver_id == DRIVER

        inbox = await services.notifier.list_notifications(DRIVER)
        assert len(inbox) == 1
        assert inbox[0].category == NotificationCategory.RIDE_REQUEST
        assert inbox[0].sender_id == RIDER_A
        assert inbox[0].request_id == request.id

    @pytest.mark.asyncio
    async def test_duplicate_active_request_conflicts(self, services):
        ride_id = await make_ride(services, seats=3)
        await services.ledger.submit_request(RIDER_A, ride_id)
        with pytest.raises(ConflictError):
            await services.ledger.submit_request(RIDER_A, ride_id)

        active = await services.ledger.list_active_requests_for_rider(RIDER_A)
        assert list(active) == [ride_id]

    @pytest.mark.asyncio
    async def test_accepted_request_also_blocks_resubmission(self, services):
        ride_id = await make_ride(services, seats=3)
        request = await services.ledger.submit_request(RIDER_A, ride_id)
        await services.ledger.accept_request(request.id, DRIVER)
        with pytest.raises(ConflictError):
            await services.ledger.submit_request(RIDER_A, ride_id)

    @pytest.mark.asyncio
    async def test_rejected_rider_may_request_again(self, services):
        ride_id = await make_ride(services, seats=3)
        request = await services.ledger.submit_request(RIDER_A, ride_id)
        await services.ledger.reject_request(request.id, DRIVER)

        again = await services.ledger.submit_request(RIDER_A, ride_id)
        assert again.status == RequestStatus.PENDING

    @pytest.mark.asyncio
    async def test_driver_cannot_request_own_ride(self, services):
        ride_id = await make_ride(services)
        with pytest.raises(SelfRequestError):
            await services.ledger.submit_request(DRIVER, ride_id)

    @pytest.mark.asyncio
    async def test_full_ride_rejects_new_requests(self, services):
        ride_id = await make_ride(services, seats=1)
        request = await services.ledger.submit_request(RIDER_A, ride_id)
        await services.ledger.accept_request(request.id, DRIVER)

        with pytest.raises(CapacityError):
            await services.ledger.submit_request(RIDER_B, ride_id)

    @pytest.mark.asyncio
    async def test_missing_ride(self, services):
        with pytest.raises(NotFoundError):
            await services.ledger.submit_request(RIDER_A, "no-such-ride")

    @pytest.mark.asyncio
    async def test_departed_ride(self, services):
        ride_id = await make_ride(services, hours=-1)
        with pytest.raises(StateError):
            await services.ledger.submit_request(RIDER_A, ride_id)


class TestAcceptRequest:
    @pytest.mark.asyncio
    async def test_accept_reserves_seat_and_notifies_rider(self, services):
        ride_id = await make_ride(services, seats=2)
        request = await services.ledger.submit_request(RIDER_A, ride_id)

        accepted = await services.ledger.accept_request(request.id, DRIVER)
        assert accepted.status == RequestStatus.ACCEPTED
        assert accepted.decided_at is not None

        ride = await services.catalog.get_ride(ride_id)
        assert ride.available_seats == 1
        assert ride.passenger_ids == [RIDER_A]
        await assert_seat_invariants(services, ride_id)

        inbox = await services.notifier.list_notifications(RIDER_A)
        assert [n.category for n in inbox] == [NotificationCategory.REQUEST_ACCEPTED]

    @pytest.mark.asyncio
    async def test_only_driver_may_accept(self, services):
        ride_id = await make_ride(services)
        request_id = (await services.ledger.submit_request(RIDER_A, ride_id)).id

        with pytest.raises(AuthorizationError):
            await services.ledger.accept_request(request_id, RIDER_B)

        request = await services.ledger.get_request(request_id)
        assert request.status == RequestStatus.PENDING

    @pytest.mark.asyncio
    async def test_accept_twice_fails_with_state_error(self, services):
        ride_id = await make_ride(services, seats=2)
        request_id = (await services.ledger.submit_request(RIDER_A, ride_id)).id
        await services.ledger.accept_request(request_id, DRIVER)

        with pytest.raises(StateError):
            await services.ledger.accept_request(request_id, DRIVER)

        ride = await services.catalog.get_ride(ride_id)
        assert ride.available_seats == 1

    @pytest.mark.asyncio
    async def test_missing_request(self, services):
        with pytest.raises(NotFoundError):
            await services.ledger.accept_request("no-such-request", DRIVER)

    @pytest.mark.asyncio
    async def test_accept_on_full_ride_leaves_request_pending(self, services):
        ride_id = await make_ride(services, seats=1)
        first = (await services.ledger.submit_request(RIDER_A, ride_id)).id
        second = (await services.ledger.submit_request(RIDER_B, ride_id)).id
        await services.ledger.accept_request(first, DRIVER)

        with pytest.raises(CapacityError):
            await services.ledger.accept_request(second, DRIVER)

        assert (await services.ledger.get_request(second)).status == RequestStatus.PENDING
        await assert_seat_invariants(services, ride_id)
        inbox = await services.notifier.list_notifications(RIDER_B)
        assert inbox == []


class TestRejectRequest:
    @pytest.mark.asyncio
    async def test_reject_then_accept_fails_and_seats_unchanged(self, services):
        ride_id = await make_ride(services, seats=2)
        request_id = (await services.ledger.submit_request(RIDER_A, ride_id)).id

        rejected = await services.ledger.reject_request(request_id, DRIVER)
        assert rejected.status == RequestStatus.REJECTED

        with pytest.raises(StateError):
            await services.ledger.accept_request(request_id, DRIVER)

        ride = await services.catalog.get_ride(ride_id)
        assert ride.available_seats == 2
        assert ride.passenger_ids == []

    @pytest.mark.asyncio
    async def test_only_driver_may_reject(self, services):
        ride_id = await make_ride(services)
        request_id = (await services.ledger.submit_request(RIDER_A, ride_id)).id
        with pytest.raises(AuthorizationError):
            await services.ledger.reject_request(request_id, RIDER_A)


class TestCancelRequest:
    @pytest.mark.asyncio
    async def test_cancel_allows_resubmission(self, services):
        ride_id = await make_ride(services)
        request_id = (await services.ledger.submit_request(RIDER_A, ride_id)).id

        await services.ledger.cancel_request(request_id, RIDER_A)
        with pytest.raises(NotFoundError):
            await services.ledger.get_request(request_id)

        again = await services.ledger.submit_request(RIDER_A, ride_id)
        assert again.status == RequestStatus.PENDING

    @pytest.mark.asyncio
    async def test_only_requester_may_cancel(self, services):
        ride_id = await make_ride(services)
        request_id = (await services.ledger.submit_request(RIDER_A, ride_id)).id
        with pytest.raises(AuthorizationError):
            await services.ledger.cancel_request(request_id, DRIVER)

    @pytest.mark.asyncio
    async def test_accepted_request_cannot_be_cancelled(self, services):
        ride_id = await make_ride(services)
        request_id = (await services.ledger.submit_request(RIDER_A, ride_id)).id
        await services.ledger.accept_request(request_id, DRIVER)

        with pytest.raises(StateError):
            await services.ledger.cancel_request(request_id, RIDER_A)
        await assert_seat_invariants(services, ride_id)


class TestListings:
    @pytest.mark.asyncio
    async def test_active_requests_keyed_by_ride(self, services):
        first = await make_ride(services, seats=2)
        second = await make_ride(services, seats=2, destination="Pacific Mall")
        third = await make_ride(services, seats=2, destination="Grand Terminal")

        await services.ledger.submit_request(RIDER_A, first)
        accepted = await services.ledger.submit_request(RIDER_A, second)
        await services.ledger.accept_request(accepted.id, DRIVER)
        rejected = await services.ledger.submit_request(RIDER_A, third)
        await services.ledger.reject_request(rejected.id, DRIVER)

        active = await services.ledger.list_active_requests_for_rider(RIDER_A)
        assert set(active) == {first, second}
        assert active[first].status == RequestStatus.PENDING
        assert active[second].status == RequestStatus.ACCEPTED

    @pytest.mark.asyncio
    async def test_pending_for_driver_joins_requester_profiles(self, services):
        await services.profiles.upsert_profile(RIDER_A, full_name="Andrea Cruz")
        ride_id = await make_ride(services, seats=3)
        await services.ledger.submit_request(RIDER_A, ride_id)
        await services.ledger.submit_request(RIDER_B, ride_id)
        await make_ride(services, driver_id="driver-maria")

        pending = await services.ledger.list_pending_requests_for_driver(DRIVER)
        names = {request.rider_id: who.display_name for request, who in pending}
        assert names == {RIDER_A: "Andrea Cruz", RIDER_B: "Unknown"}

        assert await services.ledger.list_pending_requests_for_driver("driver-maria") == []


class TestScenarios:
    @pytest.mark.asyncio
    async def test_single_seat_goes_to_first_accepted(self, services):
        ride_id = await make_ride(services, seats=1)
        a = (await services.ledger.submit_request(RIDER_A, ride_id)).id
        b = (await services.ledger.submit_request(RIDER_B, ride_id)).id

        await services.ledger.accept_request(a, DRIVER)
        assert (await services.ledger.get_request(a)).status == RequestStatus.ACCEPTED
        ride = await services.catalog.get_ride(ride_id)
        assert ride.available_seats == 0
        assert ride.passenger_ids == [RIDER_A]

        with pytest.raises(CapacityError):
            await services.ledger.accept_request(b, DRIVER)
        assert (await services.ledger.get_request(b)).status == RequestStatus.PENDING

    @pytest.mark.asyncio
    async def test_rejection_clears_active_list_and_notifies(self, services):
        ride_id = await make_ride(services, seats=4, price=20)
        request_id = (await services.ledger.submit_request(RIDER_A, ride_id)).id
        await services.ledger.reject_request(request_id, DRIVER)

        active = await services.ledger.list_active_requests_for_rider(RIDER_A)
        assert ride_id not in active

        inbox = await services.notifier.list_notifications(RIDER_A)
        assert any(
            n.category == NotificationCategory.REQUEST_REJECTED
            and n.recipient_id == RIDER_A
            for n in inbox
        )

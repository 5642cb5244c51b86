"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 6 sample profiles (2 drivers, 4 riders)
  - 4 upcoming rides between Lucena City landmarks
  - a handful of requests (pending, accepted, rejected) with their
    notifications, all produced through the ledger so invariants hold
"""

import asyncio
from datetime import datetime, timedelta, timezone

from sqlalchemy import text

from carpool.domain.enums import PaymentMethod
from carpool.infrastructure.database import async_session_factory, engine
from carpool.services.catalog import RideCatalog
from carpool.services.ledger import RequestLedger
from carpool.services.notifications import NotificationEmitter
from carpool.services.profiles import ProfileDirectory


PROFILES = [
    {"user_id": "driver-voltaire", "full_name": "Voltaire Parraba", "phone_number": "09171234567",
     "is_driver": True, "is_rider": False, "driver_license": "D01-23-456789"},
    {"user_id": "driver-maria", "full_name": "Maria Santos", "phone_number": "09181234567",
     "is_driver": True, "is_rider": True, "driver_license": "D02-24-567890"},
    {"user_id": "rider-jose", "full_name": "Jose Rizal", "phone_number": "09191234567"},
    {"user_id": "rider-andrea", "full_name": "Andrea Cruz", "phone_number": "09201234567"},
    {"user_id": "rider-miguel", "full_name": "Miguel Reyes", "phone_number": "09211234567"},
    {"user_id": "rider-bea", "full_name": "Bea Villanueva", "phone_number": "09221234567"},
]

RIDES = [
    # (driver, origin, destination, hours from now, seats, price, payment)
    ("driver-voltaire", "SM Lucena City", "MSEUF College", 2, 4, 20, PaymentMethod.CASH),
    ("driver-voltaire", "MSEUF College", "SM Lucena City", 9, 3, 20, PaymentMethod.CASH),
    ("driver-maria", "Pacific Mall Lucena", "Lucena Grand Terminal", 4, 1, 35, PaymentMethod.CARD),
    ("driver-maria", "Lucena Grand Terminal", "MSEUF College", 26, 2, 25, PaymentMethod.CASH),
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM profiles"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        profiles = ProfileDirectory(session)
        notifier = NotificationEmitter(session)
        catalog = RideCatalog(session, notifier)
        ledger = RequestLedger(session, catalog, notifier, profiles)

        # ── Profiles ──────────────────────────────────────────────────
        for p in PROFILES:
            await profiles.upsert_profile(
                p["user_id"],
                full_name=p["full_name"],
                phone_number=p["phone_number"],
                is_driver=p.get("is_driver", False),
                is_rider=p.get("is_rider", True),
                driver_license=p.get("driver_license"),
            )
        print(f"  ✓ {len(PROFILES)} profiles created")

        # ── Rides ─────────────────────────────────────────────────────
        now = datetime.now(timezone.utc)
        ride_ids = []
        for driver, origin, destination, hours, seats, price, payment in RIDES:
            departure = now + timedelta(hours=hours)
            ride = await catalog.create_ride(
                driver,
                origin,
                destination,
                departure,
                seats,
                price,
                arrival_at=departure + timedelta(minutes=25),
                payment_method=payment,
            )
            ride_ids.append(ride.id)
        print(f"  ✓ {len(ride_ids)} rides created")

        # ── Requests ──────────────────────────────────────────────────
        campus, _, single_seat, _ = ride_ids

        jose = await ledger.submit_request("rider-jose", campus)
        await ledger.accept_request(jose.id, "driver-voltaire")

        andrea = await ledger.submit_request("rider-andrea", campus)
        await ledger.reject_request(andrea.id, "driver-voltaire")

        await ledger.submit_request("rider-miguel", campus)

        bea = await ledger.submit_request("rider-bea", single_seat)
        await ledger.accept_request(bea.id, "driver-maria")
        print("  ✓ 4 ride requests created (2 accepted, 1 rejected, 1 pending)")

    print("\nSeed complete!")


async def main():
    try:
        await seed()
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())

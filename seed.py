"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 1 admin, 3 drivers and 5 customers
  - KYC submissions in every state (approved, pending, rejected)
  - 4 upcoming rides out of Mumbai and Pune
  - 2 ride requests for routes nobody has published
  - the booking fee setting
"""

import asyncio
from datetime import timedelta

from sqlalchemy import func, select

from ridebook.config import settings
from ridebook.domain.clock import IST, utc_now
from ridebook.domain.enums import KycStatus, RideRequestStatus, RideStatus, UserRole
from ridebook.domain.fees import BOOKING_FEE_KEY, BookingFeeSetting
from ridebook.infrastructure.database import async_session_factory, engine
from ridebook.infrastructure.models import (
    AppSettingModel,
    KycVerificationModel,
    RideModel,
    RideRequestModel,
    UserModel,
)

USERS = [
    {"full_name": "Platform Admin", "mobile": "9000000001", "role": UserRole.ADMIN, "kyc": None},
    {"full_name": "Rohan Mehta", "mobile": "9000000002", "role": UserRole.DRIVER, "kyc": KycStatus.APPROVED},
    {"full_name": "Vikram Singh", "mobile": "9000000003", "role": UserRole.DRIVER, "kyc": KycStatus.APPROVED},
    {"full_name": "Karan Joshi", "mobile": "9000000004", "role": UserRole.DRIVER, "kyc": KycStatus.PENDING},
    {"full_name": "Aarav Sharma", "mobile": "9000000005", "role": UserRole.CUSTOMER, "kyc": KycStatus.APPROVED},
    {"full_name": "Priya Patel", "mobile": "9000000006", "role": UserRole.CUSTOMER, "kyc": None},
    {"full_name": "Sneha Gupta", "mobile": "9000000007", "role": UserRole.CUSTOMER, "kyc": KycStatus.PENDING},
    {"full_name": "Ananya Reddy", "mobile": "9000000008", "role": UserRole.CUSTOMER, "kyc": KycStatus.REJECTED},
    {"full_name": "Meera Nair", "mobile": "9000000009", "role": UserRole.CUSTOMER, "kyc": None},
]

# (driver index, from, to, days ahead, hour IST, price, seats, vehicle)
RIDES = [
    (1, "Mumbai Airport T2", "Pune Station", 1, 6, 1200, 4, ("Sedan", "MH01AB1234")),
    (1, "Pune Station", "Mumbai Airport T2", 2, 18, 1100, 4, ("Sedan", "MH01AB1234")),
    (2, "Mumbai Central", "Nashik", 1, 4, 1500, 6, ("SUV", "MH02CD5678")),
    (2, "Pune Hinjewadi", "Lonavala", 3, 9, 600, 6, ("SUV", "MH02CD5678")),
]


# (customer index, from, to, days ahead, passengers, status)
RIDE_REQUESTS = [
    (4, "Pune Station", "Mahabaleshwar", 5, 3, RideRequestStatus.PENDING),
    (5, "Mumbai Airport T2", "Alibaug", 2, 2, RideRequestStatus.RESPONDED),
]

async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(select(func.count()).select_from(UserModel))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Users + KYC ───────────────────────────────────────────────
        user_models = []
        for u in USERS:
            m = UserModel(
                full_name=u["full_name"],
                mobile=u["mobile"],
                role=u["role"],
                is_kyc_verified=u["kyc"] == KycStatus.APPROVED,
            )
            session.add(m)
            user_models.append(m)
        await session.flush()
        print(f"  Created {len(user_models)} users")

        kyc_count = 0
        for u, m in zip(USERS, user_models):
            if u["kyc"] is None:
                continue
            is_driver = u["role"] == UserRole.DRIVER
            session.add(
                KycVerificationModel(
                    user_id=m.id,
                    document_type="aadhaar",
                    document_id=f"XXXX-XXXX-{m.mobile[-4:]}",
                    document_url=f"https://uploads.example.com/kyc/{m.id}/aadhaar.jpg",
                    vehicle_type="Sedan" if is_driver else None,
                    vehicle_number=f"MH01ZZ{m.mobile[-4:]}" if is_driver else None,
                    status=u["kyc"],
                    remarks="Document unreadable" if u["kyc"] == KycStatus.REJECTED else None,
                )
            )
            kyc_count += 1
        await session.flush()
        print(f"  Created {kyc_count} KYC submissions")

        # ── Rides ─────────────────────────────────────────────────────
        today = utc_now().astimezone(IST).replace(hour=0, minute=0, second=0, microsecond=0)
        for driver_idx, origin, destination, days, hour, price, seats, vehicle in RIDES:
            session.add(
                RideModel(
                    driver_id=user_models[driver_idx].id,
                    from_location=origin,
                    to_location=destination,
                    departure_at=today + timedelta(days=days, hours=hour),
                    price=price,
                    total_seats=seats,
                    available_seats=seats,
                    vehicle_type=vehicle[0],
                    vehicle_number=vehicle[1],
                    status=RideStatus.ACTIVE,
                )
            )
        await session.flush()
        print(f"  Created {len(RIDES)} rides")

        # ── Settings ──────────────────────────────────────────────────
        fee = BookingFeeSetting(
            enabled=settings.default_booking_fee_enabled,
            amount=settings.default_booking_fee_amount,
        )
        session.add(AppSettingModel(key=BOOKING_FEE_KEY, value=fee.to_value()))
        print(f"  Booking fee: enabled={fee.enabled} amount={fee.amount}")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())

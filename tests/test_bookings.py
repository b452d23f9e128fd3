"""Booking creation, capacity, fees and per-booking transitions."""

from __future__ import annotations

import pytest

from ridebook.domain.enums import BookingStatus, KycGateReason, KycStatus, UserRole
from ridebook.domain.errors import (
    DuplicateBooking,
    Forbidden,
    InvalidTransition,
    KycRequired,
    NoCapacity,
    NotFound,
    ValidationError,
)


class TestCreate:
    @pytest.mark.asyncio
    async def test_booking_reserves_seats(self, orchestrator, driver, customer, make_ride):
        ride = await make_ride(driver, seats=3)
        booking = await orchestrator.bookings.create(customer, ride.id, 2)

        assert booking.status == BookingStatus.PENDING
        assert booking.number_of_seats == 2
        assert booking.is_paid is False
        assert (await orchestrator.rides.get(ride.id)).available_seats == 1
        assert await orchestrator.bookings.seats_held(ride.id) == 2

    @pytest.mark.asyncio
    async def test_over_capacity_rejected(self, orchestrator, driver, customer, make_ride):
        ride = await make_ride(driver, seats=2)
        with pytest.raises(NoCapacity):
            await orchestrator.bookings.create(customer, ride.id, 3)
        assert (await orchestrator.rides.get(ride.id)).available_seats == 2

    @pytest.mark.asyncio
    async def test_zero_seats_rejected(self, orchestrator, driver, customer, make_ride):
        ride = await make_ride(driver)
        with pytest.raises(ValidationError):
            await orchestrator.bookings.create(customer, ride.id, 0)

    @pytest.mark.asyncio
    async def test_duplicate_booking_rejected(self, orchestrator, driver, customer, make_ride):
        ride = await make_ride(driver)
        await orchestrator.bookings.create(customer, ride.id, 1)
        with pytest.raises(DuplicateBooking):
            await orchestrator.bookings.create(customer, ride.id, 1)

    @pytest.mark.asyncio
    async def test_rebook_after_cancel(self, orchestrator, driver, customer, make_ride):
        ride = await make_ride(driver)
        first = await orchestrator.bookings.create(customer, ride.id, 1)
        await orchestrator.bookings.cancel(first.id, customer, "Wrong date")
        second = await orchestrator.bookings.create(customer, ride.id, 1)
        assert second.id != first.id

    @pytest.mark.asyncio
    async def test_driver_cannot_book(self, orchestrator, driver, make_ride):
        ride = await make_ride(driver)
        with pytest.raises(Forbidden):
            await orchestrator.bookings.create(driver, ride.id, 1)

    @pytest.mark.asyncio
    async def test_cancelled_ride_cannot_be_booked(
        self, orchestrator, driver, customer, make_ride
    ):
        ride = await make_ride(driver)
        await orchestrator.rides.cancel(ride.id, driver, "Cancelled")
        with pytest.raises(InvalidTransition):
            await orchestrator.bookings.create(customer, ride.id, 1)

    @pytest.mark.asyncio
    async def test_unknown_ride(self, orchestrator, customer):
        with pytest.raises(NotFound):
            await orchestrator.bookings.create(customer, 999, 1)


class TestKycGateOnBooking:
    @pytest.mark.asyncio
    async def test_first_booking_free_second_gated(
        self, orchestrator, driver, make_user, make_ride
    ):
        unverified = await make_user(verified=False)
        first_ride = await make_ride(driver)
        second_ride = await make_ride(driver)

        await orchestrator.bookings.create(unverified, first_ride.id, 1)
        with pytest.raises(KycRequired) as exc:
            await orchestrator.bookings.create(unverified, second_ride.id, 1)
        assert exc.value.reason == KycGateReason.NOT_SUBMITTED.value

    @pytest.mark.asyncio
    async def test_reason_reflects_pending_submission(
        self, orchestrator, driver, make_user, make_ride
    ):
        unverified = await make_user(verified=False)
        await orchestrator.kyc.submit(
            unverified,
            document_type="aadhaar",
            document_id="1234",
            document_url="https://uploads.example.com/a.jpg",
        )
        await orchestrator.bookings.create(unverified, (await make_ride(driver)).id, 1)
        with pytest.raises(KycRequired) as exc:
            await orchestrator.bookings.create(unverified, (await make_ride(driver)).id, 1)
        assert exc.value.reason == KycGateReason.PENDING.value

    @pytest.mark.asyncio
    async def test_cancelled_first_booking_does_not_count(
        self, orchestrator, driver, make_user, make_ride
    ):
        unverified = await make_user(verified=False)
        first = await orchestrator.bookings.create(unverified, (await make_ride(driver)).id, 1)
        await orchestrator.bookings.cancel(first.id, unverified, "Changed plans")
        booking = await orchestrator.bookings.create(unverified, (await make_ride(driver)).id, 1)
        assert booking.status == BookingStatus.PENDING

    @pytest.mark.asyncio
    async def test_self_booking_rejected_before_kyc(self, orchestrator, make_user, make_ride):
        """A driver account is refused as a booker whatever its KYC state."""
        unverified_driver = await make_user(UserRole.DRIVER, verified=False)
        verified_driver = await make_user(UserRole.DRIVER)
        ride = await make_ride(verified_driver)
        with pytest.raises(Forbidden):
            await orchestrator.bookings.create(unverified_driver, ride.id, 1)


class TestBookingFee:
    @pytest.mark.asyncio
    async def test_fee_is_frozen_at_creation(
        self, orchestrator, driver, make_user, make_ride, admin
    ):
        ride = await make_ride(driver, price=800)
        await orchestrator.settings.update_booking_fee(admin, enabled=True, amount=150)
        early = await orchestrator.bookings.create(await make_user(), ride.id, 1)

        await orchestrator.settings.update_booking_fee(admin, enabled=True, amount=300)
        late = await orchestrator.bookings.create(await make_user(), ride.id, 1)

        assert early.booking_fee == 150
        assert late.booking_fee == 300
        reread, _ = await orchestrator.bookings.get(early.id, admin)
        assert reread.booking_fee == 150

    @pytest.mark.asyncio
    async def test_disabled_fee_is_zero(self, orchestrator, driver, customer, make_ride, admin):
        await orchestrator.settings.update_booking_fee(admin, enabled=False, amount=500)
        booking = await orchestrator.bookings.create(customer, (await make_ride(driver)).id, 1)
        assert booking.booking_fee == 0

    @pytest.mark.asyncio
    async def test_default_fee_applies_until_set(self, orchestrator):
        fee = await orchestrator.settings.get_booking_fee()
        assert fee.enabled is True
        assert fee.amount == 200

    @pytest.mark.asyncio
    async def test_only_admin_changes_fee(self, orchestrator, customer):
        with pytest.raises(Forbidden):
            await orchestrator.settings.update_booking_fee(customer, enabled=True, amount=1)


class TestTransitions:
    @pytest.mark.asyncio
    async def test_only_owning_driver_confirms(
        self, orchestrator, driver, customer, make_user, make_ride
    ):
        ride = await make_ride(driver)
        booking = await orchestrator.bookings.create(customer, ride.id, 1)
        other_driver = await make_user(UserRole.DRIVER)
        with pytest.raises(Forbidden):
            await orchestrator.bookings.confirm(booking.id, other_driver)
        with pytest.raises(Forbidden):
            await orchestrator.bookings.confirm(booking.id, customer)
        confirmed = await orchestrator.bookings.confirm(booking.id, driver)
        assert confirmed.status == BookingStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_confirm_twice_is_invalid(self, orchestrator, driver, customer, make_ride):
        ride = await make_ride(driver)
        booking = await orchestrator.bookings.create(customer, ride.id, 1)
        await orchestrator.bookings.confirm(booking.id, driver)
        with pytest.raises(InvalidTransition):
            await orchestrator.bookings.confirm(booking.id, driver)

    @pytest.mark.asyncio
    async def test_pending_booking_on_finished_ride_cannot_be_confirmed(
        self, orchestrator, driver, make_user, make_ride, confirmed_booking, clock
    ):
        ride = await make_ride(driver, seats=2, hours=1)
        rider = await make_user()
        late = await make_user()
        await confirmed_booking(rider, driver, ride.id)
        pending = await orchestrator.bookings.create(late, ride.id, 1)
        clock.advance(hours=2)
        await orchestrator.rides.complete(ride.id, driver)

        with pytest.raises(InvalidTransition):
            await orchestrator.bookings.confirm(pending.id, driver)
        booking, _ = await orchestrator.bookings.get(pending.id, late)
        assert booking.status == BookingStatus.PENDING

    @pytest.mark.asyncio
    async def test_cancel_releases_seats(
        self, orchestrator, driver, customer, make_ride, confirmed_booking
    ):
        ride = await make_ride(driver, seats=3)
        booking = await confirmed_booking(customer, driver, ride.id, seats=2)
        cancelled = await orchestrator.bookings.cancel(booking.id, driver, "Route changed")

        assert cancelled.status == BookingStatus.CANCELLED
        assert cancelled.cancellation_reason == "Route changed"
        assert (await orchestrator.rides.get(ride.id)).available_seats == 3

    @pytest.mark.asyncio
    async def test_cancel_needs_reason(self, orchestrator, driver, customer, make_ride):
        ride = await make_ride(driver)
        booking = await orchestrator.bookings.create(customer, ride.id, 1)
        with pytest.raises(ValidationError):
            await orchestrator.bookings.cancel(booking.id, customer, "")

    @pytest.mark.asyncio
    async def test_stranger_cannot_cancel(self, orchestrator, driver, customer, make_user, make_ride):
        ride = await make_ride(driver)
        booking = await orchestrator.bookings.create(customer, ride.id, 1)
        with pytest.raises(Forbidden):
            await orchestrator.bookings.cancel(booking.id, await make_user(), "Not mine")

    @pytest.mark.asyncio
    async def test_cancelled_booking_is_final(self, orchestrator, driver, customer, make_ride):
        ride = await make_ride(driver)
        booking = await orchestrator.bookings.create(customer, ride.id, 1)
        await orchestrator.bookings.cancel(booking.id, customer, "Changed plans")
        with pytest.raises(InvalidTransition):
            await orchestrator.bookings.confirm(booking.id, driver)
        with pytest.raises(InvalidTransition):
            await orchestrator.bookings.cancel(booking.id, customer, "Again")


class TestForceComplete:
    @pytest.mark.asyncio
    async def test_non_admin_cannot_complete(
        self, orchestrator, driver, customer, make_ride, confirmed_booking
    ):
        ride = await make_ride(driver)
        booking = await confirmed_booking(customer, driver, ride.id)
        with pytest.raises(InvalidTransition):
            await orchestrator.bookings.update_status(booking.id, driver, BookingStatus.COMPLETED)

    @pytest.mark.asyncio
    async def test_admin_override_is_idempotent(
        self, orchestrator, driver, customer, make_ride, confirmed_booking, admin
    ):
        ride = await make_ride(driver, seats=2)
        booking = await confirmed_booking(customer, driver, ride.id)

        first = await orchestrator.bookings.force_complete(booking.id, admin)
        again = await orchestrator.bookings.force_complete(booking.id, admin)

        assert first.status == again.status == BookingStatus.COMPLETED
        assert (await orchestrator.rides.get(ride.id)).available_seats == 1

    @pytest.mark.asyncio
    async def test_pending_cannot_be_forced(self, orchestrator, driver, customer, make_ride, admin):
        ride = await make_ride(driver)
        booking = await orchestrator.bookings.create(customer, ride.id, 1)
        with pytest.raises(InvalidTransition):
            await orchestrator.bookings.force_complete(booking.id, admin)

    @pytest.mark.asyncio
    async def test_pending_status_request_is_invalid(
        self, orchestrator, driver, customer, make_ride
    ):
        ride = await make_ride(driver)
        booking = await orchestrator.bookings.create(customer, ride.id, 1)
        with pytest.raises(InvalidTransition):
            await orchestrator.bookings.update_status(booking.id, customer, BookingStatus.PENDING)


class TestMarkPaid:
    @pytest.mark.asyncio
    async def test_mark_paid_is_one_way(self, orchestrator, driver, customer, make_ride):
        ride = await make_ride(driver)
        booking = await orchestrator.bookings.create(customer, ride.id, 1)

        paid = await orchestrator.bookings.mark_paid(booking.id, customer)
        again = await orchestrator.bookings.mark_paid(booking.id, customer)
        assert paid.is_paid is True
        assert again.is_paid is True

        await orchestrator.bookings.cancel(booking.id, customer, "Changed plans")
        cancelled, _ = await orchestrator.bookings.get(booking.id, customer)
        assert cancelled.is_paid is True

    @pytest.mark.asyncio
    async def test_driver_cannot_mark_paid(self, orchestrator, driver, customer, make_ride):
        ride = await make_ride(driver)
        booking = await orchestrator.bookings.create(customer, ride.id, 1)
        with pytest.raises(Forbidden):
            await orchestrator.bookings.mark_paid(booking.id, driver)


class TestKycService:
    @pytest.mark.asyncio
    async def test_approval_unlocks_further_bookings(
        self, orchestrator, driver, make_user, make_ride, admin
    ):
        unverified = await make_user(verified=False)
        await orchestrator.bookings.create(unverified, (await make_ride(driver)).id, 1)
        kyc = await orchestrator.kyc.submit(
            unverified,
            document_type="pan",
            document_id="ABCDE1234F",
            document_url="https://uploads.example.com/pan.jpg",
        )
        reviewed = await orchestrator.kyc.review(kyc.id, admin, KycStatus.APPROVED)
        assert reviewed.status == KycStatus.APPROVED

        actor = await orchestrator.users.load_actor(unverified.id)
        assert actor.is_kyc_verified
        booking = await orchestrator.bookings.create(actor, (await make_ride(driver)).id, 1)
        assert booking.status == BookingStatus.PENDING

    @pytest.mark.asyncio
    async def test_rejected_reason_and_resubmission(self, orchestrator, make_user, admin):
        unverified = await make_user(UserRole.DRIVER, verified=False)
        fields = dict(
            document_type="dl",
            document_id="MH0120200001",
            document_url="https://uploads.example.com/dl.jpg",
            vehicle_type="Sedan",
            vehicle_number="MH01AB1234",
        )
        kyc = await orchestrator.kyc.submit(unverified, **fields)
        with pytest.raises(ValidationError):
            await orchestrator.kyc.submit(unverified, **fields)
        await orchestrator.kyc.review(kyc.id, admin, KycStatus.REJECTED, "Blurry photo")
        with pytest.raises(InvalidTransition):
            await orchestrator.kyc.review(kyc.id, admin, KycStatus.APPROVED)

        resubmitted = await orchestrator.kyc.submit(unverified, **fields)
        assert resubmitted.status == KycStatus.PENDING

    @pytest.mark.asyncio
    async def test_driver_must_give_vehicle(self, orchestrator, make_user):
        unverified = await make_user(UserRole.DRIVER, verified=False)
        with pytest.raises(ValidationError):
            await orchestrator.kyc.submit(
                unverified,
                document_type="dl",
                document_id="1",
                document_url="https://uploads.example.com/dl.jpg",
            )

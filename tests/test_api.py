"""
Integration tests for the REST API endpoints.

The app runs against the per-test SQLite database through a dependency
override of the orchestrator.  ``ASGITransport`` does not run lifespan
events, so the maintenance worker never starts.
"""

from __future__ import annotations

from datetime import timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from ridebook.api.app import create_app
from ridebook.api.dependencies import get_orchestrator
from ridebook.api.middleware import limiter
from ridebook.domain.enums import UserRole


def auth(actor) -> dict:
    return {"X-User-Id": str(actor.id)}


# ── Fixture ───────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def client(orchestrator):
    app = create_app()
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    limiter.enabled = False

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    limiter.enabled = True


@pytest.fixture
def publish(client, clock):
    async def _publish(driver, seats: int = 3, price: int = 1000, hours: float = 24):
        resp = await client.post(
            "/api/v1/rides",
            headers=auth(driver),
            json={
                "fromLocation": "Mumbai Airport",
                "toLocation": "Pune Station",
                "departureAt": (clock() + timedelta(hours=hours)).isoformat(),
                "price": price,
                "totalSeats": seats,
                "vehicleType": "Sedan",
                "vehicleNumber": "MH01AB1234",
            },
        )
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _publish


async def _book(client, customer, ride_id, seats=1):
    return await client.post(
        "/api/v1/bookings",
        headers=auth(customer),
        json={"rideId": ride_id, "numberOfSeats": seats},
    )


# ── Identity ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/api/v1/admin/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_missing_identity_is_401(client: AsyncClient):
    resp = await client.get("/api/v1/bookings/mine")
    assert resp.status_code == 401
    assert resp.json()["kind"] == "auth_required"

    resp = await client.get("/api/v1/bookings/mine", headers={"X-User-Id": "9999"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_suspended_user_is_forbidden(client, make_user, admin):
    user = await make_user()
    resp = await client.patch(
        f"/api/v1/admin/users/{user.id}",
        headers=auth(admin),
        json={"isSuspended": True},
    )
    assert resp.status_code == 200
    assert resp.json()["isSuspended"] is True

    resp = await client.get("/api/v1/bookings/mine", headers=auth(user))
    assert resp.status_code == 403
    assert resp.json()["kind"] == "forbidden"


# ── Rides ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_publish_returns_camel_case_india_time(client, driver, publish):
    ride = await publish(driver, seats=4)
    assert ride["status"] == "active"
    assert ride["availableSeats"] == 4
    assert ride["driverId"] == driver.id
    assert ride["departureAt"].endswith("+05:30")


@pytest.mark.asyncio
async def test_unverified_driver_gets_kyc_reason(client, make_user, clock):
    driver = await make_user(UserRole.DRIVER, verified=False)
    resp = await client.post(
        "/api/v1/rides",
        headers=auth(driver),
        json={
            "fromLocation": "A",
            "toLocation": "B",
            "departureAt": (clock() + timedelta(days=1)).isoformat(),
            "price": 100,
            "totalSeats": 2,
            "vehicleType": "Sedan",
            "vehicleNumber": "MH01",
        },
    )
    assert resp.status_code == 403
    assert resp.json() == {
        "kind": "kyc_required",
        "message": "KYC verification required to publish rides",
        "reason": "not-submitted",
    }


@pytest.mark.asyncio
async def test_get_ride_not_found(client: AsyncClient):
    resp = await client.get("/api/v1/rides/9999")
    assert resp.status_code == 404
    assert resp.json()["kind"] == "not_found"


@pytest.mark.asyncio
async def test_search(client, driver, publish):
    ride = await publish(driver)
    resp = await client.get("/api/v1/rides/search", params={"from": "mumbai", "to": "pune"})
    assert resp.status_code == 200
    assert [r["id"] for r in resp.json()] == [ride["id"]]


@pytest.mark.asyncio
async def test_cancel_ride_cascades(client, driver, customer, publish):
    ride = await publish(driver)
    booking = (await _book(client, customer, ride["id"], 2)).json()

    resp = await client.patch(
        f"/api/v1/rides/{ride['id']}/cancel",
        headers=auth(driver),
        json={"cancellationReason": "Vehicle issue"},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "cancelled"
    assert body["availableSeats"] == 3
    assert [b["id"] for b in body["bookings"]] == [booking["id"]]
    assert body["bookings"][0]["status"] == "cancelled"
    assert body["bookings"][0]["cancellationReason"] == "Vehicle issue"


@pytest.mark.asyncio
async def test_cancel_without_reason_is_400(client, driver, publish):
    ride = await publish(driver)
    resp = await client.patch(
        f"/api/v1/rides/{ride['id']}/cancel", headers=auth(driver), json={}
    )
    assert resp.status_code == 400
    assert resp.json()["kind"] == "validation_error"


@pytest.mark.asyncio
async def test_cancel_already_cancelled_ride_fails(client, driver, publish):
    ride = await publish(driver)
    body = {"cancellationReason": "Done"}
    await client.patch(f"/api/v1/rides/{ride['id']}/cancel", headers=auth(driver), json=body)
    resp = await client.patch(
        f"/api/v1/rides/{ride['id']}/cancel", headers=auth(driver), json=body
    )
    assert resp.status_code == 409
    assert resp.json()["kind"] == "invalid_transition"


# ── Bookings ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_booking_total_includes_fee(client, driver, customer, publish):
    ride = await publish(driver, price=1200)
    resp = await _book(client, customer, ride["id"])
    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "pending"
    assert body["bookingFee"] == 200
    assert body["totalAmount"] == 1400
    assert body["isPaid"] is False


@pytest.mark.asyncio
async def test_capacity_and_duplicate_are_409(client, driver, make_user, publish):
    ride = await publish(driver, seats=1)
    first = await make_user()
    second = await make_user()

    assert (await _book(client, first, ride["id"])).status_code == 201
    dup = await _book(client, first, ride["id"])
    full = await _book(client, second, ride["id"])

    assert dup.status_code == 409
    assert dup.json()["kind"] == "duplicate_booking"
    assert full.status_code == 409
    assert full.json()["kind"] == "no_capacity"


@pytest.mark.asyncio
async def test_second_unverified_booking_needs_kyc(client, driver, make_user, publish):
    unverified = await make_user(verified=False)
    first = await publish(driver)
    second = await publish(driver)
    assert (await _book(client, unverified, first["id"])).status_code == 201

    resp = await _book(client, unverified, second["id"])
    assert resp.status_code == 403
    assert resp.json()["kind"] == "kyc_required"
    assert resp.json()["reason"] == "not-submitted"


@pytest.mark.asyncio
async def test_status_updates(client, driver, customer, publish):
    ride = await publish(driver)
    booking = (await _book(client, customer, ride["id"])).json()
    url = f"/api/v1/bookings/{booking['id']}/status"

    resp = await client.put(url, headers=auth(driver), json={"status": "confirmed"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "confirmed"

    resp = await client.put(url, headers=auth(driver), json={"status": "completed"})
    assert resp.status_code == 409
    assert resp.json()["kind"] == "invalid_transition"

    resp = await client.put(url, headers=auth(customer), json={"status": "cancelled"})
    assert resp.status_code == 400

    resp = await client.put(
        url, headers=auth(customer), json={"status": "cancelled", "reason": "Flight moved"}
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"


@pytest.mark.asyncio
async def test_mark_paid_and_listing(client, driver, customer, publish):
    ride = await publish(driver)
    booking = (await _book(client, customer, ride["id"])).json()

    resp = await client.post(f"/api/v1/bookings/{booking['id']}/mark-paid", headers=auth(customer))
    assert resp.status_code == 200
    assert resp.json()["isPaid"] is True

    resp = await client.get("/api/v1/bookings/mine", headers=auth(customer))
    assert [b["id"] for b in resp.json()] == [booking["id"]]
    assert resp.json()[0]["totalAmount"] == 1200


# ── Completion and ratings ────────────────────────────────────────────


@pytest.mark.asyncio
async def test_complete_then_rate(client, driver, customer, publish, clock):
    ride = await publish(driver, hours=1)
    booking = (await _book(client, customer, ride["id"])).json()
    await client.put(
        f"/api/v1/bookings/{booking['id']}/status",
        headers=auth(driver),
        json={"status": "confirmed"},
    )

    early = await client.patch(f"/api/v1/rides/{ride['id']}/complete", headers=auth(driver))
    assert early.status_code == 409

    clock.advance(hours=2)
    resp = await client.patch(f"/api/v1/rides/{ride['id']}/complete", headers=auth(driver))
    assert resp.status_code == 200
    assert resp.json()["bookings"][0]["status"] == "completed"

    rating = {"bookingId": booking["id"], "toUserId": driver.id, "rating": 4, "review": "On time"}
    resp = await client.post("/api/v1/ratings", headers=auth(customer), json=rating)
    assert resp.status_code == 201
    assert resp.json()["fromUserId"] == customer.id

    resp = await client.post("/api/v1/ratings", headers=auth(customer), json=rating)
    assert resp.status_code == 409
    assert resp.json()["kind"] == "duplicate_rating"

    resp = await client.get(f"/api/v1/ratings/user/{driver.id}")
    assert resp.json()["averageRating"] == 4.0
    assert len(resp.json()["ratings"]) == 1


@pytest.mark.asyncio
async def test_out_of_range_rating_is_400(client, driver, customer, publish, clock):
    ride = await publish(driver, hours=1)
    booking = (await _book(client, customer, ride["id"])).json()
    resp = await client.post(
        "/api/v1/ratings",
        headers=auth(customer),
        json={"bookingId": booking["id"], "toUserId": driver.id, "rating": 9},
    )
    assert resp.status_code == 400


# ── Admin + KYC + settings ────────────────────────────────────────────


@pytest.mark.asyncio
async def test_booking_fee_settings(client, admin, customer):
    resp = await client.patch(
        "/api/v1/admin/settings/booking-fee",
        headers=auth(admin),
        json={"enabled": True, "amount": 75},
    )
    assert resp.status_code == 200

    public = await client.get("/api/v1/settings/booking-fee")
    assert public.json() == {"enabled": True, "amount": 75}

    resp = await client.patch(
        "/api/v1/admin/settings/booking-fee",
        headers=auth(customer),
        json={"enabled": False, "amount": 0},
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_kyc_review_flow(client, make_user, admin):
    driver = await make_user(UserRole.DRIVER, verified=False)
    resp = await client.post(
        "/api/v1/kyc",
        headers=auth(driver),
        json={
            "documentType": "driving_license",
            "documentId": "MH0120200001",
            "documentUrl": "https://uploads.example.com/dl.jpg",
            "vehicleType": "Sedan",
            "vehicleNumber": "MH01AB1234",
        },
    )
    assert resp.status_code == 201
    kyc_id = resp.json()["id"]

    pending = await client.get("/api/v1/admin/kyc/pending", headers=auth(admin))
    assert [k["id"] for k in pending.json()] == [kyc_id]

    resp = await client.patch(
        f"/api/v1/admin/kyc/{kyc_id}",
        headers=auth(admin),
        json={"status": "approved"},
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "approved"

    mine = await client.get("/api/v1/kyc/mine", headers=auth(driver))
    assert mine.json()[0]["status"] == "approved"


# ── Malformed input ───────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_non_integer_ride_id_is_400_validation_error(client, customer):
    resp = await client.post(
        "/api/v1/bookings", headers=auth(customer), json={"rideId": "abc"}
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["kind"] == "validation_error"
    assert "rideId" in body["message"]


@pytest.mark.asyncio
async def test_fractional_rating_is_400_validation_error(
    client, driver, customer, publish
):
    ride = await publish(driver, hours=1)
    booking = (await _book(client, customer, ride["id"])).json()
    resp = await client.post(
        "/api/v1/ratings",
        headers=auth(customer),
        json={"bookingId": booking["id"], "toUserId": driver.id, "rating": 4.5},
    )
    assert resp.status_code == 400
    assert resp.json()["kind"] == "validation_error"


# ── Scenarios ─────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_vehicle_breakdown_scenario(client, driver, make_user, publish):
    x = await make_user()
    y = await make_user()
    ride = await publish(driver, seats=1)

    a = await _book(client, x, ride["id"])
    assert a.status_code == 201
    assert a.json()["status"] == "pending"
    b = await _book(client, y, ride["id"])
    assert b.status_code == 409
    assert b.json()["kind"] == "no_capacity"

    resp = await client.put(
        f"/api/v1/bookings/{a.json()['id']}/status",
        headers=auth(driver),
        json={"status": "confirmed"},
    )
    assert resp.json()["status"] == "confirmed"

    resp = await client.patch(
        f"/api/v1/rides/{ride['id']}/cancel",
        headers=auth(driver),
        json={"cancellationReason": "vehicle breakdown"},
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"
    assert resp.json()["availableSeats"] == 1

    booking = await client.get(f"/api/v1/bookings/{a.json()['id']}", headers=auth(x))
    assert booking.json()["status"] == "cancelled"
    assert booking.json()["cancellationReason"] == "vehicle breakdown"


# ── Ride edits, popular rides and ride requests ───────────────────────


@pytest.mark.asyncio
async def test_edit_ride_keeps_booked_seats(client, driver, customer, publish):
    ride = await publish(driver, seats=3)
    await _book(client, customer, ride["id"], seats=2)

    resp = await client.put(
        f"/api/v1/rides/{ride['id']}",
        headers=auth(driver),
        json={"totalSeats": 1},
    )
    assert resp.status_code == 400
    assert resp.json()["kind"] == "validation_error"

    resp = await client.put(
        f"/api/v1/rides/{ride['id']}",
        headers=auth(driver),
        json={"totalSeats": 4, "vehicleNumber": "MH02CD5678"},
    )
    assert resp.status_code == 200
    assert resp.json()["availableSeats"] == 2
    assert resp.json()["vehicleNumber"] == "MH02CD5678"

    resp = await client.put(
        f"/api/v1/rides/{ride['id']}", headers=auth(customer), json={"price": 1}
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_popular_is_public(client, driver, publish):
    later = await publish(driver, hours=30)
    sooner = await publish(driver, hours=3)
    resp = await client.get("/api/v1/rides/popular")
    assert resp.status_code == 200
    assert [r["id"] for r in resp.json()] == [sooner["id"], later["id"]]


@pytest.mark.asyncio
async def test_ride_request_flow(client, customer, admin, clock):
    resp = await client.post(
        "/api/v1/ride-requests",
        headers=auth(customer),
        json={
            "fromLocation": "Pune Station",
            "toLocation": "Mahabaleshwar",
            "preferredDate": (clock().date() + timedelta(days=3)).isoformat(),
            "numberOfPassengers": 3,
            "contactNumber": "9876543210",
        },
    )
    assert resp.status_code == 201
    request_id = resp.json()["id"]
    assert resp.json()["status"] == "pending"

    mine = await client.get("/api/v1/ride-requests/mine", headers=auth(customer))
    assert [r["id"] for r in mine.json()] == [request_id]

    listed = await client.get(
        "/api/v1/admin/ride-requests", headers=auth(admin), params={"status": "pending"}
    )
    assert [r["id"] for r in listed.json()] == [request_id]

    resp = await client.patch(
        f"/api/v1/admin/ride-requests/{request_id}/status",
        headers=auth(admin),
        json={"status": "responded"},
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "responded"

    resp = await client.patch(
        f"/api/v1/admin/ride-requests/{request_id}/status",
        headers=auth(customer),
        json={"status": "closed"},
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_booking_ratings_hidden_from_strangers(
    client, driver, customer, make_user, publish
):
    ride = await publish(driver)
    booking = (await _book(client, customer, ride["id"])).json()
    stranger = await make_user()

    resp = await client.get(
        f"/api/v1/ratings/booking/{booking['id']}", headers=auth(stranger)
    )
    assert resp.status_code == 403
    resp = await client.get(
        f"/api/v1/ratings/booking/{booking['id']}", headers=auth(customer)
    )
    assert resp.status_code == 200
    assert resp.json() == []

import pytest
from httpx import ASGITransport, AsyncClient

from parkshare.application.services import BookingService, SlotRegistry, AvailabilityWindowTracker
from parkshare.infrastructure.api.main import create_app
from parkshare.infrastructure.api.routers import marketplace
from parkshare.infrastructure.persistence.database import get_uow_factory

from conftest import at


def _headers(actor):
    return {
        "X-User-Id": str(actor.user_id),
        "X-Community-Code": actor.community_code,
        "X-User-Role": actor.role.value,
    }


@pytest.fixture
async def client(uow_factory, clock, policy):
    app = create_app()
    app.dependency_overrides[get_uow_factory] = lambda: uow_factory
    app.dependency_overrides[marketplace.get_booking_service] = (
        lambda: BookingService(uow_factory, policy=policy, clock=clock)
    )
    app.dependency_overrides[marketplace.get_slot_registry] = lambda: SlotRegistry(uow_factory, clock=clock)
    app.dependency_overrides[marketplace.get_availability_tracker] = (
        lambda: AvailabilityWindowTracker(uow_factory, clock=clock)
    )
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


class TestAuthHeaders:

    async def test_missing_user(self, client):
        response = await client.get("/api/slots")
        assert response.status_code == 401

    async def test_missing_community(self, client):
        response = await client.get("/api/slots", headers={"X-User-Id": "1"})
        assert response.status_code == 403

    async def test_maintenance_needs_admin(self, client, renter):
        response = await client.post("/api/maintenance/expire-slots", headers=_headers(renter))
        assert response.status_code == 403

    async def test_role_comes_from_gateway_header(self, client, renter):
        headers = {**_headers(renter), "X-User-Role": "admin"}
        response = await client.post("/api/maintenance/expire-slots", headers=headers)
        assert response.status_code == 200
        assert response.json() == {"count": 0}

    async def test_unknown_role_header_is_rejected(self, client, renter):
        headers = {**_headers(renter), "X-User-Role": "superuser"}
        response = await client.get("/api/slots", headers=headers)
        assert response.status_code == 422


class TestSlotRoutes:

    async def test_create_and_get_slot(self, client, owner):
        response = await client.post(
            "/api/slots",
            json={"slot_number": "b-4", "slot_type": "covered", "hourly_rate": 7.5, "is_listed_for_rent": True},
            headers=_headers(owner),
        )
        assert response.status_code == 201
        data = response.json()
        assert data["slot_number"] == "B-4"
        assert data["owner_id"] == owner.user_id
        assert data["ownership_mode"] == "owned"

        response = await client.get(f"/api/slots/{data['id']}", headers=_headers(owner))
        assert response.status_code == 200
        assert response.json()["hourly_rate"] == 7.5

    async def test_schema_rejects_missing_rate(self, client, owner):
        response = await client.post(
            "/api/slots", json={"slot_number": "b-4", "slot_type": "covered"}, headers=_headers(owner)
        )
        assert response.status_code == 422

    async def test_duplicate_slot_number(self, client, owner, owned_slot):
        response = await client.post(
            "/api/slots",
            json={"slot_number": owned_slot.slot_number, "slot_type": "covered", "hourly_rate": 3},
            headers=_headers(owner),
        )
        assert response.status_code == 400
        assert response.json()["reason"] == "duplicate_slot_number"

    async def test_list_available(self, client, renter, shared_slot, owned_slot, listed_slot):
        response = await client.get("/api/slots", headers=_headers(renter))
        assert response.status_code == 200
        assert {s["id"] for s in response.json()} == {shared_slot.id, listed_slot.id}

        response = await client.get("/api/slots", params={"max_hourly_rate": 10}, headers=_headers(renter))
        assert [s["id"] for s in response.json()] == [shared_slot.id]

    async def test_other_community_slot_is_404(self, client, outsider, shared_slot):
        response = await client.get(f"/api/slots/{shared_slot.id}", headers=_headers(outsider))
        assert response.status_code == 404
        assert response.json()["reason"] == "slot_not_found"

    async def test_update_status_and_delete(self, client, owner, renter, owned_slot):
        response = await client.patch(
            f"/api/slots/{owned_slot.id}", json={"is_listed_for_rent": True}, headers=_headers(owner)
        )
        assert response.json()["is_listed_for_rent"] is True

        response = await client.post(
            f"/api/slots/{owned_slot.id}/status", json={"status": "maintenance"}, headers=_headers(renter)
        )
        assert response.status_code == 403

        response = await client.post(
            f"/api/slots/{owned_slot.id}/status", json={"status": "maintenance"}, headers=_headers(owner)
        )
        assert response.json()["status"] == "maintenance"

        response = await client.delete(f"/api/slots/{owned_slot.id}", headers=_headers(owner))
        assert response.status_code == 204

    async def test_relist_after_expiry(self, client, clock, owner, admin, windowed_slot):
        clock.advance(days=4)
        response = await client.post("/api/maintenance/expire-slots", headers=_headers(admin))
        assert response.json() == {"count": 1}

        response = await client.post(
            f"/api/slots/{windowed_slot.id}/relist",
            json={"available_from": at(days=4).isoformat(), "available_until": at(days=9).isoformat()},
            headers=_headers(owner),
        )
        assert response.status_code == 200
        assert response.json()["status"] == "available"


class TestBookingRoutes:

    async def test_booking_flow(self, client, renter, owner, listed_slot):
        response = await client.post(
            "/api/bookings",
            json={"slot_id": listed_slot.id, "start_time": at(2).isoformat(), "end_time": at(5).isoformat()},
            headers=_headers(renter),
        )
        assert response.status_code == 201
        booking = response.json()
        assert booking["status"] == "confirmed"
        assert booking["total_amount"] == 36

        response = await client.get("/api/bookings", headers=_headers(renter))
        assert [b["id"] for b in response.json()] == [booking["id"]]

        response = await client.get("/api/earnings", headers=_headers(owner))
        earnings = response.json()
        assert earnings[0]["owner_payout"] == 32.4
        assert earnings[0]["platform_fee"] == 3.6

        response = await client.post(f"/api/bookings/{booking['id']}/cancel", headers=_headers(renter))
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

    async def test_conflict_is_409(self, client, renter, other_renter, shared_slot):
        payload = {"slot_id": shared_slot.id, "start_time": at(2).isoformat(), "end_time": at(4).isoformat()}
        assert (await client.post("/api/bookings", json=payload, headers=_headers(renter))).status_code == 201

        payload["start_time"] = at(3).isoformat()
        payload["end_time"] = at(6).isoformat()
        response = await client.post("/api/bookings", json=payload, headers=_headers(other_renter))
        assert response.status_code == 409
        assert response.json() == {
            "detail": "Slot is already booked for this time period",
            "reason": "booking_conflict",
        }

    async def test_validation_is_400(self, client, renter, shared_slot):
        payload = {"slot_id": shared_slot.id, "start_time": at(-2).isoformat(), "end_time": at(1).isoformat()}
        response = await client.post("/api/bookings", json=payload, headers=_headers(renter))
        assert response.status_code == 400
        assert response.json()["reason"] == "start_in_past"

    async def test_owned_slot_is_403(self, client, renter, owned_slot):
        payload = {"slot_id": owned_slot.id, "start_time": at(2).isoformat(), "end_time": at(4).isoformat()}
        response = await client.post("/api/bookings", json=payload, headers=_headers(renter))
        assert response.status_code == 403
        assert response.json()["reason"] == "slot_owned_by_other"

    async def test_no_show_and_completion(self, client, clock, renter, owner, admin, listed_slot):
        payload = {"slot_id": listed_slot.id, "start_time": at(2).isoformat(), "end_time": at(4).isoformat()}
        first = (await client.post("/api/bookings", json=payload, headers=_headers(renter))).json()
        payload = {"slot_id": listed_slot.id, "start_time": at(4).isoformat(), "end_time": at(6).isoformat()}
        second = (await client.post("/api/bookings", json=payload, headers=_headers(renter))).json()

        clock.advance(hours=2, minutes=30)
        response = await client.post(f"/api/bookings/{first['id']}/no-show", headers=_headers(owner))
        assert response.json()["status"] == "no_show"

        clock.advance(hours=4)
        response = await client.post("/api/maintenance/complete-bookings", headers=_headers(admin))
        assert response.json() == {"count": 1}

        response = await client.get(f"/api/bookings/{second['id']}", headers=_headers(renter))
        assert response.json()["status"] == "completed"

    async def test_missing_booking_is_404(self, client, renter):
        response = await client.get("/api/bookings/404", headers=_headers(renter))
        assert response.status_code == 404

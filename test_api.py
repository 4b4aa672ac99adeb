#!/usr/bin/env python3
"""
API tests for the hotel back-office
Runs the FastAPI app end to end against the in-memory repositories
"""

import pytest
from fastapi.testclient import TestClient
from datetime import date, timedelta
from uuid import uuid4

from main import app, PUBLIC_FAILURE_MESSAGE
from api.dependencies import get_reservation_service
from config import settings
from domain.exceptions import PersistenceError


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def client():
    """FastAPI test client"""
    return TestClient(app)


def _login(client, email, password):
    response = client.post("/token", data={"username": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def auth_headers(client):
    """Bootstrap administrator"""
    return _login(client, settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD)


@pytest.fixture
def operator_account(client, auth_headers):
    """Fresh operator account: (response body, password)"""
    password = "desk-pass"
    response = client.post("/api/operators", json={
        "national_id": uuid4().hex[:10],
        "name": "Desk Operator",
        "email": f"desk-{uuid4().hex[:8]}@hotel.local",
        "password": password
    }, headers=auth_headers)
    assert response.status_code == 201, response.text
    return response.json(), password


@pytest.fixture
def operator_headers(client, operator_account):
    operator, password = operator_account
    return _login(client, operator["email"], password)


@pytest.fixture
def room(client, auth_headers):
    return _create_room(client, auth_headers)


def _create_room(client, headers, room_type_id=1):
    response = client.post("/api/rooms", json={
        "name": f"R-{uuid4().hex[:8]}",
        "room_type_id": room_type_id
    }, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def _guest(**overrides):
    fields = {
        "name": "Ana",
        "surname": "Lopez",
        "email": f"guest-{uuid4().hex[:8]}@example.com",
        "phone": "555-0100"
    }
    fields.update(overrides)
    return fields


def _public_booking(client, room_id, check_in, check_out):
    response = client.post("/api/reservations/public", json={
        **_guest(),
        "room_id": room_id,
        "check_in": check_in.isoformat(),
        "check_out": check_out.isoformat()
    })
    assert response.status_code == 201, response.text
    return response.json()


def _staff_booking(client, headers, room_id, check_in, check_out, **extra):
    payload = {
        "room_id": room_id,
        "check_in": check_in.isoformat(),
        "check_out": check_out.isoformat(),
        "person": _guest()
    }
    payload.update(extra)
    return client.post("/api/reservations", json=payload, headers=headers)


JAN_10 = date(2025, 1, 10)
JAN_15 = date(2025, 1, 15)
JAN_20 = date(2025, 1, 20)


# ============================================================================
# HEALTH & ENUMS
# ============================================================================

class TestHealthAndEnums:

    @pytest.mark.api
    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.api
    def test_reservation_status_enum(self, client):
        response = client.get("/api/enums/reservation-status")
        assert "pending_verification" in response.json()["values"]

    @pytest.mark.api
    def test_room_status_enum(self, client):
        response = client.get("/api/enums/room-status")
        assert response.json()["values"] == ["Free", "Occupied", "Closed", "Deleted"]

    @pytest.mark.api
    def test_role_enum(self, client):
        response = client.get("/api/enums/role")
        assert response.json()["values"] == {"OPERATOR": 1, "ADMIN": 2}

    @pytest.mark.api
    def test_room_types_are_public(self, client):
        response = client.get("/api/room-types")
        assert response.status_code == 200
        assert len(response.json()) == 6
        assert response.json()[0]["label"] == "Parejas Estandar"


# ============================================================================
# AUTH
# ============================================================================

class TestAuth:

    @pytest.mark.api
    @pytest.mark.security
    def test_login_and_me(self, client, auth_headers):
        response = client.get("/users/me", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["email"] == settings.ADMIN_EMAIL
        assert response.json()["role"] == 2

    @pytest.mark.api
    @pytest.mark.security
    def test_wrong_password(self, client):
        response = client.post("/token", data={"username": settings.ADMIN_EMAIL, "password": "nope"})
        assert response.status_code == 401

    @pytest.mark.api
    @pytest.mark.security
    def test_missing_token(self, client):
        assert client.get("/api/reservations").status_code == 401

    @pytest.mark.api
    @pytest.mark.security
    def test_garbage_token(self, client):
        response = client.get("/api/reservations", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401

    @pytest.mark.api
    @pytest.mark.security
    def test_operator_cannot_use_admin_routes(self, client, operator_headers, room):
        assert client.get("/api/operators", headers=operator_headers).status_code == 403
        assert client.delete(f"/api/rooms/{room['room_id']}", headers=operator_headers).status_code == 403

    @pytest.mark.api
    @pytest.mark.security
    def test_operator_can_work_the_desk(self, client, operator_headers):
        created = _create_room(client, operator_headers)
        response = _staff_booking(client, operator_headers, created["room_id"], JAN_10, JAN_15)
        assert response.status_code == 201

    @pytest.mark.api
    @pytest.mark.security
    def test_deactivated_operator(self, client, auth_headers, operator_account, operator_headers):
        operator, password = operator_account
        response = client.delete(f"/api/operators/{operator['operator_id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["active"] is False

        # Existing token stops working as soon as storage says inactive
        assert client.get("/users/me", headers=operator_headers).status_code == 400
        login = client.post("/token", data={"username": operator["email"], "password": password})
        assert login.status_code == 403


# ============================================================================
# ROOMS
# ============================================================================

class TestRoomEndpoints:

    @pytest.mark.api
    def test_create_and_get(self, client, auth_headers, room):
        response = client.get(f"/api/rooms/{room['room_id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["active"] is True
        assert response.json()["available"] is True

    @pytest.mark.api
    def test_duplicate_name(self, client, auth_headers, room):
        response = client.post("/api/rooms", json={"name": room["name"], "room_type_id": 1}, headers=auth_headers)
        assert response.status_code == 400

    @pytest.mark.api
    def test_unknown_room(self, client, auth_headers):
        assert client.get("/api/rooms/999999", headers=auth_headers).status_code == 404

    @pytest.mark.api
    def test_update_and_notes(self, client, auth_headers, room):
        response = client.put(f"/api/rooms/{room['room_id']}", json={
            "name": room["name"] + "-B", "room_type_id": 3, "notes": "renovated"
        }, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["room_type_id"] == 3

        response = client.patch(f"/api/rooms/{room['room_id']}/notes", json={"notes": "AC broken"}, headers=auth_headers)
        assert response.json()["notes"] == "AC broken"

    @pytest.mark.api
    def test_block_twice(self, client, auth_headers, room):
        url = f"/api/rooms/{room['room_id']}/block"
        assert client.patch(url, headers=auth_headers).status_code == 200
        response = client.patch(url, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Room is already blocked"

    @pytest.mark.api
    def test_live_status(self, client, auth_headers, room):
        _staff_booking(client, auth_headers, room["room_id"], JAN_10, JAN_15)

        url = f"/api/rooms/{room['room_id']}/status"
        assert client.get(url, params={"as_of": "2025-01-12"}, headers=auth_headers).json()["status"] == "Occupied"
        assert client.get(url, params={"as_of": "2025-01-15"}, headers=auth_headers).json()["status"] == "Free"

        client.patch(f"/api/rooms/{room['room_id']}/deactivate", headers=auth_headers)
        assert client.get(url, params={"as_of": "2025-01-12"}, headers=auth_headers).json()["status"] == "Closed"

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_delete_wins_over_occupancy(self, client, auth_headers, room):
        _staff_booking(client, auth_headers, room["room_id"], JAN_10, JAN_15)
        response = client.delete(f"/api/rooms/{room['room_id']}", headers=auth_headers)
        assert response.status_code == 200

        status = client.get(
            f"/api/rooms/{room['room_id']}/status", params={"as_of": "2025-01-12"}, headers=auth_headers
        )
        assert status.json()["status"] == "Deleted"
        reactivate = client.patch(f"/api/rooms/{room['room_id']}/reactivate", headers=auth_headers)
        assert reactivate.status_code == 400

    @pytest.mark.api
    def test_all_statuses_and_summary(self, client, auth_headers, room):
        statuses = client.get("/api/rooms/status", headers=auth_headers)
        assert statuses.status_code == 200
        assert room["room_id"] in [s["room_id"] for s in statuses.json()]

        summary = client.get("/api/rooms/status/summary", headers=auth_headers)
        assert summary.status_code == 200
        assert set(summary.json()["counts"]) == {"Free", "Occupied", "Closed", "Deleted"}
        assert sum(summary.json()["counts"].values()) == len(statuses.json())

    @pytest.mark.api
    def test_room_reservations_filter(self, client, auth_headers, room):
        early = _public_booking(client, room["room_id"], JAN_10, JAN_15)
        late = _public_booking(client, room["room_id"], date(2025, 2, 1), date(2025, 2, 3))
        url = f"/api/rooms/{room['room_id']}/reservations"

        everything = client.get(url, headers=auth_headers).json()
        assert {r["reservation_id"] for r in everything} == {early["reservation_id"], late["reservation_id"]}

        # End date is inclusive: the 14th still overlaps [10, 15)
        selected = client.get(url, params={"start": "2025-01-14", "end": "2025-01-14"}, headers=auth_headers)
        assert [r["reservation_id"] for r in selected.json()] == [early["reservation_id"]]

        touching = client.get(url, params={"start": "2025-01-15", "end": "2025-01-20"}, headers=auth_headers)
        assert touching.json() == []

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_room_reservations_bad_filter(self, client, auth_headers, room):
        url = f"/api/rooms/{room['room_id']}/reservations"
        assert client.get(url, params={"start": "2025-01-14"}, headers=auth_headers).status_code == 400
        reversed_range = client.get(url, params={"start": "2025-01-14", "end": "2025-01-10"}, headers=auth_headers)
        assert reversed_range.status_code == 400


# ============================================================================
# RESERVATIONS
# ============================================================================

class TestPublicBooking:

    @pytest.mark.api
    def test_public_booking(self, client, auth_headers, room):
        booking = _public_booking(client, room["room_id"], JAN_10, JAN_15)
        assert booking["status"] == "pending_verification"

        detail = client.get(f"/api/reservations/{booking['reservation_id']}", headers=auth_headers).json()
        assert detail["booked_online"] is True
        assert detail["source"] == "ONLINE"
        assert detail["nights"] == 5

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_public_booking_invalid_dates(self, client, room):
        response = client.post("/api/reservations/public", json={
            **_guest(), "room_id": room["room_id"],
            "check_in": "2025-01-15", "check_out": "2025-01-10"
        })
        assert response.status_code == 400

    @pytest.mark.api
    def test_public_booking_missing_fields(self, client, room):
        response = client.post("/api/reservations/public", json={"room_id": room["room_id"]})
        assert response.status_code == 422

    @pytest.mark.api
    def test_public_booking_hides_storage_errors(self, client):
        class FailingReservationService:
            async def create_public_booking(self, **kwargs):
                raise PersistenceError("reservations table unavailable")

        app.dependency_overrides[get_reservation_service] = FailingReservationService
        try:
            response = client.post("/api/reservations/public", json={
                **_guest(), "room_id": 1, "check_in": "2025-01-10", "check_out": "2025-01-15"
            })
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        assert response.json()["detail"] == PUBLIC_FAILURE_MESSAGE

    @pytest.mark.api
    def test_landing_booking(self, client, auth_headers):
        created = _create_room(client, auth_headers, room_type_id=6)
        check_in = date.today() + timedelta(days=400)
        response = client.post("/api/reservations/landing", json={
            **_guest(),
            "room_type_id": 6,
            "check_in": check_in.isoformat(),
            "check_out": (check_in + timedelta(days=2)).isoformat()
        })
        assert response.status_code == 201, response.text
        assert response.json()["status"] == "pending_verification"

        rooms = client.get("/api/rooms", headers=auth_headers).json()
        type_of = {r["room_id"]: r["room_type_id"] for r in rooms}
        assert type_of[response.json()["room_id"]] == 6
        assert created["room_id"] in type_of

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_landing_booking_in_the_past(self, client):
        response = client.post("/api/reservations/landing", json={
            **_guest(), "room_type_id": 6,
            "check_in": "2020-01-10", "check_out": "2020-01-12"
        })
        assert response.status_code == 400

    @pytest.mark.api
    def test_availability_for_room_type(self, client, auth_headers):
        created = _create_room(client, auth_headers, room_type_id=5)
        _staff_booking(client, auth_headers, created["room_id"], date(2031, 3, 1), date(2031, 3, 4))

        response = client.get("/api/reservations/availability/5")
        assert response.status_code == 200
        assert response.json()["room_type_name"] == "Familiar Estandar"
        assert {"check_in": "2031-03-01", "check_out": "2031-03-04"} in response.json()["reservations"]

    @pytest.mark.api
    def test_availability_unknown_type(self, client):
        assert client.get("/api/reservations/availability/99").status_code == 404


class TestStaffBooking:

    @pytest.mark.api
    def test_staff_booking(self, client, auth_headers, room):
        response = _staff_booking(client, auth_headers, room["room_id"], JAN_10, JAN_15, notes="VIP")
        assert response.status_code == 201
        assert response.json()["status"] == "approved"

        me = client.get("/users/me", headers=auth_headers).json()
        detail = client.get(f"/api/reservations/{response.json()['reservation_id']}", headers=auth_headers).json()
        assert detail["created_by"] == me["operator_id"]
        assert detail["modified_by"] == me["operator_id"]
        assert detail["booked_online"] is False

    @pytest.mark.api
    def test_staff_booking_overlap(self, client, auth_headers, room):
        pending = _public_booking(client, room["room_id"], JAN_10, JAN_15)
        client.patch(f"/api/reservations/{pending['reservation_id']}/verify", headers=auth_headers)

        response = _staff_booking(client, auth_headers, room["room_id"], date(2025, 1, 12), JAN_20)
        assert response.status_code == 409

        reservations = client.get(f"/api/rooms/{room['room_id']}/reservations", headers=auth_headers).json()
        assert len(reservations) == 1

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_staff_booking_zero_nights(self, client, auth_headers, room):
        response = _staff_booking(client, auth_headers, room["room_id"], JAN_10, JAN_10)
        assert response.status_code == 400

    @pytest.mark.api
    def test_staff_booking_unknown_room(self, client, auth_headers):
        assert _staff_booking(client, auth_headers, 999999, JAN_10, JAN_15).status_code == 404

    @pytest.mark.api
    def test_staff_booking_existing_person(self, client, auth_headers, room):
        person = client.post("/api/persons", json=_guest()).json()
        response = client.post("/api/reservations", json={
            "room_id": room["room_id"], "check_in": "2025-01-10", "check_out": "2025-01-15",
            "person_id": person["person_id"]
        }, headers=auth_headers)
        assert response.status_code == 201
        assert response.json()["person_id"] == person["person_id"]


class TestReservationTransitions:

    @pytest.mark.api
    def test_full_flow(self, client, auth_headers, room):
        booking = _public_booking(client, room["room_id"], JAN_10, JAN_15)
        url = f"/api/reservations/{booking['reservation_id']}"

        verified = client.patch(f"{url}/verify", headers=auth_headers)
        assert verified.status_code == 200
        assert verified.json() == {
            "ok": True,
            "reservation_id": booking["reservation_id"],
            "status": "pending_payment",
            "message": "Reservation verified"
        }

        assert client.patch(f"{url}/approve", headers=auth_headers).json()["status"] == "approved"

        again = client.patch(f"{url}/approve", headers=auth_headers)
        assert again.status_code == 400
        assert again.json()["detail"] == "Reservation is already approved"

        assert client.patch(f"{url}/cancel", headers=auth_headers).json()["status"] == "cancelled"
        assert client.get(url, headers=auth_headers).json()["version"] == 4

    @pytest.mark.api
    def test_no_double_approval(self, client, auth_headers, room):
        _staff_booking(client, auth_headers, room["room_id"], JAN_10, JAN_15)
        overlapping = _public_booking(client, room["room_id"], date(2025, 1, 12), date(2025, 1, 14))
        following = _public_booking(client, room["room_id"], JAN_15, JAN_20)

        conflict = client.patch(f"/api/reservations/{overlapping['reservation_id']}/approve", headers=auth_headers)
        assert conflict.status_code == 409
        ok = client.patch(f"/api/reservations/{following['reservation_id']}/approve", headers=auth_headers)
        assert ok.status_code == 200

    @pytest.mark.api
    def test_reject_terminal(self, client, auth_headers, room):
        booking = _public_booking(client, room["room_id"], JAN_10, JAN_15)
        url = f"/api/reservations/{booking['reservation_id']}"
        assert client.patch(f"{url}/reject", headers=auth_headers).status_code == 200

        response = client.patch(f"{url}/verify", headers=auth_headers)
        assert response.status_code == 400
        assert client.get(url, headers=auth_headers).json()["status"] == "rejected"

    @pytest.mark.api
    def test_unknown_reservation(self, client, auth_headers):
        assert client.patch("/api/reservations/999999/cancel", headers=auth_headers).status_code == 404
        assert client.get("/api/reservations/999999", headers=auth_headers).status_code == 404

    @pytest.mark.api
    def test_list_reservations(self, client, auth_headers, room):
        booking = _public_booking(client, room["room_id"], JAN_10, JAN_15)
        reservations = client.get("/api/reservations", headers=auth_headers).json()
        assert reservations[0]["reservation_id"] == booking["reservation_id"]


# ============================================================================
# PERSONS & INQUIRIES
# ============================================================================

class TestPersonEndpoints:

    @pytest.mark.api
    def test_create_and_get(self, client, auth_headers):
        created = client.post("/api/persons", json=_guest(location="Lima"))
        assert created.status_code == 201

        fetched = client.get(f"/api/persons/{created.json()['person_id']}", headers=auth_headers)
        assert fetched.json()["location"] == "Lima"

    @pytest.mark.api
    def test_duplicate_email(self, client):
        guest = _guest()
        assert client.post("/api/persons", json=guest).status_code == 201
        assert client.post("/api/persons", json=guest).status_code == 400

    @pytest.mark.api
    @pytest.mark.security
    def test_listing_requires_staff(self, client, auth_headers):
        assert client.get("/api/persons").status_code == 401
        assert client.get("/api/persons", headers=auth_headers).status_code == 200


class TestInquiryEndpoints:

    @pytest.mark.api
    def test_create_and_resolve(self, client, auth_headers):
        created = client.post("/api/inquiries", json={**_guest(), "text": "Do you allow pets?"})
        assert created.status_code == 201
        assert created.json()["status"] == "pending"

        url = f"/api/inquiries/{created.json()['inquiry_id']}/resolve"
        resolved = client.patch(url, headers=auth_headers)
        assert resolved.status_code == 200
        assert resolved.json()["status"] == "resolved"
        assert client.patch(url, headers=auth_headers).status_code == 400

    @pytest.mark.api
    def test_listing(self, client, auth_headers):
        created = client.post("/api/inquiries", json={**_guest(), "text": "Parking?"}).json()
        inquiries = client.get("/api/inquiries", headers=auth_headers).json()
        assert created["inquiry_id"] in [i["inquiry_id"] for i in inquiries]


# ============================================================================
# OPERATORS
# ============================================================================

class TestOperatorEndpoints:

    @pytest.mark.api
    def test_create_list_get(self, client, auth_headers, operator_account):
        operator, _ = operator_account
        assert operator["role"] == 1
        assert "hashed_password" not in operator

        listing = client.get("/api/operators", headers=auth_headers).json()
        assert operator["operator_id"] in [o["operator_id"] for o in listing]
        assert all(o["role"] == 1 for o in listing)

        fetched = client.get(f"/api/operators/{operator['operator_id']}", headers=auth_headers)
        assert fetched.json()["email"] == operator["email"]

    @pytest.mark.api
    def test_duplicate_email(self, client, auth_headers, operator_account):
        operator, _ = operator_account
        response = client.post("/api/operators", json={
            "national_id": uuid4().hex[:10], "name": "Copy",
            "email": operator["email"], "password": "x"
        }, headers=auth_headers)
        assert response.status_code == 400

    @pytest.mark.api
    def test_admin_is_not_an_operator(self, client, auth_headers):
        me = client.get("/users/me", headers=auth_headers).json()
        assert client.get(f"/api/operators/{me['operator_id']}", headers=auth_headers).status_code == 404

    @pytest.mark.api
    def test_deactivate_and_reactivate(self, client, auth_headers, operator_account):
        operator, password = operator_account
        url = f"/api/operators/{operator['operator_id']}"
        assert client.delete(url, headers=auth_headers).status_code == 200
        assert client.delete(url, headers=auth_headers).status_code == 400

        reactivated = client.patch(f"{url}/reactivate", headers=auth_headers)
        assert reactivated.json()["active"] is True
        _login(client, operator["email"], password)

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from fastapi import status
from lodge.models import Reservation, ReservationStatus, UserRole, BLOCKING_STATUSES
from lodge.utils.notifications import RESERVATION_CREATED, RESERVATION_CANCELLED
from tests.conf_tests import (
    client,
    clear_db,
    test_db,
    test_user,
    auth_headers,
    test_room,
    settings,
    delivered,
    future,
    freeze_clock,
    make_user,
    headers_for,
    make_room,
    make_reservation,
    booking_payload,
)


# Tests
# pylint: disable-next=redefined-outer-name
def test_create_reservation_success(test_room, test_db):
    response = client.post("/reservations", json=booking_payload(test_room.id, future(10), future(13)))
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["message"] == "Reservation created successfully"
    assert data["confirmationNumber"].startswith("MB")
    assert len(data["confirmationNumber"]) == 10

    reservation = data["reservation"]
    assert reservation["confirmationNumber"] == data["confirmationNumber"]
    assert reservation["status"] == "PENDING"
    assert reservation["paymentStatus"] == "PENDING"
    assert reservation["nights"] == 3
    assert Decimal(str(reservation["totalAmount"])) == Decimal("447.00")
    assert reservation["guestFirstName"] == "Jane"
    assert reservation["guestZipCode"] == "85927"
    assert reservation["specialRequests"] == "Late arrival"
    assert reservation["room"]["id"] == test_room.id

    stored = test_db.query(Reservation).filter(Reservation.confirmation_number == data["confirmationNumber"]).one()
    assert stored.total_amount == Decimal("447.00")


# pylint: disable-next=redefined-outer-name
def test_create_reservation_sends_confirmation(test_room):
    response = client.post("/reservations", json=booking_payload(test_room.id, future(10), future(12)))
    assert response.status_code == status.HTTP_201_CREATED
    assert [event.kind for event in delivered] == [RESERVATION_CREATED]
    assert delivered[0].reservation["confirmation_number"] == response.json()["confirmationNumber"]
    assert delivered[0].reservation["guest_email"] == "jane@example.com"


# pylint: disable-next=redefined-outer-name
def test_create_reservation_missing_fields(test_room):
    payload = booking_payload(test_room.id, future(10), future(12))
    del payload["guestInfo"]
    response = client.post("/reservations", json=payload)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Missing required fields"


# pylint: disable-next=redefined-outer-name
def test_create_reservation_invalid_guest_email(test_room):
    payload = booking_payload(test_room.id, future(10), future(12))
    payload["guestInfo"] = {**payload["guestInfo"], "email": "not-an-email"}
    response = client.post("/reservations", json=payload)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["errors"][0]["field"] == "guestInfo.email"


@pytest.mark.parametrize("offset", [0, -1])
# pylint: disable-next=redefined-outer-name
def test_create_reservation_checkout_not_after_checkin(test_room, offset):
    check_in = future(10)
    response = client.post("/reservations", json=booking_payload(test_room.id, check_in, check_in + timedelta(days=offset)))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Check-out date must be after check-in date"


# pylint: disable-next=redefined-outer-name
def test_create_reservation_in_the_past(test_room):
    response = client.post("/reservations", json=booking_payload(test_room.id, future(-1), future(2)))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Check-in date cannot be in the past"


# pylint: disable-next=redefined-outer-name
def test_create_reservation_today_late_in_the_day(test_room):
    freeze_clock(datetime.combine(future(0), datetime.min.time()) + timedelta(hours=23))
    response = client.post("/reservations", json=booking_payload(test_room.id, future(0), future(1)))
    assert response.status_code == status.HTTP_201_CREATED


def test_create_reservation_room_not_found():
    response = client.post("/reservations", json=booking_payload(9999, future(10), future(12)))
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["message"] == "Room not found or not available"


# pylint: disable-next=redefined-outer-name
def test_create_reservation_inactive_room(test_db):
    room = make_room(test_db, is_active=False)
    response = client.post("/reservations", json=booking_payload(room.id, future(10), future(12)))
    assert response.status_code == status.HTTP_404_NOT_FOUND


# pylint: disable-next=redefined-outer-name
def test_create_reservation_capacity_exceeded(test_room):
    response = client.post("/reservations", json=booking_payload(test_room.id, future(10), future(12), guests=3))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Number of guests exceeds room capacity"


# pylint: disable-next=redefined-outer-name
def test_create_reservation_overlapping(test_room, test_db):
    make_reservation(test_db, test_room, future(10), future(12))

    response = client.post("/reservations", json=booking_payload(test_room.id, future(11), future(13)))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Room is not available for the selected dates"

    response = client.post("/reservations", json=booking_payload(test_room.id, future(12), future(14)))
    assert response.status_code == status.HTTP_201_CREATED


# pylint: disable-next=redefined-outer-name
def test_get_by_confirmation(test_room, test_db):
    reservation = make_reservation(test_db, test_room, future(10), future(12))
    response = client.get(f"/reservations/confirmation/{reservation.confirmation_number}")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["id"] == reservation.id


def test_get_by_confirmation_not_found():
    response = client.get("/reservations/confirmation/MB00000000")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["message"] == "Reservation not found"


# pylint: disable-next=redefined-outer-name
def test_guest_cancel_success(test_room, test_db):
    reservation = make_reservation(test_db, test_room, future(10), future(12))
    response = client.patch(f"/reservations/confirmation/{reservation.confirmation_number}", json={"status": "cancelled"})
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["reservation"]["status"] == "CANCELLED"
    assert [event.kind for event in delivered] == [RESERVATION_CANCELLED]


# pylint: disable-next=redefined-outer-name
def test_guest_cancel_lead_time(test_room, test_db):
    check_in = future(10)
    midnight = datetime.combine(check_in, datetime.min.time())
    soon = make_reservation(test_db, test_room, check_in, future(12))

    freeze_clock(midnight - timedelta(hours=23))
    response = client.patch(f"/reservations/confirmation/{soon.confirmation_number}", json={"status": "cancelled"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == (
        "Cancellation not allowed within 24 hours of check-in. Please call the lodge."
    )

    freeze_clock(midnight - timedelta(hours=25))
    response = client.patch(f"/reservations/confirmation/{soon.confirmation_number}", json={"status": "cancelled"})
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["reservation"]["status"] == "CANCELLED"


@pytest.mark.parametrize("requested", ["confirmed", "CANCELLED", "completed"])
# pylint: disable-next=redefined-outer-name
def test_guest_can_only_cancel(test_room, test_db, requested):
    reservation = make_reservation(test_db, test_room, future(10), future(12))
    response = client.patch(f"/reservations/confirmation/{reservation.confirmation_number}", json={"status": requested})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Guests can only cancel reservations"


@pytest.mark.parametrize(
    "current, message",
    [
        (ReservationStatus.CANCELLED, "Reservation is already cancelled"),
        (ReservationStatus.COMPLETED, "Cannot cancel completed reservation"),
    ],
)
# pylint: disable-next=redefined-outer-name
def test_guest_cancel_rejected_states(test_room, test_db, current, message):
    reservation = make_reservation(test_db, test_room, future(10), future(12), status=current)
    response = client.patch(f"/reservations/confirmation/{reservation.confirmation_number}", json={"status": "cancelled"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == message


def test_guest_cancel_not_found():
    response = client.patch("/reservations/confirmation/MB00000000", json={"status": "cancelled"})
    assert response.status_code == status.HTTP_404_NOT_FOUND


# pylint: disable-next=redefined-outer-name
def test_list_reservations_requires_staff(test_room):
    assert client.get("/reservations").status_code == status.HTTP_401_UNAUTHORIZED


# pylint: disable-next=redefined-outer-name
def test_list_reservations_rejects_inactive_user(test_db):
    user = make_user(test_db)
    headers = headers_for(user)
    user.is_active = False
    test_db.commit()
    response = client.get("/reservations", headers=headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["message"] == "Invalid or inactive user"


# pylint: disable-next=redefined-outer-name
def test_list_reservations_filters(auth_headers, test_room, test_db):
    first = make_reservation(test_db, test_room, future(10), future(12))
    second = make_reservation(test_db, test_room, future(20), future(22), status=ReservationStatus.PENDING)

    data = client.get("/reservations", headers=auth_headers).json()
    assert [r["id"] for r in data] == [second.id, first.id]

    data = client.get("/reservations", params={"status": "pending"}, headers=auth_headers).json()
    assert [r["id"] for r in data] == [second.id]

    params = {"startDate": future(9).isoformat(), "endDate": future(15).isoformat()}
    data = client.get("/reservations", params=params, headers=auth_headers).json()
    assert [r["id"] for r in data] == [first.id]


# pylint: disable-next=redefined-outer-name
def test_list_reservations_bad_status(auth_headers):
    response = client.get("/reservations", params={"status": "lost"}, headers=auth_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


# pylint: disable-next=redefined-outer-name
def test_get_reservation(auth_headers, test_room, test_db):
    reservation = make_reservation(test_db, test_room, future(10), future(12))
    response = client.get(f"/reservations/{reservation.id}", headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["confirmationNumber"] == reservation.confirmation_number
    assert client.get("/reservations/9999", headers=auth_headers).status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.parametrize(
    "requested, stored",
    [("confirmed", "CONFIRMED"), ("no-show", "NO_SHOW"), ("Completed", "COMPLETED")],
)
# pylint: disable-next=redefined-outer-name
def test_admin_update_normalizes_status(auth_headers, test_room, test_db, requested, stored):
    reservation = make_reservation(test_db, test_room, future(10), future(12), status=ReservationStatus.PENDING)
    response = client.put(f"/reservations/{reservation.id}", json={"status": requested}, headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == stored


# pylint: disable-next=redefined-outer-name
def test_admin_update_payment_status(auth_headers, test_room, test_db):
    reservation = make_reservation(test_db, test_room, future(10), future(12))
    response = client.put(f"/reservations/{reservation.id}", json={"paymentStatus": "paid"}, headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["paymentStatus"] == "PAID"


# pylint: disable-next=redefined-outer-name
def test_admin_update_invalid_status(auth_headers, test_room, test_db):
    reservation = make_reservation(test_db, test_room, future(10), future(12))
    response = client.put(f"/reservations/{reservation.id}", json={"status": "lost"}, headers=auth_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


# pylint: disable-next=redefined-outer-name
def test_admin_update_moves_dates_without_overlap_check(auth_headers, test_room, test_db):
    make_reservation(test_db, test_room, future(10), future(12))
    other = make_reservation(test_db, test_room, future(20), future(22))
    move = {"checkIn": future(11).isoformat(), "checkOut": future(13).isoformat()}

    response = client.put(f"/reservations/{other.id}", json=move, headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["checkIn"] == future(11).isoformat()


# pylint: disable-next=redefined-outer-name
def test_admin_update_overlap_check_enabled(auth_headers, test_room, test_db):
    settings.admin_update_checks_overlap = True
    make_reservation(test_db, test_room, future(10), future(12))
    other = make_reservation(test_db, test_room, future(20), future(22))

    move = {"checkIn": future(11).isoformat(), "checkOut": future(13).isoformat()}
    response = client.put(f"/reservations/{other.id}", json=move, headers=auth_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Room is not available for the selected dates"

    # shortening a stay only overlaps itself
    response = client.put(f"/reservations/{other.id}", json={"checkOut": future(21).isoformat()}, headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK


@pytest.mark.parametrize("previous", [ReservationStatus.CANCELLED, ReservationStatus.COMPLETED, ReservationStatus.NO_SHOW])
# pylint: disable-next=redefined-outer-name
def test_admin_update_reactivation_checks_overlap(auth_headers, test_room, test_db, previous):
    settings.admin_update_checks_overlap = True
    make_reservation(test_db, test_room, future(10), future(12))
    released = make_reservation(test_db, test_room, future(10), future(12), status=previous)

    response = client.put(f"/reservations/{released.id}", json={"status": "confirmed"}, headers=auth_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Room is not available for the selected dates"

    test_db.expire_all()
    assert test_db.get(Reservation, released.id).status == previous
    held = (
        test_db.query(Reservation)
        .filter(Reservation.room_id == test_room.id, Reservation.status.in_(BLOCKING_STATUSES))
        .count()
    )
    assert held == 1


# pylint: disable-next=redefined-outer-name
def test_admin_update_reactivation_on_free_nights(auth_headers, test_room, test_db):
    settings.admin_update_checks_overlap = True
    make_reservation(test_db, test_room, future(10), future(12))
    released = make_reservation(test_db, test_room, future(12), future(14), status=ReservationStatus.CANCELLED)

    response = client.put(f"/reservations/{released.id}", json={"status": "pending"}, headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "PENDING"


# pylint: disable-next=redefined-outer-name
def test_admin_update_status_only_on_held_reservation(auth_headers, test_room, test_db):
    settings.admin_update_checks_overlap = True
    reservation = make_reservation(test_db, test_room, future(10), future(12), status=ReservationStatus.PENDING)

    response = client.put(f"/reservations/{reservation.id}", json={"status": "confirmed"}, headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "CONFIRMED"


# pylint: disable-next=redefined-outer-name
def test_admin_update_rejects_inverted_range(auth_headers, test_room, test_db):
    reservation = make_reservation(test_db, test_room, future(10), future(12))
    response = client.put(f"/reservations/{reservation.id}", json={"checkOut": future(9).isoformat()}, headers=auth_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


# pylint: disable-next=redefined-outer-name
def test_delete_reservation(auth_headers, test_room, test_db):
    reservation_id = make_reservation(test_db, test_room, future(10), future(12)).id
    response = client.delete(f"/reservations/{reservation_id}", headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["message"] == "Reservation deleted successfully"
    test_db.expire_all()
    assert test_db.get(Reservation, reservation_id) is None
    assert client.delete(f"/reservations/{reservation_id}", headers=auth_headers).status_code == status.HTTP_404_NOT_FOUND


# pylint: disable-next=redefined-outer-name
def test_stats(auth_headers, test_room, test_db):
    make_reservation(test_db, test_room, future(10), future(13))
    make_reservation(test_db, test_room, future(20), future(21), status=ReservationStatus.CANCELLED)
    response = client.get("/reservations/admin/stats", headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["totalReservations"] == 2
    assert data["confirmedReservations"] == 1
    assert data["totalRevenue"] == 447.0
    assert data["totalRooms"] == 1
    assert data["occupancyRate"] == 100.0

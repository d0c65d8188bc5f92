import pytest
from datetime import date, datetime
from fastapi import status
from lodge.models import RoomCategory, ReservationStatus
from tests.conf_tests import (
    client,
    clear_db,
    test_db,
    test_user,
    auth_headers,
    freeze_clock,
    make_room,
    make_reservation,
)

TODAY = datetime(2030, 6, 15, 10, 0)
IN_MONTH = datetime(2030, 6, 14, 9, 0)


def jun(day):
    return date(2030, 6, day)


@pytest.fixture
def lodge_data(test_db):
    freeze_clock(TODAY)
    historic = make_room(test_db, "101", capacity=2, base_price="149.00")
    suite = make_room(test_db, "201", capacity=4, base_price="199.00", category=RoomCategory.MOUNTAIN_VIEW)
    make_room(test_db, "301", capacity=8, base_price="249.00", category=RoomCategory.FAMILY_CABIN, is_active=False)
    return {
        "arriving": make_reservation(test_db, historic, jun(15), jun(17), created_at=IN_MONTH),
        "leaving": make_reservation(
            test_db, suite, jun(13), jun(15), status=ReservationStatus.COMPLETED, created_at=IN_MONTH
        ),
        "pending": make_reservation(
            test_db, suite, jun(15), jun(16), status=ReservationStatus.PENDING, created_at=IN_MONTH
        ),
        "cancelled": make_reservation(
            test_db, historic, jun(20), jun(22), status=ReservationStatus.CANCELLED, created_at=IN_MONTH
        ),
        "last_month": make_reservation(
            test_db, suite, date(2030, 5, 30), jun(2), created_at=datetime(2030, 5, 1)
        ),
    }


# Tests
def test_admin_requires_staff():
    assert client.get("/admin/dashboard").status_code == status.HTTP_401_UNAUTHORIZED
    assert client.get("/admin/calendar/2030/6").status_code == status.HTTP_401_UNAUTHORIZED


# pylint: disable-next=redefined-outer-name
def test_dashboard(auth_headers, lodge_data):
    response = client.get("/admin/dashboard", headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["overview"] == {
        "totalRooms": 3,
        "activeRooms": 2,
        "currentGuests": 1,
        "occupancyRate": "50.0%",
    }
    assert data["today"] == {"checkIns": 2, "checkOuts": 1}
    assert data["monthly"] == {"reservations": 3, "revenue": 696.0}
    assert len(data["recentReservations"]) == 5


# pylint: disable-next=redefined-outer-name
def test_calendar(auth_headers, lodge_data):
    response = client.get("/admin/calendar/2030/6", headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    days = response.json()
    assert len(days) == 30
    assert list(days)[0] == "2030-06-01"

    arriving = lodge_data["arriving"].id
    last_month = lodge_data["last_month"].id

    def ids(day, bucket):
        return {r["id"] for r in days[day][bucket]}

    assert arriving in ids("2030-06-15", "checkIns")
    assert ids("2030-06-15", "currentGuests") == {arriving, lodge_data["pending"].id}
    assert ids("2030-06-16", "currentGuests") == {arriving}
    assert ids("2030-06-17", "checkOuts") == {arriving}
    assert ids("2030-06-17", "currentGuests") == set()

    assert ids("2030-06-01", "currentGuests") == {last_month}
    assert ids("2030-06-02", "checkOuts") == {last_month}
    assert all(last_month not in ids(day, "checkIns") for day in days)

    cancelled = lodge_data["cancelled"].id
    assert all(cancelled not in ids(day, "currentGuests") for day in days)


@pytest.mark.parametrize("year,month", [(2030, 13), (2030, 0), (0, 6), (10000, 1)])
# pylint: disable-next=redefined-outer-name
def test_calendar_invalid_month(auth_headers, year, month):
    response = client.get(f"/admin/calendar/{year}/{month}", headers=auth_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Invalid year or month"


# pylint: disable-next=redefined-outer-name
def test_reservation_report(auth_headers, lodge_data):
    response = client.get("/admin/reports/reservations", headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    summary = response.json()["summary"]
    assert summary["totalReservations"] == 5
    assert summary["statusBreakdown"] == {"CONFIRMED": 2, "COMPLETED": 1, "PENDING": 1, "CANCELLED": 1}
    # 2 + 2 + 1 + 2 + 3 nights
    assert summary["averageStay"] == 2.0


# pylint: disable-next=redefined-outer-name
def test_reservation_report_filters(auth_headers, lodge_data):
    params = {"startDate": "2030-06-01", "endDate": "2030-06-30", "status": "confirmed", "roomType": "historic"}
    response = client.get("/admin/reports/reservations", params=params, headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert [r["id"] for r in data["reservations"]] == [lodge_data["arriving"].id]
    assert data["summary"]["totalRevenue"] == 298.0


# pylint: disable-next=redefined-outer-name
def test_reservation_report_bad_room_type(auth_headers):
    response = client.get("/admin/reports/reservations", params={"roomType": "igloo"}, headers=auth_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


# pylint: disable-next=redefined-outer-name
def test_financial_report(auth_headers, lodge_data):
    response = client.get("/admin/reports/financial", headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["totalRevenue"] == 1293.0
    assert data["totalReservations"] == 3
    assert data["averageReservationValue"] == 431.0
    assert data["revenueByMonth"] == [
        {"month": "2030-05", "revenue": 597.0, "reservations": 1},
        {"month": "2030-06", "revenue": 696.0, "reservations": 2},
    ]
    assert data["revenueByRoomType"] == [
        {"category": "HISTORIC", "revenue": 298.0, "reservations": 1},
        {"category": "MOUNTAIN_VIEW", "revenue": 995.0, "reservations": 2},
    ]


# pylint: disable-next=redefined-outer-name
def test_financial_report_date_range(auth_headers, lodge_data):
    params = {"startDate": "2030-06-01", "endDate": "2030-06-30"}
    data = client.get("/admin/reports/financial", params=params, headers=auth_headers).json()
    assert data["totalRevenue"] == 696.0
    assert data["totalReservations"] == 2

from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from lodge.db import get_db
from lodge.utils import reports
from lodge.utils.auth import STAFF_OR_ADMIN
from lodge.utils.booking import get_clock


router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(STAFF_OR_ADMIN)],
)


@router.get("/dashboard")
def get_dashboard(db: Session = Depends(get_db), now=Depends(get_clock)):
    """
    Today's arrivals and departures, current occupancy, this month's
    reservations and revenue, and the most recent bookings.
    """
    return reports.dashboard(db, now().date())


@router.get("/calendar/{year}/{month}")
def get_calendar(year: int, month: int, db: Session = Depends(get_db)):
    """
    One entry per day of the month with the reservations checking in,
    checking out and staying that night.
    """
    return reports.calendar_month(db, year, month)


@router.get("/reports/reservations")
def get_reservation_report(
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    end_date: Optional[date] = Query(default=None, alias="endDate"),
    status: Optional[str] = None,
    room_type: Optional[str] = Query(default=None, alias="roomType"),
    db: Session = Depends(get_db),
):
    return reports.reservation_report(db, start_date, end_date, status, room_type)


@router.get("/reports/financial")
def get_financial_report(
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    end_date: Optional[date] = Query(default=None, alias="endDate"),
    db: Session = Depends(get_db),
):
    """
    Revenue of confirmed and completed reservations, by month and by room category.
    """
    return reports.financial_report(db, start_date, end_date)

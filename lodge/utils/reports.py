import calendar
import logging
from collections import Counter, defaultdict
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload
from lodge.models import Room, RoomCategory, Reservation, ReservationStatus, REVENUE_STATUSES
from lodge.schemas.reservation import ReservationResponse
from lodge.utils.booking import count_nights
from lodge.utils.errors import ValidationFailed
from lodge.utils.validation_helpers import normalize_status, normalize_category


logger = logging.getLogger(__name__)

CALENDAR_STATUSES = (ReservationStatus.PENDING, ReservationStatus.CONFIRMED, ReservationStatus.COMPLETED)
ARRIVING_STATUSES = (ReservationStatus.PENDING, ReservationStatus.CONFIRMED)
RECENT_LIMIT = 10


def dump(reservation):
    return ReservationResponse.model_validate(reservation).model_dump(mode="json", by_alias=True)


def month_bounds(year, month):
    """First and last day of a month; ValidationFailed for an impossible month."""
    if not 1 <= month <= 12 or not date.min.year <= year <= date.max.year:
        raise ValidationFailed("Invalid year or month")
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def _count(db, *criteria):
    return db.query(func.count(Reservation.id)).filter(*criteria).scalar()


def dashboard(db: Session, today: date):
    start_of_month, end_of_month = month_bounds(today.year, today.month)

    total_rooms = db.query(func.count(Room.id)).scalar()
    active_rooms = db.query(func.count(Room.id)).filter(Room.is_active.is_(True)).scalar()
    check_ins = _count(db, Reservation.check_in == today, Reservation.status.in_(ARRIVING_STATUSES))
    check_outs = _count(db, Reservation.check_out == today, Reservation.status.in_(REVENUE_STATUSES))
    current_guests = _count(
        db,
        Reservation.check_in <= today,
        Reservation.check_out > today,
        Reservation.status.in_(REVENUE_STATUSES),
    )
    monthly_reservations = _count(
        db,
        Reservation.created_at >= datetime.combine(start_of_month, time.min),
        Reservation.status != ReservationStatus.CANCELLED,
    )
    monthly_revenue = (
        db.query(func.sum(Reservation.total_amount))
        .filter(
            Reservation.check_in >= start_of_month,
            Reservation.check_in <= end_of_month,
            Reservation.status.in_(REVENUE_STATUSES),
        )
        .scalar()
    )
    recent = (
        db.query(Reservation)
        .options(joinedload(Reservation.room))
        .order_by(Reservation.created_at.desc(), Reservation.id.desc())
        .limit(RECENT_LIMIT)
        .all()
    )

    occupancy = current_guests / active_rooms * 100 if active_rooms else 0
    return {
        "overview": {
            "totalRooms": total_rooms,
            "activeRooms": active_rooms,
            "currentGuests": current_guests,
            "occupancyRate": f"{occupancy:.1f}%",
        },
        "today": {"checkIns": check_ins, "checkOuts": check_outs},
        "monthly": {"reservations": monthly_reservations, "revenue": float(monthly_revenue or 0)},
        "recentReservations": [dump(r) for r in recent],
    }


def calendar_month(db: Session, year: int, month: int):
    """Bucket a month's reservations per day into check-ins, check-outs and occupying guests."""
    first, last = month_bounds(year, month)
    days = {}
    for offset in range((last - first).days + 1):
        day = first + timedelta(days=offset)
        days[day.isoformat()] = {"checkIns": [], "checkOuts": [], "currentGuests": []}

    reservations = (
        db.query(Reservation)
        .options(joinedload(Reservation.room))
        .filter(
            Reservation.check_in <= last,
            Reservation.check_out >= first,
            Reservation.status.in_(CALENDAR_STATUSES),
        )
        .order_by(Reservation.check_in)
        .all()
    )

    for reservation in reservations:
        data = dump(reservation)
        if first <= reservation.check_in <= last:
            days[reservation.check_in.isoformat()]["checkIns"].append(data)
        if first <= reservation.check_out <= last:
            days[reservation.check_out.isoformat()]["checkOuts"].append(data)
        start = max(reservation.check_in, first)
        stop = min(reservation.check_out - timedelta(days=1), last)
        for offset in range((stop - start).days + 1):
            days[(start + timedelta(days=offset)).isoformat()]["currentGuests"].append(data)

    logger.debug(f"Calendar {year}-{month:02d}: {len(reservations)} reservations")
    return days


def _date_range(query, start_date, end_date):
    if start_date:
        query = query.filter(Reservation.check_in >= start_date)
    if end_date:
        query = query.filter(Reservation.check_in <= end_date)
    return query


def reservation_report(db: Session, start_date=None, end_date=None, status=None, room_type=None):
    query = _date_range(db.query(Reservation).options(joinedload(Reservation.room)), start_date, end_date)
    try:
        if status:
            query = query.filter(Reservation.status == normalize_status(status))
        if room_type:
            category = RoomCategory(normalize_category(room_type))
            query = query.join(Reservation.room).filter(Room.category == category)
    except ValueError as e:
        raise ValidationFailed(str(e))

    reservations = query.order_by(Reservation.check_in.desc()).all()
    count = len(reservations)
    revenue = sum((r.total_amount for r in reservations), Decimal("0"))
    nights = sum(count_nights(r.check_in, r.check_out) for r in reservations)
    breakdown = Counter(r.status.value for r in reservations)

    return {
        "reservations": [dump(r) for r in reservations],
        "summary": {
            "totalReservations": count,
            "totalRevenue": float(revenue),
            "averageStay": round(nights / count, 1) if count else 0,
            "statusBreakdown": dict(breakdown),
        },
    }


def financial_report(db: Session, start_date=None, end_date=None):
    query = (
        db.query(Reservation)
        .options(joinedload(Reservation.room))
        .filter(Reservation.status.in_(REVENUE_STATUSES))
    )
    reservations = _date_range(query, start_date, end_date).all()

    by_month = defaultdict(lambda: [Decimal("0"), 0])
    by_type = defaultdict(lambda: [Decimal("0"), 0])
    total = Decimal("0")
    for reservation in reservations:
        total += reservation.total_amount
        month = by_month[reservation.check_in.strftime("%Y-%m")]
        month[0] += reservation.total_amount
        month[1] += 1
        kind = by_type[reservation.room.category.value]
        kind[0] += reservation.total_amount
        kind[1] += 1

    count = len(reservations)
    return {
        "totalRevenue": float(total),
        "totalReservations": count,
        "averageReservationValue": round(float(total) / count, 2) if count else 0,
        "revenueByMonth": [
            {"month": month, "revenue": float(revenue), "reservations": n}
            for month, (revenue, n) in sorted(by_month.items())
        ],
        "revenueByRoomType": [
            {"category": category, "revenue": float(revenue), "reservations": n}
            for category, (revenue, n) in sorted(by_type.items())
        ],
    }

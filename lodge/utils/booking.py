import math
import logging
from datetime import datetime, date, time, timedelta
from decimal import Decimal
from typing import Optional
from fastapi import Depends, Request
from sqlalchemy import func, select
from sqlalchemy.orm import Session, joinedload
from lodge.db import get_db
from lodge.models import Room, Reservation, ReservationStatus, BLOCKING_STATUSES, REVENUE_STATUSES
from lodge.utils.errors import ValidationFailed, Conflict, NotFound
from lodge.utils.notifications import ReservationEvent, RESERVATION_CREATED, RESERVATION_CANCELLED, snapshot
from lodge.utils.validation_helpers import normalize_status, normalize_payment_status


logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
CODE_ATTEMPTS = 5

REQUIRED_GUEST_FIELDS = ("first_name", "last_name", "email", "phone")
UPDATABLE_FIELDS = {
    "room_id",
    "check_in",
    "check_out",
    "guests",
    "total_amount",
    "status",
    "payment_status",
    "special_requests",
    "guest_first_name",
    "guest_last_name",
    "guest_email",
    "guest_phone",
    "guest_street",
    "guest_city",
    "guest_state",
    "guest_zip_code",
}


def overlapping_filter(check_in, check_out):
    """Half-open overlap against [check_in, check_out) for room-holding reservations."""
    return (
        Reservation.status.in_(BLOCKING_STATUSES),
        Reservation.check_in < check_out,
        Reservation.check_out > check_in,
    )


def find_overlapping(db: Session, room_id: int, check_in, check_out, exclude_id: Optional[int] = None):
    query = db.query(Reservation).filter(Reservation.room_id == room_id, *overlapping_filter(check_in, check_out))
    if exclude_id is not None:
        query = query.filter(Reservation.id != exclude_id)
    return query.first()


def count_nights(check_in, check_out):
    return math.ceil((check_out - check_in) / timedelta(days=1))


def compute_total(nights, base_price):
    return (Decimal(nights) * Decimal(str(base_price))).quantize(CENTS)


def validate_date_range(check_in, check_out, today: date):
    if check_in >= check_out:
        raise ValidationFailed("Check-out date must be after check-in date")
    if check_in < today:
        raise ValidationFailed("Check-in date cannot be in the past")


class ReservationEngine:
    """
    Reservation lifecycle for one request.

    The session is request scoped; the lock, code generator and notifier are
    shared by the whole application. Overlap check and insert happen under the
    lock and inside a single commit, so two concurrent requests in this
    process cannot both book the same nights.
    """

    def __init__(self, db: Session, settings, notifier, codes, lock, now=datetime.now):
        self.db = db
        self.settings = settings
        self.notifier = notifier
        self.codes = codes
        self.lock = lock
        self.now = now

    def today(self) -> date:
        return self.now().date()

    def _notify(self, kind, reservation):
        try:
            self.notifier.submit(ReservationEvent(kind=kind, reservation=snapshot(reservation)))
        except Exception:
            logger.exception(f"Failed to queue {kind} notification for {reservation.confirmation_number}")

    def _unique_code(self):
        for _ in range(CODE_ATTEMPTS):
            code = self.codes.generate()
            exists = self.db.query(Reservation.id).filter(Reservation.confirmation_number == code).first()
            if not exists:
                return code
            logger.warning(f"Confirmation number collision: {code}")
        raise Conflict("Could not allocate a confirmation number, please retry")

    def get_room(self, room_id: int) -> Room:
        room = self.db.get(Room, room_id)
        if not room:
            raise NotFound("Room not found")
        return room

    def create(self, room_id, check_in, check_out, guests, guest_info, special_requests=None) -> Reservation:
        logger.debug(f"Creating reservation for room_id: {room_id}, {check_in} to {check_out}, guests: {guests}")

        guest_info = guest_info or {}
        if (
            not room_id
            or not check_in
            or not check_out
            or not guests
            or not all(guest_info.get(key) for key in REQUIRED_GUEST_FIELDS)
        ):
            raise ValidationFailed("Missing required fields")

        validate_date_range(check_in, check_out, self.today())

        room = self.db.get(Room, room_id)
        if not room or not room.is_active:
            logger.error(f"Room not found or inactive: {room_id}")
            raise NotFound("Room not found or not available")

        if guests > room.capacity:
            logger.error(f"Room capacity exceeded: {guests} > {room.capacity}")
            raise Conflict("Number of guests exceeds room capacity")

        nights = count_nights(check_in, check_out)
        total_amount = compute_total(nights, room.base_price)
        address = guest_info.get("address") or {}

        with self.lock:
            if find_overlapping(self.db, room_id, check_in, check_out):
                logger.error(f"Overlapping reservation for room_id: {room_id}, {check_in} to {check_out}")
                raise Conflict("Room is not available for the selected dates")

            reservation = Reservation(
                confirmation_number=self._unique_code(),
                guest_first_name=guest_info["first_name"],
                guest_last_name=guest_info["last_name"],
                guest_email=guest_info["email"],
                guest_phone=guest_info["phone"],
                guest_street=address.get("street"),
                guest_city=address.get("city"),
                guest_state=address.get("state"),
                guest_zip_code=address.get("zip_code"),
                room_id=room_id,
                check_in=check_in,
                check_out=check_out,
                guests=guests,
                total_amount=total_amount,
                special_requests=special_requests or "",
                status=ReservationStatus.PENDING,
            )
            self.db.add(reservation)
            try:
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise
        self.db.refresh(reservation)

        logger.info(f"Created reservation {reservation.confirmation_number}: {nights} nights, total {total_amount}")
        self._notify(RESERVATION_CREATED, reservation)
        return reservation

    def check_availability(self, room_id, check_in, check_out) -> bool:
        return find_overlapping(self.db, room_id, check_in, check_out) is None

    def list_available(self, check_in, check_out, min_capacity=None):
        booked = select(Reservation.room_id).where(*overlapping_filter(check_in, check_out))
        query = self.db.query(Room).filter(Room.is_active.is_(True), Room.id.not_in(booked))
        if min_capacity:
            query = query.filter(Room.capacity >= min_capacity)
        rooms = query.order_by(Room.category, Room.base_price).all()
        logger.debug(f"{len(rooms)} rooms available for {check_in} to {check_out}")
        return rooms

    def get(self, reservation_id: int) -> Reservation:
        reservation = self.db.get(Reservation, reservation_id)
        if not reservation:
            raise NotFound("Reservation not found")
        return reservation

    def get_by_confirmation(self, code: str) -> Reservation:
        reservation = (
            self.db.query(Reservation)
            .options(joinedload(Reservation.room))
            .filter(Reservation.confirmation_number == code)
            .first()
        )
        if not reservation:
            raise NotFound("Reservation not found")
        return reservation

    def list(self, status=None, start_date=None, end_date=None, room_id=None):
        query = self.db.query(Reservation).options(joinedload(Reservation.room))
        if status:
            query = query.filter(Reservation.status == normalize_status(status))
        if start_date:
            query = query.filter(Reservation.check_in >= start_date)
        if end_date:
            query = query.filter(Reservation.check_in <= end_date)
        if room_id:
            query = query.filter(Reservation.room_id == room_id)
        return query.order_by(Reservation.check_in.desc()).all()

    def cancel_by_confirmation(self, code: str, requested_status) -> Reservation:
        if requested_status != "cancelled":
            raise ValidationFailed("Guests can only cancel reservations")

        reservation = self.get_by_confirmation(code)
        if reservation.status == ReservationStatus.CANCELLED:
            raise Conflict("Reservation is already cancelled")
        if reservation.status == ReservationStatus.COMPLETED:
            raise Conflict("Cannot cancel completed reservation")

        lead_time = datetime.combine(reservation.check_in, time.min) - self.now()
        if lead_time < timedelta(hours=self.settings.cancellation_lead_hours):
            logger.error(f"Cancellation of {code} refused, check-in in {lead_time}")
            raise Conflict(
                f"Cancellation not allowed within {self.settings.cancellation_lead_hours} hours "
                "of check-in. Please call the lodge."
            )

        reservation.status = ReservationStatus.CANCELLED
        self.db.commit()
        self.db.refresh(reservation)
        logger.info(f"Reservation {code} cancelled by guest")
        self._notify(RESERVATION_CANCELLED, reservation)
        return reservation

    def admin_update(self, reservation_id: int, fields: dict) -> Reservation:
        reservation = self.get(reservation_id)
        updates = {key: value for key, value in fields.items() if key in UPDATABLE_FIELDS}
        try:
            if updates.get("status") is not None:
                updates["status"] = normalize_status(updates["status"])
            if updates.get("payment_status") is not None:
                updates["payment_status"] = normalize_payment_status(updates["payment_status"])
        except ValueError as e:
            raise ValidationFailed(str(e))

        room_id = updates.get("room_id") or reservation.room_id
        check_in = updates.get("check_in") or reservation.check_in
        check_out = updates.get("check_out") or reservation.check_out
        if check_in >= check_out:
            raise ValidationFailed("Check-out date must be after check-in date")

        moved = (room_id, check_in, check_out) != (reservation.room_id, reservation.check_in, reservation.check_out)
        if "room_id" in updates:
            self.get_room(room_id)

        with self.lock:
            status = updates.get("status") or reservation.status
            # a cancelled or finished stay set back to pending/confirmed claims its nights again
            claims_nights = status in BLOCKING_STATUSES and (moved or reservation.status not in BLOCKING_STATUSES)
            if self.settings.admin_update_checks_overlap and claims_nights:
                if find_overlapping(self.db, room_id, check_in, check_out, exclude_id=reservation.id):
                    raise Conflict("Room is not available for the selected dates")
            elif claims_nights:
                logger.warning(f"Reservation {reservation.id} updated by staff without an overlap check")

            for key, value in updates.items():
                if value is not None:
                    setattr(reservation, key, value)
            self.db.commit()
        self.db.refresh(reservation)
        logger.debug(f"Updated reservation {reservation.id}: {sorted(updates)}")
        return reservation

    def delete(self, reservation_id: int):
        reservation = self.get(reservation_id)
        self.db.delete(reservation)
        self.db.commit()
        logger.info(f"Deleted reservation {reservation_id}")

    def stats(self):
        today = self.today()
        start_of_month = today.replace(day=1)
        next_month = (start_of_month + timedelta(days=32)).replace(day=1)

        total = self.db.query(func.count(Reservation.id)).scalar()
        monthly = (
            self.db.query(func.count(Reservation.id))
            .filter(
                Reservation.created_at >= datetime.combine(start_of_month, time.min),
                Reservation.created_at < datetime.combine(next_month, time.min),
            )
            .scalar()
        )
        confirmed = (
            self.db.query(func.count(Reservation.id))
            .filter(Reservation.status == ReservationStatus.CONFIRMED)
            .scalar()
        )
        revenue = (
            self.db.query(func.sum(Reservation.total_amount))
            .filter(Reservation.status.in_(REVENUE_STATUSES))
            .scalar()
        )
        monthly_revenue = (
            self.db.query(func.sum(Reservation.total_amount))
            .filter(
                Reservation.status.in_(REVENUE_STATUSES),
                Reservation.check_in >= start_of_month,
                Reservation.check_in < next_month,
            )
            .scalar()
        )
        active_rooms = self.db.query(func.count(Room.id)).filter(Room.is_active.is_(True)).scalar()
        occupancy = round(confirmed / active_rooms * 100, 1) if confirmed and active_rooms else 0
        return {
            "totalReservations": total,
            "monthlyReservations": monthly,
            "confirmedReservations": confirmed,
            "totalRevenue": float(revenue or 0),
            "monthlyRevenue": float(monthly_revenue or 0),
            "totalRooms": active_rooms,
            "occupancyRate": occupancy,
        }


def get_clock():
    """Current local time provider; overridden in tests."""
    return datetime.now


def get_engine(request: Request, db: Session = Depends(get_db), now=Depends(get_clock)) -> ReservationEngine:
    state = request.app.state
    return ReservationEngine(
        db,
        state.settings,
        state.notifier,
        state.confirmation_codes,
        state.booking_lock,
        now=now,
    )

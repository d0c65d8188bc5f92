import logging
from datetime import date
from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from typing import List, Optional
from lodge.schemas.base import MessageResponse
from lodge.schemas.reservation import (
    ReservationCreate,
    ReservationUpdate,
    ReservationResponse,
    ReservationCreated,
    ReservationCancelled,
    GuestStatusUpdate,
)
from lodge.utils.auth import STAFF_OR_ADMIN
from lodge.utils.booking import ReservationEngine, get_engine
from lodge.utils.errors import ValidationFailed


logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/reservations",
    tags=["reservations"],
)


def flush_notifications(request: Request, background_tasks: BackgroundTasks):
    """Deliver queued guest emails once the response has been sent."""
    background_tasks.add_task(request.app.state.notifier.flush)


@router.post(
    "",
    response_model=ReservationCreated,
    status_code=status.HTTP_201_CREATED,
    summary="Create a reservation",
    dependencies=[Depends(flush_notifications)],
)
def create_reservation(reservation: ReservationCreate, engine: ReservationEngine = Depends(get_engine)):
    """
    Book a room for the half-open stay [checkIn, checkOut).

    - **roomId**: room to book, must be active.
    - **guests**: number of guests, at most the room capacity.
    - **guestInfo**: guest contact details, copied onto the reservation.

    The reservation starts as PENDING and is returned with its confirmation number.
    """
    db_reservation = engine.create(
        room_id=reservation.room_id,
        check_in=reservation.check_in,
        check_out=reservation.check_out,
        guests=reservation.guests,
        guest_info=reservation.guest_info.model_dump(),
        special_requests=reservation.special_requests,
    )
    return {
        "message": "Reservation created successfully",
        "reservation": db_reservation,
        "confirmation_number": db_reservation.confirmation_number,
    }


@router.get("/confirmation/{confirmation_number}", response_model=ReservationResponse)
def get_by_confirmation(confirmation_number: str, engine: ReservationEngine = Depends(get_engine)):
    """
    Look up a reservation by its confirmation number (guest self-service).
    """
    return engine.get_by_confirmation(confirmation_number)


@router.patch(
    "/confirmation/{confirmation_number}",
    response_model=ReservationCancelled,
    dependencies=[Depends(flush_notifications)],
)
def cancel_by_confirmation(
    confirmation_number: str,
    update: GuestStatusUpdate,
    engine: ReservationEngine = Depends(get_engine),
):
    """
    Guest cancellation. Only `{"status": "cancelled"}` is accepted, and not
    within the cancellation lead time before check-in.
    """
    reservation = engine.cancel_by_confirmation(confirmation_number, update.status)
    return {"message": "Reservation cancelled successfully", "reservation": reservation}


@router.get(
    "",
    response_model=List[ReservationResponse],
    dependencies=[Depends(STAFF_OR_ADMIN)],
)
def get_reservations(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    end_date: Optional[date] = Query(default=None, alias="endDate"),
    room_id: Optional[int] = Query(default=None, alias="roomId"),
    engine: ReservationEngine = Depends(get_engine),
):
    """
    List reservations, newest check-in first. Date filters apply to check-in.
    Requires staff or admin.
    """
    try:
        return engine.list(status=status_filter, start_date=start_date, end_date=end_date, room_id=room_id)
    except ValueError as e:
        raise ValidationFailed(str(e))


@router.get("/admin/stats", dependencies=[Depends(STAFF_OR_ADMIN)])
def get_stats(engine: ReservationEngine = Depends(get_engine)):
    """
    Reservation and revenue totals for the admin dashboard.
    Requires staff or admin.
    """
    return engine.stats()


@router.get("/{reservation_id}", response_model=ReservationResponse, dependencies=[Depends(STAFF_OR_ADMIN)])
def get_reservation(reservation_id: int, engine: ReservationEngine = Depends(get_engine)):
    return engine.get(reservation_id)


@router.put("/{reservation_id}", response_model=ReservationResponse, dependencies=[Depends(STAFF_OR_ADMIN)])
def update_reservation(
    reservation_id: int,
    reservation_update: ReservationUpdate,
    engine: ReservationEngine = Depends(get_engine),
):
    """
    Staff edit of any reservation field. Status values are normalised
    ('confirmed', 'no-show' ...). Date changes are not checked for overlap
    unless ADMIN_UPDATE_CHECKS_OVERLAP is enabled.
    Requires staff or admin.
    """
    return engine.admin_update(reservation_id, reservation_update.model_dump(exclude_unset=True))


@router.delete("/{reservation_id}", response_model=MessageResponse, dependencies=[Depends(STAFF_OR_ADMIN)])
def delete_reservation(reservation_id: int, engine: ReservationEngine = Depends(get_engine)):
    """
    Permanently delete a reservation.
    Requires staff or admin.
    """
    engine.delete(reservation_id)
    return {"message": "Reservation deleted successfully"}

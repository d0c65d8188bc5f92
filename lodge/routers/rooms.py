import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from lodge.db import get_db
from lodge.models import Room
from lodge.schemas.base import MessageResponse
from lodge.schemas.room import (
    RoomCreate,
    RoomUpdate,
    RoomResponse,
    AvailabilityRequest,
    AvailabilityResponse,
    AvailableRoomsRequest,
)
from lodge.utils.auth import STAFF_OR_ADMIN
from lodge.utils.booking import ReservationEngine, get_engine, validate_date_range
from lodge.utils.errors import NotFound, ValidationFailed


logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/rooms",
    tags=["rooms"],
)


def get_room_or_404(db: Session, room_id: int) -> Room:
    room = db.get(Room, room_id)
    if not room:
        raise NotFound("Room not found")
    return room


def ensure_room_number_free(db: Session, room_number: str, room_id: int = None):
    query = db.query(Room.id).filter(Room.room_number == room_number)
    if room_id is not None:
        query = query.filter(Room.id != room_id)
    if query.first():
        raise ValidationFailed("Room number already exists")


@router.get("", response_model=List[RoomResponse])
def get_rooms(db: Session = Depends(get_db)):
    """
    Retrieve all active rooms, grouped by category and cheapest first.
    """
    return db.query(Room).filter(Room.is_active.is_(True)).order_by(Room.category, Room.base_price).all()


@router.get("/{room_id}", response_model=RoomResponse)
def get_room(room_id: int, db: Session = Depends(get_db)):
    """
    Retrieve a specific room by ID, including deactivated rooms.
    """
    return get_room_or_404(db, room_id)


@router.post("/check-availability", response_model=AvailabilityResponse)
def check_availability(request: AvailabilityRequest, engine: ReservationEngine = Depends(get_engine)):
    """
    Check whether a room is free for [checkIn, checkOut). Does not hold the room.
    """
    validate_date_range(request.check_in, request.check_out, engine.today())
    available = engine.check_availability(request.room_id, request.check_in, request.check_out)
    logger.debug(f"Room {request.room_id} {request.check_in} to {request.check_out} available: {available}")
    return {"available": available}


@router.post("/available", response_model=List[RoomResponse])
def get_available_rooms(request: AvailableRoomsRequest, engine: ReservationEngine = Depends(get_engine)):
    """
    List active rooms with no pending or confirmed reservation in the window.

    - **guests**: (Optional) minimum room capacity.
    """
    if request.check_in >= request.check_out:
        raise ValidationFailed("Check-out date must be after check-in date")
    return engine.list_available(request.check_in, request.check_out, request.guests)


@router.post(
    "",
    response_model=RoomResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(STAFF_OR_ADMIN)],
)
def create_room(room: RoomCreate, db: Session = Depends(get_db)):
    """
    Create a new room.
    Requires staff or admin.
    """
    ensure_room_number_free(db, room.room_number)
    db_room = Room(**room.model_dump())
    db.add(db_room)
    db.commit()
    db.refresh(db_room)
    logger.info(f"Created room {db_room.room_number}: {db_room.name}")
    return db_room


@router.put("/{room_id}", response_model=RoomResponse, dependencies=[Depends(STAFF_OR_ADMIN)])
def update_room(room_id: int, room_update: RoomUpdate, db: Session = Depends(get_db)):
    """
    Update a room's details.
    Requires staff or admin.
    """
    db_room = get_room_or_404(db, room_id)
    update_data = room_update.model_dump(exclude_unset=True)
    if update_data.get("room_number"):
        ensure_room_number_free(db, update_data["room_number"], room_id)
    for key, value in update_data.items():
        if value is not None:
            setattr(db_room, key, value)

    db.commit()
    db.refresh(db_room)
    return db_room


@router.delete("/{room_id}", response_model=MessageResponse, dependencies=[Depends(STAFF_OR_ADMIN)])
def delete_room(room_id: int, db: Session = Depends(get_db)):
    """
    Deactivate a room. Rooms are never removed so past reservations stay resolvable.
    Requires staff or admin.
    """
    db_room = get_room_or_404(db, room_id)
    db_room.is_active = False
    db.commit()
    logger.info(f"Deactivated room {db_room.room_number}")
    return {"message": "Room deactivated successfully"}

from lodge.models.room import Room, RoomCategory
from lodge.models.reservation import (
    Reservation,
    ReservationStatus,
    PaymentStatus,
    BLOCKING_STATUSES,
    REVENUE_STATUSES,
)
from lodge.models.user import User, UserRole

from datetime import date, datetime
from decimal import Decimal
from pydantic import EmailStr, Field
from typing import Optional
from lodge.models import ReservationStatus, PaymentStatus
from lodge.schemas.base import CamelModel
from lodge.schemas.room import RoomResponse


PHONE_PATTERN = r"^[\+]?[\d\s\-\(\)]{10,15}$"


class Address(CamelModel):
    street: Optional[str] = Field(default=None, max_length=200)
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None


class GuestInfo(CamelModel):
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    email: EmailStr
    phone: str = Field(pattern=PHONE_PATTERN)
    address: Optional[Address] = None


class ReservationCreate(CamelModel):
    room_id: int
    check_in: date
    check_out: date
    guests: int = Field(ge=1)
    guest_info: GuestInfo
    special_requests: Optional[str] = Field(default=None, max_length=500)


class GuestStatusUpdate(CamelModel):
    status: str


class ReservationUpdate(CamelModel):
    room_id: Optional[int] = None
    check_in: Optional[date] = None
    check_out: Optional[date] = None
    guests: Optional[int] = Field(default=None, ge=1)
    total_amount: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    status: Optional[str] = None
    payment_status: Optional[str] = None
    special_requests: Optional[str] = Field(default=None, max_length=500)
    guest_first_name: Optional[str] = None
    guest_last_name: Optional[str] = None
    guest_email: Optional[EmailStr] = None
    guest_phone: Optional[str] = None
    guest_street: Optional[str] = None
    guest_city: Optional[str] = None
    guest_state: Optional[str] = None
    guest_zip_code: Optional[str] = None


class ReservationResponse(CamelModel):
    id: int
    confirmation_number: str
    guest_first_name: str
    guest_last_name: str
    guest_email: str
    guest_phone: str
    guest_street: Optional[str] = None
    guest_city: Optional[str] = None
    guest_state: Optional[str] = None
    guest_zip_code: Optional[str] = None
    room_id: int
    room: Optional[RoomResponse] = None
    check_in: date
    check_out: date
    nights: int
    guests: int
    total_amount: Decimal
    status: ReservationStatus
    payment_status: PaymentStatus
    special_requests: str = ""
    created_at: datetime
    updated_at: datetime


class ReservationCreated(CamelModel):
    message: str
    reservation: ReservationResponse
    confirmation_number: str


class ReservationCancelled(CamelModel):
    message: str
    reservation: ReservationResponse

from datetime import date, datetime
from decimal import Decimal
from pydantic import Field, field_validator
from typing import List, Optional
from lodge.models import RoomCategory
from lodge.schemas.base import CamelModel
from lodge.utils.validation_helpers import normalize_category


class RoomBase(CamelModel):
    name: str = Field(min_length=1)
    category: RoomCategory
    description: str = ""
    capacity: int = Field(gt=0)
    base_price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    amenities: List[str] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)
    room_number: str = Field(min_length=1)
    is_active: bool = True

    @field_validator("category", mode="before")
    @classmethod
    def check_category(cls, value):
        return normalize_category(value)


class RoomCreate(RoomBase):
    pass


class RoomUpdate(CamelModel):
    name: Optional[str] = None
    category: Optional[RoomCategory] = None
    description: Optional[str] = None
    capacity: Optional[int] = Field(default=None, gt=0)
    base_price: Optional[Decimal] = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    amenities: Optional[List[str]] = None
    images: Optional[List[str]] = None
    room_number: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("category", mode="before")
    @classmethod
    def check_category(cls, value):
        return normalize_category(value)


class RoomResponse(RoomBase):
    id: int
    created_at: datetime
    updated_at: datetime


class AvailabilityRequest(CamelModel):
    room_id: int
    check_in: date
    check_out: date


class AvailabilityResponse(CamelModel):
    available: bool


class AvailableRoomsRequest(CamelModel):
    check_in: date
    check_out: date
    guests: Optional[int] = Field(default=None, gt=0)

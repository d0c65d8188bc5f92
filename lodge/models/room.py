import enum
from datetime import datetime
from sqlalchemy.orm import relationship
from sqlalchemy import Column, Integer, String, Text, Numeric, Boolean, DateTime, JSON, Enum
from lodge.db import Base


class RoomCategory(str, enum.Enum):
    HISTORIC = "HISTORIC"
    MOUNTAIN_VIEW = "MOUNTAIN_VIEW"
    FAMILY_CABIN = "FAMILY_CABIN"


class Room(Base):
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, index=True, nullable=False)
    category = Column(Enum(RoomCategory, native_enum=False, length=20), nullable=False)
    description = Column(Text, nullable=False, default="")
    capacity = Column(Integer, nullable=False)
    base_price = Column(Numeric(10, 2), nullable=False)
    amenities = Column(JSON, nullable=False, default=list)
    images = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)
    room_number = Column(String, unique=True, index=True, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    # rooms are only ever deactivated, so no delete cascade
    reservations = relationship("Reservation", back_populates="room")

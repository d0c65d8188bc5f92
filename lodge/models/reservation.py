import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, Numeric, Date, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from lodge.db import Base


class ReservationStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    REFUNDED = "REFUNDED"


# statuses that hold a room
BLOCKING_STATUSES = (ReservationStatus.PENDING, ReservationStatus.CONFIRMED)
# statuses that count as earned revenue
REVENUE_STATUSES = (ReservationStatus.CONFIRMED, ReservationStatus.COMPLETED)


class Reservation(Base):
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True)
    confirmation_number = Column(String, unique=True, index=True, nullable=False)

    guest_first_name = Column(String, nullable=False)
    guest_last_name = Column(String, nullable=False)
    guest_email = Column(String, nullable=False)
    guest_phone = Column(String, nullable=False)
    guest_street = Column(String, nullable=True)
    guest_city = Column(String, nullable=True)
    guest_state = Column(String, nullable=True)
    guest_zip_code = Column(String, nullable=True)

    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False, index=True)
    check_in = Column(Date, nullable=False, index=True)
    check_out = Column(Date, nullable=False)
    guests = Column(Integer, nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)
    status = Column(
        Enum(ReservationStatus, native_enum=False, length=20),
        nullable=False,
        default=ReservationStatus.PENDING,
    )
    payment_status = Column(
        Enum(PaymentStatus, native_enum=False, length=20),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    special_requests = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    room = relationship("Room", back_populates="reservations")

    @property
    def nights(self):
        return (self.check_out - self.check_in).days

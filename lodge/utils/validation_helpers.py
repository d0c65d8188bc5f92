import re
from lodge.models import ReservationStatus, PaymentStatus, RoomCategory


USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")
PASSWORD_CLASSES = (re.compile(r"[a-z]"), re.compile(r"[A-Z]"), re.compile(r"\d"))


def _canonical(value):
    return str(value).strip().upper().replace("-", "_")


def normalize_status(value):
    """Map 'confirmed', 'no-show', 'NO_SHOW' ... onto ReservationStatus."""
    if isinstance(value, ReservationStatus):
        return value
    try:
        return ReservationStatus(_canonical(value))
    except ValueError:
        raise ValueError(f"Invalid reservation status: {value}")


def normalize_payment_status(value):
    if isinstance(value, PaymentStatus):
        return value
    try:
        return PaymentStatus(_canonical(value))
    except ValueError:
        raise ValueError(f"Invalid payment status: {value}")


def validate_password_strength(value, min_length):
    if len(value) < min_length:
        raise ValueError(f"Password must be at least {min_length} characters long")
    if not all(pattern.search(value) for pattern in PASSWORD_CLASSES):
        raise ValueError(
            "Password must contain at least one lowercase letter, one uppercase letter, and one number"
        )
    return value


def validate_username(value):
    value = value.strip()
    if not 3 <= len(value) <= 30:
        raise ValueError("Username must be 3-30 characters long")
    if not USERNAME_RE.match(value):
        raise ValueError("Username can only contain letters, numbers, and underscores")
    return value


def normalize_category(value):
    """Accept 'mountain-view' as well as 'MOUNTAIN_VIEW'."""
    if isinstance(value, RoomCategory):
        return value
    if isinstance(value, str):
        return _canonical(value)
    return value

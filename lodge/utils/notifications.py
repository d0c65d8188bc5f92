import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from email.message import EmailMessage
from typing import Callable, Dict, Any


logger = logging.getLogger(__name__)

RESERVATION_CREATED = "reservation.created"
RESERVATION_CANCELLED = "reservation.cancelled"

FROM_ADDRESS = "noreply@mollybutlerlodge.com"
LODGE_FOOTER = (
    "Molly Butler Lodge, 109 Main Street, Greer, AZ 85927\n"
    "Phone: (928) 735-7226 | Check-in 3:00 PM | Check-out 11:00 AM"
)


@dataclass
class ReservationEvent:
    kind: str
    reservation: Dict[str, Any]
    attempts: int = field(default=0, compare=False)


def snapshot(reservation):
    """Copy the fields a guest email needs, so delivery never touches the session."""
    return {
        "confirmation_number": reservation.confirmation_number,
        "guest_name": f"{reservation.guest_first_name} {reservation.guest_last_name}",
        "guest_email": reservation.guest_email,
        "guest_phone": reservation.guest_phone,
        "room_name": reservation.room.name if reservation.room is not None else "",
        "check_in": reservation.check_in,
        "check_out": reservation.check_out,
        "nights": reservation.nights,
        "guests": reservation.guests,
        "total_amount": reservation.total_amount,
        "special_requests": reservation.special_requests or "",
    }


def render_email(event: ReservationEvent) -> EmailMessage:
    data = event.reservation
    message = EmailMessage()
    message["From"] = FROM_ADDRESS
    message["To"] = data["guest_email"]
    if event.kind == RESERVATION_CANCELLED:
        message["Subject"] = f"Reservation Cancellation - {data['confirmation_number']}"
        lines = [
            f"Dear {data['guest_name']},",
            "",
            f"Your reservation {data['confirmation_number']} has been cancelled.",
            f"Room: {data['room_name']}",
            f"Check-in: {data['check_in']:%m/%d/%Y}",
            f"Check-out: {data['check_out']:%m/%d/%Y}",
        ]
    else:
        message["Subject"] = f"Reservation Confirmation - {data['confirmation_number']}"
        lines = [
            f"Dear {data['guest_name']},",
            "",
            f"Thank you for your reservation. Confirmation number: {data['confirmation_number']}",
            f"Room: {data['room_name']}",
            f"Check-in: {data['check_in']:%m/%d/%Y}",
            f"Check-out: {data['check_out']:%m/%d/%Y}",
            f"Nights: {data['nights']}",
            f"Guests: {data['guests']}",
            f"Total Amount: ${data['total_amount']:.2f}",
        ]
        if data["special_requests"]:
            lines += ["", f"Special Requests: {data['special_requests']}"]
    lines += ["", LODGE_FOOTER]
    message.set_content("\n".join(lines))
    return message


def log_transport(event: ReservationEvent):
    """Stand-in delivery: render the email and log it instead of sending."""
    message = render_email(event)
    logger.info(f"Email '{message['Subject']}' would be sent to: {message['To']}")


class Notifier:
    """Outbound reservation events. submit() must return without waiting for delivery."""

    def submit(self, event: ReservationEvent):
        raise NotImplementedError

    def flush(self):
        pass


class OutboxNotifier(Notifier):
    """
    In-memory outbox drained by flush(), normally from a response background task.

    A failed delivery is retried by the same flush() call, retry_delay seconds
    apart, until it has been tried max_attempts times; then it is dropped with
    an error log. Retries never wait for another request to come in.
    """

    def __init__(
        self,
        transport: Callable[[ReservationEvent], None] = log_transport,
        max_attempts: int = 3,
        retry_delay: float = 1.0,
    ):
        self.transport = transport
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._outbox = deque()
        self._lock = threading.Lock()

    def __len__(self):
        return len(self._outbox)

    def submit(self, event: ReservationEvent):
        with self._lock:
            self._outbox.append(event)
        logger.debug(f"Queued {event.kind} for {event.reservation['confirmation_number']}")

    def _deliver(self, event: ReservationEvent) -> bool:
        event.attempts += 1
        try:
            self.transport(event)
            return True
        except Exception:
            logger.exception(
                f"Delivery of {event.kind} for {event.reservation['confirmation_number']} "
                f"failed (attempt {event.attempts}/{self.max_attempts})"
            )
        if event.attempts < self.max_attempts:
            with self._lock:
                self._outbox.append(event)
        else:
            logger.error(f"Giving up on {event.kind} for {event.reservation['confirmation_number']}")
        return False

    def flush(self):
        while True:
            with self._lock:
                batch = list(self._outbox)
                self._outbox.clear()
            if not batch:
                return
            failed = [event for event in batch if not self._deliver(event)]
            if failed and self.retry_delay:
                time.sleep(self.retry_delay)

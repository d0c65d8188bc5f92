import threading
import time


class ConfirmationCodeGenerator:
    """
    Issue confirmation numbers of the form <prefix><8 digits>.

    The digits are the low eight digits of the millisecond clock. Within one
    process the underlying value is strictly increasing, so codes requested in
    the same millisecond still differ.
    """

    DIGITS = 8

    def __init__(self, prefix="MB", clock=time.time):
        self.prefix = prefix
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def _next_value(self):
        with self._lock:
            value = max(int(self._clock() * 1000), self._last + 1)
            self._last = value
            return value

    def generate(self):
        digits = str(self._next_value())[-self.DIGITS:].rjust(self.DIGITS, "0")
        return f"{self.prefix}{digits}"

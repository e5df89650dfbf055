# app/utils/deadline.py
import threading
import time

from app.domain.errors import CartCancelled


class Deadline:
    """
    Budzet czasu dla jednej operacji na koszyku.
    Moze wygasnac (timeout) albo zostac anulowany z innego watku przez cancel().
    """

    def __init__(self, timeout: float | None = None):
        self._expires_at = None if timeout is None else time.monotonic() + timeout
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> float | None:
        """Pozostaly czas w sekundach albo None gdy brak limitu."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def expired(self) -> bool:
        if self.cancelled:
            return True
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def check(self) -> None:
        if self.cancelled:
            raise CartCancelled("Operacja anulowana")
        if self.expired():
            raise CartCancelled("Przekroczono czas operacji")

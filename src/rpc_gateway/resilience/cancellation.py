"""
Cancellation Token - Caller-Side Abort for Retry Loops.

Wraps a threading.Event with an optional monotonic deadline. Backoff waits
go through the token so a cancel() or an expired deadline interrupts the
wait immediately.
"""

from __future__ import annotations

import threading
import time
from typing import Optional


class CancellationToken:
    """Cancellation signal shared between a caller and a retry loop."""

    def __init__(self, timeout_seconds: Optional[float] = None) -> None:
        """
        Initialize token.

        Args:
            timeout_seconds: Optional deadline measured from now
        """
        self._event = threading.Event()
        self._expired = False
        self._deadline: Optional[float] = (
            time.monotonic() + timeout_seconds if timeout_seconds is not None else None
        )

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        """True once cancel() was called or the deadline passed."""
        return self._event.is_set() or self._expired or self.remaining() == 0.0

    @property
    def reason(self) -> str:
        return "cancelled" if self._event.is_set() else "deadline exceeded"

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def wait(self, seconds: float) -> bool:
        """
        Sleep up to `seconds`, waking early on cancellation or deadline.

        Returns:
            True if the token is cancelled when the wait ends
        """
        remaining = self.remaining()
        if remaining is not None and remaining <= seconds:
            self._event.wait(remaining)
            self._expired = True
            return True
        self._event.wait(seconds)
        return self.is_cancelled

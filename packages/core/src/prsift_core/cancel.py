"""Cancellation and deadline signal checked at every network-bound step."""

from __future__ import annotations

import threading
import time

from prsift_core.errors import ReviewCancelled


class CancelToken:
    """Caller-owned signal honoured by the pipeline and its collaborators.

    ``timeout`` is a budget in seconds measured from construction. ``cancel()``
    may be called from any thread (the CLI calls it from a SIGINT handler).
    """

    def __init__(self, timeout: float | None = None):
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None when there is no deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def check(self, stage: str) -> None:
        if self.cancelled:
            raise ReviewCancelled(stage)
        if self.expired:
            raise ReviewCancelled(stage, reason="deadline exceeded")

from __future__ import annotations

import threading
import time
from typing import Optional

from life_circle.errors import EvaluationCancelled

__all__ = ["Deadline"]


class Deadline:
    """
    Timeout and cancellation flag carried through every pipeline stage.

    A deadline without a timeout never expires but can still be cancelled.
    Provider calls cap their own timeouts by `remaining()`.
    """

    def __init__(self, timeout: Optional[float] = None) -> None:
        self._expires_at = time.monotonic() + timeout if timeout is not None else None
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> Optional[float]:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0.0

    def check(self, stage: str) -> None:
        if self.cancelled:
            raise EvaluationCancelled(stage, "request cancelled")
        if self.expired():
            raise EvaluationCancelled(stage)


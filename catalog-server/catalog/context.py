"""
Caller-supplied execution bound for store round-trips.

Store-facing operations take an optional Deadline and check it right before
and right after talking to the store. Nothing here cancels an in-flight
driver call; the driver-level timeouts in Settings cover that.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

from catalog.errors import ExecutionError


@dataclass(frozen=True)
class Deadline:
    expires_at: float  # time.monotonic() value

    @classmethod
    def after(cls, seconds: float) -> "Deadline":
        return cls(expires_at=time.monotonic() + seconds)

    def remaining(self) -> float:
        return max(self.expires_at - time.monotonic(), 0.0)

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self.expires_at

    def check(self, operation: str) -> None:
        """Raise ExecutionError if the deadline has passed."""
        if self.expired:
            raise ExecutionError(f"{operation}: deadline exceeded")


def check_deadline(deadline: Optional[Deadline], operation: str) -> None:
    if deadline is not None:
        deadline.check(operation)

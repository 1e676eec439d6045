"""
Run deadline carried into every suspension point.
"""

import time
from dataclasses import dataclass


@dataclass(frozen=True)
class Deadline:
    """Absolute monotonic deadline for one run."""

    expires_at: float

    @classmethod
    def after(cls, seconds: float) -> "Deadline":
        return cls(expires_at=time.monotonic() + seconds)

    def remaining(self) -> float:
        """Seconds left, never negative."""
        return max(0.0, self.expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0

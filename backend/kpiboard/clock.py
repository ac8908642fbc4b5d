"""Injectable time and randomness.

The share-link lifecycle compares expiry against `Clock.now()` and draws
token material from `RandomSource.token_bytes()`. Production wiring uses
the system implementations below; tests pass a fixed clock.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        """Current time as a naive UTC datetime (matches DB columns)."""
        ...


class RandomSource(Protocol):
    def token_bytes(self, nbytes: int) -> bytes:
        ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)


class SystemRandomSource:
    def token_bytes(self, nbytes: int) -> bytes:
        return secrets.token_bytes(nbytes)

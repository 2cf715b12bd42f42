"""
Idempotency types — checkout ledger records.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class RecordState(Enum):
    """
    PENDING → COMPLETED

    A business failure releases the record instead of storing it, so the
    buyer may fix the cart and submit again with the same key.
    """

    PENDING = "pending"
    COMPLETED = "completed"


@dataclass(frozen=True, slots=True)
class IdempotencyRecord[T]:
    key: str
    state: RecordState
    value: T | None
    input_hash: str | None = None
    expires_at: datetime | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or datetime.now()) > self.expires_at

    @property
    def is_pending(self) -> bool:
        return self.state is RecordState.PENDING

    @property
    def is_completed(self) -> bool:
        return self.state is RecordState.COMPLETED


@dataclass(frozen=True, slots=True)
class Replay[T]:
    """Result of an idempotent run; from_cache marks a replayed one."""

    value: T
    from_cache: bool
    key: str


__all__ = (
    "RecordState",
    "IdempotencyRecord",
    "Replay",
)

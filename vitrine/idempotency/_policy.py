"""
Idempotency policy — fluent, immutable.

    policy = (
        Policy()
        .with_ttl(hours=24)
        .with_on_pending(WAIT)
        .with_wait_timeout(seconds=30)
    )
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import timedelta
from enum import Enum, auto


class OnPending(Enum):
    """
    A request arrives while the same key is still being processed.

    WAIT: poll until it completes and replay its result.
    FAIL: answer ConflictError right away.
    """

    WAIT = auto()
    FAIL = auto()


WAIT = OnPending.WAIT
FAIL = OnPending.FAIL


@dataclass(frozen=True, slots=True)
class Policy:
    result_ttl: timedelta | None = None
    on_pending: OnPending = OnPending.WAIT
    wait_timeout: timedelta = timedelta(seconds=30)
    poll_interval: float = 0.05

    def with_ttl(
        self,
        *,
        seconds: float = 0,
        minutes: float = 0,
        hours: float = 0,
        delta: timedelta | None = None,
    ) -> Policy:
        if delta is None:
            total = seconds + minutes * 60 + hours * 3600
            delta = timedelta(seconds=total) if total > 0 else None
        return replace(self, result_ttl=delta)

    def with_on_pending(self, strategy: OnPending) -> Policy:
        return replace(self, on_pending=strategy)

    def with_wait_timeout(self, *, seconds: float | None = None, delta: timedelta | None = None) -> Policy:
        return replace(self, wait_timeout=delta or timedelta(seconds=seconds or 30))

    def with_poll_interval(self, seconds: float) -> Policy:
        return replace(self, poll_interval=seconds)


__all__ = (
    "OnPending",
    "WAIT",
    "FAIL",
    "Policy",
)

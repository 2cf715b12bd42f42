"""
Idempotency store protocol and the in-memory store.

Store failures are infrastructure failures: they raise and propagate,
they are not business errors.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Protocol

from vitrine.idempotency._types import RecordState, IdempotencyRecord


class Store[T](Protocol):
    async def get(self, key: str) -> IdempotencyRecord[T] | None:
        """Live record for key; expired records read as None."""
        ...

    async def claim(self, key: str, ttl: timedelta | None, input_hash: str | None) -> bool:
        """
        Atomically create a PENDING record.

        False when a live record already holds the key.
        """
        ...

    async def complete(self, key: str, value: T, ttl: timedelta | None) -> None:
        ...

    async def release(self, key: str) -> bool:
        """Drop the record. True if it existed."""
        ...


type StoreAny = Store[Any]


def _expiry(ttl: timedelta | None) -> datetime | None:
    return datetime.now() + ttl if ttl else None


class MemoryStore[T]:
    """Single-process store; tests and the in-process gateway use it."""

    def __init__(self) -> None:
        self._records: dict[str, IdempotencyRecord[T]] = {}
        self._lock = asyncio.Lock()

    def _live(self, key: str) -> IdempotencyRecord[T] | None:
        record = self._records.get(key)
        if record is not None and record.is_expired():
            del self._records[key]
            return None
        return record

    async def get(self, key: str) -> IdempotencyRecord[T] | None:
        async with self._lock:
            return self._live(key)

    async def claim(self, key: str, ttl: timedelta | None, input_hash: str | None) -> bool:
        async with self._lock:
            if self._live(key) is not None:
                return False
            self._records[key] = IdempotencyRecord(
                key=key,
                state=RecordState.PENDING,
                value=None,
                input_hash=input_hash,
                expires_at=_expiry(ttl),
            )
            return True

    async def complete(self, key: str, value: T, ttl: timedelta | None) -> None:
        async with self._lock:
            record = self._records.get(key)
            if record is None:
                raise KeyError(f"no pending record for {key!r}")
            self._records[key] = replace(
                record,
                state=RecordState.COMPLETED,
                value=value,
                expires_at=_expiry(ttl),
            )

    async def release(self, key: str) -> bool:
        async with self._lock:
            return self._records.pop(key, None) is not None


__all__ = (
    "Store",
    "StoreAny",
    "MemoryStore",
)

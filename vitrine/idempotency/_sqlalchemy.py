"""
SQLAlchemy idempotency ledger.

    class CheckoutRow(Base, IdempotencyMixin):
        __tablename__ = "checkouts"
        id: Mapped[int] = mapped_column(primary_key=True)

    store = SQLAlchemyStore(session_factory, CheckoutRow)

Values are stored as text; pair the store with an executor codec.
"""

from datetime import datetime, timedelta
from typing import Any, Protocol, cast

from sqlalchemy import select, delete, String, DateTime, Text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import Mapped, mapped_column

from vitrine.idempotency._types import IdempotencyRecord, RecordState


class IdempotencyMixin:
    """Ledger columns for any mapped model."""

    idempotency_key: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    idempotency_status: Mapped[str] = mapped_column(String(20), default=RecordState.PENDING.value)
    idempotency_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    idempotency_input_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    idempotency_expires_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


class IdempotentModel(Protocol):
    idempotency_key: str
    idempotency_status: str
    idempotency_value: str | None
    idempotency_input_hash: str | None
    idempotency_expires_at: datetime | None


def _expiry(ttl: timedelta | None) -> datetime | None:
    return datetime.now() + ttl if ttl else None


class SQLAlchemyStore[M]:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], model: type[M]) -> None:
        self._session_factory = session_factory
        self._model = model

    def _by_key(self, key: str) -> Any:
        return select(self._model).where(self._model.idempotency_key == key)  # type: ignore[attr-defined]

    async def get(self, key: str) -> IdempotencyRecord[str] | None:
        async with self._session_factory() as session:
            row = (await session.execute(self._by_key(key))).scalar_one_or_none()
            if row is None:
                return None
            record = self._to_record(cast(IdempotentModel, row))
            return None if record.is_expired() else record

    async def claim(self, key: str, ttl: timedelta | None, input_hash: str | None) -> bool:
        async with self._session_factory() as session:
            existing = (await session.execute(self._by_key(key))).scalar_one_or_none()
            if existing is not None:
                if not self._to_record(cast(IdempotentModel, existing)).is_expired():
                    return False
                await session.delete(existing)
                await session.flush()

            session.add(self._model(
                idempotency_key=key,
                idempotency_status=RecordState.PENDING.value,
                idempotency_input_hash=input_hash,
                idempotency_expires_at=_expiry(ttl),
            ))
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                return False
            return True

    async def complete(self, key: str, value: str, ttl: timedelta | None) -> None:
        async with self._session_factory() as session:
            row = (await session.execute(self._by_key(key))).scalar_one_or_none()
            if row is None:
                raise KeyError(f"no pending record for {key!r}")
            model = cast(IdempotentModel, row)
            model.idempotency_status = RecordState.COMPLETED.value
            model.idempotency_value = value
            model.idempotency_expires_at = _expiry(ttl)
            await session.commit()

    async def release(self, key: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                delete(self._model).where(self._model.idempotency_key == key)  # type: ignore[attr-defined]
            )
            await session.commit()
            return bool(getattr(result, "rowcount", 0))

    @staticmethod
    def _to_record(model: IdempotentModel) -> IdempotencyRecord[str]:
        return IdempotencyRecord(
            key=model.idempotency_key,
            state=RecordState(model.idempotency_status),
            value=model.idempotency_value,
            input_hash=model.idempotency_input_hash,
            expires_at=model.idempotency_expires_at,
        )


__all__ = (
    "IdempotencyMixin",
    "IdempotentModel",
    "SQLAlchemyStore",
)

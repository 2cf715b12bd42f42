"""
Promo book — where codes are looked up.

PromoBook is a protocol; MemoryPromoBook serves tests and single-process
setups. The server ships a SQLAlchemy-backed one.
"""

from __future__ import annotations

from typing import Protocol

from kungfu import LazyCoroResult, Result

from vitrine._types import Money
from vitrine.errors import StorefrontError
from vitrine.promo._types import Scope, PromoCode, PromoQuote
from vitrine.promo._engine import normalize_code, validate


class PromoBook(Protocol):
    async def find(self, code: str) -> PromoCode | None:
        """Lookup by normalized code."""
        ...

    async def all(self) -> list[PromoCode]:
        ...


class MemoryPromoBook:
    """In-memory promo book."""

    def __init__(self, *promos: PromoCode) -> None:
        self._codes: dict[str, PromoCode] = {normalize_code(p.code): p for p in promos}

    def add(self, promo: PromoCode) -> MemoryPromoBook:
        self._codes[normalize_code(promo.code)] = promo
        return self

    async def find(self, code: str) -> PromoCode | None:
        return self._codes.get(normalize_code(code))

    async def all(self) -> list[PromoCode]:
        return list(self._codes.values())


class PromoEngine:
    """validate(code, amount, scope) over a PromoBook."""

    __slots__ = ("_book",)

    def __init__(self, book: PromoBook) -> None:
        self._book = book

    def validate(
        self,
        code: str,
        amount: Money,
        scope: Scope = Scope.PRODUCTS,
    ) -> LazyCoroResult[PromoQuote, StorefrontError]:
        async def run() -> Result[PromoQuote, StorefrontError]:
            promo = await self._book.find(code)
            return validate(promo, code, amount, scope)
        return LazyCoroResult(run)


__all__ = (
    "PromoBook",
    "MemoryPromoBook",
    "PromoEngine",
)

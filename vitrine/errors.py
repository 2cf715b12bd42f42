"""
Error taxonomy.

Business errors are exceptions so graph nodes can raise them, but they
travel between components inside Result:

    match await checkout.submit(shipping):
        case Ok(orders): ...
        case Error(StockInsufficientError() as e): show(e.message)
        case Error(TransientNetworkError()): ...  # already retried once

There is no partial-shop failure: an order batch is all-or-nothing.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum, auto


# ═══════════════════════════════════════════════════════════════════════════════
# Kinds
# ═══════════════════════════════════════════════════════════════════════════════


class ErrorKind(Enum):
    """Coarse classification, used by codecs to pick a status code."""

    VALIDATION = auto()
    STOCK = auto()
    PROMO = auto()
    TRANSIENT = auto()
    NOT_FOUND = auto()
    TRANSITION = auto()
    CONFLICT = auto()


class PromoRejection(Enum):
    """Why a promo code was refused. Exposed verbatim in payloads."""

    UNKNOWN = "unknown"
    INACTIVE = "inactive"
    NOT_YET_ACTIVE = "not_yet_active"
    EXPIRED = "expired"
    USAGE_LIMIT = "usage_limit"
    WRONG_SCOPE = "wrong_scope"
    BELOW_MINIMUM = "below_minimum"


# ═══════════════════════════════════════════════════════════════════════════════
# Base
# ═══════════════════════════════════════════════════════════════════════════════


class StorefrontError(Exception):
    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def retryable(self) -> bool:
        return self.kind is ErrorKind.TRANSIENT

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other) and vars(self) == vars(other)

    def __hash__(self) -> int:
        return hash((type(self), self.message))


# ═══════════════════════════════════════════════════════════════════════════════
# Concrete Errors
# ═══════════════════════════════════════════════════════════════════════════════


class ValidationError(StorefrontError):
    """Missing or malformed input. Surfaced inline, never retried."""

    kind = ErrorKind.VALIDATION

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


class StockInsufficientError(StorefrontError):
    kind = ErrorKind.STOCK

    def __init__(
        self,
        product_id: int,
        requested: int,
        available: int,
        selection: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(f"Stock insuffisant. Disponible: {available}")
        self.product_id = product_id
        self.requested = requested
        self.available = available
        self.selection = dict(selection or {})

    @property
    def shortfall(self) -> int:
        return self.requested - self.available


PROMO_DISPLAY_MESSAGE = "Code promo invalide ou expiré"

_PROMO_HINTS: dict[PromoRejection, str] = {
    PromoRejection.UNKNOWN: "Code promo inconnu",
    PromoRejection.INACTIVE: "Ce code promo est désactivé",
    PromoRejection.NOT_YET_ACTIVE: "Ce code promo n'est pas encore actif",
    PromoRejection.EXPIRED: "Ce code promo a expiré",
    PromoRejection.USAGE_LIMIT: "Ce code promo a atteint sa limite d'utilisation",
    PromoRejection.WRONG_SCOPE: "Ce code promo ne s'applique pas ici",
    PromoRejection.BELOW_MINIMUM: "Montant minimum de commande non atteint",
}


class PromoInvalidError(StorefrontError):
    """
    Every reason shows the same message. `reason` tells them apart, and
    `hint` carries the per-reason wording for callers that want it.
    """

    kind = ErrorKind.PROMO

    def __init__(self, code: str, reason: PromoRejection, hint: str | None = None) -> None:
        super().__init__(PROMO_DISPLAY_MESSAGE)
        self.code = code
        self.reason = reason
        self.hint = hint or _PROMO_HINTS[reason]


class TransientNetworkError(StorefrontError):
    """Outcome unknown. One retry with the same idempotency key is allowed."""

    kind = ErrorKind.TRANSIENT


class NotFoundError(StorefrontError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, entity: str, key: object) -> None:
        super().__init__(f"{entity} not found: {key}")
        self.entity = entity
        self.key = key


class StatusTransitionError(StorefrontError):
    kind = ErrorKind.TRANSITION

    def __init__(self, order_id: str, current: str, requested: str, message: str | None = None) -> None:
        super().__init__(message or f"Cannot move order {order_id} from {current} to {requested}")
        self.order_id = order_id
        self.current = current
        self.requested = requested


class ConflictError(StorefrontError):
    kind = ErrorKind.CONFLICT


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "ErrorKind",
    "PromoRejection",
    "PROMO_DISPLAY_MESSAGE",
    "StorefrontError",
    "ValidationError",
    "StockInsufficientError",
    "PromoInvalidError",
    "TransientNetworkError",
    "NotFoundError",
    "StatusTransitionError",
    "ConflictError",
)

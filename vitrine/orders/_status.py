"""
Order state machine.

    pending → confirmed → shipped → delivered
    pending | confirmed | shipped → cancelled

return_requested is orthogonal: settable once, only on a delivered order,
and it freezes the primary status from then on.
"""

from __future__ import annotations

from dataclasses import replace

from kungfu import Result, Ok, Error

from vitrine.errors import StorefrontError, StatusTransitionError
from vitrine.orders._types import Order, OrderStatus

DEFAULT_RETURN_REASON = "Retour client"

_NEXT: dict[OrderStatus, OrderStatus] = {
    OrderStatus.PENDING: OrderStatus.CONFIRMED,
    OrderStatus.CONFIRMED: OrderStatus.SHIPPED,
    OrderStatus.SHIPPED: OrderStatus.DELIVERED,
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    if current.is_terminal:
        return False
    if target is OrderStatus.CANCELLED:
        return True
    return _NEXT.get(current) is target


def advance(order: Order, target: OrderStatus) -> Result[Order, StorefrontError]:
    if order.return_requested:
        return Error(StatusTransitionError(
            order.id,
            order.status.value,
            target.value,
            "Un retour a été demandé pour cette commande",
        ))
    if not can_transition(order.status, target):
        return Error(StatusTransitionError(order.id, order.status.value, target.value))
    return Ok(replace(order, status=target))


def request_return(order: Order, reason: str | None = None) -> Result[Order, StorefrontError]:
    if order.status is not OrderStatus.DELIVERED:
        return Error(StatusTransitionError(
            order.id,
            order.status.value,
            "return_requested",
            "Seules les commandes livrées peuvent être marquées comme retournées",
        ))
    if order.return_requested:
        return Error(StatusTransitionError(
            order.id,
            order.status.value,
            "return_requested",
            "Un retour a déjà été enregistré pour cette commande",
        ))
    return Ok(replace(
        order,
        return_requested=True,
        return_reason=(reason or "").strip() or DEFAULT_RETURN_REASON,
    ))


__all__ = (
    "DEFAULT_RETURN_REASON",
    "can_transition",
    "advance",
    "request_return",
)

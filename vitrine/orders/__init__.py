"""
Orders — multi-shop batch composition and the order state machine.

    from vitrine import orders as O

    draft = O.CheckoutDraft(
        lines=cart.state.lines,
        shipping=O.ShippingInfo("12 rue Didouche", "0555000000", wilaya="Alger"),
        idempotency_key=key,
        promo_code="WELCOME10",
    )
    match await O.compose_batch(draft, O.Quoter(engine.validate)):
        case Ok(batch):
            batch.shops            # one ShopOrderRequest per shop
            batch.final_amount
        case Error(e):
            ...

    O.advance(order, O.OrderStatus.CONFIRMED)
    O.request_return(delivered, "Taille trop petite")
"""

from vitrine.orders._types import (
    OrderStatus,
    OrderItem,
    ShippingInfo,
    ShopOrderRequest,
    SubmittedItem,
    OrderSubmission,
    OrderBatch,
    Order,
)
from vitrine.orders._allocate import allocate
from vitrine.orders._status import (
    DEFAULT_RETURN_REASON,
    can_transition,
    advance,
    request_return,
)
from vitrine.orders._compose import (
    CheckoutDraft,
    QuoteFn,
    Quoter,
    compose_batch,
)

__all__ = (
    # Types
    "OrderStatus",
    "OrderItem",
    "ShippingInfo",
    "ShopOrderRequest",
    "SubmittedItem",
    "OrderSubmission",
    "OrderBatch",
    "Order",
    # Allocation
    "allocate",
    # State machine
    "DEFAULT_RETURN_REASON",
    "can_transition",
    "advance",
    "request_return",
    # Composition
    "CheckoutDraft",
    "QuoteFn",
    "Quoter",
    "compose_batch",
)

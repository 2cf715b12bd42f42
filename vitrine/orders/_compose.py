"""
OrderComposer — checkout as a computation graph.

    CheckoutDraft
        └─ DraftNode ─┬─ ShopGroupsNode ─ GrandTotalNode ─┐
                      │                                   PromoQuoteNode
                      │                                   AllocationNode
                      └──────────────────────────────── OrderBatchNode

The promo code is validated exactly once, against the grand total of all
shops, and its discount is split across shops by subtotal weight.
Nodes raise StorefrontError; compose_batch turns it back into a Result.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import structlog
from kungfu import LazyCoroResult, Result, Ok, Error

from vitrine import graph as G
from vitrine._types import Money, UserId
from vitrine.lift import from_domain
from vitrine.errors import StorefrontError, ValidationError
from vitrine.cart import CartLine, group_by_shop, subtotal, grand_total
from vitrine.promo import Scope, PromoQuote
from vitrine.orders._types import (
    OrderItem,
    ShippingInfo,
    ShopOrderRequest,
    OrderBatch,
)
from vitrine.orders._allocate import allocate

log = structlog.get_logger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Inputs
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CheckoutDraft:
    """Everything the buyer handed over at checkout."""

    lines: tuple[CartLine, ...]
    shipping: ShippingInfo
    idempotency_key: str
    promo_code: str | None = None
    user_id: UserId = "guest"
    require_wilaya: bool = True


type QuoteFn = Callable[[str, Money, Scope], Awaitable[Result[PromoQuote, StorefrontError]]]


@dataclass(frozen=True, slots=True)
class Quoter:
    """
    Promo validation used by the graph.

    Client side wraps a Gateway; server side wraps its own PromoEngine.
    """

    validate: QuoteFn


# ═══════════════════════════════════════════════════════════════════════════════
# Nodes
# ═══════════════════════════════════════════════════════════════════════════════


@G.node
class DraftNode:
    """Entry point: rejects an empty cart or incomplete shipping info."""

    def __init__(self, draft: CheckoutDraft) -> None:
        self.draft = draft

    @classmethod
    def __compose__(cls, draft: CheckoutDraft) -> "DraftNode":
        if not draft.lines:
            raise ValidationError("items", "Votre panier est vide")
        if any(line.quantity <= 0 for line in draft.lines):
            raise ValidationError("quantity", "Quantité invalide")
        shipping = draft.shipping
        if not shipping.address.strip():
            raise ValidationError("shipping_address", "Veuillez saisir votre adresse de livraison")
        if draft.require_wilaya and not shipping.wilaya.strip():
            raise ValidationError("wilaya", "Veuillez sélectionner votre wilaya")
        if not shipping.phone.strip():
            raise ValidationError("phone", "Veuillez saisir votre numéro de téléphone")
        return cls(draft)


@G.node
class ShopGroupsNode:
    def __init__(self, groups: dict[int, tuple[CartLine, ...]]) -> None:
        self.groups = groups

    @classmethod
    def __compose__(cls, draft: DraftNode) -> "ShopGroupsNode":
        return cls(group_by_shop(draft.draft.lines))


@G.node
class GrandTotalNode:
    def __init__(self, total: Money) -> None:
        self.total = total

    @classmethod
    def __compose__(cls, groups: ShopGroupsNode) -> "GrandTotalNode":
        return cls(grand_total(groups.groups))


@G.node
class PromoQuoteNode:
    """Validates the promo code once, against the grand total."""

    def __init__(self, quote: PromoQuote | None) -> None:
        self.quote = quote

    @classmethod
    async def __compose__(
        cls,
        draft: DraftNode,
        total: GrandTotalNode,
        quoter: Quoter,
    ) -> "PromoQuoteNode":
        code = (draft.draft.promo_code or "").strip()
        if not code:
            return cls(None)

        match await quoter.validate(code, total.total, Scope.PRODUCTS):
            case Ok(quote):
                return cls(quote)
            case Error(e):
                raise e


@G.node
class AllocationNode:
    """Per-shop discount shares, in shop order."""

    def __init__(self, shares: tuple[Money, ...]) -> None:
        self.shares = shares

    @classmethod
    def __compose__(cls, groups: ShopGroupsNode, promo: PromoQuoteNode) -> "AllocationNode":
        weights = [subtotal(lines) for lines in groups.groups.values()]
        discount = promo.quote.discount_amount if promo.quote else 0
        return cls(allocate(discount, weights))


@G.node
class OrderBatchNode:
    def __init__(self, batch: OrderBatch) -> None:
        self.batch = batch

    @classmethod
    def __compose__(
        cls,
        draft: DraftNode,
        groups: ShopGroupsNode,
        promo: PromoQuoteNode,
        allocation: AllocationNode,
    ) -> "OrderBatchNode":
        shops = tuple(
            ShopOrderRequest(
                shop_id=shop_id,
                items=tuple(
                    OrderItem(line.product_id, line.quantity, line.unit_price, line.selection)
                    for line in lines
                ),
                subtotal=subtotal(lines),
                discount=share,
            )
            for (shop_id, lines), share in zip(groups.groups.items(), allocation.shares, strict=True)
        )
        d = draft.draft
        batch = OrderBatch(
            idempotency_key=d.idempotency_key,
            shops=shops,
            shipping=d.shipping,
            promo=promo.quote,
            user_id=d.user_id,
        )
        log.debug(
            "checkout.composed",
            shops=len(shops),
            grand_total=batch.grand_total,
            discount=batch.discount_amount,
        )
        return cls(batch)


# ═══════════════════════════════════════════════════════════════════════════════
# Entry
# ═══════════════════════════════════════════════════════════════════════════════


def compose_batch(draft: CheckoutDraft, quoter: Quoter) -> LazyCoroResult[OrderBatch, StorefrontError]:
    """
    Lazy: nothing runs until awaited.

        match await compose_batch(draft, Quoter(engine.validate)):
            case Ok(batch): ...
            case Error(ValidationError() as e): ...
    """
    async def run() -> OrderBatch:
        node = await G.run(OrderBatchNode).inject(draft).inject(quoter)
        return node.batch

    return from_domain(run)


__all__ = (
    "CheckoutDraft",
    "QuoteFn",
    "Quoter",
    "DraftNode",
    "ShopGroupsNode",
    "GrandTotalNode",
    "PromoQuoteNode",
    "AllocationNode",
    "OrderBatchNode",
    "compose_batch",
)

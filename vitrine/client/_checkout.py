"""
Checkout — cart to order batch, with one retry on a lost response.

    checkout = Checkout(gateway, cart)
    match await checkout.submit(ShippingInfo("12 rue Didouche", "0550...", "Alger")):
        case Ok(orders): ...                       # cart is now empty
        case Error(StockInsufficientError() as e): ...
        case Error(TransientNetworkError()): ...   # already retried once

The idempotency key is generated once per submit() and reused by the
retry, so the server creates the orders at most once.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable

import combinators
import structlog
from kungfu import LazyCoroResult, Result, Ok, Error

from vitrine._types import UserId
from vitrine.cart import Cart, Clear, grand_total, group_by_shop
from vitrine.config import CheckoutRetry
from vitrine.errors import StorefrontError
from vitrine.orders import CheckoutDraft, Order, Quoter, ShippingInfo, compose_batch
from vitrine.promo import PromoQuote, Scope
from vitrine.server import WelcomeOffer
from vitrine.client._gateway import Gateway

log = structlog.get_logger(__name__)


def new_idempotency_key() -> str:
    return uuid.uuid4().hex


class Checkout:
    __slots__ = ("_gateway", "_cart", "_retry", "_new_key")

    def __init__(
        self,
        gateway: Gateway,
        cart: Cart,
        retry: CheckoutRetry | None = None,
        *,
        new_key: Callable[[], str] = new_idempotency_key,
    ) -> None:
        self._gateway = gateway
        self._cart = cart
        self._retry = retry or CheckoutRetry()
        self._new_key = new_key

    @property
    def cart(self) -> Cart:
        return self._cart

    def quote(self, code: str) -> LazyCoroResult[PromoQuote, StorefrontError]:
        """Validate against the grand total across all shops in the cart."""
        total = grand_total(group_by_shop(self._cart.state.lines))
        return self._gateway.validate_promo(code, total, Scope.PRODUCTS)

    def welcome(self, user_id: UserId) -> LazyCoroResult[WelcomeOffer, StorefrontError]:
        return self._gateway.welcome_code(user_id)

    def submit(
        self,
        shipping: ShippingInfo,
        promo_code: str | None = None,
        user_id: UserId = "guest",
    ) -> LazyCoroResult[tuple[Order, ...], StorefrontError]:
        async def run() -> Result[tuple[Order, ...], StorefrontError]:
            key = self._new_key()
            draft = CheckoutDraft(
                lines=self._cart.state.lines,
                shipping=shipping,
                idempotency_key=key,
                promo_code=promo_code,
                user_id=user_id,
            )
            match await compose_batch(draft, Quoter(self._gateway.validate_promo)):
                case Ok(batch):
                    pass
                case Error(e):
                    return Error(e)

            result = await combinators.retry(
                self._gateway.place_orders(batch.submission()),
                policy=self._retry.policy(),
            )
            match result:
                case Ok(orders):
                    self._cart.dispatch(Clear())
                    log.info(
                        "checkout.submitted",
                        key=key,
                        orders=[o.id for o in orders],
                        total=batch.final_amount,
                    )
                case Error(e):
                    log.info("checkout.failed", key=key, kind=e.kind.name, error=e.message)
            return result

        return LazyCoroResult(run)


__all__ = (
    "new_idempotency_key",
    "Checkout",
)

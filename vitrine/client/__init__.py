"""
Client — checkout, order history and optimistic toggles over a Gateway.

    from vitrine import client as CL

    gateway = CL.HttpGateway(httpx.AsyncClient(base_url=API_URL))
    checkout = CL.Checkout(gateway, cart, settings.checkout_retry)

    match await checkout.quote("WELCOME10"):
        case Ok(quote): quote.discount_amount

    history = CL.order_history(gateway, user_id)
    await history.load_next()

    await CL.like_toggle(gateway, user_id, product_id, state).toggle()
"""

from vitrine.client._gateway import (
    Gateway,
    LocalGateway,
    HttpGateway,
    decode_error,
)
from vitrine.client._checkout import (
    new_idempotency_key,
    Checkout,
)
from vitrine.client._paging import (
    Chunk,
    Fetch,
    PageLoader,
    order_history,
)
from vitrine.client._toggle import (
    Remote,
    OptimisticToggle,
    LocalLike,
    like_toggle,
)

__all__ = (
    # Gateway
    "Gateway",
    "LocalGateway",
    "HttpGateway",
    "decode_error",
    # Checkout
    "new_idempotency_key",
    "Checkout",
    # Paging
    "Chunk",
    "Fetch",
    "PageLoader",
    "order_history",
    # Toggle
    "Remote",
    "OptimisticToggle",
    "LocalLike",
    "like_toggle",
)

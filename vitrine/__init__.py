"""
vitrine — variant-aware inventory and multi-shop checkout.

    from vitrine import catalog as K   # Variants and stock resolution
    from vitrine import cart as Ct     # Cart reducer, per-shop grouping
    from vitrine import promo as P     # Promo validation
    from vitrine import orders as O    # Order batches and status machine
    from vitrine import server as SV   # Storefront service and HTTP app
    from vitrine import client as CL   # Checkout, paging, optimistic toggles
"""

from vitrine import errors
from vitrine import lift
from vitrine import graph
from vitrine import saga
from vitrine import idempotency
from vitrine import ops
from vitrine import wire
from vitrine import catalog
from vitrine import cart
from vitrine import promo
from vitrine import orders
from vitrine import server
from vitrine import client
from vitrine._log import configure_logging
from vitrine.config import Settings, CheckoutRetry
from vitrine.errors import (
    ErrorKind,
    StorefrontError,
    ValidationError,
    StockInsufficientError,
    PromoInvalidError,
    TransientNetworkError,
    NotFoundError,
    StatusTransitionError,
    ConflictError,
)
from vitrine._types import (
    Lazy,
    Pure,
    Money,
    da,
    to_da,
)

__version__ = "0.1.0"

__all__ = (
    "errors",
    "lift",
    "graph",
    "saga",
    "idempotency",
    "ops",
    "wire",
    "catalog",
    "cart",
    "promo",
    "orders",
    "server",
    "client",
    "configure_logging",
    "Settings",
    "CheckoutRetry",
    "ErrorKind",
    "StorefrontError",
    "ValidationError",
    "StockInsufficientError",
    "PromoInvalidError",
    "TransientNetworkError",
    "NotFoundError",
    "StatusTransitionError",
    "ConflictError",
    "Lazy",
    "Pure",
    "Money",
    "da",
    "to_da",
)

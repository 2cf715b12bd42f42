"""
Lift — Helpers for lifting values into vitrine effects.

Re-exports from combinators.lift with storefront-specific additions.
"""

from __future__ import annotations

from collections.abc import Callable, Awaitable

from kungfu import LazyCoroResult

# Re-export everything from combinators.lift
from combinators.lift import (
    pure,
    fail,
    catching_async,
    call,
)

from vitrine.errors import StorefrontError


# ═══════════════════════════════════════════════════════════════════════════════
# Storefront-specific helpers
# ═══════════════════════════════════════════════════════════════════════════════

def domain_error(exc: Exception) -> StorefrontError:
    """
    on_error mapper that only captures business errors.

    Anything that is not a StorefrontError is a bug and propagates.
    """
    if isinstance(exc, StorefrontError):
        return exc
    raise exc


def from_domain[T](
    awaitable_fn: Callable[[], Awaitable[T]],
) -> LazyCoroResult[T, StorefrontError]:
    """
    Run an async function whose business failures are raised.

    Raised StorefrontErrors become Error(...); other exceptions escape.
    """
    return catching_async(awaitable_fn, on_error=domain_error)


__all__ = (
    # From combinators.lift
    "pure",
    "fail",
    "catching_async",
    "call",
    # Storefront additions
    "domain_error",
    "from_domain",
)

"""
Promo — code validation, welcome codes, influencer commission.

    from vitrine import promo as P

    engine = P.PromoEngine(P.MemoryPromoBook(welcome10))
    match await engine.validate("welcome10", da(3000)):
        case Ok(quote):
            quote.discount_amount      # da(200), capped
        case Error(P.PromoInvalidError(reason=reason)):
            ...
"""

from vitrine.errors import PromoInvalidError, PromoRejection
from vitrine.promo._types import (
    DiscountType,
    Scope,
    PromoCode,
    PromoQuote,
)
from vitrine.promo._engine import (
    normalize_code,
    compute_discount,
    commission,
    validate,
)
from vitrine.promo._welcome import (
    is_welcome_candidate,
    pick_welcome,
    is_new_user,
)
from vitrine.promo._book import (
    PromoBook,
    MemoryPromoBook,
    PromoEngine,
)

__all__ = (
    # Errors
    "PromoInvalidError",
    "PromoRejection",
    # Types
    "DiscountType",
    "Scope",
    "PromoCode",
    "PromoQuote",
    # Engine
    "normalize_code",
    "compute_discount",
    "commission",
    "validate",
    # Welcome
    "is_welcome_candidate",
    "pick_welcome",
    "is_new_user",
    # Book
    "PromoBook",
    "MemoryPromoBook",
    "PromoEngine",
)

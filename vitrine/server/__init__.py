"""
Server — the storefront service, its operations and its HTTP app.

    from vitrine import server as SV

    shop, engine = await SV.open_storefront(Settings())
    await shop.add_product(product)

    match await shop.place_orders(submission):
        case Ok(orders): ...
        case Error(StockInsufficientError() as e): ...

    app = SV.create_app(shop)   # FastAPI, mount under uvicorn
"""

from vitrine.server._db import (
    Base,
    create_database,
    variant_key,
)
from vitrine.server._storefront import (
    ProductView,
    LikeState,
    WelcomeOffer,
    OrderPage,
    PromoUsage,
    SessionPromoBook,
    Storefront,
    open_storefront,
)
from vitrine.server._ops import (
    ValidatePromo,
    WelcomeCode,
    PlaceOrders,
    UpdateStatus,
    RequestReturn,
    ListOrders,
    CountOrders,
    GetOrder,
    ListShopOrders,
    CountShopOrders,
    GetPromoUsage,
    GetProduct,
    SetLike,
    storefront_runner,
)
from vitrine.server._http import (
    STATUS_BY_KIND,
    raise_for,
    create_app,
)

__all__ = (
    # Database
    "Base",
    "create_database",
    "variant_key",
    # Service
    "ProductView",
    "LikeState",
    "WelcomeOffer",
    "OrderPage",
    "PromoUsage",
    "SessionPromoBook",
    "Storefront",
    "open_storefront",
    # Operations
    "ValidatePromo",
    "WelcomeCode",
    "PlaceOrders",
    "UpdateStatus",
    "RequestReturn",
    "ListOrders",
    "CountOrders",
    "GetOrder",
    "ListShopOrders",
    "CountShopOrders",
    "GetPromoUsage",
    "GetProduct",
    "SetLike",
    "storefront_runner",
    # HTTP
    "STATUS_BY_KIND",
    "raise_for",
    "create_app",
)

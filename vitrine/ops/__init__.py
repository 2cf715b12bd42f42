"""
Ops — storefront operations as data, dispatched through nodnod.

    from vitrine import ops as O

    runner = (
        O.ops()
        .on(PlaceOrders, place_orders)
        .on(GetProduct, get_product)
        .compile()
        .inject(Storefront, shop)
    )
    result = await runner.run(GetProduct(42))
"""

from vitrine.ops._graph import (
    Op,
    OpsBuilder,
    Runner,
    ops,
)

__all__ = (
    "Op",
    "OpsBuilder",
    "Runner",
    "ops",
)

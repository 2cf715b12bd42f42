"""
Checkout Example — product page to orders, across two shops.

Run: uv run python examples/checkout_example.py

Level 5: vitrine.client (Checkout, PageLoader, OptimisticToggle)
Level 4: vitrine.server.Storefront
Level 3: combinators.retry
Level 2: kungfu.Result
"""

import asyncio

from kungfu import Ok, Error

from vitrine import cart as Ct
from vitrine import catalog as K
from vitrine import client as CL
from vitrine import configure_logging
from vitrine._types import to_da
from vitrine.orders import OrderSubmission, ShippingInfo, SubmittedItem
from examples._infra import banner, run, seeded_storefront


async def main() -> None:
    configure_logging("WARNING")
    shop, engine = await seeded_storefront()
    gateway = CL.LocalGateway(shop)

    banner("Product page")
    shirt = (await gateway.product(1, "u1")).unwrap().product
    for size in ("S", "M", "L"):
        selection = {"Taille": size, "Couleur": "Noir" if size == "L" else "Blanc"}
        print(f"  {size}: stock={K.resolve(shirt, selection)}, prix={to_da(K.unit_price(shirt, selection)):g} DA")

    cart = Ct.Cart()
    match Ct.add_line_for(shirt, {"Taille": "M", "Couleur": "Blanc"}).then(cart.dispatch):
        case Ok(_):
            print("  M added")
        case Error(e):
            print(f"  M rejected: {e.message}")

    banner("Two shops, one promo")
    mug = (await gateway.product(2)).unwrap().product
    cap = (await gateway.product(3)).unwrap().product
    cart.dispatch(Ct.add_line_for(mug, quantity=2).unwrap())
    cart.dispatch(Ct.add_line_for(cap).unwrap())

    checkout = CL.Checkout(gateway, cart)
    quote = (await checkout.quote("ATLAS300")).unwrap()
    print(f"  {quote.code}: -{to_da(quote.discount_amount):g} DA → {to_da(quote.final_amount):g} DA")

    match await checkout.submit(ShippingInfo("12 rue Didouche Mourad", "0555000000", "Alger"), "ATLAS300", "u1"):
        case Ok(orders):
            for order in orders:
                print(
                    f"  shop {order.shop_id} #{order.shop_order_number}: "
                    f"{to_da(order.subtotal):g} - {to_da(order.discount):g} = {to_da(order.total):g} DA"
                )
        case Error(e):
            print(f"  failed: {e.message}")
    print(f"  cart empty: {cart.state.is_empty}")

    banner("Last unit, two buyers")

    def last_bag(key: str, user_id: str) -> OrderSubmission:
        return OrderSubmission(key, (SubmittedItem(4, 1, 80000),), 80000, "Oran", "0666000000", user_id)

    results = await asyncio.gather(
        shop.place_orders(last_bag("k-amina", "amina")),
        shop.place_orders(last_bag("k-yacine", "yacine")),
    )
    for result in results:
        match result:
            case Ok(orders):
                print(f"  ✓ {orders[0].user_id} got it")
            case Error(e):
                print(f"  ✗ {e.message}")

    replay = await shop.place_orders(last_bag("k-amina", "amina"))
    print(f"  resubmitted k-amina: {isinstance(replay, Ok)} ({(await shop.count_orders('amina')).unwrap()} order)")

    banner("History and likes")
    history = CL.order_history(gateway, "u1", page_size=1)
    while history.has_more:
        await history.load_next()
    print(f"  u1 orders: {[o.id for o in history.items]}")

    state = CL.LocalLike()
    await CL.like_toggle(gateway, "u1", 1, state).toggle()
    print(f"  liked={state.liked}, likes={state.likes}")

    await engine.dispose()


if __name__ == "__main__":
    run(main)

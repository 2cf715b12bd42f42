"""
Storefront — the server-side service over SQLAlchemy.

    session_factory, engine = await create_database()
    shop = Storefront(session_factory, Settings())

    match await shop.place_orders(submission):
        case Ok(orders): ...
        case Error(StockInsufficientError() as e): ...

Every public method returns a LazyCoroResult. Business failures are raised
inside and come back as Error(...); database failures propagate.

All database work is serialized by one writer lock: an order batch is
re-priced, re-validated and committed in a single transaction, so two
checkouts racing for the last unit cannot both win.
"""

from __future__ import annotations

import asyncio
import json
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import structlog
from kungfu import LazyCoroResult, Ok, Error
from sqlalchemy import ColumnElement, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from vitrine import catalog as K
from vitrine import idempotency as I
from vitrine import orders as O
from vitrine import promo as P
from vitrine._types import Money, OrderId, ProductId, ShopId, UserId
from vitrine.cart import CartLine
from vitrine.config import Settings
from vitrine.errors import (
    StorefrontError,
    NotFoundError,
    StockInsufficientError,
    ValidationError,
)
from vitrine.lift import from_domain
from vitrine.server._db import (
    BuyerTable,
    CheckoutTable,
    LikeTable,
    OrderItemTable,
    OrderTable,
    ProductTable,
    ProductVariantTable,
    PromoCodeTable,
    PromoUsageTable,
    create_database,
    variant_key,
)

log = structlog.get_logger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Read Models
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ProductView:
    product: K.Product
    likes: int = 0
    liked: bool = False


@dataclass(frozen=True, slots=True)
class LikeState:
    liked: bool
    likes: int


@dataclass(frozen=True, slots=True)
class WelcomeOffer:
    is_new_user: bool
    promo: P.PromoCode | None = None


@dataclass(frozen=True, slots=True)
class OrderPage:
    orders: tuple[O.Order, ...]
    page: int
    has_more: bool


@dataclass(frozen=True, slots=True)
class PromoUsage:
    """Redemptions of one influencer's codes: discount given and commission owed."""

    influencer_name: str
    uses: int
    savings: Money
    earnings: Money


# ═══════════════════════════════════════════════════════════════════════════════
# Row Mapping
# ═══════════════════════════════════════════════════════════════════════════════


def _promo_from_row(row: PromoCodeTable) -> P.PromoCode:
    return P.PromoCode(
        code=row.code,
        discount_type=P.DiscountType(row.discount_type),
        discount_value=row.discount_value,
        max_discount=row.max_discount,
        min_order_amount=row.min_order_amount,
        applies_to=P.Scope(row.applies_to),
        valid_from=row.valid_from,
        valid_until=row.valid_until,
        usage_limit=row.usage_limit,
        usage_count=row.usage_count,
        is_active=row.is_active,
        description=row.description,
        influencer_name=row.influencer_name,
        commission_rate=row.commission_rate,
    )


def _order_from_rows(row: OrderTable, items: Sequence[OrderItemTable]) -> O.Order:
    return O.Order(
        id=row.id,
        user_id=row.user_id,
        shop_id=row.shop_id,
        shop_order_number=row.shop_order_number,
        items=tuple(
            O.OrderItem(i.product_id, i.quantity, i.unit_price, dict(i.selection or {}))
            for i in sorted(items, key=lambda i: i.position)
        ),
        subtotal=row.subtotal,
        discount=row.discount,
        total=row.total,
        shipping_address=row.shipping_address,
        phone=row.phone,
        status=O.OrderStatus(row.status),
        promo_code=row.promo_code,
        return_requested=row.return_requested,
        return_reason=row.return_reason,
        created_at=row.created_at,
    )


def _new_order_id() -> OrderId:
    return f"ord_{uuid.uuid4().hex[:12]}"


def _encode_ids(ids: tuple[OrderId, ...]) -> str:
    return json.dumps(list(ids))


def _decode_ids(raw: str) -> tuple[OrderId, ...]:
    return tuple(json.loads(raw))


class SessionPromoBook:
    """PromoBook reading through an open session."""

    __slots__ = ("_session",)

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find(self, code: str) -> P.PromoCode | None:
        row = await self._session.get(PromoCodeTable, P.normalize_code(code))
        return _promo_from_row(row) if row is not None else None

    async def all(self) -> list[P.PromoCode]:
        rows = (await self._session.execute(select(PromoCodeTable))).scalars().all()
        return [_promo_from_row(r) for r in rows]


# ═══════════════════════════════════════════════════════════════════════════════
# Storefront
# ═══════════════════════════════════════════════════════════════════════════════


class Storefront:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings | None = None,
    ) -> None:
        self._sessions = session_factory
        self._settings = settings or Settings()
        self._lock = asyncio.Lock()
        self._checkouts = (
            I.idempotent(self._place)
            .key(lambda sub: sub.idempotency_key)
            .fingerprint(lambda sub: sub.fingerprint())
            .store(I.SQLAlchemyStore(session_factory, CheckoutTable))
            .codec(_encode_ids, _decode_ids)
            .policy(
                I.Policy()
                .with_ttl(delta=self._settings.idempotency_ttl)
                .with_on_pending(I.WAIT)
                .with_wait_timeout(delta=self._settings.pending_wait)
            )
            .build()
        )

    @property
    def settings(self) -> Settings:
        return self._settings

    # ─── Seeding ──────────────────────────────────────────────────────────────

    def add_product(self, product: K.Product) -> LazyCoroResult[K.Product, StorefrontError]:
        async def run() -> K.Product:
            axes = K.axes(product)
            async with self._lock, self._sessions() as session, session.begin():
                session.add(ProductTable(
                    id=product.id,
                    shop_id=product.shop_id,
                    name=product.name,
                    price=product.price,
                    has_variants=product.has_variants,
                    stock=product.stock,
                ))
                await session.flush()
                for position, v in enumerate(product.variants):
                    session.add(ProductVariantTable(
                        product_id=product.id,
                        position=position,
                        attributes=dict(v.attributes),
                        variant_key=variant_key(axes, v.attributes),
                        stock=v.stock,
                        price=v.price,
                    ))
            return product
        return from_domain(run)

    def add_promo(self, promo: P.PromoCode) -> LazyCoroResult[P.PromoCode, StorefrontError]:
        async def run() -> P.PromoCode:
            async with self._lock, self._sessions() as session, session.begin():
                session.add(PromoCodeTable(
                    code=P.normalize_code(promo.code),
                    discount_type=promo.discount_type.value,
                    discount_value=promo.discount_value,
                    max_discount=promo.max_discount,
                    min_order_amount=promo.min_order_amount,
                    applies_to=promo.applies_to.value,
                    valid_from=promo.valid_from,
                    valid_until=promo.valid_until,
                    usage_limit=promo.usage_limit,
                    usage_count=promo.usage_count,
                    is_active=promo.is_active,
                    description=promo.description,
                    influencer_name=promo.influencer_name,
                    commission_rate=promo.commission_rate,
                ))
            return promo
        return from_domain(run)

    # ─── Catalog ──────────────────────────────────────────────────────────────

    async def _load_product(self, session: AsyncSession, product_id: ProductId) -> K.Product:
        row = await session.get(ProductTable, product_id)
        if row is None:
            raise NotFoundError("product", product_id)
        variants = (await session.execute(
            select(ProductVariantTable)
            .where(ProductVariantTable.product_id == product_id)
            .order_by(ProductVariantTable.position)
        )).scalars().all()
        return K.Product(
            id=row.id,
            shop_id=row.shop_id,
            name=row.name,
            price=row.price,
            has_variants=row.has_variants,
            stock=row.stock,
            variants=tuple(K.Variant(dict(v.attributes), v.stock, v.price) for v in variants),
        )

    def product(
        self,
        product_id: ProductId,
        user_id: UserId | None = None,
    ) -> LazyCoroResult[ProductView, StorefrontError]:
        async def run() -> ProductView:
            async with self._lock, self._sessions() as session:
                product = await self._load_product(session, product_id)
                likes, liked = await self._likes(session, product_id, user_id)
                return ProductView(product, likes, liked)
        return from_domain(run)

    def stock_of(
        self,
        product_id: ProductId,
        selection: Mapping[str, str] | None = None,
    ) -> LazyCoroResult[int, StorefrontError]:
        async def run() -> int:
            async with self._lock, self._sessions() as session:
                return K.resolve(await self._load_product(session, product_id), selection)
        return from_domain(run)

    async def _likes(
        self,
        session: AsyncSession,
        product_id: ProductId,
        user_id: UserId | None,
    ) -> tuple[int, bool]:
        likes = await session.scalar(
            select(func.count()).select_from(LikeTable).where(LikeTable.product_id == product_id)
        )
        liked = False
        if user_id is not None:
            liked = await session.scalar(
                select(LikeTable.id).where(
                    LikeTable.product_id == product_id,
                    LikeTable.user_id == user_id,
                )
            ) is not None
        return likes or 0, liked

    def set_like(
        self,
        user_id: UserId,
        product_id: ProductId,
        liked: bool,
    ) -> LazyCoroResult[LikeState, StorefrontError]:
        """Idempotent: setting the current value again changes nothing."""
        async def run() -> LikeState:
            async with self._lock, self._sessions() as session, session.begin():
                if await session.get(ProductTable, product_id) is None:
                    raise NotFoundError("product", product_id)
                _, current = await self._likes(session, product_id, user_id)
                if liked and not current:
                    session.add(LikeTable(user_id=user_id, product_id=product_id))
                    await session.flush()
                elif current and not liked:
                    await session.execute(delete(LikeTable).where(
                        LikeTable.product_id == product_id,
                        LikeTable.user_id == user_id,
                    ))
                likes, now_liked = await self._likes(session, product_id, user_id)
            return LikeState(now_liked, likes)
        return from_domain(run)

    # ─── Promo ────────────────────────────────────────────────────────────────

    def validate_promo(
        self,
        code: str,
        amount: Money,
        scope: P.Scope = P.Scope.PRODUCTS,
    ) -> LazyCoroResult[P.PromoQuote, StorefrontError]:
        async def run() -> P.PromoQuote:
            async with self._lock, self._sessions() as session:
                match await P.PromoEngine(SessionPromoBook(session)).validate(code, amount, scope):
                    case Ok(quote):
                        return quote
                    case Error(e):
                        raise e
        return from_domain(run)

    def welcome_code(self, user_id: UserId) -> LazyCoroResult[WelcomeOffer, StorefrontError]:
        async def run() -> WelcomeOffer:
            async with self._lock, self._sessions() as session:
                if not P.is_new_user(await self._count_orders(session, user_id)):
                    return WelcomeOffer(is_new_user=False)
                promos = await SessionPromoBook(session).all()
                return WelcomeOffer(is_new_user=True, promo=P.pick_welcome(promos))
        return from_domain(run)

    def promo_usage(self, influencer_name: str) -> LazyCoroResult[PromoUsage, StorefrontError]:
        async def run() -> PromoUsage:
            async with self._lock, self._sessions() as session:
                uses, savings, earnings = (await session.execute(
                    select(
                        func.count(PromoUsageTable.id),
                        func.coalesce(func.sum(PromoUsageTable.discount), 0),
                        func.coalesce(func.sum(PromoUsageTable.commission), 0),
                    ).where(PromoUsageTable.influencer_name == influencer_name)
                )).one()
            return PromoUsage(influencer_name, int(uses), int(savings), int(earnings))
        return from_domain(run)

    def influencer_earnings(self, influencer_name: str) -> LazyCoroResult[Money, StorefrontError]:
        return self.promo_usage(influencer_name).map(lambda usage: usage.earnings)

    # ─── Orders ───────────────────────────────────────────────────────────────

    def place_orders(
        self,
        submission: O.OrderSubmission,
    ) -> LazyCoroResult[tuple[O.Order, ...], StorefrontError]:
        """
        Create one order per shop, all or nothing.

        Resubmitting the same key with the same payload replays the orders
        created the first time; the same key with another payload is a
        ConflictError.
        """
        async def run() -> tuple[O.Order, ...]:
            async with self._lock:
                match await self._checkouts.run(submission):
                    case Ok(replay):
                        ids = replay.value
                        if replay.from_cache:
                            log.info("orders.replayed", key=submission.idempotency_key, orders=list(ids))
                    case Error(e):
                        raise e
                async with self._sessions() as session:
                    return tuple([await self._load_order(session, oid) for oid in ids])
        return from_domain(run)

    def _place(self, sub: O.OrderSubmission) -> LazyCoroResult[tuple[OrderId, ...], StorefrontError]:
        async def run() -> tuple[OrderId, ...]:
            async with self._sessions() as session, session.begin():
                return await self._commit(session, sub)
        return from_domain(run)

    async def _commit(self, session: AsyncSession, sub: O.OrderSubmission) -> tuple[OrderId, ...]:
        products: dict[ProductId, K.Product] = {}
        lines: list[CartLine] = []
        for item in sub.items:
            if item.product_id not in products:
                products[item.product_id] = await self._load_product(session, item.product_id)
            product = products[item.product_id]
            selection = dict(item.selection)
            if item.legacy:
                selection = K.complete_legacy(product, selection)
            missing = K.missing_axes(product, selection)
            if missing:
                raise ValidationError("selection", f"Veuillez sélectionner: {', '.join(missing)}")
            lines.append(CartLine(
                product_id=product.id,
                shop_id=product.shop_id,
                name=product.name,
                unit_price=K.unit_price(product, selection),
                quantity=item.quantity,
                selection=selection,
            ))

        draft = O.CheckoutDraft(
            lines=tuple(lines),
            shipping=O.ShippingInfo(sub.shipping_address, sub.phone),
            idempotency_key=sub.idempotency_key,
            promo_code=sub.promo_code,
            user_id=sub.user_id,
            require_wilaya=False,
        )
        engine = P.PromoEngine(SessionPromoBook(session))
        match await O.compose_batch(draft, O.Quoter(engine.validate)):
            case Ok(batch):
                pass
            case Error(e):
                raise e

        if batch.final_amount != sub.total or batch.discount_amount != sub.discount_amount:
            log.warning(
                "orders.total_mismatch",
                key=sub.idempotency_key,
                claimed=sub.total,
                computed=batch.final_amount,
            )
            raise ValidationError("total", "Le total a changé. Veuillez vérifier votre panier")

        await self._take_stock(session, products, lines)

        ids: list[OrderId] = []
        for shop in batch.shops:
            number = (await session.scalar(
                select(func.max(OrderTable.shop_order_number)).where(OrderTable.shop_id == shop.shop_id)
            ) or 0) + 1
            order_id = _new_order_id()
            session.add(OrderTable(
                id=order_id,
                user_id=sub.user_id,
                shop_id=shop.shop_id,
                shop_order_number=number,
                subtotal=shop.subtotal,
                discount=shop.discount,
                total=shop.total,
                shipping_address=sub.shipping_address,
                phone=sub.phone,
                status=O.OrderStatus.PENDING.value,
                promo_code=batch.promo.code if batch.promo else None,
                checkout_key=sub.idempotency_key,
            ))
            await session.flush()
            for position, item in enumerate(shop.items):
                session.add(OrderItemTable(
                    order_id=order_id,
                    position=position,
                    product_id=item.product_id,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    selection=dict(item.selection),
                ))
            ids.append(order_id)

        if batch.promo is not None:
            await self._redeem(session, batch.promo, sub)

        log.info(
            "orders.committed",
            key=sub.idempotency_key,
            orders=ids,
            total=batch.final_amount,
            discount=batch.discount_amount,
        )
        return tuple(ids)

    async def _take_stock(
        self,
        session: AsyncSession,
        products: Mapping[ProductId, K.Product],
        lines: Sequence[CartLine],
    ) -> None:
        """Guarded decrements; any shortfall aborts the whole transaction."""
        wanted: dict[Any, int] = {}
        for line in lines:
            wanted[line.key] = wanted.get(line.key, 0) + line.quantity

        for (product_id, frozen), quantity in wanted.items():
            product = products[product_id]
            selection = dict(frozen)
            available = K.resolve(product, selection)
            if product.has_variants:
                stmt = (
                    update(ProductVariantTable)
                    .where(
                        ProductVariantTable.product_id == product_id,
                        ProductVariantTable.variant_key == variant_key(K.axes(product), selection),
                        ProductVariantTable.stock >= quantity,
                    )
                    .values(stock=ProductVariantTable.stock - quantity)
                )
            else:
                stmt = (
                    update(ProductTable)
                    .where(ProductTable.id == product_id, ProductTable.stock >= quantity)
                    .values(stock=ProductTable.stock - quantity)
                )
            if available >= quantity:
                if (await session.execute(stmt)).rowcount > 0:
                    continue
                # moved since the product was loaded
                available = await self._stock_now(session, product, selection)
            log.info("orders.stock_short", product_id=product_id, requested=quantity, available=available)
            raise StockInsufficientError(product_id, quantity, available, selection)

    async def _stock_now(
        self,
        session: AsyncSession,
        product: K.Product,
        selection: Mapping[str, str],
    ) -> int:
        if product.has_variants:
            stmt = select(ProductVariantTable.stock).where(
                ProductVariantTable.product_id == product.id,
                ProductVariantTable.variant_key == variant_key(K.axes(product), selection),
            )
        else:
            stmt = select(ProductTable.stock).where(ProductTable.id == product.id)
        return await session.scalar(stmt) or 0

    async def _redeem(self, session: AsyncSession, quote: P.PromoQuote, sub: O.OrderSubmission) -> None:
        row = await session.get(PromoCodeTable, quote.code)
        if row is None:
            raise NotFoundError("promo_code", quote.code)
        promo = _promo_from_row(row)
        row.usage_count += 1
        session.add(PromoUsageTable(
            code=quote.code,
            user_id=sub.user_id,
            checkout_key=sub.idempotency_key,
            discount=quote.discount_amount,
            commission=P.commission(promo, quote.discount_amount),
            influencer_name=promo.influencer_name,
        ))

    async def _load_order(self, session: AsyncSession, order_id: OrderId) -> O.Order:
        row = await session.get(OrderTable, order_id)
        if row is None:
            raise NotFoundError("order", order_id)
        items = (await session.execute(
            select(OrderItemTable).where(OrderItemTable.order_id == order_id)
        )).scalars().all()
        return _order_from_rows(row, items)

    def get_order(
        self,
        order_id: OrderId,
        user_id: UserId | None = None,
    ) -> LazyCoroResult[O.Order, StorefrontError]:
        """With a user_id, another buyer's order reads as not found."""
        async def run() -> O.Order:
            async with self._lock, self._sessions() as session:
                order = await self._load_order(session, order_id)
            if user_id is not None and order.user_id != user_id:
                raise NotFoundError("order", order_id)
            return order
        return from_domain(run)

    def update_status(
        self,
        order_id: OrderId,
        status: O.OrderStatus,
    ) -> LazyCoroResult[O.Order, StorefrontError]:
        async def run() -> O.Order:
            async with self._lock, self._sessions() as session, session.begin():
                order = await self._load_order(session, order_id)
                match O.advance(order, status):
                    case Ok(updated):
                        pass
                    case Error(e):
                        raise e
                await session.execute(
                    update(OrderTable).where(OrderTable.id == order_id).values(status=updated.status.value)
                )
            log.info("orders.status_changed", order_id=order_id, status=status.value)
            return updated
        return from_domain(run)

    def request_return(
        self,
        order_id: OrderId,
        reason: str | None = None,
    ) -> LazyCoroResult[O.Order, StorefrontError]:
        async def run() -> O.Order:
            async with self._lock, self._sessions() as session, session.begin():
                order = await self._load_order(session, order_id)
                match O.request_return(order, reason or self._settings.default_return_reason):
                    case Ok(updated):
                        pass
                    case Error(e):
                        raise e
                await session.execute(
                    update(OrderTable)
                    .where(OrderTable.id == order_id)
                    .values(return_requested=True, return_reason=updated.return_reason)
                )
                buyer = await session.get(BuyerTable, order.user_id)
                if buyer is None:
                    session.add(BuyerTable(user_id=order.user_id, returns_count=1))
                else:
                    buyer.returns_count += 1
            log.info("orders.return_requested", order_id=order_id, reason=updated.return_reason)
            return updated
        return from_domain(run)

    def returns_count(self, user_id: UserId) -> LazyCoroResult[int, StorefrontError]:
        async def run() -> int:
            async with self._lock, self._sessions() as session:
                buyer = await session.get(BuyerTable, user_id)
                return buyer.returns_count if buyer is not None else 0
        return from_domain(run)

    async def _count_orders(self, session: AsyncSession, user_id: UserId) -> int:
        count = await session.scalar(
            select(func.count()).select_from(OrderTable).where(OrderTable.user_id == user_id)
        )
        return count or 0

    def count_orders(self, user_id: UserId) -> LazyCoroResult[int, StorefrontError]:
        async def run() -> int:
            async with self._lock, self._sessions() as session:
                return await self._count_orders(session, user_id)
        return from_domain(run)

    def list_orders(
        self,
        user_id: UserId,
        page: int = 1,
        page_size: int | None = None,
    ) -> LazyCoroResult[OrderPage, StorefrontError]:
        """Newest first."""
        return self._order_page(OrderTable.user_id == user_id, page, page_size)

    def list_shop_orders(
        self,
        shop_id: ShopId,
        page: int = 1,
        page_size: int | None = None,
    ) -> LazyCoroResult[OrderPage, StorefrontError]:
        """A shop's own orders, newest first."""
        return self._order_page(OrderTable.shop_id == shop_id, page, page_size)

    def count_shop_orders(self, shop_id: ShopId) -> LazyCoroResult[int, StorefrontError]:
        async def run() -> int:
            async with self._lock, self._sessions() as session:
                count = await session.scalar(
                    select(func.count()).select_from(OrderTable).where(OrderTable.shop_id == shop_id)
                )
                return count or 0
        return from_domain(run)

    def _order_page(
        self,
        criterion: ColumnElement[bool],
        page: int,
        page_size: int | None,
    ) -> LazyCoroResult[OrderPage, StorefrontError]:
        size = page_size or self._settings.page_size

        async def run() -> OrderPage:
            if page < 1:
                raise ValidationError("page", "Page invalide")
            if size < 1:
                raise ValidationError("limit", "Limite invalide")
            async with self._lock, self._sessions() as session:
                ids = (await session.execute(
                    select(OrderTable.id)
                    .where(criterion)
                    .order_by(OrderTable.created_at.desc(), OrderTable.shop_id, OrderTable.id)
                    .offset((page - 1) * size)
                    .limit(size + 1)
                )).scalars().all()
                orders = tuple([await self._load_order(session, oid) for oid in ids[:size]])
            return OrderPage(orders=orders, page=page, has_more=len(ids) > size)
        return from_domain(run)


async def open_storefront(settings: Settings | None = None) -> tuple[Storefront, AsyncEngine]:
    """Create the schema and a Storefront over it. Dispose the engine when done."""
    settings = settings or Settings()
    session_factory, engine = await create_database(settings.database_url)
    return Storefront(session_factory, settings), engine


__all__ = (
    "ProductView",
    "LikeState",
    "WelcomeOffer",
    "OrderPage",
    "PromoUsage",
    "SessionPromoBook",
    "Storefront",
    "open_storefront",
)

"""
PageLoader — infinite-scroll pagination with a single in-flight guard.

    loader = PageLoader(fetch_orders, page_size=10)
    await loader.load_next()          # page 1
    await asyncio.gather(             # rapid scroll: the second call is dropped
        loader.load_next(),
        loader.load_next(),
    )
    loader.items                      # de-duplicated by id, in arrival order
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Hashable, Sequence
from dataclasses import dataclass
from operator import attrgetter

import structlog
from kungfu import Result, Ok, Error

from vitrine._types import UserId
from vitrine.errors import StorefrontError
from vitrine.orders import Order
from vitrine.client._gateway import Gateway

log = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Chunk[T]:
    """A page whose source says whether another one follows."""

    rows: Sequence[T]
    has_more: bool


type Fetch[T, E] = Callable[[int], Awaitable[Result[Sequence[T] | Chunk[T], E]]]


class PageLoader[T, E]:
    """
    Loads pages 1, 2, ... on demand.

    At most one fetch is outstanding; load_next() called meanwhile returns
    None without fetching. has_more follows the source when it returns a
    Chunk; for a plain sequence it turns false on the first short page.
    A fetch that was in flight across refresh() is discarded.
    """

    def __init__(
        self,
        fetch: Fetch[T, E],
        page_size: int,
        *,
        key: Callable[[T], Hashable] = attrgetter("id"),
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self._fetch = fetch
        self._page_size = page_size
        self._key = key
        self._items: list[T] = []
        self._seen: set[Hashable] = set()
        self._next_page = 1
        self._has_more = True
        self._loading = False
        self._generation = 0

    @property
    def items(self) -> tuple[T, ...]:
        return tuple(self._items)

    @property
    def has_more(self) -> bool:
        return self._has_more

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def next_page(self) -> int:
        return self._next_page

    async def load_next(self) -> Result[tuple[T, ...], E] | None:
        """New items of the next page, or None when nothing was fetched."""
        if self._loading or not self._has_more:
            return None

        generation = self._generation
        page = self._next_page
        self._loading = True
        try:
            result = await self._fetch(page)
        finally:
            if generation == self._generation:
                self._loading = False

        if generation != self._generation:
            log.debug("paging.stale_page_dropped", page=page)
            return None

        match result:
            case Ok(Chunk(rows=rows, has_more=more)):
                pass
            case Ok(rows):
                more = len(rows) == self._page_size
            case Error(e):
                log.info("paging.failed", page=page, error=str(e))
                return Error(e)

        fresh = tuple(row for row in rows if self._key(row) not in self._seen)
        self._seen.update(self._key(row) for row in fresh)
        self._items.extend(fresh)
        self._has_more = more
        self._next_page = page + 1
        return Ok(fresh)

    async def refresh(self) -> Result[tuple[T, ...], E] | None:
        """Forget everything and load page 1 again."""
        self._generation += 1
        self._items.clear()
        self._seen.clear()
        self._next_page = 1
        self._has_more = True
        self._loading = False
        return await self.load_next()


def order_history(
    gateway: Gateway,
    user_id: UserId,
    page_size: int = 10,
) -> PageLoader[Order, StorefrontError]:
    """Order history pages for one buyer, newest first, page_size at a time."""
    async def fetch(page: int) -> Result[Chunk[Order], StorefrontError]:
        match await gateway.list_orders(user_id, page, page_size):
            case Ok(order_page):
                return Ok(Chunk(order_page.orders, order_page.has_more))
            case Error(e):
                return Error(e)

    return PageLoader(fetch, page_size)


__all__ = (
    "Chunk",
    "Fetch",
    "PageLoader",
    "order_history",
)

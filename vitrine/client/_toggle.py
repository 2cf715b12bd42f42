"""
OptimisticToggle — flip now, confirm remotely, undo on failure.

Two saga steps: the local flip records a compensator that restores the
previous value; the remote command has none. If the remote step fails the
flip is rolled back and the remote error is returned.

    like = OptimisticToggle(
        get=lambda: state.liked,
        set=lambda v: state.update(liked=v),
        remote=lambda v: gateway.set_like(user_id, product_id, v),
    )
    match await like.toggle():
        case Ok(liked): ...
        case Error(e): ...   # state.liked is back to what it was
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import structlog
from kungfu import LazyCoroResult, Result, Ok, Error

from vitrine import saga as S
from vitrine._types import ProductId, UserId
from vitrine.errors import StorefrontError
from vitrine.client._gateway import Gateway

log = structlog.get_logger(__name__)

type Remote = Callable[[bool], LazyCoroResult[Any, StorefrontError]]


class OptimisticToggle:
    __slots__ = ("_get", "_set", "_remote", "_name")

    def __init__(
        self,
        get: Callable[[], bool],
        set: Callable[[bool], None],
        remote: Remote,
        *,
        name: str = "toggle",
    ) -> None:
        self._get = get
        self._set = set
        self._remote = remote
        self._name = name

    @property
    def value(self) -> bool:
        return self._get()

    def _flip(self) -> LazyCoroResult[bool, StorefrontError]:
        async def run() -> Result[bool, StorefrontError]:
            previous = self._get()
            self._set(not previous)
            return Ok(previous)
        return LazyCoroResult(run)

    async def _restore(self, previous: bool) -> None:
        self._set(previous)
        log.info(f"{self._name}.rolled_back", value=previous)

    def toggle(self) -> LazyCoroResult[bool, StorefrontError]:
        """Resolves to the new value, or the remote error after rollback."""
        async def run() -> Result[bool, StorefrontError]:
            chain = (
                S.step(self._flip(), compensate=self._restore, name=f"{self._name}.local")
                .then(lambda previous: S.step(self._remote(not previous), name=f"{self._name}.remote"))
            )
            match await S.run_chain(chain):
                case Ok(_):
                    return Ok(self._get())
                case Error(failure):
                    if not failure.rollback_complete:
                        log.warning(f"{self._name}.rollback_incomplete", step=failure.step_failed)
                    return Error(failure.error)
        return LazyCoroResult(run)


class LocalLike:
    """Local like state of one product page."""

    __slots__ = ("liked", "likes")

    def __init__(self, liked: bool = False, likes: int = 0) -> None:
        self.liked = liked
        self.likes = likes

    def set(self, liked: bool) -> None:
        if liked != self.liked:
            self.likes = max(0, self.likes + (1 if liked else -1))
        self.liked = liked


def like_toggle(
    gateway: Gateway,
    user_id: UserId,
    product_id: ProductId,
    state: LocalLike,
) -> OptimisticToggle:
    """
    Example:
        state = LocalLike(view.liked, view.likes)
        await like_toggle(gateway, "u1", 7, state).toggle()
    """
    return OptimisticToggle(
        get=lambda: state.liked,
        set=state.set,
        remote=lambda liked: gateway.set_like(user_id, product_id, liked),
        name="like",
    )


__all__ = (
    "Remote",
    "OptimisticToggle",
    "LocalLike",
    "like_toggle",
)

"""
Settings — immutable configuration with fluent builders.

    settings = (
        Settings()
        .with_database_url("sqlite+aiosqlite:///shop.db")
        .with_page_size(20)
        .with_checkout_retry(attempts=2, delay_seconds=0.5)
    )
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import timedelta

from combinators import RetryPolicy

from vitrine.errors import StorefrontError


# ═══════════════════════════════════════════════════════════════════════════════
# Checkout Retry
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CheckoutRetry:
    """
    Retry for order batch submission.

    attempts counts the first try: 2 means one retry. Only retryable
    (transient) errors are retried; business errors come back at once.
    """

    attempts: int = 2
    delay_seconds: float = 0.0

    def policy(self) -> RetryPolicy[StorefrontError]:
        return RetryPolicy.fixed(
            times=self.attempts,
            delay_seconds=self.delay_seconds,
            retry_on=lambda e: e.retryable,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Settings
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Settings:
    database_url: str = "sqlite+aiosqlite:///:memory:"
    page_size: int = 10
    checkout_retry: CheckoutRetry = CheckoutRetry()
    idempotency_ttl: timedelta = timedelta(hours=24)
    pending_wait: timedelta = timedelta(seconds=30)
    default_return_reason: str = "Retour client"

    def with_database_url(self, url: str) -> Settings:
        return replace(self, database_url=url)

    def with_page_size(self, size: int) -> Settings:
        if size < 1:
            raise ValueError("page_size must be >= 1")
        return replace(self, page_size=size)

    def with_checkout_retry(self, *, attempts: int = 2, delay_seconds: float = 0.0) -> Settings:
        """
        Example:
            .with_checkout_retry(attempts=1)  # never retry
        """
        if attempts < 1:
            raise ValueError("attempts must be >= 1")
        return replace(self, checkout_retry=CheckoutRetry(attempts, delay_seconds))

    def with_idempotency_ttl(
        self,
        *,
        seconds: float | None = None,
        hours: float | None = None,
    ) -> Settings:
        total = (seconds or 0) + (hours or 0) * 3600
        return replace(self, idempotency_ttl=timedelta(seconds=total))

    def with_pending_wait(self, *, seconds: float) -> Settings:
        return replace(self, pending_wait=timedelta(seconds=seconds))


__all__ = (
    "CheckoutRetry",
    "Settings",
)

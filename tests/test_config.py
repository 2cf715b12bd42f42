from datetime import timedelta

import pytest

from vitrine.config import CheckoutRetry, Settings
from vitrine.errors import TransientNetworkError, ValidationError


def test_defaults() -> None:
    settings = Settings()
    assert settings.database_url.startswith("sqlite+aiosqlite")
    assert settings.page_size == 10
    assert settings.checkout_retry.attempts == 2
    assert settings.idempotency_ttl == timedelta(hours=24)
    assert settings.pending_wait == timedelta(seconds=30)


def test_with_methods_return_new_settings() -> None:
    base = Settings()
    tuned = (
        base
        .with_database_url("sqlite+aiosqlite:///shop.db")
        .with_page_size(20)
        .with_checkout_retry(attempts=1)
        .with_idempotency_ttl(hours=1)
        .with_pending_wait(seconds=5)
    )
    assert base == Settings()
    assert tuned.database_url == "sqlite+aiosqlite:///shop.db"
    assert tuned.page_size == 20
    assert tuned.checkout_retry == CheckoutRetry(1, 0.0)
    assert tuned.idempotency_ttl == timedelta(hours=1)
    assert tuned.pending_wait == timedelta(seconds=5)


def test_invalid_values_are_refused() -> None:
    with pytest.raises(ValueError):
        Settings().with_page_size(0)
    with pytest.raises(ValueError):
        Settings().with_checkout_retry(attempts=0)


def test_checkout_retry_only_retries_transient_errors() -> None:
    policy = CheckoutRetry().policy()
    assert policy.times == 2
    assert policy.retry_on is not None
    assert policy.retry_on(TransientNetworkError("Délai d'attente dépassé"))
    assert not policy.retry_on(ValidationError("total", "Montant incorrect"))

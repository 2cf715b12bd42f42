"""
Discount allocation — largest-remainder split.

    allocate(da(300), [da(2000), da(500)])  # (da(240), da(60))

Shares are proportional to the weights and always sum to the amount.
Leftover centimes go to the largest fractional remainders, earlier
positions first on ties.
"""

from __future__ import annotations

from collections.abc import Sequence

from vitrine._types import Money


def allocate(amount: Money, weights: Sequence[Money]) -> tuple[Money, ...]:
    if amount < 0:
        raise ValueError("amount must be >= 0")
    if any(w < 0 for w in weights):
        raise ValueError("weights must be >= 0")

    total = sum(weights)
    if amount == 0 or total == 0:
        return tuple(0 for _ in weights)

    shares = [amount * w // total for w in weights]
    remainders = [amount * w % total for w in weights]

    leftover = amount - sum(shares)
    by_remainder = sorted(range(len(weights)), key=lambda i: (-remainders[i], i))
    for i in by_remainder[:leftover]:
        shares[i] += 1

    return tuple(shares)


__all__ = ("allocate",)

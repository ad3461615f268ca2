"""
Core types for cartsync.

Re-exports from kungfu + id aliases shared by every component.
"""

from __future__ import annotations

from decimal import Decimal

# Re-export from kungfu
from kungfu import Result, Ok, Error, LazyCoroResult

# ═══════════════════════════════════════════════════════════════════════════════
# Identity Aliases
# ═══════════════════════════════════════════════════════════════════════════════

type ProductId = str
"""Opaque product key as the store hands it out."""

type UserId = str
"""Identity provider's user id."""

type OrderId = str
"""Store-assigned order key."""

# ═══════════════════════════════════════════════════════════════════════════════
# Money
# ═══════════════════════════════════════════════════════════════════════════════

ZERO = Decimal(0)


def money(value: Decimal | int | float | str) -> Decimal:
    """Coerce a store price into Decimal without float artifacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    # Re-exports from kungfu
    "Result",
    "Ok",
    "Error",
    "LazyCoroResult",
    # Aliases
    "ProductId",
    "UserId",
    "OrderId",
    # Money
    "ZERO",
    "money",
)

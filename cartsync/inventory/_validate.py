"""
Inventory validation: pure stock/active check.

Callers must pass a snapshot fetched immediately before the write it
guards. Cached stock figures are not acceptable input.
"""

from __future__ import annotations

from kungfu import Error, Ok, Result

from cartsync._errors import EngineError, Errors
from cartsync.store._types import ProductSnapshot

NOT_AVAILABLE = "product not available"


def validate(
    snapshot: ProductSnapshot,
    requested: int,
) -> Result[ProductSnapshot, EngineError]:
    """
    Check requested total quantity against a fresh product snapshot.

    Returns the snapshot unchanged on success so it can feed the write.

    Example:
        match validate(product, existing + quantity):
            case Ok(product):
                ...
            case Error(rejection):
                return Error(rejection)
    """
    if not snapshot.active:
        return Error(Errors.rejected(NOT_AVAILABLE, "validate"))
    if requested > snapshot.stock:
        return Error(Errors.rejected(insufficient_stock(snapshot.stock), "validate"))
    return Ok(snapshot)


def insufficient_stock(available: int) -> str:
    return f"insufficient stock, available = {available}"


__all__ = ("validate", "insufficient_stock", "NOT_AVAILABLE")

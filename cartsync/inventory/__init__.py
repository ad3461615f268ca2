"""
Inventory: stock and availability checks ahead of every cart write.

    from cartsync import inventory as I

    result = I.validate(snapshot, requested=4)
"""

from __future__ import annotations

from cartsync.inventory._validate import validate, insufficient_stock, NOT_AVAILABLE

__all__ = ("validate", "insufficient_stock", "NOT_AVAILABLE")

"""
Checkout: turns the current cart into a placed order.

    from cartsync import checkout as K

    result = await engine.checkout.checkout(K.ShippingInfo("Calle 1", "555-0101"))
"""

from __future__ import annotations

from cartsync.checkout._types import (
    EMPTY_CART,
    ShippingInfo,
    CheckoutReceipt,
    CheckoutStage,
    CheckoutError,
)
from cartsync.checkout._orchestrator import CheckoutOrchestrator

__all__ = (
    "EMPTY_CART",
    "ShippingInfo",
    "CheckoutReceipt",
    "CheckoutStage",
    "CheckoutError",
    "CheckoutOrchestrator",
)

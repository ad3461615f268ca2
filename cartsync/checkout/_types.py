"""
Checkout types: shipping input, receipt and staged failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from kungfu import Error, Ok, Result

from cartsync._errors import EngineError, ErrorKind, Errors
from cartsync._types import OrderId
from cartsync.store._types import OrderLine

EMPTY_CART = "empty cart"

# ═══════════════════════════════════════════════════════════════════════════════
# Input
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ShippingInfo:
    address: str
    phone: str
    notes: str | None = None

    def checked(self) -> Result[ShippingInfo, EngineError]:
        """Trimmed copy, or a rejection when address or phone is blank."""
        address = self.address.strip()
        phone = self.phone.strip()
        if not address:
            return Error(Errors.rejected("shipping address is required", "checkout"))
        if not phone:
            return Error(Errors.rejected("phone is required", "checkout"))
        notes = self.notes.strip() if self.notes else None
        return Ok(ShippingInfo(address, phone, notes or None))


# ═══════════════════════════════════════════════════════════════════════════════
# Outcome
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CheckoutReceipt:
    """
    A fully written order.

    cart_cleared is False when every clear attempt failed; the order still
    stands and cleanup_error says why the cart is still populated.
    """

    order_id: OrderId
    order_number: str | None
    total_amount: Decimal
    lines: tuple[OrderLine, ...]
    cart_cleared: bool = True
    cleanup_error: EngineError | None = None


class CheckoutStage(Enum):
    PRECONDITION = "precondition"
    ORDER_HEADER = "order_header"
    ORDER_LINES = "order_lines"


@dataclass(frozen=True, slots=True)
class CheckoutError:
    """
    Checkout failure tagged with the stage that failed.

    PRECONDITION and ORDER_HEADER persisted nothing. ORDER_LINES is partial:
    the header with order_id exists without all its lines.
    """

    error: EngineError
    stage: CheckoutStage
    order_id: OrderId | None = None
    header_marked_failed: bool = False

    @property
    def partial(self) -> bool:
        return self.stage is CheckoutStage.ORDER_LINES

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    @property
    def message(self) -> str:
        return self.error.message

    def __str__(self) -> str:
        return self.error.message


__all__ = (
    "EMPTY_CART",
    "ShippingInfo",
    "CheckoutReceipt",
    "CheckoutStage",
    "CheckoutError",
)

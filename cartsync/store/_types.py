"""
Store types: row shapes exchanged with the remote store.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum, auto

from cartsync._types import OrderId, ProductId, UserId

# ═══════════════════════════════════════════════════════════════════════════════
# Products & Cart Rows
# ═══════════════════════════════════════════════════════════════════════════════

DEFAULT_UNIT = "UND"


@dataclass(frozen=True, slots=True)
class ProductSnapshot:
    """A product as the store reports it right now."""

    id: ProductId
    name: str
    price: Decimal
    stock: int
    active: bool
    unit: str = DEFAULT_UNIT
    image_url: str | None = None


@dataclass(frozen=True, slots=True)
class CartRow:
    """One persisted cart row joined with its product."""

    product_id: ProductId
    quantity: int
    product: ProductSnapshot


# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════


class OrderStatus(Enum):
    PENDING = "pending"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class OrderDraft:
    """Order header fields written by checkout."""

    user_id: UserId
    total_amount: Decimal
    shipping_address: str
    phone: str
    notes: str | None = None
    status: OrderStatus = OrderStatus.PENDING


@dataclass(frozen=True, slots=True)
class OrderRef:
    """What the store hands back for an inserted order header."""

    id: OrderId
    number: str | None = None


@dataclass(frozen=True, slots=True)
class OrderLine:
    """
    One ordered product.

    unit_price is copied from the cart at order time and never follows
    later catalogue price changes.
    """

    order_id: OrderId
    product_id: ProductId
    quantity: int
    unit_price: Decimal

    @property
    def total_price(self) -> Decimal:
        return self.unit_price * self.quantity


# ═══════════════════════════════════════════════════════════════════════════════
# Store Error
# ═══════════════════════════════════════════════════════════════════════════════


class StoreErrorKind(Enum):
    NOT_FOUND = auto()
    CONFLICT = auto()
    UNAVAILABLE = auto()
    MALFORMED = auto()


@dataclass(frozen=True, slots=True)
class StoreError:
    """Storage operation error."""

    kind: StoreErrorKind
    message: str
    cause: Exception | None = None


__all__ = (
    "DEFAULT_UNIT",
    "ProductSnapshot",
    "CartRow",
    "OrderStatus",
    "OrderDraft",
    "OrderRef",
    "OrderLine",
    "StoreErrorKind",
    "StoreError",
)

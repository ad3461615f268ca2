"""
Cart types: lines, the read-only view, and cart events.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from cartsync._types import ZERO, ProductId
from cartsync.store._types import DEFAULT_UNIT, CartRow, ProductSnapshot

# ═══════════════════════════════════════════════════════════════════════════════
# CartLine
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CartLine:
    """
    One product's entry in the cart.

    stock_available is the stock seen at the last sync of this line, for
    display only. Writes always re-check against a fresh fetch.
    """

    product_id: ProductId
    name: str
    unit_price: Decimal
    quantity: int
    stock_available: int
    unit: str = DEFAULT_UNIT
    active: bool = True
    image_url: str | None = None

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError(f"cart line {self.product_id} needs quantity >= 1")

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def exceeds_stock(self) -> bool:
        """Stock shrank below this line since it was written."""
        return self.quantity > self.stock_available

    @classmethod
    def from_product(cls, product: ProductSnapshot, quantity: int) -> CartLine:
        return cls(
            product_id=product.id,
            name=product.name,
            unit_price=product.price,
            quantity=quantity,
            stock_available=product.stock,
            unit=product.unit or DEFAULT_UNIT,
            active=product.active,
            image_url=product.image_url,
        )

    @classmethod
    def from_row(cls, row: CartRow) -> CartLine:
        return cls.from_product(row.product, row.quantity)


# ═══════════════════════════════════════════════════════════════════════════════
# CartView: Projection
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CartView:
    """
    Read-only projection for rendering.

    count and total are folded from lines on construction; there is no
    other way to build one.
    """

    lines: tuple[CartLine, ...]
    count: int
    total: Decimal

    @classmethod
    def of(cls, lines: Iterable[CartLine]) -> CartView:
        frozen = tuple(lines)
        return cls(
            lines=frozen,
            count=sum(line.quantity for line in frozen),
            total=sum((line.line_total for line in frozen), ZERO),
        )

    @classmethod
    def empty(cls) -> CartView:
        return cls.of(())

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def line(self, product_id: ProductId) -> CartLine | None:
        for line in self.lines:
            if line.product_id == product_id:
                return line
        return None


# ═══════════════════════════════════════════════════════════════════════════════
# Events
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CartChanged:
    """Published after every applied cache change."""

    view: CartView
    reason: str


@dataclass(frozen=True, slots=True)
class SignInRequired:
    """Call-to-action raised when a cart operation runs signed out."""

    operation: str
    message: str = "sign in to use your cart"


__all__ = ("CartLine", "CartView", "CartChanged", "SignInRequired")

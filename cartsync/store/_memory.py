"""
In-memory remote store.

Note: single process only, nothing survives a restart. Used by tests and
the examples; latency simulates a network hop so concurrent callers
actually interleave.
"""

from __future__ import annotations

import asyncio
import itertools
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, replace
from decimal import Decimal

from kungfu import Error, Ok, Result

from cartsync._types import OrderId, ProductId, UserId, money
from cartsync.store._types import (
    DEFAULT_UNIT,
    CartRow,
    OrderDraft,
    OrderLine,
    OrderRef,
    OrderStatus,
    ProductSnapshot,
    StoreError,
    StoreErrorKind,
)


@dataclass(slots=True)
class StoredOrder:
    """Internal mutable order header."""

    ref: OrderRef
    draft: OrderDraft
    status: OrderStatus


class MemoryStore:
    def __init__(self, latency: float = 0.0) -> None:
        self._latency = latency
        self._products: dict[ProductId, ProductSnapshot] = {}
        # user_id -> {product_id: quantity}, insertion ordered per user
        self._cart: dict[UserId, dict[ProductId, int]] = {}
        self._orders: dict[OrderId, StoredOrder] = {}
        self._order_lines: list[OrderLine] = []
        self._numbers = itertools.count(1)
        self._lock = asyncio.Lock()

    # ═══════════════════════════════════════════════════════════════════════════
    # Seeding & Inspection
    # ═══════════════════════════════════════════════════════════════════════════

    def add_product(
        self,
        product_id: ProductId,
        name: str,
        price: Decimal | int | str,
        stock: int,
        *,
        active: bool = True,
        unit: str = DEFAULT_UNIT,
        image_url: str | None = None,
    ) -> ProductSnapshot:
        product = ProductSnapshot(
            id=product_id,
            name=name,
            price=money(price),
            stock=stock,
            active=active,
            unit=unit,
            image_url=image_url,
        )
        self._products[product_id] = product
        return product

    def set_stock(self, product_id: ProductId, stock: int) -> None:
        self._products[product_id] = replace(self._products[product_id], stock=stock)

    def set_price(self, product_id: ProductId, price: Decimal | int | str) -> None:
        self._products[product_id] = replace(self._products[product_id], price=money(price))

    def set_active(self, product_id: ProductId, active: bool) -> None:
        self._products[product_id] = replace(self._products[product_id], active=active)

    def cart_of(self, user_id: UserId) -> dict[ProductId, int]:
        return dict(self._cart.get(user_id, {}))

    @property
    def orders(self) -> dict[OrderId, StoredOrder]:
        return dict(self._orders)

    @property
    def order_lines(self) -> list[OrderLine]:
        return list(self._order_lines)

    # ═══════════════════════════════════════════════════════════════════════════
    # RemoteStore
    # ═══════════════════════════════════════════════════════════════════════════

    async def fetch_product(
        self, product_id: ProductId
    ) -> Result[ProductSnapshot, StoreError]:
        await self._hop()
        product = self._products.get(product_id)
        if product is None:
            return Error(StoreError(StoreErrorKind.NOT_FOUND, f"product {product_id} not found"))
        return Ok(product)

    async def fetch_cart_rows(self, user_id: UserId) -> Result[list[CartRow], StoreError]:
        await self._hop()
        async with self._lock:
            rows: list[CartRow] = []
            for product_id, quantity in self._cart.get(user_id, {}).items():
                product = self._products.get(product_id)
                if product is None:
                    return Error(StoreError(
                        StoreErrorKind.MALFORMED,
                        f"cart row references missing product {product_id}",
                    ))
                rows.append(CartRow(product_id, quantity, product))
            return Ok(rows)

    async def upsert_cart_row(
        self, user_id: UserId, product_id: ProductId, quantity: int
    ) -> Result[None, StoreError]:
        await self._hop()
        async with self._lock:
            if product_id not in self._products:
                return Error(StoreError(StoreErrorKind.CONFLICT, f"unknown product {product_id}"))
            self._cart.setdefault(user_id, {})[product_id] = quantity
            return Ok(None)

    async def delete_cart_row(
        self, user_id: UserId, product_id: ProductId
    ) -> Result[bool, StoreError]:
        await self._hop()
        async with self._lock:
            rows = self._cart.get(user_id, {})
            return Ok(rows.pop(product_id, None) is not None)

    async def delete_all_cart_rows(self, user_id: UserId) -> Result[int, StoreError]:
        await self._hop()
        async with self._lock:
            return Ok(len(self._cart.pop(user_id, {})))

    async def insert_order(self, draft: OrderDraft) -> Result[OrderRef, StoreError]:
        await self._hop()
        async with self._lock:
            ref = OrderRef(id=uuid.uuid4().hex, number=f"ORD-{next(self._numbers):06d}")
            self._orders[ref.id] = StoredOrder(ref, draft, draft.status)
            return Ok(ref)

    async def insert_order_lines(
        self, lines: Sequence[OrderLine]
    ) -> Result[None, StoreError]:
        await self._hop()
        async with self._lock:
            for line in lines:
                if line.order_id not in self._orders:
                    return Error(StoreError(
                        StoreErrorKind.CONFLICT, f"order {line.order_id} does not exist"
                    ))
            self._order_lines.extend(lines)
            return Ok(None)

    async def update_order_status(
        self, order_id: OrderId, status: OrderStatus
    ) -> Result[None, StoreError]:
        await self._hop()
        async with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                return Error(StoreError(StoreErrorKind.NOT_FOUND, f"order {order_id} not found"))
            order.status = status
            return Ok(None)

    async def _hop(self) -> None:
        # Always yield so callers interleave like they would over a network.
        await asyncio.sleep(self._latency)


__all__ = ("MemoryStore", "StoredOrder")

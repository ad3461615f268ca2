"""
Remote store protocol: the row-level surface the engine consumes.

All methods return Result for explicit error handling. Implementations may
still raise; StoreClient turns that into a TRANSIENT error.

Example, a PostgREST-style implementation:

    class RestStore:
        async def fetch_product(self, product_id):
            resp = await self.http.get(f"/products?id=eq.{product_id}")
            if resp.status_code != 200:
                return Error(StoreError(StoreErrorKind.UNAVAILABLE, resp.text))
            rows = resp.json()
            if not rows:
                return Error(StoreError(StoreErrorKind.NOT_FOUND, product_id))
            return Ok(to_snapshot(rows[0]))

        # ... other methods
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from kungfu import Result

from cartsync._types import OrderId, ProductId, UserId
from cartsync.store._types import (
    CartRow,
    OrderDraft,
    OrderLine,
    OrderRef,
    OrderStatus,
    ProductSnapshot,
    StoreError,
)


class RemoteStore(Protocol):
    async def fetch_product(
        self, product_id: ProductId
    ) -> Result[ProductSnapshot, StoreError]:
        """Single product by key. NOT_FOUND when absent."""
        ...

    async def fetch_cart_rows(self, user_id: UserId) -> Result[list[CartRow], StoreError]:
        """All cart rows of a user joined with current product data."""
        ...

    async def upsert_cart_row(
        self, user_id: UserId, product_id: ProductId, quantity: int
    ) -> Result[None, StoreError]:
        """Insert or overwrite quantity; conflict key is (user_id, product_id)."""
        ...

    async def delete_cart_row(
        self, user_id: UserId, product_id: ProductId
    ) -> Result[bool, StoreError]:
        """Delete one row. Ok(False) if it was already gone."""
        ...

    async def delete_all_cart_rows(self, user_id: UserId) -> Result[int, StoreError]:
        """Delete every row of a user. Returns how many were deleted."""
        ...

    async def insert_order(self, draft: OrderDraft) -> Result[OrderRef, StoreError]:
        ...

    async def insert_order_lines(
        self, lines: Sequence[OrderLine]
    ) -> Result[None, StoreError]:
        ...

    async def update_order_status(
        self, order_id: OrderId, status: OrderStatus
    ) -> Result[None, StoreError]:
        ...


__all__ = ("RemoteStore",)

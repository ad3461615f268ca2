"""
Store client: the one place that talks to a RemoteStore.

Every call is bounded by Policy.call_timeout, exceptions are captured with
combinators.lift.catching_async, and store errors are normalized into
EngineError so callers only ever see Result[T, EngineError].
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence

import structlog
from combinators import lift as L
from kungfu import Error, Ok, Result

from cartsync._errors import EngineError, ErrorKind, Errors
from cartsync._policy import Policy
from cartsync._types import OrderId, ProductId, UserId
from cartsync.store._protocol import RemoteStore
from cartsync.store._types import (
    CartRow,
    OrderDraft,
    OrderLine,
    OrderRef,
    OrderStatus,
    ProductSnapshot,
    StoreError,
    StoreErrorKind,
)

logger = structlog.get_logger(__name__)

type StoreCall[T] = Callable[[], Awaitable[Result[T, StoreError]]]

_KIND_MAP = {
    StoreErrorKind.NOT_FOUND: ErrorKind.NOT_FOUND,
    StoreErrorKind.CONFLICT: ErrorKind.TRANSIENT,
    StoreErrorKind.UNAVAILABLE: ErrorKind.TRANSIENT,
    StoreErrorKind.MALFORMED: ErrorKind.MALFORMED,
}


class StoreClient:
    def __init__(self, store: RemoteStore, policy: Policy) -> None:
        self._store = store
        self._policy = policy

    @property
    def store(self) -> RemoteStore:
        return self._store

    # ═══════════════════════════════════════════════════════════════════════════
    # Products & Cart
    # ═══════════════════════════════════════════════════════════════════════════

    async def fetch_product(self, product_id: ProductId) -> Result[ProductSnapshot, EngineError]:
        result = await self._call(
            "fetch_product", lambda: self._store.fetch_product(product_id)
        )
        match result:
            case Error(err) if err.kind is ErrorKind.NOT_FOUND:
                return Error(Errors.not_found("product not found", "fetch_product"))
            case _:
                return result

    async def fetch_cart_rows(self, user_id: UserId) -> Result[list[CartRow], EngineError]:
        return await self._call(
            "fetch_cart_rows", lambda: self._store.fetch_cart_rows(user_id)
        )

    async def upsert_cart_row(
        self, user_id: UserId, product_id: ProductId, quantity: int
    ) -> Result[None, EngineError]:
        return await self._call(
            "upsert_cart_row",
            lambda: self._store.upsert_cart_row(user_id, product_id, quantity),
        )

    async def delete_cart_row(
        self, user_id: UserId, product_id: ProductId
    ) -> Result[bool, EngineError]:
        return await self._call(
            "delete_cart_row", lambda: self._store.delete_cart_row(user_id, product_id)
        )

    async def delete_all_cart_rows(self, user_id: UserId) -> Result[int, EngineError]:
        return await self._call(
            "delete_all_cart_rows", lambda: self._store.delete_all_cart_rows(user_id)
        )

    # ═══════════════════════════════════════════════════════════════════════════
    # Orders
    # ═══════════════════════════════════════════════════════════════════════════

    async def insert_order(self, draft: OrderDraft) -> Result[OrderRef, EngineError]:
        return await self._call("insert_order", lambda: self._store.insert_order(draft))

    async def insert_order_lines(
        self, lines: Sequence[OrderLine]
    ) -> Result[None, EngineError]:
        return await self._call(
            "insert_order_lines", lambda: self._store.insert_order_lines(lines)
        )

    async def update_order_status(
        self, order_id: OrderId, status: OrderStatus
    ) -> Result[None, EngineError]:
        return await self._call(
            "update_order_status",
            lambda: self._store.update_order_status(order_id, status),
        )

    # ═══════════════════════════════════════════════════════════════════════════
    # Call Boundary
    # ═══════════════════════════════════════════════════════════════════════════

    async def _call[T](self, operation: str, call: StoreCall[T]) -> Result[T, EngineError]:
        seconds = self._policy.call_timeout.total_seconds()

        outcome = await L.catching_async(
            lambda: asyncio.wait_for(call(), timeout=seconds),
            on_error=lambda e: _from_exception(operation, seconds, e),
        )

        match outcome:
            case Error(err):
                logger.warning(
                    "Store call raised",
                    operation=operation,
                    kind=err.kind.name,
                    error=err.message,
                )
                return Error(err)
            case Ok(result):
                pass

        match result:
            case Ok(value):
                return Ok(value)
            case Error(store_error):
                err = _from_store(operation, store_error)
                logger.warning(
                    "Store call failed",
                    operation=operation,
                    kind=err.kind.name,
                    error=err.message,
                )
                return Error(err)
            case _:
                return Error(
                    Errors.malformed(f"{operation} returned {result!r}", operation)
                )


def _from_exception(operation: str, seconds: float, exc: Exception) -> EngineError:
    if isinstance(exc, TimeoutError):
        return Errors.timeout(operation, seconds)
    return Errors.transient(f"{operation} failed: {exc}", operation, exc)


def _from_store(operation: str, error: StoreError) -> EngineError:
    return EngineError(
        kind=_KIND_MAP.get(error.kind, ErrorKind.TRANSIENT),
        message=error.message,
        operation=operation,
        cause=error.cause,
    )


__all__ = ("StoreClient",)

"""
Store: the remote row store behind the cart.

    from cartsync import store as St

    remote = St.MemoryStore()
    remote.add_product("p1", "Rice 1kg", "3.50", stock=20)
    client = St.StoreClient(remote, Policy())
    result = await client.fetch_product("p1")
"""

from __future__ import annotations

from cartsync.store._types import (
    DEFAULT_UNIT,
    ProductSnapshot,
    CartRow,
    OrderStatus,
    OrderDraft,
    OrderRef,
    OrderLine,
    StoreErrorKind,
    StoreError,
)
from cartsync.store._protocol import RemoteStore
from cartsync.store._client import StoreClient
from cartsync.store._memory import MemoryStore, StoredOrder
from cartsync.store._sqlalchemy import SQLAlchemyStore, create_database

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
    "RemoteStore",
    "StoreClient",
    "MemoryStore",
    "StoredOrder",
    "SQLAlchemyStore",
    "create_database",
)

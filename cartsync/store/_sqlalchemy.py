"""
SQLAlchemy integration: remote store over four relational tables.

Usage:
    session_factory, engine = await create_database("sqlite+aiosqlite:///shop.db")
    store = SQLAlchemyStore(session_factory)

    engine_ctx = Engine.create(store, session_provider)

Tables mirror the hosted schema the cart was built against:
products, cart (unique user_id + product_id), orders, order_items.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from kungfu import Error, Ok, Result
from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    delete,
    select,
    update,
)
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from cartsync._types import OrderId, ProductId, UserId
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

type Dialect = Literal["sqlite", "postgresql"]

# ═══════════════════════════════════════════════════════════════════════════════
# Tables
# ═══════════════════════════════════════════════════════════════════════════════


class Base(DeclarativeBase):
    pass


class ProductTable(Base):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    unit: Mapped[str | None] = mapped_column(String(16), nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)


class CartTable(Base):
    __tablename__ = "cart"
    __table_args__ = (UniqueConstraint("user_id", "product_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    product_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("products.id"), nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)


class OrderTable(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    order_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    shipping_address: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[str] = mapped_column(String(32), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class OrderItemTable(Base):
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("orders.id"), nullable=False, index=True
    )
    product_id: Mapped[str] = mapped_column(String(64), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)


# ═══════════════════════════════════════════════════════════════════════════════
# Store
# ═══════════════════════════════════════════════════════════════════════════════


class SQLAlchemyStore:
    """
    RemoteStore over an async SQLAlchemy session factory.

    Every method opens its own session and commits before returning, so a
    successful Result always means the row is durable.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        dialect: Dialect = "sqlite",
    ) -> None:
        """
        Args:
            session_factory: SQLAlchemy async session factory
            dialect: picks the INSERT ... ON CONFLICT construct for upserts
        """
        self._session_factory = session_factory
        self._dialect = dialect

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory

    async def fetch_product(
        self, product_id: ProductId
    ) -> Result[ProductSnapshot, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(ProductTable, product_id)
                if row is None:
                    return Error(StoreError(
                        StoreErrorKind.NOT_FOUND, f"product {product_id} not found"
                    ))
                return Ok(_to_snapshot(row))
        except Exception as e:
            return Error(StoreError(StoreErrorKind.UNAVAILABLE, f"Failed to fetch product: {e}", e))

    async def fetch_cart_rows(self, user_id: UserId) -> Result[list[CartRow], StoreError]:
        try:
            async with self._session_factory() as session:
                stmt = (
                    select(CartTable, ProductTable)
                    .join(ProductTable, CartTable.product_id == ProductTable.id)
                    .where(CartTable.user_id == user_id)
                    .order_by(CartTable.id)
                )
                rows = (await session.execute(stmt)).all()
                return Ok([
                    CartRow(cart.product_id, cart.quantity, _to_snapshot(product))
                    for cart, product in rows
                ])
        except Exception as e:
            return Error(StoreError(StoreErrorKind.UNAVAILABLE, f"Failed to fetch cart: {e}", e))

    async def upsert_cart_row(
        self, user_id: UserId, product_id: ProductId, quantity: int
    ) -> Result[None, StoreError]:
        try:
            async with self._session_factory() as session:
                await session.execute(self._upsert_stmt(user_id, product_id, quantity))
                await session.commit()
                return Ok(None)
        except Exception as e:
            return Error(StoreError(StoreErrorKind.UNAVAILABLE, f"Failed to upsert cart row: {e}", e))

    async def delete_cart_row(
        self, user_id: UserId, product_id: ProductId
    ) -> Result[bool, StoreError]:
        try:
            async with self._session_factory() as session:
                cursor = await session.execute(
                    delete(CartTable).where(
                        CartTable.user_id == user_id,
                        CartTable.product_id == product_id,
                    )
                )
                await session.commit()
                return Ok(_rowcount(cursor) > 0)
        except Exception as e:
            return Error(StoreError(StoreErrorKind.UNAVAILABLE, f"Failed to delete cart row: {e}", e))

    async def delete_all_cart_rows(self, user_id: UserId) -> Result[int, StoreError]:
        try:
            async with self._session_factory() as session:
                cursor = await session.execute(
                    delete(CartTable).where(CartTable.user_id == user_id)
                )
                await session.commit()
                return Ok(_rowcount(cursor))
        except Exception as e:
            return Error(StoreError(StoreErrorKind.UNAVAILABLE, f"Failed to clear cart: {e}", e))

    async def insert_order(self, draft: OrderDraft) -> Result[OrderRef, StoreError]:
        order_id = uuid.uuid4().hex
        number = f"ORD-{order_id[:8].upper()}"
        try:
            async with self._session_factory() as session:
                session.add(OrderTable(
                    id=order_id,
                    order_number=number,
                    user_id=draft.user_id,
                    total_amount=draft.total_amount,
                    shipping_address=draft.shipping_address,
                    phone=draft.phone,
                    notes=draft.notes,
                    status=draft.status.value,
                    created_at=datetime.now(),
                ))
                await session.commit()
                return Ok(OrderRef(id=order_id, number=number))
        except Exception as e:
            return Error(StoreError(StoreErrorKind.UNAVAILABLE, f"Failed to insert order: {e}", e))

    async def insert_order_lines(
        self, lines: Sequence[OrderLine]
    ) -> Result[None, StoreError]:
        try:
            async with self._session_factory() as session:
                session.add_all([
                    OrderItemTable(
                        order_id=line.order_id,
                        product_id=line.product_id,
                        quantity=line.quantity,
                        unit_price=line.unit_price,
                        total_price=line.total_price,
                    )
                    for line in lines
                ])
                await session.commit()
                return Ok(None)
        except Exception as e:
            return Error(StoreError(StoreErrorKind.UNAVAILABLE, f"Failed to insert order lines: {e}", e))

    async def update_order_status(
        self, order_id: OrderId, status: OrderStatus
    ) -> Result[None, StoreError]:
        try:
            async with self._session_factory() as session:
                cursor = await session.execute(
                    update(OrderTable)
                    .where(OrderTable.id == order_id)
                    .values(status=status.value)
                )
                await session.commit()
                if _rowcount(cursor) == 0:
                    return Error(StoreError(StoreErrorKind.NOT_FOUND, f"order {order_id} not found"))
                return Ok(None)
        except Exception as e:
            return Error(StoreError(StoreErrorKind.UNAVAILABLE, f"Failed to update order: {e}", e))

    def _upsert_stmt(self, user_id: UserId, product_id: ProductId, quantity: int) -> Any:
        """INSERT ... ON CONFLICT (user_id, product_id) DO UPDATE SET quantity."""
        insert = pg_insert if self._dialect == "postgresql" else sqlite_insert
        stmt = insert(CartTable).values(
            user_id=user_id, product_id=product_id, quantity=quantity
        )
        return stmt.on_conflict_do_update(
            index_elements=["user_id", "product_id"],
            set_={"quantity": stmt.excluded.quantity},
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════════════════


def _to_snapshot(row: ProductTable) -> ProductSnapshot:
    return ProductSnapshot(
        id=row.id,
        name=row.name,
        price=Decimal(row.price),
        stock=row.stock,
        active=row.active,
        unit=row.unit or DEFAULT_UNIT,
        image_url=row.image_url,
    )


def _rowcount(cursor: Any) -> int:
    return max(getattr(cursor, "rowcount", 0) or 0, 0)


async def create_database(
    url: str = "sqlite+aiosqlite:///:memory:",
) -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """Create schema and return (session_factory, engine)."""
    engine = create_async_engine(url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    return async_sessionmaker(engine, expire_on_commit=False), engine


__all__ = (
    "Base",
    "ProductTable",
    "CartTable",
    "OrderTable",
    "OrderItemTable",
    "SQLAlchemyStore",
    "create_database",
)

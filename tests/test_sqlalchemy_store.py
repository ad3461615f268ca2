from collections.abc import AsyncIterator
from decimal import Decimal

import pytest
from kungfu import Error, Ok
from sqlalchemy import select

from cartsync import Engine
from cartsync import checkout as K
from cartsync import session as Ss
from cartsync import store as St
from cartsync.store._sqlalchemy import OrderItemTable, OrderTable, ProductTable
from conftest import USER


@pytest.fixture
async def database() -> AsyncIterator[St.SQLAlchemyStore]:
    session_factory, engine = await St.create_database()
    async with session_factory() as session:
        session.add_all([
            ProductTable(id="rice", name="Arroz 1kg", price=Decimal("1000"), stock=10, active=True),
            ProductTable(id="oil", name="Aceite 1L", price=Decimal("500"), stock=10, active=True, unit="LT"),
            ProductTable(id="old", name="Descontinuado", price=Decimal("100"), stock=5, active=False),
        ])
        await session.commit()
    yield St.SQLAlchemyStore(session_factory)
    await engine.dispose()


class TestSQLAlchemyStore:
    async def test_fetch_product(self, database):
        result = await database.fetch_product("oil")

        assert isinstance(result, Ok)
        assert result.value.price == Decimal("500")
        assert result.value.unit == "LT"

    async def test_missing_product(self, database):
        result = await database.fetch_product("ghost")

        assert isinstance(result, Error)
        assert result.value.kind is St.StoreErrorKind.NOT_FOUND

    async def test_upsert_updates_in_place(self, database):
        await database.upsert_cart_row(USER, "rice", 1)
        await database.upsert_cart_row(USER, "oil", 2)
        await database.upsert_cart_row(USER, "rice", 4)

        rows = (await database.fetch_cart_rows(USER)).value

        assert [(r.product_id, r.quantity) for r in rows] == [("rice", 4), ("oil", 2)]
        assert rows[0].product.name == "Arroz 1kg"

    async def test_cart_rows_are_per_user(self, database):
        await database.upsert_cart_row(USER, "rice", 1)
        await database.upsert_cart_row("someone-else", "oil", 1)

        rows = (await database.fetch_cart_rows(USER)).value

        assert [r.product_id for r in rows] == ["rice"]

    async def test_deletes_report_what_they_removed(self, database):
        await database.upsert_cart_row(USER, "rice", 1)
        await database.upsert_cart_row(USER, "oil", 1)

        assert (await database.delete_cart_row(USER, "rice")).value is True
        assert (await database.delete_cart_row(USER, "rice")).value is False
        assert (await database.delete_all_cart_rows(USER)).value == 1
        assert (await database.fetch_cart_rows(USER)).value == []

    async def test_order_round_trip(self, database):
        draft = St.OrderDraft(USER, Decimal("2500"), "Calle 1", "555-0101")

        ref = (await database.insert_order(draft)).value
        await database.insert_order_lines([
            St.OrderLine(ref.id, "rice", 2, Decimal("1000")),
            St.OrderLine(ref.id, "oil", 1, Decimal("500")),
        ])
        marked = await database.update_order_status(ref.id, St.OrderStatus.FAILED)

        assert isinstance(marked, Ok)
        assert ref.number.startswith("ORD-")
        async with database.session_factory() as session:
            order = await session.get(OrderTable, ref.id)
            assert order.status == "failed"
            assert order.total_amount == Decimal("2500")
            items = (
                await session.execute(
                    select(OrderItemTable).where(OrderItemTable.order_id == ref.id)
                )
            ).scalars().all()
            assert sorted(i.total_price for i in items) == [Decimal("500"), Decimal("2000")]

    async def test_status_of_missing_order(self, database):
        result = await database.update_order_status("ghost", St.OrderStatus.FAILED)

        assert isinstance(result, Error)
        assert result.value.kind is St.StoreErrorKind.NOT_FOUND


class TestEngineOverSQLAlchemy:
    async def test_cart_and_checkout(self, database, policy):
        async with Engine.create(database, Ss.MemorySession(USER), policy) as engine:
            await engine.cart.add("rice", 2)
            await engine.cart.add("oil", 3)
            rejected = await engine.cart.add("old")

            result = await engine.checkout.checkout(K.ShippingInfo("Calle 1", "555-0101"))

        assert rejected.value.message == "product not available"
        assert result.value.total_amount == Decimal("3500")
        assert result.value.cart_cleared
        assert (await database.fetch_cart_rows(USER)).value == []

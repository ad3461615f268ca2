"""
SQLite: the same engine over SQLAlchemy.

Run: python -m examples.sqlite_example
"""

from decimal import Decimal

from kungfu import Ok, Error

from cartsync import Engine
from cartsync import checkout as K
from cartsync import session as Ss
from cartsync import store as St
from cartsync.store._sqlalchemy import ProductTable
from examples._infra import banner, run, show


async def main() -> None:
    banner("SQLite store")

    session_factory, db = await St.create_database("sqlite+aiosqlite:///:memory:")
    async with session_factory() as session:
        session.add_all([
            ProductTable(id="rice", name="Arroz 1kg", price=Decimal("1000"), stock=10, active=True),
            ProductTable(id="oil", name="Aceite 1L", price=Decimal("500"), stock=4, active=True),
        ])
        await session.commit()

    try:
        store = St.SQLAlchemyStore(session_factory)
        async with Engine.create(store, Ss.MemorySession("user-1")) as engine:
            await engine.cart.add("rice", 2)
            await engine.cart.add("oil", 3)
            match await engine.cart.add("oil", 2):
                case Error(e):
                    print(f"   ✗ oil: {e.message}")
                case Ok(_):
                    pass
            show(engine.view)

            match await engine.checkout.checkout(K.ShippingInfo("Calle 1", "555-0101")):
                case Ok(receipt):
                    print(f"   ✓ {receipt.order_number}: {receipt.total_amount}")
                case Error(failure):
                    print(f"   ✗ {failure.message}")
    finally:
        await db.dispose()


if __name__ == "__main__":
    run(main)

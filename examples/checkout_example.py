"""
Checkout: order header, order lines, cart clear.

Run: python -m examples.checkout_example
"""

from collections.abc import Sequence

from kungfu import Ok, Error

from cartsync import Engine
from cartsync import checkout as K
from cartsync import session as Ss
from cartsync import store as St
from examples._infra import banner, run, seed, show


class LinesDownStore(St.MemoryStore):
    """Order lines table rejects every insert."""

    async def insert_order_lines(self, lines: Sequence[St.OrderLine]):
        return Error(St.StoreError(St.StoreErrorKind.UNAVAILABLE, "order_items unavailable"))


async def place(engine: Engine) -> None:
    await engine.cart.add("rice", 2)
    await engine.cart.add("oil", 3)
    show(engine.view)

    match await engine.checkout.checkout(K.ShippingInfo("Calle 10 # 4-21", "555-0101")):
        case Ok(receipt):
            print(f"   ✓ {receipt.order_number}: {receipt.total_amount} ({len(receipt.lines)} lines)")
        case Error(failure) if failure.partial:
            print(f"   ✗ partial order {failure.order_id}")
            print(f"     marked failed: {failure.header_marked_failed}")
        case Error(failure):
            print(f"   ✗ {failure.message}")


async def main() -> None:
    banner("Checkout")

    print("1. Happy path:")
    remote = seed(St.MemoryStore())
    async with Engine.create(remote, Ss.MemorySession("user-1")) as engine:
        await place(engine)
        print(f"   cart after: {engine.view.count} items")

    print("\n2. Lines fail after header:")
    broken = seed(LinesDownStore())
    async with Engine.create(broken, Ss.MemorySession("user-1")) as engine:
        await place(engine)
        print(f"   cart kept: {engine.view.count} items")
        for order in broken.orders.values():
            print(f"   {order.ref.number}: {order.status.value}")


if __name__ == "__main__":
    run(main)

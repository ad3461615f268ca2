"""
Cart: validate, write, then update the local mirror.

Run: python -m examples.cart_example
"""

import asyncio

from kungfu import Ok, Error

from cartsync import Engine, Policy
from cartsync import session as Ss
from cartsync import store as St
from examples._infra import banner, run, seed, show


async def main() -> None:
    banner("Cart")

    remote = seed(St.MemoryStore(latency=0.02))
    provider = Ss.MemorySession()
    engine = Engine.create(remote, provider, Policy().with_call_timeout(seconds=2))
    engine.prompts.subscribe(lambda p: print(f"   → {p.message} ({p.operation})"))

    async with engine:
        print("1. Signed out:")
        await engine.cart.add("rice")

        provider.sign_in("user-1")
        await engine.session.drain()

        print("\n2. Adds:")
        for product_id, quantity in [("rice", 2), ("oil", 3), ("salt", 3)]:
            match await engine.cart.add(product_id, quantity):
                case Ok(view):
                    print(f"   ✓ {product_id} x{quantity} (cart: {view.count} items)")
                case Error(e):
                    print(f"   ✗ {product_id}: {e.message}")

        print("\n3. Beyond stock and inactive:")
        for product_id, quantity in [("salt", 4), ("old", 1)]:
            match await engine.cart.add(product_id, quantity):
                case Ok(_):
                    print(f"   ✓ {product_id}")
                case Error(e):
                    print(f"   ✗ {product_id}: {e.message}")

        print("\n4. Two concurrent adds for the same product:")
        await engine.cart.remove("salt")
        results = await asyncio.gather(engine.cart.add("salt", 3), engine.cart.add("salt", 3))
        for r in results:
            print(f"   {'✓' if isinstance(r, Ok) else '✗ ' + r.value.message}")

        print("\n5. Cart:")
        show(engine.view)

        print("\n6. Sign out (remote rows stay):")
        provider.sign_out()
        await engine.session.drain()
        show(engine.view)
        print(f"   remote: {remote.cart_of('user-1')}")


if __name__ == "__main__":
    run(main)

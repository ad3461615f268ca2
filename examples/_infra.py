"""Shared infrastructure for examples."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine

from cartsync import cart as C
from cartsync import store as St


def seed(remote: St.MemoryStore) -> St.MemoryStore:
    remote.add_product("rice", "Arroz 1kg", 1000, stock=10)
    remote.add_product("oil", "Aceite 1L", 500, stock=10, unit="LT")
    remote.add_product("salt", "Sal", 250, stock=5)
    remote.add_product("old", "Descontinuado", 100, stock=50, active=False)
    return remote


# Helpers
def banner(title: str) -> None:
    print(f"\n{'─' * 50}\n{title}\n{'─' * 50}")


def show(view: C.CartView) -> None:
    for line in view.lines:
        print(f"   {line.name:<16} {line.quantity:>3} {line.unit:<3} x {line.unit_price:>8} = {line.line_total:>9}")
    print(f"   {'items':<16} {view.count:>3}     total   {view.total:>9}")


def run(main: Callable[[], Coroutine[object, object, None]]) -> None:
    asyncio.run(main())

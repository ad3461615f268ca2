"""
Cart: local mirror of the signed-in user's cart and its synchronizer.

    from cartsync import cart as C

    match await engine.cart.add("p1", 2):
        case Ok(view):
            render(view.lines, view.count, view.total)
        case Error(err):
            toast(err.message)
"""

from __future__ import annotations

from cartsync.cart._types import CartLine, CartView, CartChanged, SignInRequired
from cartsync.cart._cache import CartCache
from cartsync.cart._locks import KeyedLock
from cartsync.cart._sync import CartSynchronizer, CurrentUser, QUANTITY_TOO_LOW

__all__ = (
    "CartLine",
    "CartView",
    "CartChanged",
    "SignInRequired",
    "CartCache",
    "KeyedLock",
    "CartSynchronizer",
    "CurrentUser",
    "QUANTITY_TOO_LOW",
)

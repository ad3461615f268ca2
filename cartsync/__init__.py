"""
cartsync: cart state synchronization and checkout over a remote row store.

    from cartsync import Engine, Policy
    from cartsync import store as St, session as Ss, checkout as K

    remote = St.MemoryStore()
    remote.add_product("p1", "Rice 1kg", "3.50", stock=20)
    provider = Ss.MemorySession("user-1")

    async with Engine.create(remote, provider) as engine:
        await engine.cart.add("p1", 2)
        result = await engine.checkout.checkout(K.ShippingInfo("Calle 1", "555-0101"))

Namespaces:
    cart       CartLine, CartView, CartCache, CartSynchronizer
    checkout   ShippingInfo, CheckoutReceipt, CheckoutError, CheckoutOrchestrator
    inventory  validate
    saga       step / run with reverse compensation
    session    AuthEvent, SessionBridge, MemorySession
    store      RemoteStore, StoreClient, MemoryStore, SQLAlchemyStore
"""

from __future__ import annotations

from cartsync._types import Result, Ok, Error, LazyCoroResult, ProductId, UserId, OrderId
from cartsync._errors import ErrorKind, EngineError, Errors
from cartsync._events import EventBus, ListenerLimitExceeded
from cartsync._policy import Policy
from cartsync._outcome import Outcome

from cartsync import saga
from cartsync import store
from cartsync import inventory
from cartsync import cart
from cartsync import checkout
from cartsync import session

from cartsync._engine import Engine

__version__ = "0.1.0"

__all__ = (
    # kungfu
    "Result",
    "Ok",
    "Error",
    "LazyCoroResult",
    # ids
    "ProductId",
    "UserId",
    "OrderId",
    # errors
    "ErrorKind",
    "EngineError",
    "Errors",
    # ambient
    "EventBus",
    "ListenerLimitExceeded",
    "Policy",
    "Outcome",
    "Engine",
    # namespaces
    "saga",
    "store",
    "inventory",
    "cart",
    "checkout",
    "session",
)

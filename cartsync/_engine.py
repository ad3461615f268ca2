"""
Engine: the explicit context object holding one cart session's parts.

    engine = Engine.create(store, session, Policy().with_call_timeout(seconds=5))
    async with engine:
        engine.cart_events.subscribe(lambda e: render(e.view))
        await engine.cart.add("p1", 2)
        await engine.checkout.checkout(ShippingInfo("Calle 1", "555-0101"))

Construct one per process (or per signed-in context). Nothing here is
module-level state; two engines never share a cache.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import TracebackType

from kungfu import Result

from cartsync._errors import EngineError
from cartsync._events import EventBus
from cartsync._policy import Policy
from cartsync._types import UserId
from cartsync.cart import CartCache, CartChanged, CartSynchronizer, CartView, SignInRequired
from cartsync.checkout import CheckoutOrchestrator
from cartsync.session import SessionBridge, SessionChanged, SessionProvider
from cartsync.store import RemoteStore, StoreClient


@dataclass(frozen=True, slots=True)
class Engine:
    policy: Policy
    client: StoreClient
    cache: CartCache
    cart: CartSynchronizer
    checkout: CheckoutOrchestrator
    session: SessionBridge
    cart_events: EventBus[CartChanged]
    session_events: EventBus[SessionChanged]
    prompts: EventBus[SignInRequired]

    @classmethod
    def create(
        cls,
        store: RemoteStore,
        session: SessionProvider,
        policy: Policy | None = None,
    ) -> Engine:
        policy = policy or Policy()
        cart_events: EventBus[CartChanged] = EventBus("cart", policy.max_listeners)
        session_events: EventBus[SessionChanged] = EventBus("session", policy.max_listeners)
        prompts: EventBus[SignInRequired] = EventBus("sign_in", policy.max_listeners)

        client = StoreClient(store, policy)
        cache = CartCache(cart_events)

        # The bridge owns identity; cart and checkout only read it.
        bridge: SessionBridge

        def current_user() -> UserId | None:
            return bridge.current_user()

        sync = CartSynchronizer(client, cache, current_user, prompts, policy)
        orchestrator = CheckoutOrchestrator(client, cache, sync, current_user, prompts, policy)
        bridge = SessionBridge(session, cache, sync.load, session_events, policy)

        return cls(
            policy=policy,
            client=client,
            cache=cache,
            cart=sync,
            checkout=orchestrator,
            session=bridge,
            cart_events=cart_events,
            session_events=session_events,
            prompts=prompts,
        )

    @property
    def view(self) -> CartView:
        return self.cache.view

    async def start(self) -> Result[UserId | None, EngineError]:
        return await self.session.start()

    async def stop(self) -> None:
        await self.session.stop()

    async def __aenter__(self) -> Engine:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()


__all__ = ("Engine",)

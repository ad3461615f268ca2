"""
Cart synchronizer: every cart mutation goes through here.

Order per operation: validate, write to the store, then apply to the cache.
Mutations on one product are serialized through a KeyedLock; different
products proceed concurrently. The cache is never ahead of the store.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

import structlog
from kungfu import Error, Ok, Result

from cartsync._errors import EngineError, Errors
from cartsync._events import EventBus
from cartsync._policy import Policy
from cartsync._types import ProductId, UserId
from cartsync.cart._cache import CartCache
from cartsync.cart._locks import KeyedLock
from cartsync.cart._types import CartLine, CartView, SignInRequired
from cartsync.inventory import validate
from cartsync.store._client import StoreClient

logger = structlog.get_logger(__name__)

type CurrentUser = Callable[[], UserId | None]

QUANTITY_TOO_LOW = "quantity must be at least 1"


class CartSynchronizer:
    def __init__(
        self,
        client: StoreClient,
        cache: CartCache,
        current_user: CurrentUser,
        prompts: EventBus[SignInRequired],
        policy: Policy,
    ) -> None:
        self._client = client
        self._cache = cache
        self._current_user = current_user
        self._prompts = prompts
        self._policy = policy
        self._locks: KeyedLock[ProductId] = KeyedLock()
        self._in_flight = 0
        self._loads = 0
        self._settled = asyncio.Event()
        self._settled.set()
        self._checking_out = False
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def in_flight(self) -> int:
        """Number of cart operations currently running."""
        return self._in_flight

    @property
    def checking_out(self) -> bool:
        """True while a checkout window holds the cart frozen."""
        return self._checking_out

    @property
    def view(self) -> CartView:
        return self._cache.view

    # ═══════════════════════════════════════════════════════════════════════════
    # Load
    # ═══════════════════════════════════════════════════════════════════════════

    async def load(self) -> Result[CartView, EngineError]:
        """
        Rebuild the cache from the store, discarding prior local state.

        A failed fetch leaves the cache empty; the caller may retry. When
        loads overlap, the most recently started one wins.
        """
        match self._signed_in("load"):
            case Error(err):
                return Error(err)
            case Ok(user_id):
                pass

        async with self._tracked(), self._loading():
            epoch = self._cache.begin_load()
            match await self._client.fetch_cart_rows(user_id):
                case Error(err):
                    logger.warning("Cart load failed", user_id=user_id, error=err.message)
                    return Error(err)
                case Ok(rows):
                    pass

            lines = [CartLine.from_row(row) for row in rows if row.quantity >= 1]
            if self._cache.replace(lines, epoch, reason="load"):
                logger.info("Cart loaded", user_id=user_id, lines=len(lines))
            return Ok(self._cache.view)

    # ═══════════════════════════════════════════════════════════════════════════
    # Mutations
    # ═══════════════════════════════════════════════════════════════════════════

    async def add(
        self, product_id: ProductId, quantity: int = 1
    ) -> Result[CartView, EngineError]:
        """
        Add quantity units of a product; a second add for the same product
        increments the existing line.
        """
        match self._writable("add"):
            case Error(err):
                return Error(err)
            case Ok(user_id):
                pass
        if quantity < 1:
            return Error(Errors.rejected(QUANTITY_TOO_LOW, "add"))

        async with self._tracked(), self._slot(product_id, "add") as slot:
            match slot:
                case Error(err):
                    return Error(err)
                case Ok(epoch):
                    pass
            existing = self._cache.quantity_of(product_id)

            match await self._client.fetch_product(product_id):
                case Error(err):
                    return Error(self._failed("add", product_id, err))
                case Ok(product):
                    pass

            # The existing quantity belongs to the epoch it was read under.
            if self._cache.epoch != epoch:
                return Error(self._superseded("add", product_id))

            total = existing + quantity
            match validate(product, total):
                case Error(err):
                    return Error(self._rejected("add", product_id, err))
                case Ok(_):
                    pass

            match await self._client.upsert_cart_row(user_id, product_id, total):
                case Error(err):
                    return Error(self._failed("add", product_id, err))
                case Ok(_):
                    pass

            self._cache.put(CartLine.from_product(product, total), epoch, reason="add")
            logger.info("Added to cart", product_id=product_id, quantity=total)
            return Ok(self._cache.view)

    async def update_quantity(
        self, product_id: ProductId, quantity: int
    ) -> Result[CartView, EngineError]:
        """Set a line's quantity; zero or less removes the line."""
        match self._writable("update_quantity"):
            case Error(err):
                return Error(err)
            case Ok(user_id):
                pass
        if quantity <= 0:
            return await self._remove(user_id, product_id, "update_quantity")

        async with self._tracked(), self._slot(product_id, "update_quantity") as slot:
            match slot:
                case Error(err):
                    return Error(err)
                case Ok(epoch):
                    pass

            if product_id not in self._cache:
                return Error(Errors.not_found("product not in cart", "update_quantity"))

            # Stock may have shrunk since the line was written.
            match await self._client.fetch_product(product_id):
                case Error(err):
                    return Error(self._failed("update_quantity", product_id, err))
                case Ok(product):
                    pass

            if self._cache.epoch != epoch:
                return Error(self._superseded("update_quantity", product_id))

            match validate(product, quantity):
                case Error(err):
                    return Error(self._rejected("update_quantity", product_id, err))
                case Ok(_):
                    pass

            match await self._client.upsert_cart_row(user_id, product_id, quantity):
                case Error(err):
                    return Error(self._failed("update_quantity", product_id, err))
                case Ok(_):
                    pass

            self._cache.put(
                CartLine.from_product(product, quantity), epoch, reason="update_quantity"
            )
            logger.info("Updated cart quantity", product_id=product_id, quantity=quantity)
            return Ok(self._cache.view)

    async def remove(self, product_id: ProductId) -> Result[CartView, EngineError]:
        """Delete a line. Removing an absent line succeeds."""
        match self._writable("remove"):
            case Error(err):
                return Error(err)
            case Ok(user_id):
                pass
        return await self._remove(user_id, product_id, "remove")

    async def clear(self) -> Result[CartView, EngineError]:
        """Delete every line of the user's cart. Idempotent."""
        match self._writable("clear"):
            case Error(err):
                return Error(err)
            case Ok(user_id):
                pass

        async with self._tracked():
            # Writes racing the delete must not land in the cache afterwards.
            self._cache.invalidate()
            match await self._client.delete_all_cart_rows(user_id):
                case Error(err):
                    logger.warning("Cart clear failed", user_id=user_id, error=err.message)
                    return Error(err)
                case Ok(deleted):
                    pass

            self._cache.reset("clear")
            logger.info("Cart cleared", user_id=user_id, deleted=deleted)
            return Ok(self._cache.view)

    # ═══════════════════════════════════════════════════════════════════════════
    # Checkout window
    # ═══════════════════════════════════════════════════════════════════════════

    @asynccontextmanager
    async def checkout_window(self) -> AsyncIterator[Result[CartView, EngineError]]:
        """
        Freeze the cart for a checkout.

        New mutations are refused with BUSY from the moment the window opens.
        Operations already running (loads included) are waited out, bounded by
        the lock timeout, and the settled view is yielded. The freeze lifts
        when the block exits.
        """
        self._checking_out = True
        try:
            try:
                await asyncio.wait_for(
                    self._idle.wait(), timeout=self._policy.lock_timeout.total_seconds()
                )
            except TimeoutError:
                idle = False
            else:
                idle = True

            if not idle:
                logger.warning("Cart did not go idle for checkout", in_flight=self._in_flight)
                yield Error(Errors.busy("cart is still changing, try again", "checkout"))
                return
            yield Ok(self._cache.view)
        finally:
            self._checking_out = False

    # ═══════════════════════════════════════════════════════════════════════════
    # Internals
    # ═══════════════════════════════════════════════════════════════════════════

    def _signed_in(self, operation: str) -> Result[UserId, EngineError]:
        user_id = self._current_user()
        if user_id is None:
            logger.info("Cart operation needs a signed-in user", operation=operation)
            self._prompts.publish(SignInRequired(operation))
            return Error(Errors.not_authenticated(operation))
        return Ok(user_id)

    def _writable(self, operation: str) -> Result[UserId, EngineError]:
        match self._signed_in(operation):
            case Error(err):
                return Error(err)
            case Ok(user_id):
                pass
        if self._checking_out:
            logger.info("Cart change refused during checkout", operation=operation)
            return Error(Errors.busy("checkout in progress, try again", operation))
        return Ok(user_id)

    async def _remove(
        self, user_id: UserId, product_id: ProductId, operation: str
    ) -> Result[CartView, EngineError]:
        async with self._tracked(), self._slot(product_id, operation) as slot:
            match slot:
                case Error(err):
                    return Error(err)
                case Ok(epoch):
                    pass

            match await self._client.delete_cart_row(user_id, product_id):
                case Error(err):
                    return Error(self._failed(operation, product_id, err))
                case Ok(_):
                    pass

            self._cache.discard(product_id, epoch, reason=operation)
            logger.info("Removed from cart", product_id=product_id, operation=operation)
            return Ok(self._cache.view)

    @asynccontextmanager
    async def _tracked(self) -> AsyncIterator[None]:
        self._in_flight += 1
        self._idle.clear()
        try:
            yield
        finally:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._idle.set()

    @asynccontextmanager
    async def _loading(self) -> AsyncIterator[None]:
        self._loads += 1
        self._settled.clear()
        try:
            yield
        finally:
            self._loads -= 1
            if self._loads == 0:
                self._settled.set()

    @asynccontextmanager
    async def _slot(
        self, product_id: ProductId, operation: str
    ) -> AsyncIterator[Result[int, EngineError]]:
        """
        Take the product's slot, wait out any running load, then yield the
        cache epoch the mutation must apply under.
        """
        timeout = self._policy.lock_timeout.total_seconds()
        async with self._locks.hold(product_id, timeout) as acquired:
            if not acquired:
                logger.warning("Cart slot stayed busy", product_id=product_id, operation=operation)
                yield Error(Errors.busy(f"{product_id} is busy, try again", operation))
                return
            try:
                await asyncio.wait_for(self._settled.wait(), timeout=timeout)
            except TimeoutError:
                settled = False
            else:
                settled = True

            if not settled:
                logger.warning("Cart load did not settle", operation=operation)
                yield Error(Errors.busy("cart is reloading, try again", operation))
                return
            yield Ok(self._cache.epoch)

    def _superseded(self, operation: str, product_id: ProductId) -> EngineError:
        logger.warning(
            "Cart change superseded by a reload", operation=operation, product_id=product_id
        )
        return Errors.busy("cart was reloaded, try again", operation)

    def _rejected(self, operation: str, product_id: ProductId, err: EngineError) -> EngineError:
        logger.warning(
            "Cart change rejected", operation=operation, product_id=product_id, reason=err.message
        )
        return EngineError(err.kind, err.message, operation, err.cause)

    def _failed(self, operation: str, product_id: ProductId, err: EngineError) -> EngineError:
        logger.warning(
            "Cart change failed",
            operation=operation,
            product_id=product_id,
            kind=err.kind.name,
            error=err.message,
        )
        return err


__all__ = ("CartSynchronizer", "CurrentUser", "QUANTITY_TOO_LOW")

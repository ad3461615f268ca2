"""
Checkout orchestrator: cart to order.

    snapshot cart ─► order header ─► order lines ─► clear cart
                      (undo: mark failed)

Header and lines run as a two-step saga. A lines failure rolls the header
over to `failed` and leaves the cart intact. A clear failure after a fully
written order is retried and then reported, never rolled back.
"""

from __future__ import annotations

import asyncio

import structlog
from kungfu import Error, Ok, Result

from cartsync import saga as S
from cartsync._errors import EngineError, Errors
from cartsync._events import EventBus
from cartsync._policy import Policy
from cartsync._types import UserId
from cartsync.cart._cache import CartCache
from cartsync.cart._sync import CartSynchronizer, CurrentUser
from cartsync.cart._types import CartView, SignInRequired
from cartsync.checkout._types import (
    EMPTY_CART,
    CheckoutError,
    CheckoutReceipt,
    CheckoutStage,
    ShippingInfo,
)
from cartsync.store._client import StoreClient
from cartsync.store._types import OrderDraft, OrderLine, OrderRef, OrderStatus

logger = structlog.get_logger(__name__)


class CheckoutOrchestrator:
    def __init__(
        self,
        client: StoreClient,
        cache: CartCache,
        cart: CartSynchronizer,
        current_user: CurrentUser,
        prompts: EventBus[SignInRequired],
        policy: Policy,
    ) -> None:
        self._client = client
        self._cache = cache
        self._cart = cart
        self._current_user = current_user
        self._prompts = prompts
        self._policy = policy
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def checkout(self, shipping: ShippingInfo) -> Result[CheckoutReceipt, CheckoutError]:
        """
        Place an order for the current cart.

        Example:
            match await engine.checkout.checkout(ShippingInfo("Calle 1", "555-0101")):
                case Ok(receipt):
                    show_order(receipt.order_number)
                case Error(failure) if failure.partial:
                    alert_support(failure.order_id)
                case Error(failure):
                    toast(failure.message)
        """
        user_id = self._current_user()
        if user_id is None:
            logger.info("Checkout needs a signed-in user")
            self._prompts.publish(SignInRequired("checkout"))
            return _precondition(Errors.not_authenticated("checkout"))

        if self._running:
            return _precondition(Errors.busy("a checkout is already running", "checkout"))

        match shipping.checked():
            case Error(err):
                return _precondition(err)
            case Ok(shipping):
                pass

        self._running = True
        try:
            # Cart changes are refused until the order is placed and the cart cleared.
            async with self._cart.checkout_window() as window:
                match window:
                    case Error(err):
                        return _precondition(err)
                    case Ok(view):
                        pass
                if view.is_empty:
                    return _precondition(Errors.rejected(EMPTY_CART, "checkout"))
                return await self._place(user_id, shipping, view)
        finally:
            self._running = False

    # ═══════════════════════════════════════════════════════════════════════════
    # Order Saga
    # ═══════════════════════════════════════════════════════════════════════════

    async def _place(
        self, user_id: UserId, shipping: ShippingInfo, view: CartView
    ) -> Result[CheckoutReceipt, CheckoutError]:
        draft = OrderDraft(
            user_id=user_id,
            total_amount=view.total,
            shipping_address=shipping.address,
            phone=shipping.phone,
            notes=shipping.notes,
            status=OrderStatus.PENDING,
        )
        headers: list[OrderRef] = []

        async def write_header() -> Result[OrderRef, EngineError]:
            result = await self._client.insert_order(draft)
            match result:
                case Ok(ref):
                    headers.append(ref)
            return result

        async def mark_failed(ref: OrderRef) -> Result[None, EngineError]:
            return await self._client.update_order_status(ref.id, OrderStatus.FAILED)

        async def write_lines(ref: OrderRef) -> Result[tuple[OrderRef, tuple[OrderLine, ...]], EngineError]:
            lines = tuple(
                OrderLine(
                    order_id=ref.id,
                    product_id=line.product_id,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                )
                for line in view.lines
            )
            match await self._client.insert_order_lines(lines):
                case Ok(_):
                    return Ok((ref, lines))
                case Error(err):
                    return Error(err)

        placed = S.from_result(
            write_header, compensate=mark_failed, name=CheckoutStage.ORDER_HEADER.value
        ).then(
            lambda ref: S.from_result(
                lambda: write_lines(ref), name=CheckoutStage.ORDER_LINES.value
            )
        )

        match await S.run(placed):
            case Ok(done):
                ref, lines = done.value
            case Error(failure):
                return Error(self._failed(user_id, failure, headers))

        logger.info(
            "Order placed",
            user_id=user_id,
            order_id=ref.id,
            order_number=ref.number,
            total=str(view.total),
            lines=len(lines),
        )
        cleanup_error = await self._clear_cart(user_id, ref)
        return Ok(CheckoutReceipt(
            order_id=ref.id,
            order_number=ref.number,
            total_amount=view.total,
            lines=lines,
            cart_cleared=cleanup_error is None,
            cleanup_error=cleanup_error,
        ))

    def _failed(
        self,
        user_id: UserId,
        failure: S.SagaError[EngineError],
        headers: list[OrderRef],
    ) -> CheckoutError:
        if failure.step_name == CheckoutStage.ORDER_HEADER.value:
            logger.warning(
                "Checkout failed before any order was written",
                user_id=user_id,
                error=failure.error.message,
            )
            return CheckoutError(failure.error, CheckoutStage.ORDER_HEADER)

        ref = headers[0]
        marked = failure.compensators_run > 0 and failure.rollback_complete
        logger.error(
            "Checkout left an order without all its lines",
            hazard="integrity",
            user_id=user_id,
            order_id=ref.id,
            order_number=ref.number,
            header_marked_failed=marked,
            error=failure.error.message,
        )
        return CheckoutError(
            Errors.integrity_hazard(
                f"order {ref.number or ref.id} was written without all its lines: "
                f"{failure.error.message}",
                failure.error,
            ),
            CheckoutStage.ORDER_LINES,
            order_id=ref.id,
            header_marked_failed=marked,
        )

    # ═══════════════════════════════════════════════════════════════════════════
    # Cleanup
    # ═══════════════════════════════════════════════════════════════════════════

    async def _clear_cart(self, user_id: UserId, ref: OrderRef) -> EngineError | None:
        attempts = self._policy.cleanup_attempts
        backoff = self._policy.cleanup_backoff.total_seconds()
        last: EngineError | None = None

        for attempt in range(1, attempts + 1):
            match await self._client.delete_all_cart_rows(user_id):
                case Ok(_):
                    self._cache.reset("checkout")
                    return None
                case Error(err):
                    last = err
            logger.warning(
                "Cart cleanup after checkout failed",
                order_id=ref.id,
                attempt=attempt,
                attempts=attempts,
                error=last.message,
            )
            if attempt < attempts:
                await asyncio.sleep(backoff)

        return last


def _precondition(error: EngineError) -> Result[CheckoutReceipt, CheckoutError]:
    logger.info("Checkout rejected", reason=error.message, kind=error.kind.name)
    return Error(CheckoutError(error, CheckoutStage.PRECONDITION))


__all__ = ("CheckoutOrchestrator",)

import asyncio
from decimal import Decimal

from kungfu import Error, Ok
from structlog.testing import capture_logs

from cartsync import Engine, ErrorKind
from cartsync import checkout as K
from cartsync import session as Ss
from cartsync.store import OrderStatus
from conftest import USER

SHIPPING = K.ShippingInfo("Calle 10 # 4-21", "555-0101", notes="ring twice")


async def fill(engine: Engine) -> None:
    await engine.cart.add("rice", 2)
    await engine.cart.add("oil", 3)


class TestCheckout:
    async def test_order_mirrors_cart_snapshot(self, engine, remote):
        await fill(engine)

        result = await engine.checkout.checkout(SHIPPING)

        assert isinstance(result, Ok)
        receipt = result.value
        assert receipt.total_amount == Decimal("3500")
        assert receipt.order_number == "ORD-000001"
        assert receipt.cart_cleared

        order = remote.orders[receipt.order_id]
        assert order.draft.total_amount == Decimal("3500")
        assert order.draft.shipping_address == "Calle 10 # 4-21"
        assert order.draft.notes == "ring twice"
        assert order.status is OrderStatus.PENDING

        lines = {(l.product_id, l.quantity, l.unit_price) for l in remote.order_lines}
        assert lines == {("rice", 2, Decimal("1000")), ("oil", 3, Decimal("500"))}
        assert sum(l.total_price for l in remote.order_lines) == Decimal("3500")

    async def test_success_clears_cart_and_cache(self, engine, remote):
        await fill(engine)

        await engine.checkout.checkout(SHIPPING)

        assert engine.view.is_empty
        assert remote.cart_of(USER) == {}

    async def test_catalogue_price_change_does_not_reach_the_order(self, engine, remote):
        await fill(engine)
        remote.set_price("rice", 9999)

        result = await engine.checkout.checkout(SHIPPING)

        assert result.value.total_amount == Decimal("3500")
        assert {l.unit_price for l in remote.order_lines} == {Decimal("1000"), Decimal("500")}

    async def test_cart_change_after_snapshot_is_not_billed(self, slow_engine, slow_remote):
        await fill(slow_engine)

        placing = asyncio.create_task(slow_engine.checkout.checkout(SHIPPING))
        await asyncio.sleep(0)
        added = await slow_engine.cart.add("salt", 1)
        cleared = await slow_engine.cart.clear()
        result = await placing

        assert result.value.total_amount == Decimal("3500")
        assert {l.product_id for l in slow_remote.order_lines} == {"rice", "oil"}
        assert isinstance(added, Error)
        assert added.value.kind is ErrorKind.BUSY
        assert isinstance(cleared, Error)
        assert cleared.value.kind is ErrorKind.BUSY
        assert "salt" not in slow_remote.cart_of(USER)
        assert slow_engine.view.is_empty

    async def test_add_in_flight_before_checkout_is_billed(self, slow_engine, slow_remote):
        await fill(slow_engine)

        adding = asyncio.create_task(slow_engine.cart.add("salt", 1))
        await asyncio.sleep(0)
        result = await slow_engine.checkout.checkout(SHIPPING)

        assert isinstance(await adding, Ok)
        assert result.value.total_amount == Decimal("3750")
        assert {l.product_id for l in slow_remote.order_lines} == {"rice", "oil", "salt"}
        assert slow_remote.cart_of(USER) == {}

    async def test_checkout_waits_for_sign_in_load(self, slow_remote, policy):
        await slow_remote.upsert_cart_row(USER, "rice", 2)
        provider = Ss.MemorySession(None)

        async with Engine.create(slow_remote, provider, policy) as engine:
            provider.sign_in(USER)
            await asyncio.sleep(0)
            result = await engine.checkout.checkout(SHIPPING)

        assert isinstance(result, Ok)
        assert result.value.total_amount == Decimal("2000")
        assert {(l.product_id, l.quantity) for l in slow_remote.order_lines} == {("rice", 2)}

    async def test_empty_cart_is_rejected_without_writes(self, engine, remote):
        result = await engine.checkout.checkout(SHIPPING)

        assert isinstance(result, Error)
        assert result.value.stage is K.CheckoutStage.PRECONDITION
        assert result.value.message == "empty cart"
        assert remote.orders == {}
        assert remote.order_lines == []
        assert remote.count("insert_order") == 0

    async def test_blank_shipping_is_rejected(self, engine, remote):
        await fill(engine)

        result = await engine.checkout.checkout(K.ShippingInfo("   ", "555"))

        assert isinstance(result, Error)
        assert result.value.kind is ErrorKind.VALIDATION_REJECTED
        assert result.value.message == "shipping address is required"
        assert remote.orders == {}

    async def test_signed_out_prompts_sign_in(self, remote, policy):
        async with Engine.create(remote, Ss.MemorySession(None), policy) as engine:
            prompts = []
            engine.prompts.subscribe(prompts.append)

            result = await engine.checkout.checkout(SHIPPING)

        assert result.value.kind is ErrorKind.NOT_AUTHENTICATED
        assert [p.operation for p in prompts] == ["checkout"]
        assert remote.orders == {}

    async def test_second_concurrent_checkout_is_busy(self, slow_engine, slow_remote):
        await fill(slow_engine)

        first, second = await asyncio.gather(
            slow_engine.checkout.checkout(SHIPPING),
            slow_engine.checkout.checkout(SHIPPING),
        )

        assert isinstance(first, Ok)
        assert isinstance(second, Error)
        assert second.value.kind is ErrorKind.BUSY
        assert len(slow_remote.orders) == 1


class TestCheckoutFailures:
    async def test_header_failure_persists_nothing(self, engine, remote):
        await fill(engine)
        remote.fail("insert_order")

        result = await engine.checkout.checkout(SHIPPING)

        assert isinstance(result, Error)
        assert result.value.stage is K.CheckoutStage.ORDER_HEADER
        assert not result.value.partial
        assert result.value.kind is ErrorKind.TRANSIENT
        assert remote.orders == {}
        assert engine.view.count == 5

    async def test_lines_failure_is_an_integrity_hazard(self, engine, remote):
        await fill(engine)
        remote.fail("insert_order_lines")

        with capture_logs() as logs:
            result = await engine.checkout.checkout(SHIPPING)

        assert isinstance(result, Error)
        failure = result.value
        assert failure.partial
        assert failure.stage is K.CheckoutStage.ORDER_LINES
        assert failure.kind is ErrorKind.INTEGRITY_HAZARD
        assert failure.header_marked_failed
        assert remote.orders[failure.order_id].status is OrderStatus.FAILED

        # The cart survives a failed checkout.
        assert engine.view.count == 5
        assert remote.cart_of(USER) == {"rice": 2, "oil": 3}
        assert remote.count("delete_all_cart_rows") == 0

        hazards = [e for e in logs if e.get("hazard") == "integrity"]
        assert len(hazards) == 1
        assert hazards[0]["log_level"] == "error"
        assert hazards[0]["event"] == "Checkout left an order without all its lines"
        assert hazards[0]["order_id"] == failure.order_id

    async def test_unmarkable_header_is_reported(self, engine, remote):
        await fill(engine)
        remote.fail("insert_order_lines")
        remote.fail("update_order_status")

        result = await engine.checkout.checkout(SHIPPING)

        assert result.value.partial
        assert not result.value.header_marked_failed
        assert remote.orders[result.value.order_id].status is OrderStatus.PENDING

    async def test_cleanup_is_retried(self, engine, remote):
        await fill(engine)
        remote.fail("delete_all_cart_rows")

        result = await engine.checkout.checkout(SHIPPING)

        assert isinstance(result, Ok)
        assert result.value.cart_cleared
        assert remote.count("delete_all_cart_rows") == 2
        assert engine.view.is_empty

    async def test_cleanup_failure_keeps_the_order(self, engine, remote):
        await fill(engine)
        remote.fail("delete_all_cart_rows", times=2)

        result = await engine.checkout.checkout(SHIPPING)

        assert isinstance(result, Ok)
        receipt = result.value
        assert not receipt.cart_cleared
        assert receipt.cleanup_error is not None
        assert remote.orders[receipt.order_id].status is OrderStatus.PENDING
        assert len(remote.order_lines) == 2
        assert engine.view.count == 5
        assert remote.cart_of(USER) == {"rice": 2, "oil": 3}

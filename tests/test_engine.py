from kungfu import Error, Ok

from cartsync import Engine, EngineError, ErrorKind, Errors, Outcome
from cartsync import checkout as K


class TestOutcome:
    def test_success(self):
        outcome = Outcome.from_result(Ok(3))

        assert outcome.success
        assert outcome.value == 3
        assert outcome.error is None

    def test_engine_error(self):
        outcome = Outcome.from_result(Error(Errors.rejected("insufficient stock, available = 5")))

        assert not outcome.success
        assert outcome.error == "insufficient stock, available = 5"
        assert outcome.kind is ErrorKind.VALIDATION_REJECTED

    def test_checkout_error(self):
        failure = K.CheckoutError(Errors.rejected("empty cart", "checkout"), K.CheckoutStage.PRECONDITION)

        outcome = Outcome.from_result(Error(failure))

        assert outcome.error == "empty cart"
        assert outcome.kind is ErrorKind.VALIDATION_REJECTED


class TestEngine:
    async def test_engines_do_not_share_state(self, remote, provider, policy):
        first = Engine.create(remote, provider, policy)
        second = Engine.create(remote, provider, policy)

        assert first.cache is not second.cache
        assert first.cart_events is not second.cart_events

    async def test_full_flow(self, engine, remote):
        seen = []
        engine.cart_events.subscribe(lambda e: seen.append(e.view.count))

        await engine.cart.add("rice", 1)
        await engine.cart.add("oil", 2)
        result = await engine.checkout.checkout(K.ShippingInfo("Calle 1", "555-0101"))

        assert Outcome.from_result(result).success
        assert seen == [1, 3, 0]
        assert engine.view.is_empty
        assert len(remote.orders) == 1

    def test_errors_render_as_their_message(self):
        err = EngineError(ErrorKind.BUSY, "rice is busy, try again")

        assert str(err) == "rice is busy, try again"
        assert err.retryable

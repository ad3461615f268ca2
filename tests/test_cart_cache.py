import asyncio
from decimal import Decimal

import pytest

from cartsync import EventBus
from cartsync import cart as C


def line(product_id: str, price: str, quantity: int, stock: int = 10) -> C.CartLine:
    return C.CartLine(product_id, product_id.title(), Decimal(price), quantity, stock)


@pytest.fixture
def events() -> list[C.CartChanged]:
    return []


@pytest.fixture
def cache(events) -> C.CartCache:
    bus: EventBus[C.CartChanged] = EventBus("cart")
    bus.subscribe(events.append)
    return C.CartCache(bus)


class TestCartView:
    def test_count_and_total_are_folded_from_lines(self):
        view = C.CartView.of([line("a", "1000", 2), line("b", "500", 3)])

        assert view.count == 5
        assert view.total == Decimal("3500")

    def test_empty_view(self):
        view = C.CartView.empty()

        assert view.is_empty
        assert view.count == 0
        assert view.total == 0

    def test_line_rejects_zero_quantity(self):
        with pytest.raises(ValueError):
            line("a", "1", 0)

    def test_exceeds_stock_flags_shrunk_stock(self):
        assert line("a", "1", 4, stock=3).exceeds_stock
        assert not line("a", "1", 3, stock=3).exceeds_stock


class TestCartCache:
    def test_put_with_current_epoch_applies_and_publishes(self, cache, events):
        applied = cache.put(line("a", "10", 1), cache.epoch, reason="add")

        assert applied
        assert cache.quantity_of("a") == 1
        assert [e.reason for e in events] == ["add"]
        assert events[0].view.count == 1

    def test_put_with_stale_epoch_is_dropped(self, cache, events):
        epoch = cache.epoch
        cache.reset()

        applied = cache.put(line("a", "10", 1), epoch, reason="add")

        assert not applied
        assert len(cache) == 0
        assert events == []

    def test_put_keeps_display_order(self, cache):
        epoch = cache.epoch
        cache.put(line("a", "10", 1), epoch, reason="add")
        cache.put(line("b", "10", 1), epoch, reason="add")
        cache.put(line("a", "10", 3), epoch, reason="add")

        assert [l.product_id for l in cache.view.lines] == ["a", "b"]

    def test_discard_absent_line_is_silent(self, cache, events):
        assert cache.discard("ghost", cache.epoch, reason="remove")
        assert events == []

    def test_begin_load_empties_and_supersedes(self, cache):
        old = cache.epoch
        cache.put(line("a", "10", 1), old, reason="add")

        epoch = cache.begin_load()

        assert epoch == old + 1
        assert len(cache) == 0
        assert cache.replace([line("b", "5", 2)], epoch, reason="load")
        assert not cache.replace([line("c", "5", 2)], old, reason="load")
        assert [l.product_id for l in cache.view.lines] == ["b"]

    def test_invalidate_keeps_lines(self, cache):
        epoch = cache.epoch
        cache.put(line("a", "10", 1), epoch, reason="add")

        cache.invalidate()

        assert cache.quantity_of("a") == 1
        assert not cache.put(line("a", "10", 2), epoch, reason="add")

    def test_reset_of_empty_cache_publishes_nothing(self, cache, events):
        cache.reset("sign_out")

        assert events == []


class TestKeyedLock:
    async def test_times_out_while_held(self):
        locks: C.KeyedLock[str] = C.KeyedLock()
        release = asyncio.Event()

        async def holder():
            async with locks.hold("a", timeout=1) as acquired:
                assert acquired
                await release.wait()

        task = asyncio.create_task(holder())
        await asyncio.sleep(0)

        async with locks.hold("a", timeout=0.05) as acquired:
            assert not acquired

        release.set()
        await task
        assert len(locks) == 0

    async def test_other_keys_are_independent(self):
        locks: C.KeyedLock[str] = C.KeyedLock()

        async with locks.hold("a", timeout=1) as a:
            async with locks.hold("b", timeout=0.05) as b:
                assert a and b
                assert locks.locked("a") and locks.locked("b")

        assert len(locks) == 0

    async def test_waiters_run_in_submission_order(self):
        locks: C.KeyedLock[str] = C.KeyedLock()
        order: list[int] = []

        async def worker(n: int):
            async with locks.hold("a", timeout=1):
                await asyncio.sleep(0.01)
                order.append(n)

        await asyncio.gather(*(worker(n) for n in range(5)))

        assert order == [0, 1, 2, 3, 4]

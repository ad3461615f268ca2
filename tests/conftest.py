import asyncio
from collections.abc import AsyncIterator

import pytest
from kungfu import Error

from cartsync import Engine, Policy
from cartsync import session as Ss
from cartsync import store as St

USER = "user-1"
OTHER_USER = "user-2"


class FlakyStore(St.MemoryStore):
    """
    MemoryStore with per-method fault injection and a call log.

        remote.fail("insert_order_lines")                  # next call returns Error
        remote.raise_on("fetch_product", ConnectionError())
        remote.hang("fetch_product")                       # next call never settles
    """

    def __init__(self, latency: float = 0.0) -> None:
        super().__init__(latency)
        self.calls: list[str] = []
        self._faults: dict[str, list[object]] = {}

    def fail(
        self,
        method: str,
        times: int = 1,
        kind: St.StoreErrorKind = St.StoreErrorKind.UNAVAILABLE,
    ) -> None:
        error = St.StoreError(kind, f"{method} failed")
        self._faults.setdefault(method, []).extend([error] * times)

    def raise_on(self, method: str, exc: Exception, times: int = 1) -> None:
        self._faults.setdefault(method, []).extend([exc] * times)

    def hang(self, method: str, times: int = 1) -> None:
        self._faults.setdefault(method, []).extend(["hang"] * times)

    def count(self, method: str) -> int:
        return self.calls.count(method)

    async def _guard(self, method: str):
        self.calls.append(method)
        faults = self._faults.get(method)
        if not faults:
            return None
        fault = faults.pop(0)
        match fault:
            case "hang":
                await asyncio.Event().wait()
            case Exception():
                raise fault
            case St.StoreError():
                return Error(fault)
        return None

    async def fetch_product(self, product_id):
        if (err := await self._guard("fetch_product")) is not None:
            return err
        return await super().fetch_product(product_id)

    async def fetch_cart_rows(self, user_id):
        if (err := await self._guard("fetch_cart_rows")) is not None:
            return err
        return await super().fetch_cart_rows(user_id)

    async def upsert_cart_row(self, user_id, product_id, quantity):
        if (err := await self._guard("upsert_cart_row")) is not None:
            return err
        return await super().upsert_cart_row(user_id, product_id, quantity)

    async def delete_cart_row(self, user_id, product_id):
        if (err := await self._guard("delete_cart_row")) is not None:
            return err
        return await super().delete_cart_row(user_id, product_id)

    async def delete_all_cart_rows(self, user_id):
        if (err := await self._guard("delete_all_cart_rows")) is not None:
            return err
        return await super().delete_all_cart_rows(user_id)

    async def insert_order(self, draft):
        if (err := await self._guard("insert_order")) is not None:
            return err
        return await super().insert_order(draft)

    async def insert_order_lines(self, lines):
        if (err := await self._guard("insert_order_lines")) is not None:
            return err
        return await super().insert_order_lines(lines)

    async def update_order_status(self, order_id, status):
        if (err := await self._guard("update_order_status")) is not None:
            return err
        return await super().update_order_status(order_id, status)


def seed(remote: St.MemoryStore) -> St.MemoryStore:
    remote.add_product("rice", "Arroz 1kg", 1000, stock=10, image_url="/img/rice.png")
    remote.add_product("oil", "Aceite 1L", 500, stock=10, unit="LT")
    remote.add_product("salt", "Sal", 250, stock=5)
    remote.add_product("old", "Descontinuado", 100, stock=50, active=False)
    return remote


@pytest.fixture
def policy() -> Policy:
    return (
        Policy()
        .with_call_timeout(seconds=0.2)
        .with_lock_timeout(seconds=1)
        .with_session_retry(attempts=3, backoff_seconds=0.01)
        .with_cleanup_retry(attempts=2, backoff_seconds=0)
    )


@pytest.fixture
def remote() -> FlakyStore:
    return seed(FlakyStore())


@pytest.fixture
def slow_remote() -> FlakyStore:
    return seed(FlakyStore(latency=0.02))


@pytest.fixture
def provider() -> Ss.MemorySession:
    return Ss.MemorySession(USER)


@pytest.fixture
async def engine(remote, provider, policy) -> AsyncIterator[Engine]:
    async with Engine.create(remote, provider, policy) as engine:
        yield engine


@pytest.fixture
async def slow_engine(slow_remote, provider, policy) -> AsyncIterator[Engine]:
    async with Engine.create(slow_remote, provider, policy) as engine:
        yield engine

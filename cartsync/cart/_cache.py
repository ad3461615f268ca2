"""
Cart cache: in-memory mirror of the signed-in user's cart rows.

Writers capture the epoch before their store write and pass it back when
applying; reset() and invalidate() bump the epoch so a write that started
before a reset can never resurrect a line afterwards.
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from cartsync._events import EventBus
from cartsync._types import ProductId
from cartsync.cart._types import CartChanged, CartLine, CartView

logger = structlog.get_logger(__name__)


class CartCache:
    def __init__(self, events: EventBus[CartChanged]) -> None:
        self._events = events
        self._lines: dict[ProductId, CartLine] = {}
        self._epoch = 0

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def view(self) -> CartView:
        return CartView.of(self._lines.values())

    def __len__(self) -> int:
        return len(self._lines)

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._lines

    def get(self, product_id: ProductId) -> CartLine | None:
        return self._lines.get(product_id)

    def quantity_of(self, product_id: ProductId) -> int:
        line = self._lines.get(product_id)
        return line.quantity if line is not None else 0

    # ═══════════════════════════════════════════════════════════════════════════
    # Epoch-guarded writes
    # ═══════════════════════════════════════════════════════════════════════════

    def put(self, line: CartLine, epoch: int, reason: str) -> bool:
        """Insert or replace a line, keeping its display position."""
        if epoch != self._epoch:
            logger.info(
                "Dropped stale cart update",
                product_id=line.product_id,
                reason=reason,
            )
            return False
        self._lines[line.product_id] = line
        self._changed(reason)
        return True

    def discard(self, product_id: ProductId, epoch: int, reason: str) -> bool:
        if epoch != self._epoch:
            logger.info("Dropped stale cart removal", product_id=product_id, reason=reason)
            return False
        if self._lines.pop(product_id, None) is not None:
            self._changed(reason)
        return True

    def replace(self, lines: Iterable[CartLine], epoch: int, reason: str) -> bool:
        if epoch != self._epoch:
            logger.info("Dropped superseded cart load", reason=reason)
            return False
        self._lines = {line.product_id: line for line in lines}
        self._changed(reason)
        return True

    # ═══════════════════════════════════════════════════════════════════════════
    # Epoch bumps
    # ═══════════════════════════════════════════════════════════════════════════

    def invalidate(self) -> int:
        """Supersede every write in flight without touching the lines."""
        self._epoch += 1
        return self._epoch

    def begin_load(self) -> int:
        """Empty the cache ahead of a full reload. Returns the load's epoch."""
        return self.reset("load")

    def reset(self, reason: str = "reset") -> int:
        """Empty the cache and supersede every write in flight."""
        self._epoch += 1
        had_lines = bool(self._lines)
        self._lines = {}
        if had_lines:
            self._changed(reason)
        return self._epoch

    def _changed(self, reason: str) -> None:
        view = self.view
        logger.debug("Cart cache changed", reason=reason, count=view.count, total=str(view.total))
        self._events.publish(CartChanged(view, reason))


__all__ = ("CartCache",)

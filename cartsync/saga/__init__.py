"""
Saga: multi-step writes with compensation.

    from cartsync import saga as S

    placed = S.step(write_header, mark_failed).then(lambda ref: S.step(write_lines(ref)))
    result = await S.run(placed)
"""

from __future__ import annotations

from cartsync.saga._types import (
    Compensator,
    SagaStep,
    Then,
    SagaExpr,
    SagaResult,
    SagaError,
)
from cartsync.saga._step import step, from_result, from_async
from cartsync.saga._run import run, run_compensators

__all__ = (
    "Compensator",
    "SagaStep",
    "Then",
    "SagaExpr",
    "SagaResult",
    "SagaError",
    "step",
    "from_result",
    "from_async",
    "run",
    "run_compensators",
)

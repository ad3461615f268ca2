"""
Engine policy: timeouts, retries and bounds.

Immutable: each with_* method returns a new Policy.

    policy = (
        Policy()
        .with_call_timeout(seconds=5)
        .with_session_retry(attempts=3, backoff_seconds=1)
    )
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import timedelta


@dataclass(frozen=True, slots=True)
class Policy:
    """
    Engine configuration.

    call_timeout:     bound on every remote store call; a call that does not
                      settle resolves as TIMEOUT and frees its product slot.
    lock_timeout:     how long a mutation waits for its product's slot.
    session_attempts: startup session fetch attempts before giving up.
    session_backoff:  linear backoff unit between attempts (1x, 2x, 3x ...).
    cleanup_attempts: cart clear attempts after an order was fully written.
    cleanup_backoff:  delay between cleanup attempts.
    max_listeners:    bound on each event bus.
    """

    call_timeout: timedelta = timedelta(seconds=10)
    lock_timeout: timedelta = timedelta(seconds=15)
    session_attempts: int = 3
    session_backoff: timedelta = timedelta(seconds=1)
    cleanup_attempts: int = 2
    cleanup_backoff: timedelta = timedelta(milliseconds=500)
    max_listeners: int = 32

    def __post_init__(self) -> None:
        if self.session_attempts < 1:
            raise ValueError("session_attempts must be at least 1")
        if self.cleanup_attempts < 1:
            raise ValueError("cleanup_attempts must be at least 1")
        if self.call_timeout <= timedelta(0) or self.lock_timeout <= timedelta(0):
            raise ValueError("timeouts must be positive")

    def with_call_timeout(
        self,
        *,
        seconds: float | None = None,
        delta: timedelta | None = None,
    ) -> Policy:
        """
        Set the per-call store timeout.

        Example:
            .with_call_timeout(seconds=5)
        """
        return replace(self, call_timeout=_delta(seconds, delta, self.call_timeout))

    def with_lock_timeout(
        self,
        *,
        seconds: float | None = None,
        delta: timedelta | None = None,
    ) -> Policy:
        return replace(self, lock_timeout=_delta(seconds, delta, self.lock_timeout))

    def with_session_retry(
        self,
        *,
        attempts: int,
        backoff_seconds: float | None = None,
    ) -> Policy:
        """
        Configure startup session fetch retries.

        Example:
            .with_session_retry(attempts=3, backoff_seconds=1)  # waits 1s, 2s
        """
        return replace(
            self,
            session_attempts=attempts,
            session_backoff=_delta(backoff_seconds, None, self.session_backoff),
        )

    def with_cleanup_retry(
        self,
        *,
        attempts: int,
        backoff_seconds: float | None = None,
    ) -> Policy:
        return replace(
            self,
            cleanup_attempts=attempts,
            cleanup_backoff=_delta(backoff_seconds, None, self.cleanup_backoff),
        )

    def with_max_listeners(self, count: int) -> Policy:
        return replace(self, max_listeners=count)


def _delta(seconds: float | None, delta: timedelta | None, current: timedelta) -> timedelta:
    if delta is not None:
        return delta
    if seconds is not None:
        return timedelta(seconds=seconds)
    return current


__all__ = ("Policy",)

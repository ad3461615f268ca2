"""
In-process session provider for tests and demos.
"""

from __future__ import annotations

import asyncio

from cartsync._events import Unsubscribe
from cartsync._types import UserId
from cartsync.session._types import AuthCallback, AuthEvent, AuthEventKind


class MemorySession:
    """
    SessionProvider backed by a plain attribute.

        session = MemorySession()
        session.fail_next(2)          # next two fetches raise ConnectionError
        session.sign_in("user-1")     # fires SIGNED_IN to every callback
    """

    def __init__(self, user_id: UserId | None = None, latency: float = 0.0) -> None:
        self._user_id = user_id
        self._latency = latency
        self._callbacks: list[AuthCallback] = []
        self._failures = 0
        self.fetches = 0

    @property
    def user_id(self) -> UserId | None:
        return self._user_id

    async def current_user_id(self) -> UserId | None:
        self.fetches += 1
        if self._latency:
            await asyncio.sleep(self._latency)
        if self._failures:
            self._failures -= 1
            raise ConnectionError("session endpoint unavailable")
        return self._user_id

    def on_auth_state_change(self, callback: AuthCallback) -> Unsubscribe:
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def fail_next(self, count: int) -> None:
        self._failures = count

    # ═══════════════════════════════════════════════════════════════════════════
    # Transitions
    # ═══════════════════════════════════════════════════════════════════════════

    def emit(self, event: AuthEvent) -> None:
        match event.kind:
            case AuthEventKind.SIGNED_OUT:
                self._user_id = None
            case AuthEventKind.PASSWORD_RECOVERY:
                pass
            case _ if event.user_id is not None:
                self._user_id = event.user_id
        for callback in tuple(self._callbacks):
            callback(event)

    def sign_in(self, user_id: UserId) -> None:
        self.emit(AuthEvent(AuthEventKind.SIGNED_IN, user_id))

    def sign_out(self) -> None:
        self.emit(AuthEvent(AuthEventKind.SIGNED_OUT))


__all__ = ("MemorySession",)

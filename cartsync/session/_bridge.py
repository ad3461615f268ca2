"""
Session bridge: drives the cart cache from identity transitions.

    LOADING ──start()──► SIGNED_IN ◄──► SIGNED_OUT
       │
       └── session fetch exhausted ──► ERROR

Entering SIGNED_IN loads the cart; leaving it resets the cache without any
store call. A repeated SIGNED_IN for the same user reloads.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog
from combinators import lift as L
from kungfu import Error, Ok, Result

from cartsync._errors import EngineError, Errors
from cartsync._events import EventBus, Unsubscribe
from cartsync._policy import Policy
from cartsync._types import UserId
from cartsync.cart._cache import CartCache
from cartsync.cart._types import CartView
from cartsync.session._types import (
    AuthEvent,
    AuthEventKind,
    SessionChanged,
    SessionProvider,
    SessionState,
)

logger = structlog.get_logger(__name__)

type CartLoader = Callable[[], Awaitable[Result[CartView, EngineError]]]


class SessionBridge:
    def __init__(
        self,
        provider: SessionProvider,
        cache: CartCache,
        load: CartLoader,
        events: EventBus[SessionChanged],
        policy: Policy,
    ) -> None:
        self._provider = provider
        self._cache = cache
        self._load = load
        self._events = events
        self._policy = policy
        self._state = SessionState.LOADING
        self._user_id: UserId | None = None
        self._unsubscribe: Unsubscribe | None = None
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def user_id(self) -> UserId | None:
        return self._user_id

    def current_user(self) -> UserId | None:
        """The signed-in user, or None in every other state."""
        return self._user_id if self._state is SessionState.SIGNED_IN else None

    # ═══════════════════════════════════════════════════════════════════════════
    # Lifecycle
    # ═══════════════════════════════════════════════════════════════════════════

    async def start(self) -> Result[UserId | None, EngineError]:
        """
        Fetch the current session (with retries), then follow transitions.

        On exhausted retries the bridge enters ERROR and does not subscribe;
        start() may be called again.
        """
        if self._unsubscribe is not None:
            return Ok(self._user_id)

        self._set(SessionState.LOADING, None)
        match await self._fetch_session():
            case Error(err):
                logger.error("Session fetch gave up", error=err.message)
                self._set(SessionState.ERROR, None, err)
                return Error(err)
            case Ok(user_id):
                pass

        self._unsubscribe = self._provider.on_auth_state_change(self._on_event)
        if user_id is None:
            self._set(SessionState.SIGNED_OUT, None)
        else:
            await self._sign_in(user_id)
        logger.info("Session bridge started", user_id=user_id, state=self._state.value)
        return Ok(user_id)

    async def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.drain()

    async def drain(self) -> None:
        """Wait until every transition received so far has been handled."""
        while self._pending:
            await asyncio.gather(*tuple(self._pending))

    # ═══════════════════════════════════════════════════════════════════════════
    # Transitions
    # ═══════════════════════════════════════════════════════════════════════════

    async def handle(self, event: AuthEvent) -> None:
        match event.kind:
            case AuthEventKind.SIGNED_IN if event.user_id is not None:
                await self._sign_in(event.user_id)
            case AuthEventKind.SIGNED_IN:
                logger.warning("Ignored sign-in without a user")
            case AuthEventKind.SIGNED_OUT:
                self._sign_out()
            case AuthEventKind.TOKEN_REFRESHED | AuthEventKind.USER_UPDATED:
                if event.user_id is not None and event.user_id != self.current_user():
                    await self._sign_in(event.user_id)
            case AuthEventKind.PASSWORD_RECOVERY:
                logger.debug("Ignored password recovery transition")

    def _on_event(self, event: AuthEvent) -> None:
        logger.debug("Auth state changed", kind=event.kind.value, user_id=event.user_id)
        task = asyncio.get_running_loop().create_task(self.handle(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _sign_in(self, user_id: UserId) -> None:
        if self._user_id is not None and self._user_id != user_id:
            self._cache.reset("user_changed")
        self._set(SessionState.SIGNED_IN, user_id)
        match await self._load():
            case Error(err):
                logger.warning("Cart load after sign-in failed", user_id=user_id, error=err.message)
            case Ok(_):
                pass

    def _sign_out(self) -> None:
        # Remote rows stay; they are just not visible while signed out.
        self._cache.reset("sign_out")
        self._set(SessionState.SIGNED_OUT, None)

    def _set(
        self, state: SessionState, user_id: UserId | None, error: EngineError | None = None
    ) -> None:
        self._state = state
        self._user_id = user_id
        self._events.publish(SessionChanged(state, user_id, error))

    # ═══════════════════════════════════════════════════════════════════════════
    # Startup Fetch
    # ═══════════════════════════════════════════════════════════════════════════

    async def _fetch_session(self) -> Result[UserId | None, EngineError]:
        attempts = self._policy.session_attempts
        backoff = self._policy.session_backoff.total_seconds()
        seconds = self._policy.call_timeout.total_seconds()
        last: EngineError = Errors.transient("session unavailable", "session")

        for attempt in range(1, attempts + 1):
            result = await L.catching_async(
                lambda: asyncio.wait_for(self._provider.current_user_id(), timeout=seconds),
                on_error=lambda e: _session_error(e, seconds),
            )
            match result:
                case Ok(user_id):
                    return Ok(user_id)
                case Error(err):
                    last = err
            logger.warning(
                "Session fetch failed",
                attempt=attempt,
                attempts=attempts,
                error=last.message,
            )
            if attempt < attempts:
                await asyncio.sleep(backoff * attempt)

        return Error(last)


def _session_error(exc: Exception, seconds: float) -> EngineError:
    if isinstance(exc, TimeoutError):
        return Errors.timeout("session", seconds)
    return Errors.transient(f"session fetch failed: {exc}", "session", exc)


__all__ = ("SessionBridge", "CartLoader")

"""
Session types: auth events in, session state out.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from cartsync._errors import EngineError
from cartsync._events import Unsubscribe
from cartsync._types import UserId


class AuthEventKind(Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"
    PASSWORD_RECOVERY = "PASSWORD_RECOVERY"


@dataclass(frozen=True, slots=True)
class AuthEvent:
    """Identity provider transition, with the session's user if it has one."""

    kind: AuthEventKind
    user_id: UserId | None = None


class SessionState(Enum):
    LOADING = "loading"
    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class SessionChanged:
    state: SessionState
    user_id: UserId | None = None
    error: EngineError | None = None


type AuthCallback = Callable[[AuthEvent], None]


class SessionProvider(Protocol):
    """
    Identity provider, seen from the cart.

    current_user_id may raise on transient failure; the bridge bounds and
    retries it. Callbacks are invoked synchronously with each transition.
    """

    async def current_user_id(self) -> UserId | None: ...

    def on_auth_state_change(self, callback: AuthCallback) -> Unsubscribe: ...


__all__ = (
    "AuthEventKind",
    "AuthEvent",
    "SessionState",
    "SessionChanged",
    "AuthCallback",
    "SessionProvider",
)

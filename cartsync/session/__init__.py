"""
Session: identity transitions in, cart resets and reloads out.

    from cartsync import session as Ss

    provider = Ss.MemorySession()
    provider.sign_in("user-1")
"""

from __future__ import annotations

from cartsync.session._types import (
    AuthEventKind,
    AuthEvent,
    SessionState,
    SessionChanged,
    AuthCallback,
    SessionProvider,
)
from cartsync.session._bridge import SessionBridge, CartLoader
from cartsync.session._memory import MemorySession

__all__ = (
    "AuthEventKind",
    "AuthEvent",
    "SessionState",
    "SessionChanged",
    "AuthCallback",
    "SessionProvider",
    "SessionBridge",
    "CartLoader",
    "MemorySession",
)

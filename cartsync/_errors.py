"""
Error taxonomy: every public operation fails with an EngineError.

Nothing here raises: errors travel inside Result.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class ErrorKind(Enum):
    """
    What went wrong, as far as a caller cares.

    VALIDATION_REJECTED: stock/active/input constraint, shown to the user.
    NOT_AUTHENTICATED:   no signed-in user, caller should prompt sign-in.
    NOT_FOUND:           the store has no such row.
    TRANSIENT:           network/server failure, caller may resubmit.
    TIMEOUT:             a store call did not settle in time.
    MALFORMED:           the store answered with something unusable.
    INTEGRITY_HAZARD:    checkout wrote an order header without all its lines.
    BUSY:                the slot for this product (or checkout) stayed taken.
    """

    VALIDATION_REJECTED = auto()
    NOT_AUTHENTICATED = auto()
    NOT_FOUND = auto()
    TRANSIENT = auto()
    TIMEOUT = auto()
    MALFORMED = auto()
    INTEGRITY_HAZARD = auto()
    BUSY = auto()


_RETRYABLE = frozenset({ErrorKind.TRANSIENT, ErrorKind.TIMEOUT, ErrorKind.BUSY})


@dataclass(frozen=True, slots=True)
class EngineError:
    """Normalized failure of a cart or checkout operation."""

    kind: ErrorKind
    message: str
    operation: str | None = None
    cause: Exception | None = None

    @property
    def retryable(self) -> bool:
        return self.kind in _RETRYABLE

    def __str__(self) -> str:
        return self.message


# ═══════════════════════════════════════════════════════════════════════════════
# Constructors
# ═══════════════════════════════════════════════════════════════════════════════


class Errors:
    @staticmethod
    def rejected(message: str, operation: str | None = None) -> EngineError:
        return EngineError(ErrorKind.VALIDATION_REJECTED, message, operation)

    @staticmethod
    def not_authenticated(operation: str) -> EngineError:
        return EngineError(ErrorKind.NOT_AUTHENTICATED, "not authenticated", operation)

    @staticmethod
    def not_found(message: str, operation: str | None = None) -> EngineError:
        return EngineError(ErrorKind.NOT_FOUND, message, operation)

    @staticmethod
    def transient(
        message: str, operation: str | None = None, cause: Exception | None = None
    ) -> EngineError:
        return EngineError(ErrorKind.TRANSIENT, message, operation, cause)

    @staticmethod
    def timeout(operation: str, seconds: float) -> EngineError:
        return EngineError(
            ErrorKind.TIMEOUT, f"{operation} did not settle within {seconds:g}s", operation
        )

    @staticmethod
    def malformed(
        message: str, operation: str | None = None, cause: Exception | None = None
    ) -> EngineError:
        return EngineError(ErrorKind.MALFORMED, message, operation, cause)

    @staticmethod
    def busy(message: str, operation: str | None = None) -> EngineError:
        return EngineError(ErrorKind.BUSY, message, operation)

    @staticmethod
    def integrity_hazard(message: str, cause: EngineError | None = None) -> EngineError:
        return EngineError(
            ErrorKind.INTEGRITY_HAZARD,
            message,
            "checkout",
            cause.cause if cause is not None else None,
        )


__all__ = ("ErrorKind", "EngineError", "Errors")

"""Service-layer exceptions."""
from __future__ import annotations


class LoreError(Exception):
    """Base class for every error the engine raises to callers."""


class NotFoundError(LoreError):
    """Raised when a campaign, node, character, session or trade is missing."""


class RequirementNotMetError(LoreError):
    """Raised when a choice, trade or recipe requirement is not satisfied."""

    def __init__(self, message: str, *, reason: str | None = None, deficit: int | None = None) -> None:
        super().__init__(message)
        self.reason = reason
        self.deficit = deficit


class ExternalServiceError(LoreError):
    """Raised when the action interpreter fails."""

    retryable = False

    def __init__(self, message: str, *, kind: str = "error", retryable: bool | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        if retryable is not None:
            self.retryable = retryable


class RateLimitedError(ExternalServiceError):
    retryable = True

    def __init__(self, message: str = "Rate limit exceeded. Please try again later.") -> None:
        super().__init__(message, kind="rate_limited")


class QuotaExhaustedError(ExternalServiceError):
    retryable = True

    def __init__(self, message: str = "Interpreter credits exhausted.") -> None:
        super().__init__(message, kind="quota_exhausted")


class ServiceTimeoutError(ExternalServiceError):
    retryable = True

    def __init__(self, message: str = "Action interpreter timed out.") -> None:
        super().__init__(message, kind="timeout")


class PersistenceError(LoreError):
    """Raised when the game store cannot complete a write."""


class StaleWriteError(PersistenceError):
    """Raised when a progress write carries an outdated version."""


class SnapshotLoadError(PersistenceError):
    """Raised when a persisted snapshot cannot be decoded."""


class ReentrancyError(LoreError):
    """Raised when an action targets a busy or completed session."""


class IllegalTransitionError(ReentrancyError):
    """Raised when the session phase machine is asked for an invalid move."""


class InvalidTradeStateError(LoreError):
    """Raised when a trade is answered or cancelled outside its pending state."""

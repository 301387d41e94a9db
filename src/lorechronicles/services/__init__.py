"""Service layer exports."""

from .errors import (
    ExternalServiceError,
    IllegalTransitionError,
    InvalidTradeStateError,
    LoreError,
    NotFoundError,
    PersistenceError,
    QuotaExhaustedError,
    RateLimitedError,
    ReentrancyError,
    RequirementNotMetError,
    ServiceTimeoutError,
    SnapshotLoadError,
    StaleWriteError,
)

__all__ = [
    "ExternalServiceError",
    "IllegalTransitionError",
    "InvalidTradeStateError",
    "LoreError",
    "NotFoundError",
    "PersistenceError",
    "QuotaExhaustedError",
    "RateLimitedError",
    "ReentrancyError",
    "RequirementNotMetError",
    "ServiceTimeoutError",
    "SnapshotLoadError",
    "StaleWriteError",
]

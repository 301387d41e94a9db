"""Shared type aliases for the core and domain layers."""
from typing import Literal

StatName = Literal["strength", "magic", "charisma", "wisdom", "agility"]
NodeType = Literal["narrative", "choice", "stat_check", "ending", "death"]
Difficulty = Literal["easy", "normal", "hard", "nightmare", "expert"]
SessionStatus = Literal["active", "completed"]
SessionOutcome = Literal["victory", "death"]
SessionPhase = Literal["idle", "processing", "completed"]
StatCheckResult = Literal["pass", "fail", "none"]
TradeStatus = Literal["pending", "accepted", "rejected", "cancelled"]

STAT_NAMES: tuple[StatName, ...] = ("strength", "magic", "charisma", "wisdom", "agility")
NODE_TYPES: tuple[NodeType, ...] = ("narrative", "choice", "stat_check", "ending", "death")
TERMINAL_NODE_TYPES: tuple[NodeType, ...] = ("ending", "death")
DIFFICULTIES: tuple[Difficulty, ...] = ("easy", "normal", "hard", "nightmare", "expert")
SESSION_STATUSES: tuple[SessionStatus, ...] = ("active", "completed")
SESSION_OUTCOMES: tuple[SessionOutcome, ...] = ("victory", "death")
TRADE_STATUSES: tuple[TradeStatus, ...] = ("pending", "accepted", "rejected", "cancelled")

__all__ = [
    "DIFFICULTIES",
    "Difficulty",
    "NODE_TYPES",
    "NodeType",
    "SESSION_OUTCOMES",
    "SESSION_STATUSES",
    "STAT_NAMES",
    "SessionOutcome",
    "SessionPhase",
    "SessionStatus",
    "StatCheckResult",
    "StatName",
    "TERMINAL_NODE_TYPES",
    "TRADE_STATUSES",
    "TradeStatus",
]

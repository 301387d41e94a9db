"""Value objects exchanged with the free-text action interpreter."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from lorechronicles.core.types import StatCheckResult
from lorechronicles.domain.story_flags import FlagValue


@dataclass(frozen=True, slots=True)
class PastAction:
    """One entry of a session's free-text action log."""

    text: str
    outcome: str
    stat_check: str | None = None


@dataclass(frozen=True, slots=True)
class ActionRequest:
    session_id: str
    character_id: str
    node_id: str
    player_text: str
    history: List[PastAction] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class StatCheckOutcome:
    stat: str = "none"
    difficulty: int = 0
    player_value: int | None = None
    result: StatCheckResult = "none"

    @property
    def was_rolled(self) -> bool:
        return self.result != "none"

    def summary(self) -> str | None:
        if not self.was_rolled:
            return None
        return f"{self.stat} {self.result}"


@dataclass(frozen=True, slots=True)
class InterpretationResult:
    """Normalized verdict for a submitted action.

    When ``is_valid`` is false the remaining effect fields are ignored.
    """

    is_valid: bool
    interpretation: str
    outcome_narration: str = ""
    rejection_reason: str | None = None
    stat_check: StatCheckOutcome = field(default_factory=StatCheckOutcome)
    stat_effects: Dict[str, int] = field(default_factory=dict)
    flag_effects: Dict[str, FlagValue] = field(default_factory=dict)
    xp_reward: int = 0

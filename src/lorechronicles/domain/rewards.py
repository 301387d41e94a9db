"""XP award rules for finished and failed sessions."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List

from lorechronicles.core.types import Difficulty
from lorechronicles.domain.character import MAX_LEVEL, Character, LegacyBonus

COMPLETION_BONUS = 100
FIRST_TIME_BONUS = 50
STAT_CHECK_BONUS = 20
PERFECT_RUN_BONUS = 50
LEGACY_XP_RATE = 0.1
XP_PER_LEVEL = 100

DIFFICULTY_MULTIPLIERS: Dict[str, float] = {
    "easy": 1,
    "normal": 1,
    "hard": 1.5,
    "nightmare": 2,
    "expert": 2,
}


@dataclass(frozen=True, slots=True)
class XpBreakdown:
    """Itemized completion award; ``total`` is the authoritative number."""

    base: int
    completion_bonus: int
    first_time_bonus: int
    stat_check_bonus: int
    perfect_run_bonus: int
    multiplier: float
    total: int

    def describe(self) -> List[str]:
        parts: List[str] = []
        if self.first_time_bonus > 0:
            parts.append(f"First clear +{self.first_time_bonus}")
        if self.stat_check_bonus > 0:
            parts.append(f"Stat checks +{self.stat_check_bonus}")
        if self.perfect_run_bonus > 0:
            parts.append(f"Perfect run +{self.perfect_run_bonus}")
        if self.multiplier > 1:
            parts.append(f"Difficulty x{self.multiplier:g}")
        return parts


def difficulty_multiplier(difficulty: Difficulty | str) -> float:
    return DIFFICULTY_MULTIPLIERS.get(difficulty, 1)


def calculate_completion_xp(
    *,
    xp_earned: int,
    stat_checks_passed: int,
    stat_checks_failed: int,
    difficulty: Difficulty | str,
    first_completion: bool,
) -> XpBreakdown:
    first_time = FIRST_TIME_BONUS if first_completion else 0
    stat_checks = STAT_CHECK_BONUS * stat_checks_passed
    perfect = PERFECT_RUN_BONUS if stat_checks_passed > 0 and stat_checks_failed == 0 else 0
    multiplier = difficulty_multiplier(difficulty)
    subtotal = xp_earned + COMPLETION_BONUS + first_time + stat_checks + perfect
    return XpBreakdown(
        base=xp_earned,
        completion_bonus=COMPLETION_BONUS,
        first_time_bonus=first_time,
        stat_check_bonus=stat_checks,
        perfect_run_bonus=perfect,
        multiplier=multiplier,
        total=math.floor(subtotal * multiplier),
    )


def partial_death_xp(xp_earned: int) -> int:
    return max(0, xp_earned) // 2


def build_legacy_bonus(character: Character) -> LegacyBonus:
    """Compute the legacy record from the character's pre-death values."""
    return LegacyBonus(
        from_character=character.name,
        xp_bonus=math.floor(character.xp * LEGACY_XP_RATE),
        fallen_level=character.level,
    )


def next_level(level: int, xp: int) -> int:
    """Single-step level up once xp reaches ``level * 100``, capped at 20."""
    if xp >= level * XP_PER_LEVEL:
        return min(MAX_LEVEL, level + 1)
    return level

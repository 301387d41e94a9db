"""Character stat vector and clamping rules."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping

from lorechronicles.core.types import STAT_NAMES, StatName

STAT_MIN = 1
STAT_MAX = 10


def clamp_stat(value: int) -> int:
    """Clamp a raw stat value into the [STAT_MIN, STAT_MAX] range."""
    return max(STAT_MIN, min(STAT_MAX, value))


def is_stat_name(value: object) -> bool:
    return isinstance(value, str) and value in STAT_NAMES


@dataclass(frozen=True, slots=True)
class CharacterStats:
    """Fixed five-stat record; every field is kept within [1, 10]."""

    strength: int = 3
    magic: int = 3
    charisma: int = 3
    wisdom: int = 3
    agility: int = 3

    def __post_init__(self) -> None:
        for name in STAT_NAMES:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"Stat '{name}' must be an integer.")
            if not STAT_MIN <= value <= STAT_MAX:
                raise ValueError(f"Stat '{name}' must be between {STAT_MIN} and {STAT_MAX}.")

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object], *, clamp: bool = False) -> "CharacterStats":
        """Build stats from a persisted mapping, rejecting unknown keys.

        Missing keys fall back to the default value. With ``clamp`` set,
        out-of-range values are pulled into range instead of rejected.
        """
        unknown = set(payload.keys()) - set(STAT_NAMES)
        if unknown:
            raise ValueError(f"Unknown stats: {sorted(unknown)}")
        values: Dict[str, int] = {}
        for name in STAT_NAMES:
            if name not in payload:
                continue
            raw = payload[name]
            if isinstance(raw, bool) or not isinstance(raw, int):
                raise ValueError(f"Stat '{name}' must be an integer.")
            values[name] = clamp_stat(raw) if clamp else raw
        return cls(**values)

    def get(self, stat: StatName) -> int:
        return getattr(self, stat)

    def as_dict(self) -> Dict[str, int]:
        return {name: getattr(self, name) for name in STAT_NAMES}

    def apply_effect(self, effect: Mapping[str, int] | None) -> "CharacterStats":
        """Return a new record with deltas applied and clamped per stat.

        Keys that are not stat names are ignored; stats absent from the
        effect keep their value.
        """
        if not effect:
            return self
        values = self.as_dict()
        for name, delta in effect.items():
            if name not in values or isinstance(delta, bool) or not isinstance(delta, int):
                continue
            values[name] = clamp_stat(values[name] + delta)
        return CharacterStats(**values)

    def with_bonuses(self, bonuses: Mapping[str, int]) -> "CharacterStats":
        """Return stats with equipment bonuses folded in (still clamped)."""
        return self.apply_effect(bonuses)

    def diff(self, other: "CharacterStats") -> Dict[str, int]:
        """Return per-stat deltas from ``self`` to ``other`` (non-zero only)."""
        changes: Dict[str, int] = {}
        for name in STAT_NAMES:
            delta = getattr(other, name) - getattr(self, name)
            if delta:
                changes[name] = delta
        return changes

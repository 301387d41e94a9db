"""Player character entity and death bookkeeping."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from lorechronicles.domain.stats import CharacterStats

MIN_LEVEL = 1
MAX_LEVEL = 20


@dataclass(frozen=True, slots=True)
class DeathContext:
    """Where and how a character fell."""

    campaign_id: str
    campaign_title: str
    node_id: str
    node_title: str
    cause: str


@dataclass(frozen=True, slots=True)
class LegacyBonus:
    """Bonus a fallen character leaves behind for future characters."""

    from_character: str
    xp_bonus: int
    fallen_level: int


@dataclass(slots=True)
class Character:
    id: str
    user_id: str
    name: str
    race_id: str | None = None
    level: int = MIN_LEVEL
    xp: int = 0
    stats: CharacterStats = field(default_factory=CharacterStats)
    is_active: bool = True
    fallen_at: datetime | None = None
    death_context: DeathContext | None = None
    legacy_bonuses: LegacyBonus | None = None
    backstory: str | None = None

    @property
    def has_fallen(self) -> bool:
        return not self.is_active and self.fallen_at is not None

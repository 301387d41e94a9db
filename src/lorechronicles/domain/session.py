"""Play session and per-session character progress."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List

from lorechronicles.core.types import SessionOutcome, SessionStatus
from lorechronicles.domain.stats import CharacterStats
from lorechronicles.domain.story_flags import StoryFlags


@dataclass(slots=True)
class Session:
    """Binds one character to one campaign playthrough."""

    id: str
    campaign_id: str
    character_id: str
    user_id: str
    current_node_id: str | None
    status: SessionStatus = "active"
    outcome: SessionOutcome | None = None
    story_flags: StoryFlags = field(default_factory=StoryFlags)
    started_at: datetime | None = None
    last_played_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"


@dataclass(slots=True)
class CharacterProgress:
    """Working state for a character inside a session.

    ``stats_snapshot`` diverges from the character's stats until the session
    is finalized. ``version`` is bumped on every committed write.
    """

    session_id: str
    character_id: str
    current_node_id: str | None
    stats_snapshot: CharacterStats
    nodes_visited: List[str] = field(default_factory=list)
    xp_earned: int = 0
    stat_checks_passed: int = 0
    stat_checks_failed: int = 0
    stat_checks_by_type: Dict[str, int] = field(default_factory=dict)
    version: int = 0

    @property
    def is_perfect_run(self) -> bool:
        return self.stat_checks_passed > 0 and self.stat_checks_failed == 0


@dataclass(frozen=True, slots=True)
class EndingSeen:
    """Ledger row: a user reached ``node_id`` in ``campaign_id`` at least once."""

    user_id: str
    campaign_id: str
    node_id: str
    first_seen_at: datetime | None = None

"""Story progression services: choice application, completion and death."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List

from lorechronicles.core.clock import Clock, utc_now
from lorechronicles.core.types import SessionStatus
from lorechronicles.data.content_store import ContentStore
from lorechronicles.data.stores.protocols import GameStore
from lorechronicles.domain.character import Character, DeathContext, LegacyBonus
from lorechronicles.domain.defs import CampaignDef, StoryNodeDef
from lorechronicles.domain.inventory import CharacterInventory
from lorechronicles.domain.rewards import (
    XpBreakdown,
    build_legacy_bonus,
    calculate_completion_xp,
    next_level,
    partial_death_xp,
)
from lorechronicles.domain.session import CharacterProgress, Session
from lorechronicles.services.errors import NotFoundError, RequirementNotMetError
from lorechronicles.services.navigator import REASON_STAT_BELOW_THRESHOLD, NodeView, StoryNavigator
from lorechronicles.services.session_guard import SessionGuard

logger = logging.getLogger("lorechronicles.story")

DEFAULT_DEATH_CAUSE_LENGTH = 100
UNKNOWN_CAUSE = "Unknown cause"


@dataclass(slots=True)
class StoryEvent:
    """Base class for story events."""


@dataclass(slots=True)
class StatCheckPassedEvent(StoryEvent):
    stat: str
    required: int
    actual: int


@dataclass(slots=True)
class StatsChangedEvent(StoryEvent):
    changes: Dict[str, int]
    stats: Dict[str, int]


@dataclass(slots=True)
class XpAccumulatedEvent(StoryEvent):
    amount: int
    session_total: int


@dataclass(slots=True)
class NodeEnteredEvent(StoryEvent):
    node_id: str
    node_type: str
    title: str


@dataclass(slots=True)
class SessionCompletedEvent(StoryEvent):
    session_id: str
    ending_node_id: str | None
    breakdown: XpBreakdown
    new_xp: int
    new_level: int
    leveled_up: bool
    first_time_ending: bool


@dataclass(slots=True)
class CharacterFellEvent(StoryEvent):
    """Survivable death: the character is retired but kept."""

    character_id: str
    character_name: str
    cause: str
    partial_xp: int
    legacy: LegacyBonus


@dataclass(slots=True)
class CharacterPerishedEvent(StoryEvent):
    """Permadeath: the character has been deleted."""

    character_id: str
    character_name: str
    cause: str


@dataclass(slots=True)
class ChoiceResult:
    """Result returned after applying a choice."""

    events: List[StoryEvent] = field(default_factory=list)
    node_view: NodeView | None = None
    session_status: SessionStatus = "active"


def death_cause(node: StoryNodeDef, max_length: int = DEFAULT_DEATH_CAUSE_LENGTH) -> str:
    """Cause string for a death node: its text, else its title."""
    cause = node.content.text or node.title or UNKNOWN_CAUSE
    return cause[:max_length]


class StoryService:
    """Application service that drives a session through the story graph."""

    def __init__(
        self,
        content: ContentStore,
        store: GameStore,
        *,
        navigator: StoryNavigator | None = None,
        guard: SessionGuard | None = None,
        clock: Clock = utc_now,
        death_cause_length: int = DEFAULT_DEATH_CAUSE_LENGTH,
    ) -> None:
        self._content = content
        self._store = store
        self._navigator = navigator or StoryNavigator(content)
        self._guard = guard or SessionGuard()
        self._clock = clock
        self._death_cause_length = death_cause_length

    def apply_choice(self, session_id: str, choice_id: str) -> ChoiceResult:
        """Validate and apply one choice, then advance or finish the session."""
        session = self._require_session(session_id)
        with self._guard.acquire(session_id, completed=session.is_completed) as ticket:
            progress = self._require_progress(session)
            character = self._require_character(session.character_id)
            campaign = self._content.get_campaign(session.campaign_id)
            if progress.current_node_id is None:
                raise NotFoundError(f"Session '{session_id}' has no current node.")
            node = self._content.get_node(progress.current_node_id)
            choice = self._content.get_choice(node.id, choice_id)
            inventory = CharacterInventory(character.id, self._store.list_inventory(character.id))

            availability = self._navigator.evaluate_choice(choice, progress.stats_snapshot, inventory)
            if not availability.available:
                if availability.reason == REASON_STAT_BELOW_THRESHOLD:
                    self._store.update_progress(
                        session.id,
                        character.id,
                        {"stat_checks_failed": progress.stat_checks_failed + 1},
                        expected_version=progress.version,
                    )
                logger.warning(
                    "Choice %s rejected on session %s: %s.", choice.id, session.id, availability.message
                )
                raise RequirementNotMetError(
                    availability.message or "Choice is not available.",
                    reason=availability.reason,
                    deficit=availability.deficit,
                )

            target = self._content.get_node(choice.target_node_id) if choice.target_node_id else None
            events: List[StoryEvent] = []
            with self._store.transaction():
                passed = progress.stat_checks_passed
                by_type = dict(progress.stat_checks_by_type)
                if choice.stat_requirement is not None:
                    requirement = choice.stat_requirement
                    passed += 1
                    by_type[requirement.stat] = by_type.get(requirement.stat, 0) + 1
                    events.append(
                        StatCheckPassedEvent(
                            stat=requirement.stat,
                            required=requirement.min_value,
                            actual=progress.stats_snapshot.get(requirement.stat),
                        )
                    )

                new_stats = progress.stats_snapshot.apply_effect(choice.stat_effect)
                changes = progress.stats_snapshot.diff(new_stats)
                if changes:
                    events.append(StatsChangedEvent(changes=changes, stats=new_stats.as_dict()))

                xp_gained = node.xp_reward
                visited = list(progress.nodes_visited)
                if target is not None:
                    visited.append(target.id)
                progress = self._store.update_progress(
                    session.id,
                    character.id,
                    {
                        "current_node_id": target.id if target is not None else progress.current_node_id,
                        "stats_snapshot": new_stats,
                        "nodes_visited": visited,
                        "xp_earned": progress.xp_earned + xp_gained,
                        "stat_checks_passed": passed,
                        "stat_checks_by_type": by_type,
                    },
                    expected_version=progress.version,
                )
                if xp_gained:
                    events.append(XpAccumulatedEvent(amount=xp_gained, session_total=progress.xp_earned))

                now = self._clock()
                session = self._store.update_session(
                    session.id,
                    {
                        "current_node_id": target.id if target is not None else session.current_node_id,
                        "last_played_at": now,
                    },
                )

                if target is not None:
                    events.append(NodeEnteredEvent(node_id=target.id, node_type=target.node_type, title=target.title))

                if target is None:
                    ending = node if node.node_type == "ending" else None
                    events.extend(self._complete_session(session, progress, character, campaign, ending, now))
                    ticket.complete()
                elif target.node_type == "death":
                    events.extend(self._handle_death(session, progress, character, campaign, target, now))
                    ticket.complete()
                elif target.node_type == "ending":
                    events.extend(self._complete_session(session, progress, character, campaign, target, now))
                    ticket.complete()

            session = self._require_session(session_id)
        node_view = None
        if target is not None:
            node_view = self._navigator.build_node_view(target.id, progress.stats_snapshot, inventory)
        return ChoiceResult(events=events, node_view=node_view, session_status=session.status)

    # ------------------------------------------------------------------ Outcomes
    def _complete_session(
        self,
        session: Session,
        progress: CharacterProgress,
        character: Character,
        campaign: CampaignDef,
        ending_node: StoryNodeDef | None,
        now: datetime,
    ) -> List[StoryEvent]:
        first_completion = not any(
            previous.outcome == "victory"
            for previous in self._store.list_sessions(user_id=session.user_id, campaign_id=campaign.id)
            if previous.id != session.id
        )
        self._store.update_session(
            session.id,
            {"status": "completed", "outcome": "victory", "completed_at": now},
        )
        first_time_ending = False
        if ending_node is not None:
            first_time_ending = self._store.record_ending_seen(session.user_id, campaign.id, ending_node.id, now)

        breakdown = calculate_completion_xp(
            xp_earned=progress.xp_earned,
            stat_checks_passed=progress.stat_checks_passed,
            stat_checks_failed=progress.stat_checks_failed,
            difficulty=campaign.difficulty,
            first_completion=first_completion,
        )
        new_xp = character.xp + breakdown.total
        new_level = next_level(character.level, new_xp)
        self._store.update_character(
            character.id,
            {"xp": new_xp, "level": new_level, "stats": progress.stats_snapshot},
        )
        logger.info(
            "Session %s completed: %s earned %d XP (level %d).",
            session.id,
            character.name,
            breakdown.total,
            new_level,
        )
        return [
            SessionCompletedEvent(
                session_id=session.id,
                ending_node_id=ending_node.id if ending_node is not None else None,
                breakdown=breakdown,
                new_xp=new_xp,
                new_level=new_level,
                leveled_up=new_level > character.level,
                first_time_ending=first_time_ending,
            )
        ]

    def _handle_death(
        self,
        session: Session,
        progress: CharacterProgress,
        character: Character,
        campaign: CampaignDef,
        death_node: StoryNodeDef,
        now: datetime,
    ) -> List[StoryEvent]:
        self._store.update_session(
            session.id,
            {"status": "completed", "outcome": "death", "completed_at": now},
        )
        cause = death_cause(death_node, self._death_cause_length)
        if campaign.permadeath:
            self._store.delete_character(character.id)
            logger.info("Character %s perished permanently in session %s.", character.name, session.id)
            return [CharacterPerishedEvent(character_id=character.id, character_name=character.name, cause=cause)]

        partial_xp = partial_death_xp(progress.xp_earned)
        legacy = build_legacy_bonus(character)
        self._store.update_character(
            character.id,
            {
                "is_active": False,
                "fallen_at": now,
                "death_context": DeathContext(
                    campaign_id=campaign.id,
                    campaign_title=campaign.title,
                    node_id=death_node.id,
                    node_title=death_node.title,
                    cause=cause,
                ),
                "stats": progress.stats_snapshot,
                "xp": character.xp + partial_xp,
                "legacy_bonuses": legacy,
            },
        )
        logger.info("Character %s fell in session %s (+%d XP).", character.name, session.id, partial_xp)
        return [
            CharacterFellEvent(
                character_id=character.id,
                character_name=character.name,
                cause=cause,
                partial_xp=partial_xp,
                legacy=legacy,
            )
        ]

    # ------------------------------------------------------------------ Lookups
    def _require_session(self, session_id: str) -> Session:
        session = self._store.get_session(session_id)
        if session is None:
            raise NotFoundError(f"Unknown session '{session_id}'.")
        return session

    def _require_progress(self, session: Session) -> CharacterProgress:
        progress = self._store.get_progress(session.id, session.character_id)
        if progress is None:
            raise NotFoundError(f"No progress recorded for session '{session.id}'.")
        return progress

    def _require_character(self, character_id: str) -> Character:
        character = self._store.get_character(character_id)
        if character is None:
            raise NotFoundError(f"Unknown character '{character_id}'.")
        return character

"""Session lifecycle: characters, starting, resuming and inspecting play."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Callable, List, Mapping

from lorechronicles.core.clock import Clock, utc_now
from lorechronicles.data.content_store import ContentStore
from lorechronicles.data.stores.protocols import GameStore
from lorechronicles.domain.character import Character
from lorechronicles.domain.inventory import CharacterInventory
from lorechronicles.domain.session import CharacterProgress, Session
from lorechronicles.domain.stats import CharacterStats
from lorechronicles.services.errors import NotFoundError, ReentrancyError, RequirementNotMetError
from lorechronicles.services.navigator import NodeView, StoryNavigator
from lorechronicles.services.session_guard import SessionGuard

logger = logging.getLogger("lorechronicles.session")

IdFactory = Callable[[], str]


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass(slots=True)
class SessionStart:
    session: Session
    progress: CharacterProgress
    node_view: NodeView


class SessionService:
    """Creates characters and sessions and serves the current node."""

    def __init__(
        self,
        content: ContentStore,
        store: GameStore,
        *,
        navigator: StoryNavigator | None = None,
        guard: SessionGuard | None = None,
        clock: Clock = utc_now,
        id_factory: IdFactory = _new_id,
    ) -> None:
        self._content = content
        self._store = store
        self._navigator = navigator or StoryNavigator(content)
        self._guard = guard or SessionGuard()
        self._clock = clock
        self._new_id = id_factory

    # ------------------------------------------------------------------ Characters
    def create_character(
        self,
        user_id: str,
        name: str,
        *,
        race_id: str | None = None,
        stats: CharacterStats | Mapping[str, int] | None = None,
        backstory: str | None = None,
    ) -> Character:
        if not name.strip():
            raise ValueError("Character name cannot be empty.")
        if stats is None:
            stats = CharacterStats()
        elif not isinstance(stats, CharacterStats):
            stats = CharacterStats.from_mapping(stats)
        character = Character(
            id=self._new_id(),
            user_id=user_id,
            name=name.strip(),
            race_id=race_id,
            stats=stats,
            backstory=backstory,
        )
        logger.info("Created character %s for user %s.", character.name, user_id)
        return self._store.add_character(character)

    def get_character(self, character_id: str) -> Character:
        character = self._store.get_character(character_id)
        if character is None:
            raise NotFoundError(f"Unknown character '{character_id}'.")
        return character

    def list_characters(self, user_id: str, *, include_fallen: bool = False) -> List[Character]:
        characters = self._store.list_characters(user_id)
        if include_fallen:
            return characters
        return [character for character in characters if character.is_active]

    def list_fallen(self, user_id: str) -> List[Character]:
        """Fallen characters of a user, most recent death first."""
        fallen = [character for character in self._store.list_characters(user_id) if character.has_fallen]
        return sorted(fallen, key=lambda character: character.fallen_at, reverse=True)  # type: ignore[arg-type, return-value]

    # ------------------------------------------------------------------ Sessions
    def start_session(self, campaign_id: str, character_id: str, user_id: str) -> SessionStart:
        campaign = self._content.get_campaign(campaign_id)
        character = self._store.get_character(character_id)
        if character is None:
            raise NotFoundError(f"Unknown character '{character_id}'.")
        if character.user_id != user_id:
            raise RequirementNotMetError(f"{character.name} does not belong to this player.", reason="not_owner")
        if not character.is_active:
            raise RequirementNotMetError(f"{character.name} has fallen and cannot adventure.", reason="inactive")
        if not campaign.start_node_id:
            raise NotFoundError(f"Campaign '{campaign.title}' has no start node.")
        start_node = self._content.get_node(campaign.start_node_id)

        now = self._clock()
        with self._store.transaction():
            session = self._store.create_session(
                Session(
                    id=self._new_id(),
                    campaign_id=campaign.id,
                    character_id=character.id,
                    user_id=user_id,
                    current_node_id=start_node.id,
                    started_at=now,
                    last_played_at=now,
                )
            )
            progress = self._store.create_progress(
                CharacterProgress(
                    session_id=session.id,
                    character_id=character.id,
                    current_node_id=start_node.id,
                    stats_snapshot=character.stats,
                    nodes_visited=[start_node.id],
                )
            )
            self._store.increment_play_count(campaign.id)
        logger.info("Session %s started: %s in '%s'.", session.id, character.name, campaign.title)
        return SessionStart(session=session, progress=progress, node_view=self._node_view(progress))

    def resume_session(self, session_id: str) -> NodeView:
        session = self.get_session(session_id)
        if session.is_completed:
            self._guard.mark_completed(session_id)
            raise ReentrancyError(f"Session '{session_id}' is already completed.")
        return self._node_view(self.get_progress(session_id))

    def get_session(self, session_id: str) -> Session:
        session = self._store.get_session(session_id)
        if session is None:
            raise NotFoundError(f"Unknown session '{session_id}'.")
        return session

    def get_progress(self, session_id: str) -> CharacterProgress:
        session = self.get_session(session_id)
        progress = self._store.get_progress(session.id, session.character_id)
        if progress is None:
            raise NotFoundError(f"No progress recorded for session '{session_id}'.")
        return progress

    def list_sessions(self, user_id: str, *, active_only: bool = False) -> List[Session]:
        sessions = self._store.list_sessions(user_id=user_id)
        if active_only:
            sessions = [session for session in sessions if not session.is_completed]
        return sessions

    def _node_view(self, progress: CharacterProgress) -> NodeView:
        if progress.current_node_id is None:
            raise NotFoundError(f"Session '{progress.session_id}' has no current node.")
        inventory = CharacterInventory(progress.character_id, self._store.list_inventory(progress.character_id))
        return self._navigator.build_node_view(progress.current_node_id, progress.stats_snapshot, inventory)

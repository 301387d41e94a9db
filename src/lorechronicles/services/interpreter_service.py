"""Free-text actions: delegate to an interpreter and fold the verdict into play."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Protocol, Sequence

from lorechronicles.data.stores.protocols import GameStore
from lorechronicles.domain.interpretation import ActionRequest, InterpretationResult, PastAction
from lorechronicles.domain.session import CharacterProgress, Session
from lorechronicles.domain.story_flags import free_text_key
from lorechronicles.services.errors import ExternalServiceError, NotFoundError, RequirementNotMetError
from lorechronicles.services.session_guard import SessionGuard

logger = logging.getLogger("lorechronicles.interpreter")

DEFAULT_HISTORY_WINDOW = 10


class ActionInterpreter(Protocol):
    """Port to whatever judges free-text actions.

    Implementations raise :class:`ExternalServiceError` subclasses on failure.
    """

    def interpret(self, request: ActionRequest) -> InterpretationResult: ...


@dataclass(slots=True)
class FreeTextOutcome:
    result: InterpretationResult
    applied: bool
    stat_changes: Dict[str, int] = field(default_factory=dict)
    xp_gained: int = 0


class FreeTextService:
    """Applies interpreted free-text actions and records plain answers."""

    def __init__(
        self,
        store: GameStore,
        interpreter: ActionInterpreter | None = None,
        *,
        guard: SessionGuard | None = None,
        history_window: int = DEFAULT_HISTORY_WINDOW,
    ) -> None:
        self._store = store
        self._interpreter = interpreter
        self._guard = guard or SessionGuard()
        self._history_window = history_window

    @property
    def has_interpreter(self) -> bool:
        return self._interpreter is not None

    def submit_action(
        self,
        session_id: str,
        player_text: str,
        history: Sequence[PastAction] | None = None,
    ) -> FreeTextOutcome:
        if self._interpreter is None:
            raise ExternalServiceError("No action interpreter is configured.", kind="unconfigured")
        text = player_text.strip()
        if not text:
            raise RequirementNotMetError("Describe what your character does.", reason="empty_action")

        session = self._require_session(session_id)
        with self._guard.acquire(session_id, completed=session.is_completed):
            progress = self._require_progress(session)
            if history is None:
                history = self._store.list_actions(session.id, self._history_window)
            request = ActionRequest(
                session_id=session.id,
                character_id=session.character_id,
                node_id=progress.current_node_id or "",
                player_text=text,
                history=list(history)[-self._history_window:],
            )
            try:
                result = self._interpreter.interpret(request)
            except ExternalServiceError as exc:
                logger.error("Interpreter failed for session %s (%s): %s", session.id, exc.kind, exc)
                raise

            if not result.is_valid:
                logger.info("Interpreter rejected action on session %s: %s", session.id, result.rejection_reason)
                return FreeTextOutcome(result=result, applied=False)

            return self._apply(session, progress, text, result)

    def record_response(self, session_id: str, text: str) -> Session:
        """Store a plain free-text answer for the session's current node."""
        session = self._require_session(session_id)
        with self._guard.acquire(session_id, completed=session.is_completed):
            progress = self._require_progress(session)
            if progress.current_node_id is None:
                raise NotFoundError(f"Session '{session_id}' has no current node.")
            flags = session.story_flags.merged({free_text_key(progress.current_node_id): text.strip()})
            return self._store.update_session(session.id, {"story_flags": flags})

    def recent_actions(self, session_id: str) -> List[PastAction]:
        return self._store.list_actions(session_id, self._history_window)

    def _apply(
        self,
        session: Session,
        progress: CharacterProgress,
        text: str,
        result: InterpretationResult,
    ) -> FreeTextOutcome:
        flags = None
        if result.flag_effects:
            try:
                flags = session.story_flags.merged(result.flag_effects)
            except ValueError as exc:
                logger.error("Interpreter returned unusable flags for session %s: %s", session.id, exc)
                raise ExternalServiceError(
                    f"Action interpreter returned invalid story flags: {exc}", kind="invalid_response"
                ) from exc
        new_stats = progress.stats_snapshot.apply_effect(result.stat_effects)
        xp_gained = max(0, result.xp_reward)
        patch: dict[str, object] = {
            "stats_snapshot": new_stats,
            "xp_earned": progress.xp_earned + xp_gained,
        }
        check = result.stat_check
        if check.result == "pass":
            patch["stat_checks_passed"] = progress.stat_checks_passed + 1
            by_type = dict(progress.stat_checks_by_type)
            by_type[check.stat] = by_type.get(check.stat, 0) + 1
            patch["stat_checks_by_type"] = by_type
        elif check.result == "fail":
            patch["stat_checks_failed"] = progress.stat_checks_failed + 1

        with self._store.transaction():
            self._store.update_progress(session.id, progress.character_id, patch, expected_version=progress.version)
            if flags is not None:
                self._store.update_session(session.id, {"story_flags": flags})
            self._store.append_action(
                session.id,
                PastAction(text=text, outcome=result.outcome_narration, stat_check=check.summary()),
            )
        logger.info("Applied free-text action on session %s (+%d XP).", session.id, xp_gained)
        return FreeTextOutcome(
            result=result,
            applied=True,
            stat_changes=progress.stats_snapshot.diff(new_stats),
            xp_gained=xp_gained,
        )

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

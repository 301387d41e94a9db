"""Per-session phase machine that serializes actions on a session."""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from lorechronicles.core.types import SessionPhase
from lorechronicles.services.errors import IllegalTransitionError, ReentrancyError

logger = logging.getLogger("lorechronicles.session")

_ALLOWED_TRANSITIONS: Dict[SessionPhase, tuple[SessionPhase, ...]] = {
    "idle": ("processing",),
    "processing": ("idle", "completed"),
    "completed": (),
}


class ActionTicket:
    """Handed to the body of :meth:`SessionGuard.acquire`.

    Calling :meth:`complete` makes the guard finish in the completed phase
    instead of returning to idle.
    """

    __slots__ = ("session_id", "_completed")

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        self._completed = False

    def complete(self) -> None:
        self._completed = True

    @property
    def completed(self) -> bool:
        return self._completed


class SessionGuard:
    """Tracks idle/processing/completed per session behind one mutex."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._phases: Dict[str, SessionPhase] = {}

    def phase(self, session_id: str) -> SessionPhase:
        with self._lock:
            return self._phases.get(session_id, "idle")

    def transition(self, session_id: str, target: SessionPhase) -> None:
        with self._lock:
            current = self._phases.get(session_id, "idle")
            if target not in _ALLOWED_TRANSITIONS[current]:
                raise IllegalTransitionError(
                    f"Session '{session_id}' cannot move from {current} to {target}."
                )
            self._phases[session_id] = target

    def mark_completed(self, session_id: str) -> None:
        """Pin a session that the store already reports as completed."""
        with self._lock:
            self._phases[session_id] = "completed"

    @contextmanager
    def acquire(self, session_id: str, *, completed: bool = False) -> Iterator[ActionTicket]:
        """Run one action on a session, rejecting overlap and finished sessions.

        ``completed`` reflects the persisted session status; a completed
        session never re-enters processing.
        """
        if completed:
            self.mark_completed(session_id)
        with self._lock:
            current = self._phases.get(session_id, "idle")
            if current == "completed":
                raise ReentrancyError(f"Session '{session_id}' is already completed.")
            if current == "processing":
                logger.warning("Rejected overlapping action on session %s.", session_id)
                raise ReentrancyError(f"Session '{session_id}' is already processing an action.")
            self._phases[session_id] = "processing"
        ticket = ActionTicket(session_id)
        try:
            yield ticket
        except BaseException:
            self.transition(session_id, "idle")
            raise
        self.transition(session_id, "completed" if ticket.completed else "idle")

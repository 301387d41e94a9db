import pytest

from lorechronicles.services.errors import IllegalTransitionError, ReentrancyError
from lorechronicles.services.session_guard import SessionGuard


def test_acquire_returns_to_idle() -> None:
    guard = SessionGuard()

    with guard.acquire("s1"):
        assert guard.phase("s1") == "processing"

    assert guard.phase("s1") == "idle"


def test_overlapping_actions_are_rejected() -> None:
    guard = SessionGuard()

    with guard.acquire("s1"):
        with pytest.raises(ReentrancyError):
            with guard.acquire("s1"):
                pass
        with guard.acquire("s2"):
            assert guard.phase("s2") == "processing"

    assert guard.phase("s1") == "idle"


def test_failed_action_releases_session() -> None:
    guard = SessionGuard()

    with pytest.raises(RuntimeError):
        with guard.acquire("s1"):
            raise RuntimeError("boom")

    assert guard.phase("s1") == "idle"


def test_completed_ticket_pins_session() -> None:
    guard = SessionGuard()

    with guard.acquire("s1") as ticket:
        ticket.complete()

    assert guard.phase("s1") == "completed"
    with pytest.raises(ReentrancyError):
        with guard.acquire("s1"):
            pass


def test_persisted_completion_is_respected() -> None:
    guard = SessionGuard()

    with pytest.raises(ReentrancyError):
        with guard.acquire("s1", completed=True):
            pass

    assert guard.phase("s1") == "completed"


def test_illegal_transition() -> None:
    guard = SessionGuard()

    with pytest.raises(IllegalTransitionError):
        guard.transition("s1", "completed")
    guard.transition("s1", "processing")
    guard.transition("s1", "completed")
    with pytest.raises(IllegalTransitionError):
        guard.transition("s1", "idle")

from typing import List

import pytest

from lorechronicles.domain.interpretation import ActionRequest, InterpretationResult, StatCheckOutcome
from lorechronicles.services.errors import ExternalServiceError, RateLimitedError, RequirementNotMetError
from lorechronicles.services.interpreter_service import FreeTextService
from tests.helpers.builders import make_character, make_harness, start


class _ScriptedInterpreter:
    def __init__(self, *outcomes) -> None:
        self._outcomes = list(outcomes)
        self.requests: List[ActionRequest] = []

    def interpret(self, request: ActionRequest) -> InterpretationResult:
        self.requests.append(request)
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _valid_result(**overrides) -> InterpretationResult:
    values = dict(
        is_valid=True,
        interpretation="You recite an old charm.",
        outcome_narration="The guard's eyes glaze over.",
        stat_check=StatCheckOutcome(stat="magic", difficulty=5, player_value=3, result="pass"),
        stat_effects={"magic": 2},
        flag_effects={"charmed_guard": True},
        xp_reward=15,
    )
    values.update(overrides)
    return InterpretationResult(**values)


def _setup(tmp_path, *outcomes):
    interpreter = _ScriptedInterpreter(*outcomes)
    harness = make_harness(tmp_path, interpreter)
    character = make_character(harness)
    session_id = start(harness, "trial", character).session.id
    return harness, interpreter, session_id


def test_valid_action_updates_progress_flags_and_log(tmp_path) -> None:
    harness, interpreter, session_id = _setup(tmp_path, _valid_result())

    outcome = harness.free_text.submit_action(session_id, "  I charm the guard  ")

    progress = harness.sessions.get_progress(session_id)
    session = harness.sessions.get_session(session_id)
    assert outcome.applied
    assert outcome.stat_changes == {"magic": 2}
    assert outcome.xp_gained == 15
    assert progress.stats_snapshot.magic == 5
    assert progress.xp_earned == 15
    assert progress.stat_checks_passed == 1
    assert progress.stat_checks_by_type == {"magic": 1}
    assert progress.current_node_id == "t_start"
    assert session.story_flags["charmed_guard"] is True
    actions = harness.free_text.recent_actions(session_id)
    assert [(action.text, action.stat_check) for action in actions] == [("I charm the guard", "magic pass")]
    assert interpreter.requests[0].player_text == "I charm the guard"
    assert interpreter.requests[0].node_id == "t_start"


def test_invalid_action_leaves_state_unchanged(tmp_path) -> None:
    rejected = InterpretationResult(
        is_valid=False,
        interpretation="You cannot fly.",
        rejection_reason="Characters cannot fly.",
        stat_effects={"magic": 5},
        xp_reward=100,
    )
    harness, _, session_id = _setup(tmp_path, rejected)
    before_progress = harness.sessions.get_progress(session_id)
    before_session = harness.sessions.get_session(session_id)

    outcome = harness.free_text.submit_action(session_id, "I fly over the wall")

    assert not outcome.applied
    assert outcome.result.rejection_reason == "Characters cannot fly."
    assert harness.sessions.get_progress(session_id) == before_progress
    assert harness.sessions.get_session(session_id) == before_session
    assert harness.free_text.recent_actions(session_id) == []


def test_failed_check_and_negative_xp(tmp_path) -> None:
    result = _valid_result(
        stat_check=StatCheckOutcome(stat="strength", difficulty=8, player_value=3, result="fail"),
        stat_effects={"strength": -5},
        flag_effects={},
        xp_reward=-10,
    )
    harness, _, session_id = _setup(tmp_path, result)

    outcome = harness.free_text.submit_action(session_id, "I bend the bars")

    progress = harness.sessions.get_progress(session_id)
    assert outcome.xp_gained == 0
    assert progress.xp_earned == 0
    assert progress.stats_snapshot.strength == 1
    assert progress.stat_checks_failed == 1
    assert progress.stat_checks_passed == 0


def test_interpreter_errors_propagate_and_release_session(tmp_path) -> None:
    harness, _, session_id = _setup(tmp_path, RateLimitedError(), _valid_result())

    with pytest.raises(RateLimitedError) as excinfo:
        harness.free_text.submit_action(session_id, "I charm the guard")

    assert excinfo.value.retryable
    assert harness.sessions.get_progress(session_id).version == 0
    assert harness.free_text.submit_action(session_id, "I charm the guard").applied


def test_history_is_passed_to_interpreter(tmp_path) -> None:
    harness, interpreter, session_id = _setup(tmp_path, _valid_result(), _valid_result())

    harness.free_text.submit_action(session_id, "first")
    harness.free_text.submit_action(session_id, "second")

    assert [action.text for action in interpreter.requests[1].history] == ["first"]


def test_empty_text_and_missing_interpreter(tmp_path) -> None:
    harness, _, session_id = _setup(tmp_path)

    with pytest.raises(RequirementNotMetError):
        harness.free_text.submit_action(session_id, "   ")

    unconfigured = FreeTextService(harness.store)
    with pytest.raises(ExternalServiceError) as excinfo:
        unconfigured.submit_action(session_id, "hello")
    assert excinfo.value.kind == "unconfigured"


def test_record_response_stores_answer_for_current_node(tmp_path) -> None:
    harness, _, session_id = _setup(tmp_path)

    harness.free_text.record_response(session_id, " Aria of the Vale ")

    flags = harness.sessions.get_session(session_id).story_flags
    assert flags.free_text_responses() == {"t_start": "Aria of the Vale"}


def test_unusable_flag_values_are_reported_as_interpreter_errors(tmp_path) -> None:
    harness, _, session_id = _setup(tmp_path, _valid_result(flag_effects={"loot": ["coin", "ring"]}))

    with pytest.raises(ExternalServiceError) as excinfo:
        harness.free_text.submit_action(session_id, "I search the guard")

    assert excinfo.value.kind == "invalid_response"
    progress = harness.sessions.get_progress(session_id)
    assert progress.version == 0
    assert progress.xp_earned == 0
    assert harness.sessions.get_session(session_id).story_flags == {}
    assert harness.free_text.recent_actions(session_id) == []
    assert harness.guard.phase(session_id) == "idle"

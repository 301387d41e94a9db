import json

import httpx
import pytest

from lorechronicles.domain.interpretation import ActionRequest, PastAction
from lorechronicles.integrations.http_interpreter import (
    DEFAULT_INTERPRETATION,
    DEFAULT_NARRATION,
    HttpActionInterpreter,
    normalize_result,
)
from lorechronicles.services.errors import (
    ExternalServiceError,
    QuotaExhaustedError,
    RateLimitedError,
    ServiceTimeoutError,
)

ENDPOINT = "https://interpreter.test/interpret"


def _make_interpreter(handler, api_key: str | None = "secret") -> HttpActionInterpreter:
    return HttpActionInterpreter(
        ENDPOINT,
        api_key=api_key,
        client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


def _request(history_size: int = 0) -> ActionRequest:
    return ActionRequest(
        session_id="s1",
        character_id="c1",
        node_id="t_start",
        player_text="I wave",
        history=[PastAction(text=f"act {index}", outcome="ok") for index in range(history_size)],
    )


def test_request_body_and_headers() -> None:
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["body"] = json.loads(request.content)
        captured["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"is_valid": True, "xp_reward": 5})

    result = _make_interpreter(handler).interpret(_request(history_size=12))

    assert captured["auth"] == "Bearer secret"
    assert captured["body"]["playerText"] == "I wave"
    assert captured["body"]["nodeId"] == "t_start"
    assert len(captured["body"]["actionHistory"]) == 10
    assert captured["body"]["actionHistory"][0]["text"] == "act 2"
    assert result.xp_reward == 5


@pytest.mark.parametrize(
    ("status", "error_type"),
    [(429, RateLimitedError), (402, QuotaExhaustedError)],
)
def test_rate_limit_and_quota_statuses(status, error_type) -> None:
    interpreter = _make_interpreter(lambda request: httpx.Response(status))

    with pytest.raises(error_type) as excinfo:
        interpreter.interpret(_request())

    assert excinfo.value.retryable


def test_timeout_maps_to_service_timeout() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    with pytest.raises(ServiceTimeoutError) as excinfo:
        _make_interpreter(handler).interpret(_request())

    assert excinfo.value.kind == "timeout"


def test_server_and_client_errors() -> None:
    with pytest.raises(ExternalServiceError) as server:
        _make_interpreter(lambda request: httpx.Response(503)).interpret(_request())
    with pytest.raises(ExternalServiceError) as client:
        _make_interpreter(lambda request: httpx.Response(400)).interpret(_request())

    assert server.value.kind == "http"
    assert server.value.retryable
    assert not client.value.retryable


def test_invalid_payloads() -> None:
    with pytest.raises(ExternalServiceError) as bad_json:
        _make_interpreter(lambda request: httpx.Response(200, content=b"<html>")).interpret(_request())
    with pytest.raises(ExternalServiceError) as error_body:
        _make_interpreter(lambda request: httpx.Response(200, json={"error": "nope"})).interpret(_request())

    assert bad_json.value.kind == "invalid_response"
    assert error_body.value.kind == "rejected"


def test_normalize_result_fills_defaults() -> None:
    result = normalize_result({})

    assert result.is_valid
    assert result.interpretation == DEFAULT_INTERPRETATION
    assert result.outcome_narration == DEFAULT_NARRATION
    assert not result.stat_check.was_rolled
    assert result.stat_effects == {}
    assert result.flag_effects == {}
    assert result.xp_reward == 0


def test_normalize_result_drops_malformed_fields() -> None:
    result = normalize_result(
        {
            "is_valid": False,
            "rejection_reason": "Too far-fetched.",
            "stat_check": {"stat": "wisdom", "difficulty": 6, "player_value": 4, "result": "maybe"},
            "stat_effects": {"wisdom": 1, "luck": 3, "agility": "lots"},
            "flag_effects": {"met_sage": True, "bad": [1, 2]},
            "xp_reward": "ten",
        }
    )

    assert not result.is_valid
    assert result.rejection_reason == "Too far-fetched."
    assert result.stat_check.stat == "wisdom"
    assert result.stat_check.result == "none"
    assert result.stat_effects == {"wisdom": 1}
    assert result.flag_effects == {"met_sage": True}
    assert result.xp_reward == 0

"""HTTP adapter for the free-text action interpreter."""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping

import httpx

from lorechronicles.core.types import STAT_NAMES
from lorechronicles.domain.interpretation import ActionRequest, InterpretationResult, StatCheckOutcome
from lorechronicles.domain.story_flags import FlagValue
from lorechronicles.services.errors import (
    ExternalServiceError,
    QuotaExhaustedError,
    RateLimitedError,
    ServiceTimeoutError,
)

logger = logging.getLogger("lorechronicles.interpreter")

DEFAULT_TIMEOUT_SECONDS = 20.0
HISTORY_LIMIT = 10

DEFAULT_INTERPRETATION = "Your action is considered..."
DEFAULT_NARRATION = "The story continues..."
_CHECK_RESULTS = ("pass", "fail", "none")


class HttpActionInterpreter:
    """Posts actions to an interpreter endpoint and normalizes the reply."""

    def __init__(
        self,
        endpoint: str,
        *,
        api_key: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.Client | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._api_key = api_key
        self._client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def interpret(self, request: ActionRequest) -> InterpretationResult:
        body = {
            "sessionId": request.session_id,
            "characterId": request.character_id,
            "nodeId": request.node_id,
            "playerText": request.player_text,
            "actionHistory": [
                {"text": action.text, "outcome": action.outcome, "stat_check": action.stat_check}
                for action in request.history[-HISTORY_LIMIT:]
            ],
        }
        headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}
        try:
            response = self._client.post(self._endpoint, json=body, headers=headers)
        except httpx.TimeoutException as exc:
            raise ServiceTimeoutError() from exc
        except httpx.HTTPError as exc:
            raise ExternalServiceError(f"Could not reach the action interpreter: {exc}", kind="network") from exc

        if response.status_code == 429:
            raise RateLimitedError()
        if response.status_code == 402:
            raise QuotaExhaustedError()
        if response.status_code >= 400:
            raise ExternalServiceError(
                f"Action interpreter returned HTTP {response.status_code}.",
                kind="http",
                retryable=response.status_code >= 500,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise ExternalServiceError("Action interpreter returned invalid JSON.", kind="invalid_response") from exc
        if not isinstance(payload, Mapping):
            raise ExternalServiceError("Action interpreter returned an unexpected payload.", kind="invalid_response")
        if payload.get("error"):
            raise ExternalServiceError(f"Could not interpret action: {payload['error']}", kind="rejected")
        return normalize_result(payload)


def normalize_result(data: Mapping[str, Any]) -> InterpretationResult:
    """Fill defaults for missing or malformed fields of an interpreter reply."""
    return InterpretationResult(
        is_valid=data.get("is_valid") is not False,
        interpretation=_str_or(data.get("interpretation"), DEFAULT_INTERPRETATION),
        rejection_reason=data.get("rejection_reason") or None,
        stat_check=_stat_check(data.get("stat_check")),
        outcome_narration=_str_or(data.get("outcome_narration"), DEFAULT_NARRATION),
        stat_effects=_stat_effects(data.get("stat_effects")),
        flag_effects=_flag_effects(data.get("flag_effects")),
        xp_reward=_int_or_zero(data.get("xp_reward")),
    )


def _str_or(value: Any, default: str) -> str:
    return value if isinstance(value, str) and value else default


def _int_or_zero(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(value)


def _stat_check(value: Any) -> StatCheckOutcome:
    if not isinstance(value, Mapping):
        return StatCheckOutcome()
    result = value.get("result")
    player_value = value.get("player_value")
    return StatCheckOutcome(
        stat=_str_or(value.get("stat"), "none"),
        difficulty=_int_or_zero(value.get("difficulty")),
        player_value=player_value if isinstance(player_value, int) and not isinstance(player_value, bool) else None,
        result=result if result in _CHECK_RESULTS else "none",
    )


def _stat_effects(value: Any) -> Dict[str, int]:
    if not isinstance(value, Mapping):
        return {}
    return {
        stat: int(delta)
        for stat, delta in value.items()
        if stat in STAT_NAMES and isinstance(delta, (int, float)) and not isinstance(delta, bool)
    }


def _flag_effects(value: Any) -> Dict[str, FlagValue]:
    if not isinstance(value, Mapping):
        return {}
    flags: Dict[str, FlagValue] = {}
    for key, flag in value.items():
        if isinstance(key, str) and key.strip() and isinstance(flag, (bool, int, str)):
            flags[key] = flag
        else:
            logger.warning("Dropping malformed flag effect %r from interpreter reply.", key)
    return flags

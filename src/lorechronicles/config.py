"""Engine configuration: per-user JSON file plus LORE_* environment overrides."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping

logger = logging.getLogger("lorechronicles.config")

ENV_PREFIX = "LORE_"
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(slots=True)
class EngineConfig:
    interpreter_url: str | None = None
    interpreter_api_key: str | None = None
    interpreter_timeout: float = 20.0
    log_level: str = "WARNING"
    definitions_path: str | None = None
    data_dir: str | None = None
    history_window: int = 10
    death_cause_length: int = 100

    @property
    def interpreter_enabled(self) -> bool:
        return bool(self.interpreter_url)

    def resolved_data_dir(self) -> Path:
        return Path(self.data_dir) if self.data_dir else get_user_data_dir()

    def store_path(self) -> Path:
        return self.resolved_data_dir() / "store.json"


def get_user_data_dir() -> Path:
    """Return the per-user data directory."""
    if os.name == "nt":
        base = os.environ.get("APPDATA")
        if base:
            return Path(base) / "LoreChronicles"
        return Path.home() / "LoreChronicles"
    return Path.home() / ".config" / "lore_chronicles"


def get_default_config_path() -> Path:
    return get_user_data_dir() / "config.json"


def load_config(path: Path | None = None, env: Mapping[str, str] | None = None) -> EngineConfig:
    """Load config from disk, fall back to defaults, then apply env overrides.

    A missing or unreadable file is not an error; invalid values are ignored
    field by field.
    """
    config_path = path or get_default_config_path()
    raw: Dict[str, Any] = {}
    try:
        loaded = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        loaded = {}
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", config_path, exc)
        loaded = {}
    if isinstance(loaded, dict):
        raw.update(loaded)

    environ = os.environ if env is None else env
    for item in fields(EngineConfig):
        env_value = environ.get(f"{ENV_PREFIX}{item.name.upper()}")
        if env_value is not None:
            raw[item.name] = env_value
    return _coerce_config(raw)


def save_config(config: EngineConfig, path: Path | None = None) -> None:
    """Persist config to disk; the API key is never written."""
    config_path = path or get_default_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    payload = asdict(config)
    payload.pop("interpreter_api_key", None)
    config_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")


def _coerce_config(raw: Mapping[str, Any]) -> EngineConfig:
    defaults = EngineConfig()
    return EngineConfig(
        interpreter_url=_optional_str(raw.get("interpreter_url")),
        interpreter_api_key=_optional_str(raw.get("interpreter_api_key")),
        interpreter_timeout=_positive_number(raw.get("interpreter_timeout"), defaults.interpreter_timeout),
        log_level=_normalize_log_level(raw.get("log_level"), defaults.log_level),
        definitions_path=_optional_str(raw.get("definitions_path")),
        data_dir=_optional_str(raw.get("data_dir")),
        history_window=int(_positive_number(raw.get("history_window"), defaults.history_window)),
        death_cause_length=int(_positive_number(raw.get("death_cause_length"), defaults.death_cause_length)),
    )


def _optional_str(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _positive_number(value: object, default: float) -> float:
    if isinstance(value, bool) or value is None:
        return default
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _normalize_log_level(value: object, default: str) -> str:
    if isinstance(value, str) and value.upper() in _LOG_LEVELS:
        return value.upper()
    return default

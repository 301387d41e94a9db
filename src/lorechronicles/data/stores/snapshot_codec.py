"""Convert store state to and from a validated, versioned JSON payload."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Mapping

from lorechronicles.core.types import SESSION_OUTCOMES, SESSION_STATUSES, TRADE_STATUSES
from lorechronicles.data.stores.memory_store import StoreState
from lorechronicles.domain.character import Character, DeathContext, LegacyBonus
from lorechronicles.domain.interpretation import PastAction
from lorechronicles.domain.inventory import InventoryEntry
from lorechronicles.domain.session import CharacterProgress, EndingSeen, Session
from lorechronicles.domain.stats import CharacterStats
from lorechronicles.domain.story_flags import StoryFlags
from lorechronicles.domain.trade import TradeItem, TradeOffer
from lorechronicles.services.errors import SnapshotLoadError

SNAPSHOT_VERSION = 1

SnapshotPayload = Dict[str, Any]


def encode_state(state: StoreState) -> SnapshotPayload:
    """Return a JSON-serializable payload for the whole store."""
    return {
        "snapshot_version": SNAPSHOT_VERSION,
        "characters": [_encode_character(character) for character in state.characters.values()],
        "sessions": [_encode_session(session) for session in state.sessions.values()],
        "progress": [_encode_progress(progress) for progress in state.progress.values()],
        "inventory": [
            _encode_entry(entry) for bag in state.inventory.values() for entry in bag.values()
        ],
        "endings_seen": [
            {
                "user_id": row.user_id,
                "campaign_id": row.campaign_id,
                "node_id": row.node_id,
                "first_seen_at": _encode_datetime(row.first_seen_at),
            }
            for row in state.endings_seen.values()
        ],
        "play_counts": dict(state.play_counts),
        "trades": [_encode_trade(offer) for offer in state.trades.values()],
        "action_log": {
            session_id: [
                {"text": action.text, "outcome": action.outcome, "stat_check": action.stat_check}
                for action in actions
            ]
            for session_id, actions in state.action_log.items()
        },
    }


def decode_state(payload: object) -> StoreState:
    """Rehydrate store state, raising SnapshotLoadError on any schema problem."""
    if not isinstance(payload, Mapping):
        raise SnapshotLoadError("Snapshot must be a JSON object.")
    version = payload.get("snapshot_version")
    if version != SNAPSHOT_VERSION:
        raise SnapshotLoadError(f"Unsupported snapshot version: {version!r}")

    state = StoreState()
    for index, raw in enumerate(_require_list(payload.get("characters", []), "characters")):
        character = _decode_character(raw, f"characters[{index}]")
        state.characters[character.id] = character
    for index, raw in enumerate(_require_list(payload.get("sessions", []), "sessions")):
        session = _decode_session(raw, f"sessions[{index}]")
        state.sessions[session.id] = session
    for index, raw in enumerate(_require_list(payload.get("progress", []), "progress")):
        progress = _decode_progress(raw, f"progress[{index}]")
        state.progress[(progress.session_id, progress.character_id)] = progress
    for index, raw in enumerate(_require_list(payload.get("inventory", []), "inventory")):
        entry = _decode_entry(raw, f"inventory[{index}]")
        state.inventory.setdefault(entry.character_id, {})[entry.item_id] = entry
    for index, raw in enumerate(_require_list(payload.get("endings_seen", []), "endings_seen")):
        context = f"endings_seen[{index}]"
        data = _require_dict(raw, context)
        row = EndingSeen(
            user_id=_require_str(data.get("user_id"), f"{context}.user_id"),
            campaign_id=_require_str(data.get("campaign_id"), f"{context}.campaign_id"),
            node_id=_require_str(data.get("node_id"), f"{context}.node_id"),
            first_seen_at=_coerce_datetime(data.get("first_seen_at"), f"{context}.first_seen_at"),
        )
        state.endings_seen[(row.user_id, row.campaign_id, row.node_id)] = row
    state.play_counts = _coerce_int_dict(payload.get("play_counts", {}), "play_counts")
    for index, raw in enumerate(_require_list(payload.get("trades", []), "trades")):
        offer = _decode_trade(raw, f"trades[{index}]")
        state.trades[offer.id] = offer
    action_log = _require_dict(payload.get("action_log", {}), "action_log")
    for session_id, raw_actions in action_log.items():
        context = f"action_log.{session_id}"
        actions: List[PastAction] = []
        for index, raw in enumerate(_require_list(raw_actions, context)):
            data = _require_dict(raw, f"{context}[{index}]")
            actions.append(
                PastAction(
                    text=_require_str(data.get("text"), f"{context}[{index}].text"),
                    outcome=_require_str(data.get("outcome"), f"{context}[{index}].outcome"),
                    stat_check=_coerce_optional_str(data.get("stat_check"), f"{context}[{index}].stat_check"),
                )
            )
        state.action_log[session_id] = actions
    return state


def _encode_datetime(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _encode_character(character: Character) -> Dict[str, Any]:
    death = character.death_context
    legacy = character.legacy_bonuses
    return {
        "id": character.id,
        "user_id": character.user_id,
        "name": character.name,
        "race_id": character.race_id,
        "level": character.level,
        "xp": character.xp,
        "stats": character.stats.as_dict(),
        "is_active": character.is_active,
        "fallen_at": _encode_datetime(character.fallen_at),
        "death_context": None
        if death is None
        else {
            "campaign_id": death.campaign_id,
            "campaign_title": death.campaign_title,
            "node_id": death.node_id,
            "node_title": death.node_title,
            "cause": death.cause,
        },
        "legacy_bonuses": None
        if legacy is None
        else {
            "from_character": legacy.from_character,
            "xp_bonus": legacy.xp_bonus,
            "fallen_level": legacy.fallen_level,
        },
        "backstory": character.backstory,
    }


def _encode_session(session: Session) -> Dict[str, Any]:
    return {
        "id": session.id,
        "campaign_id": session.campaign_id,
        "character_id": session.character_id,
        "user_id": session.user_id,
        "current_node_id": session.current_node_id,
        "status": session.status,
        "outcome": session.outcome,
        "story_flags": session.story_flags.as_dict(),
        "started_at": _encode_datetime(session.started_at),
        "last_played_at": _encode_datetime(session.last_played_at),
        "completed_at": _encode_datetime(session.completed_at),
    }


def _encode_progress(progress: CharacterProgress) -> Dict[str, Any]:
    return {
        "session_id": progress.session_id,
        "character_id": progress.character_id,
        "current_node_id": progress.current_node_id,
        "stats_snapshot": progress.stats_snapshot.as_dict(),
        "nodes_visited": list(progress.nodes_visited),
        "xp_earned": progress.xp_earned,
        "stat_checks_passed": progress.stat_checks_passed,
        "stat_checks_failed": progress.stat_checks_failed,
        "stat_checks_by_type": dict(progress.stat_checks_by_type),
        "version": progress.version,
    }


def _encode_entry(entry: InventoryEntry) -> Dict[str, Any]:
    return {
        "character_id": entry.character_id,
        "item_id": entry.item_id,
        "quantity": entry.quantity,
        "equipped_slot": entry.equipped_slot,
        "current_durability": entry.current_durability,
        "source_node_id": entry.source_node_id,
        "source_session_id": entry.source_session_id,
        "acquired_at": _encode_datetime(entry.acquired_at),
    }


def _encode_trade(offer: TradeOffer) -> Dict[str, Any]:
    return {
        "id": offer.id,
        "session_id": offer.session_id,
        "from_character_id": offer.from_character_id,
        "to_character_id": offer.to_character_id,
        "offered_items": [{"item_id": item.item_id, "quantity": item.quantity} for item in offer.offered_items],
        "requested_items": [{"item_id": item.item_id, "quantity": item.quantity} for item in offer.requested_items],
        "status": offer.status,
        "message": offer.message,
        "created_at": _encode_datetime(offer.created_at),
        "responded_at": _encode_datetime(offer.responded_at),
    }


def _decode_character(raw: object, context: str) -> Character:
    data = _require_dict(raw, context)
    death_context = None
    if data.get("death_context") is not None:
        death = _require_dict(data["death_context"], f"{context}.death_context")
        death_context = DeathContext(
            campaign_id=_require_str(death.get("campaign_id"), f"{context}.death_context.campaign_id"),
            campaign_title=_require_str(death.get("campaign_title"), f"{context}.death_context.campaign_title"),
            node_id=_require_str(death.get("node_id"), f"{context}.death_context.node_id"),
            node_title=_require_str(death.get("node_title"), f"{context}.death_context.node_title"),
            cause=_require_str(death.get("cause"), f"{context}.death_context.cause"),
        )
    legacy = None
    if data.get("legacy_bonuses") is not None:
        legacy_data = _require_dict(data["legacy_bonuses"], f"{context}.legacy_bonuses")
        legacy = LegacyBonus(
            from_character=_require_str(legacy_data.get("from_character"), f"{context}.legacy_bonuses.from_character"),
            xp_bonus=_coerce_non_negative_int(legacy_data.get("xp_bonus"), f"{context}.legacy_bonuses.xp_bonus"),
            fallen_level=_require_int(legacy_data.get("fallen_level"), f"{context}.legacy_bonuses.fallen_level"),
        )
    return Character(
        id=_require_str(data.get("id"), f"{context}.id"),
        user_id=_require_str(data.get("user_id"), f"{context}.user_id"),
        name=_require_str(data.get("name"), f"{context}.name"),
        race_id=_coerce_optional_str(data.get("race_id"), f"{context}.race_id"),
        level=_require_int(data.get("level"), f"{context}.level"),
        xp=_coerce_non_negative_int(data.get("xp"), f"{context}.xp"),
        stats=_coerce_stats(data.get("stats"), f"{context}.stats"),
        is_active=_require_bool(data.get("is_active"), f"{context}.is_active"),
        fallen_at=_coerce_datetime(data.get("fallen_at"), f"{context}.fallen_at"),
        death_context=death_context,
        legacy_bonuses=legacy,
        backstory=_coerce_optional_str(data.get("backstory"), f"{context}.backstory"),
    )


def _decode_session(raw: object, context: str) -> Session:
    data = _require_dict(raw, context)
    status = data.get("status")
    if status not in SESSION_STATUSES:
        raise SnapshotLoadError(f"{context}.status has invalid value: {status!r}")
    outcome = data.get("outcome")
    if outcome is not None and outcome not in SESSION_OUTCOMES:
        raise SnapshotLoadError(f"{context}.outcome has invalid value: {outcome!r}")
    try:
        flags = StoryFlags(_require_dict(data.get("story_flags", {}), f"{context}.story_flags"))
    except ValueError as exc:
        raise SnapshotLoadError(f"{context}.story_flags: {exc}") from exc
    return Session(
        id=_require_str(data.get("id"), f"{context}.id"),
        campaign_id=_require_str(data.get("campaign_id"), f"{context}.campaign_id"),
        character_id=_require_str(data.get("character_id"), f"{context}.character_id"),
        user_id=_require_str(data.get("user_id"), f"{context}.user_id"),
        current_node_id=_coerce_optional_str(data.get("current_node_id"), f"{context}.current_node_id"),
        status=status,
        outcome=outcome,
        story_flags=flags,
        started_at=_coerce_datetime(data.get("started_at"), f"{context}.started_at"),
        last_played_at=_coerce_datetime(data.get("last_played_at"), f"{context}.last_played_at"),
        completed_at=_coerce_datetime(data.get("completed_at"), f"{context}.completed_at"),
    )


def _decode_progress(raw: object, context: str) -> CharacterProgress:
    data = _require_dict(raw, context)
    return CharacterProgress(
        session_id=_require_str(data.get("session_id"), f"{context}.session_id"),
        character_id=_require_str(data.get("character_id"), f"{context}.character_id"),
        current_node_id=_coerce_optional_str(data.get("current_node_id"), f"{context}.current_node_id"),
        stats_snapshot=_coerce_stats(data.get("stats_snapshot"), f"{context}.stats_snapshot"),
        nodes_visited=_coerce_str_list(data.get("nodes_visited"), f"{context}.nodes_visited"),
        xp_earned=_coerce_non_negative_int(data.get("xp_earned"), f"{context}.xp_earned"),
        stat_checks_passed=_coerce_non_negative_int(data.get("stat_checks_passed"), f"{context}.stat_checks_passed"),
        stat_checks_failed=_coerce_non_negative_int(data.get("stat_checks_failed"), f"{context}.stat_checks_failed"),
        stat_checks_by_type=_coerce_int_dict(data.get("stat_checks_by_type", {}), f"{context}.stat_checks_by_type"),
        version=_coerce_non_negative_int(data.get("version"), f"{context}.version"),
    )


def _decode_entry(raw: object, context: str) -> InventoryEntry:
    data = _require_dict(raw, context)
    durability = data.get("current_durability")
    return InventoryEntry(
        character_id=_require_str(data.get("character_id"), f"{context}.character_id"),
        item_id=_require_str(data.get("item_id"), f"{context}.item_id"),
        quantity=_coerce_non_negative_int(data.get("quantity"), f"{context}.quantity"),
        equipped_slot=_coerce_optional_str(data.get("equipped_slot"), f"{context}.equipped_slot"),
        current_durability=None
        if durability is None
        else _coerce_non_negative_int(durability, f"{context}.current_durability"),
        source_node_id=_coerce_optional_str(data.get("source_node_id"), f"{context}.source_node_id"),
        source_session_id=_coerce_optional_str(data.get("source_session_id"), f"{context}.source_session_id"),
        acquired_at=_coerce_datetime(data.get("acquired_at"), f"{context}.acquired_at"),
    )


def _decode_trade(raw: object, context: str) -> TradeOffer:
    data = _require_dict(raw, context)
    status = data.get("status")
    if status not in TRADE_STATUSES:
        raise SnapshotLoadError(f"{context}.status has invalid value: {status!r}")
    return TradeOffer(
        id=_require_str(data.get("id"), f"{context}.id"),
        session_id=_require_str(data.get("session_id"), f"{context}.session_id"),
        from_character_id=_require_str(data.get("from_character_id"), f"{context}.from_character_id"),
        to_character_id=_require_str(data.get("to_character_id"), f"{context}.to_character_id"),
        offered_items=_coerce_trade_items(data.get("offered_items"), f"{context}.offered_items"),
        requested_items=_coerce_trade_items(data.get("requested_items"), f"{context}.requested_items"),
        status=status,
        message=_coerce_optional_str(data.get("message"), f"{context}.message"),
        created_at=_coerce_datetime(data.get("created_at"), f"{context}.created_at"),
        responded_at=_coerce_datetime(data.get("responded_at"), f"{context}.responded_at"),
    )


def _coerce_trade_items(value: Any, context: str) -> List[TradeItem]:
    items: List[TradeItem] = []
    for index, raw in enumerate(_require_list(value, context)):
        data = _require_dict(raw, f"{context}[{index}]")
        items.append(
            TradeItem(
                item_id=_require_str(data.get("item_id"), f"{context}[{index}].item_id"),
                quantity=_coerce_non_negative_int(data.get("quantity"), f"{context}[{index}].quantity"),
            )
        )
    return items


def _coerce_stats(value: Any, context: str) -> CharacterStats:
    mapping = _require_dict(value, context)
    try:
        return CharacterStats.from_mapping(mapping)
    except ValueError as exc:
        raise SnapshotLoadError(f"{context}: {exc}") from exc


def _coerce_datetime(value: Any, context: str) -> datetime | None:
    if value is None:
        return None
    text = _require_str(value, context)
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        raise SnapshotLoadError(f"{context} is not an ISO timestamp.") from exc


def _require_dict(value: Any, context: str) -> Dict[str, Any]:
    if not isinstance(value, Mapping):
        raise SnapshotLoadError(f"{context} must be an object.")
    return dict(value)


def _require_list(value: Any, context: str) -> List[Any]:
    if not isinstance(value, list):
        raise SnapshotLoadError(f"{context} must be a list.")
    return value


def _require_str(value: Any, context: str) -> str:
    if not isinstance(value, str):
        raise SnapshotLoadError(f"{context} must be a string.")
    return value


def _require_int(value: Any, context: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise SnapshotLoadError(f"{context} must be an integer.")
    return value


def _require_bool(value: Any, context: str) -> bool:
    if not isinstance(value, bool):
        raise SnapshotLoadError(f"{context} must be a boolean.")
    return value


def _coerce_non_negative_int(value: Any, context: str) -> int:
    value_int = _require_int(value, context)
    if value_int < 0:
        raise SnapshotLoadError(f"{context} must be a non-negative integer.")
    return value_int


def _coerce_optional_str(value: Any, context: str) -> str | None:
    if value is None:
        return None
    return _require_str(value, context)


def _coerce_str_list(value: Any, context: str) -> List[str]:
    result: List[str] = []
    for entry in _require_list(value, context):
        result.append(_require_str(entry, f"{context} entries"))
    return result


def _coerce_int_dict(value: Any, context: str) -> Dict[str, int]:
    mapping = _require_dict(value, context)
    result: Dict[str, int] = {}
    for key, entry in mapping.items():
        if not isinstance(key, str):
            raise SnapshotLoadError(f"{context} keys must be strings.")
        result[key] = _require_int(entry, f"{context}.{key}")
    return result

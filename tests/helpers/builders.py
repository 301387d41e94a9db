from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from lorechronicles.core.clock import fixed_clock
from lorechronicles.data.content_store import ContentStore
from lorechronicles.data.stores import InMemoryGameStore
from lorechronicles.domain.character import Character
from lorechronicles.services.crafting_service import CraftingService
from lorechronicles.services.errors import PersistenceError
from lorechronicles.services.interpreter_service import ActionInterpreter, FreeTextService
from lorechronicles.services.inventory_service import InventoryService
from lorechronicles.services.loot_service import LootService
from lorechronicles.services.navigator import StoryNavigator
from lorechronicles.services.session_guard import SessionGuard
from lorechronicles.services.session_service import SessionService, SessionStart
from lorechronicles.services.story_service import StoryService
from lorechronicles.services.trade_service import TradeService

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
PLAYER_ID = "player-1"

CAMPAIGNS: Dict[str, Any] = {
    "trial": {
        "title": "Trial of the Keep",
        "start_node_id": "t_start",
        "difficulty": "hard",
        "permadeath": False,
    },
    "mire": {
        "title": "The Mire",
        "start_node_id": "m_start",
        "difficulty": "normal",
        "permadeath": False,
    },
    "doom": {
        "title": "Doom Spire",
        "start_node_id": "d_start",
        "difficulty": "normal",
        "permadeath": True,
    },
}

STORY_NODES: Dict[str, Any] = {
    "t_start": {
        "campaign_id": "trial",
        "node_type": "narrative",
        "title": "Keep Gate",
        "content": "A portcullis bars the keep.",
        "xp_reward": 10,
        "allows_free_text": True,
        "free_text_prompt": "The guard asks your business.",
        "choices": [
            {
                "id": "t_sneak",
                "text": "Sneak along the wall.",
                "target": "t_ledge",
                "stat_requirement": {"stat": "agility", "min_value": 4},
            },
            {"id": "t_walk", "text": "Walk through the gate.", "target": "t_hall"},
            {"id": "t_key", "text": "Unlock the postern.", "target": "t_hall", "item_requirement": "rusty_key"},
            {"id": "t_brawl", "text": "Shove past the guard.", "target": "t_hall", "stat_effect": {"strength": 2}},
        ],
    },
    "t_ledge": {
        "campaign_id": "trial",
        "node_type": "stat_check",
        "title": "Ledge",
        "content": "A heavy grate blocks the ledge.",
        "xp_reward": 10,
        "choices": [
            {
                "id": "t_lift",
                "text": "Lift the grate.",
                "target": "t_hall",
                "stat_requirement": {"stat": "strength", "min_value": 3},
            }
        ],
    },
    "t_hall": {
        "campaign_id": "trial",
        "node_type": "choice",
        "title": "Great Hall",
        "content": "The lord of the keep awaits.",
        "xp_reward": 10,
        "choices": [
            {"id": "t_win", "text": "Bow to the lord.", "target": "t_end"},
            {"id": "t_fall", "text": "Challenge the lord.", "target": "t_pit"},
            {"id": "t_leave", "text": "Slip away quietly.", "target": None},
        ],
    },
    "t_end": {
        "campaign_id": "trial",
        "node_type": "ending",
        "title": "Knighted",
        "content": "You are knighted.",
    },
    "t_pit": {
        "campaign_id": "trial",
        "node_type": "death",
        "title": "The Oubliette",
        "content": "You are thrown into the oubliette.",
    },
    "m_start": {
        "campaign_id": "mire",
        "node_type": "narrative",
        "title": "Mire Edge",
        "content": "Fog rolls over the mire.",
        "xp_reward": 50,
        "choices": [
            {"id": "m_sink", "text": "Wade into the deep water.", "target": "m_pit"},
            {"id": "m_wade", "text": "Follow the reeds.", "target": "m_end"},
        ],
    },
    "m_pit": {
        "campaign_id": "mire",
        "node_type": "death",
        "title": "Sucking Mud",
        "content": "The mire swallows you whole.",
    },
    "m_end": {
        "campaign_id": "mire",
        "node_type": "ending",
        "title": "Dry Land",
        "content": "You reach dry land.",
    },
    "d_start": {
        "campaign_id": "doom",
        "node_type": "narrative",
        "title": "Spire Top",
        "content": "Wind howls around the spire.",
        "xp_reward": 20,
        "choices": [
            {"id": "d_jump", "text": "Jump.", "target": "d_pit"},
            {"id": "d_walk", "text": "Take the stairs.", "target": "d_end"},
        ],
    },
    "d_pit": {
        "campaign_id": "doom",
        "node_type": "death",
        "title": "The Long Fall",
        "content": "The ground rushes up to meet you.",
    },
    "d_end": {
        "campaign_id": "doom",
        "node_type": "ending",
        "title": "Safe Descent",
        "content": "You walk down the stairs.",
    },
}

ITEMS: Dict[str, Any] = {
    "rusty_key": {"name": "Rusty Key", "type": "key", "is_quest_item": True},
    "short_sword": {
        "name": "Short Sword",
        "type": "weapon",
        "stat_bonus": {"strength": 2},
        "max_durability": 2,
        "equipment_slot": "main_hand",
    },
    "wooden_club": {
        "name": "Wooden Club",
        "type": "weapon",
        "stat_bonus": {"strength": 1},
        "equipment_slot": "main_hand",
    },
    "herb": {"name": "Herb", "type": "material"},
    "tonic": {"name": "Tonic", "type": "consumable", "is_consumable": True},
}

LOOT_TABLES: List[Any] = [
    {
        "id": "trial_hoard",
        "campaign_id": "trial",
        "name": "Hall Hoard",
        "node_id": "t_hall",
        "max_drops": 2,
        "entries": [
            {"item_id": "herb", "quantity": 2, "drop_chance": 50},
            {"item_id": "short_sword", "drop_chance": 100, "min_level": 5},
            {"item_id": "tonic", "drop_chance": 30},
            {"item_id": "rusty_key", "drop_chance": 100},
        ],
    }
]

RECIPES: Dict[str, Any] = {
    "brew_tonic": {
        "campaign_id": "trial",
        "name": "Brew Tonic",
        "result_item_id": "tonic",
        "required_stat": "wisdom",
        "required_stat_value": 4,
        "ingredients": [{"item_id": "herb", "quantity": 2}],
    }
}


def write_definitions(
    base: Path,
    *,
    campaigns: Dict[str, Any] | None = None,
    story_nodes: Dict[str, Any] | None = None,
    items: Dict[str, Any] | None = None,
    loot_tables: List[Any] | None = None,
    recipes: Dict[str, Any] | None = None,
) -> Path:
    """Write a definitions directory; omitted files use the fixture defaults."""
    base.mkdir(parents=True, exist_ok=True)
    payloads = {
        "campaigns.json": CAMPAIGNS if campaigns is None else campaigns,
        "story_nodes.json": STORY_NODES if story_nodes is None else story_nodes,
        "items.json": ITEMS if items is None else items,
        "loot_tables.json": LOOT_TABLES if loot_tables is None else loot_tables,
        "recipes.json": RECIPES if recipes is None else recipes,
    }
    for filename, payload in payloads.items():
        (base / filename).write_text(json.dumps(payload), encoding="utf-8")
    return base


@dataclass
class Harness:
    content: ContentStore
    store: InMemoryGameStore
    guard: SessionGuard
    sessions: SessionService
    story: StoryService
    inventory: InventoryService
    free_text: FreeTextService
    trades: TradeService
    crafting: CraftingService
    loot: LootService


def make_harness(tmp_path: Path, interpreter: ActionInterpreter | None = None) -> Harness:
    content = ContentStore.from_path(write_definitions(tmp_path / "definitions"))
    store = InMemoryGameStore()
    clock = fixed_clock(NOW)
    guard = SessionGuard()
    navigator = StoryNavigator(content)
    inventory = InventoryService(content, store, clock=clock)
    return Harness(
        content=content,
        store=store,
        guard=guard,
        sessions=SessionService(content, store, navigator=navigator, guard=guard, clock=clock),
        story=StoryService(content, store, navigator=navigator, guard=guard, clock=clock),
        inventory=inventory,
        free_text=FreeTextService(store, interpreter, guard=guard),
        trades=TradeService(store, inventory, clock=clock),
        crafting=CraftingService(content, store, inventory),
        loot=LootService(content, store, inventory),
    )


def make_character(harness: Harness, name: str = "Aria", *, user_id: str = PLAYER_ID, **stats: int) -> Character:
    return harness.sessions.create_character(user_id, name, stats=stats or None)


def start(harness: Harness, campaign_id: str, character: Character) -> SessionStart:
    return harness.sessions.start_session(campaign_id, character.id, character.user_id)


def fail_character_writes_once(monkeypatch, harness: Harness) -> None:
    """Make the next character write raise, as a failing disk would."""
    original = harness.store.update_character
    calls = {"count": 0}

    def _update_character(character_id, patch):
        calls["count"] += 1
        if calls["count"] == 1:
            raise PersistenceError("Disk unavailable.")
        return original(character_id, patch)

    monkeypatch.setattr(harness.store, "update_character", _update_character)

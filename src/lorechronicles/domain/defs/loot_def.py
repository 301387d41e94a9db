"""Loot table definitions."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True, slots=True)
class LootEntryDef:
    item_id: str
    quantity: int = 1
    drop_chance: float = 100.0
    min_level: int = 0


@dataclass(slots=True)
class LootTableDef:
    """Weighted drops attached to a campaign (optionally to one node)."""

    id: str
    campaign_id: str
    name: str
    node_id: str | None = None
    max_drops: int = 1
    entries: List[LootEntryDef] = field(default_factory=list)

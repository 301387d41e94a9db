"""Item definition structures."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict


@dataclass(slots=True)
class ItemDef:
    """Catalog entry for anything a character can carry."""

    id: str
    name: str
    item_type: str
    description: str = ""
    campaign_id: str | None = None
    rarity: str = "common"
    is_consumable: bool = False
    is_quest_item: bool = False
    stat_bonus: Dict[str, int] = field(default_factory=dict)
    max_durability: int | None = None
    equipment_slot: str | None = None

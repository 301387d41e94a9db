"""Items repository."""
from __future__ import annotations

from typing import Dict

from lorechronicles.data.errors import DataValidationError
from lorechronicles.data.repositories.base import RepositoryBase
from lorechronicles.domain.defs import ItemDef

_ALLOWED_FIELDS = {
    "name",
    "description",
    "type",
    "campaign_id",
    "rarity",
    "is_consumable",
    "is_quest_item",
    "stat_bonus",
    "max_durability",
    "equipment_slot",
}


class ItemsRepository(RepositoryBase[ItemDef]):
    """Loads and validates item definitions."""

    def __init__(self, base_path=None) -> None:
        super().__init__("items.json", base_path)

    def _build(self, raw: dict[str, object]) -> Dict[str, ItemDef]:
        items: Dict[str, ItemDef] = {}
        for raw_id, payload in raw.items():
            context = f"item '{raw_id}'"
            item_data = self._require_mapping(payload, context)
            unknown = set(item_data.keys()) - _ALLOWED_FIELDS
            if unknown:
                raise DataValidationError(f"{context} has unknown fields: {sorted(unknown)}")

            max_durability = item_data.get("max_durability")
            if max_durability is not None:
                max_durability = self._require_int(max_durability, f"{context} max_durability")
                if max_durability <= 0:
                    raise DataValidationError(f"{context} max_durability must be positive.")

            stat_bonus = self._require_int_map(item_data.get("stat_bonus", {}), f"{context} stat_bonus")

            items[raw_id] = ItemDef(
                id=raw_id,
                name=self._require_str(item_data.get("name"), f"{context} name"),
                item_type=self._require_str(item_data.get("type"), f"{context} type"),
                description=self._require_str(item_data.get("description", ""), f"{context} description"),
                campaign_id=self._optional_str(item_data.get("campaign_id"), f"{context} campaign_id"),
                rarity=self._require_str(item_data.get("rarity", "common"), f"{context} rarity"),
                is_consumable=self._require_bool(item_data.get("is_consumable", False), f"{context} is_consumable"),
                is_quest_item=self._require_bool(item_data.get("is_quest_item", False), f"{context} is_quest_item"),
                stat_bonus=stat_bonus,
                max_durability=max_durability,
                equipment_slot=self._optional_str(item_data.get("equipment_slot"), f"{context} equipment_slot"),
            )
        return items

"""Repository for loot tables attached to campaigns and nodes."""
from __future__ import annotations

from typing import Dict, List

from lorechronicles.data.errors import DataValidationError
from lorechronicles.data.json_loader import load_json
from lorechronicles.data.repositories.base import RepositoryBase
from lorechronicles.domain.defs import LootEntryDef, LootTableDef


class LootTablesRepository(RepositoryBase[LootTableDef]):
    """Loads loot table definitions."""

    def __init__(self, base_path=None) -> None:
        super().__init__("loot_tables.json", base_path)

    def _load_raw(self) -> list[object]:
        file_path = self._get_file_path()
        raw = load_json(file_path)
        if not isinstance(raw, list):
            raise DataValidationError("loot_tables.json must be a list.")
        return raw

    def _build(self, raw: list[object]) -> Dict[str, LootTableDef]:
        tables: Dict[str, LootTableDef] = {}
        for index, entry in enumerate(raw):
            context = f"loot_tables[{index}]"
            table_map = self._require_mapping(entry, context)
            table_id = self._require_str(table_map.get("id"), f"{context}.id")
            if table_id in tables:
                raise DataValidationError(f"Duplicate loot table id '{table_id}'.")
            max_drops = self._require_int(table_map.get("max_drops", 1), f"{context}.max_drops")
            if max_drops <= 0:
                raise DataValidationError(f"{context}.max_drops must be positive.")
            entries: List[LootEntryDef] = []
            for entry_index, raw_entry in enumerate(self._require_list(table_map.get("entries"), f"{context}.entries")):
                entry_ctx = f"{context}.entries[{entry_index}]"
                entry_map = self._require_mapping(raw_entry, entry_ctx)
                chance = self._require_number(entry_map.get("drop_chance", 100), f"{entry_ctx}.drop_chance")
                if not (0.0 <= chance <= 100.0):
                    raise DataValidationError(f"{entry_ctx}.drop_chance must be between 0 and 100.")
                quantity = self._require_int(entry_map.get("quantity", 1), f"{entry_ctx}.quantity")
                if quantity <= 0:
                    raise DataValidationError(f"{entry_ctx}.quantity must be positive.")
                entries.append(
                    LootEntryDef(
                        item_id=self._require_str(entry_map.get("item_id"), f"{entry_ctx}.item_id"),
                        quantity=quantity,
                        drop_chance=chance,
                        min_level=self._require_int(entry_map.get("min_level", 0), f"{entry_ctx}.min_level"),
                    )
                )
            tables[table_id] = LootTableDef(
                id=table_id,
                campaign_id=self._require_str(table_map.get("campaign_id"), f"{context}.campaign_id"),
                name=self._require_str(table_map.get("name", table_id), f"{context}.name"),
                node_id=self._optional_str(table_map.get("node_id"), f"{context}.node_id"),
                max_drops=max_drops,
                entries=entries,
            )
        return tables

    @staticmethod
    def _require_number(value: object, context: str) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise DataValidationError(f"{context} must be a number.")
        return float(value)

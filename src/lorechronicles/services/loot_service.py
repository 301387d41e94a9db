"""Loot tables: roll drops and grant them to a character."""
from __future__ import annotations

import logging
from typing import List

from lorechronicles.core.rng import RNG
from lorechronicles.data.content_store import ContentStore
from lorechronicles.data.stores.protocols import GameStore
from lorechronicles.domain.defs import LootEntryDef, LootTableDef
from lorechronicles.services.inventory_service import InventoryEvent, InventoryService

logger = logging.getLogger("lorechronicles.loot")


class LootService:
    def __init__(
        self,
        content: ContentStore,
        store: GameStore,
        inventory_service: InventoryService,
        *,
        rng: RNG | None = None,
    ) -> None:
        self._content = content
        self._store = store
        self._inventory = inventory_service
        self._rng = rng or RNG()

    def tables_for_node(self, node_id: str) -> List[LootTableDef]:
        return self._content.list_loot_tables(node_id=node_id)

    def roll(self, table_id: str, level: int, rng: RNG | None = None) -> List[LootEntryDef]:
        """Roll eligible entries in authored order until ``max_drops`` is reached."""
        table = self._content.get_loot_table(table_id)
        rng = rng or self._rng
        drops: List[LootEntryDef] = []
        for entry in table.entries:
            if len(drops) >= table.max_drops:
                break
            if level < entry.min_level:
                continue
            if rng.roll_percent() < entry.drop_chance:
                drops.append(entry)
        return drops

    def grant(
        self,
        table_id: str,
        character_id: str,
        level: int,
        session_id: str | None = None,
        rng: RNG | None = None,
    ) -> List[InventoryEvent]:
        table = self._content.get_loot_table(table_id)
        drops = self.roll(table_id, level, rng)
        events: List[InventoryEvent] = []
        if not drops:
            return events
        with self._store.transaction():
            inventory = self._inventory.load(character_id)
            for drop in drops:
                events.extend(
                    self._inventory.add_to(
                        inventory,
                        drop.item_id,
                        drop.quantity,
                        source_node_id=table.node_id,
                        source_session_id=session_id,
                    )
                )
            self._inventory.save(inventory)
        logger.info("Granted %d drop(s) from %s to character %s.", len(drops), table_id, character_id)
        return events

"""Per-character inventory entries and the aggregate that mutates them."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Mapping

from lorechronicles.domain.defs import ItemDef


@dataclass(slots=True)
class InventoryEntry:
    """One stack of a single item owned by a character."""

    character_id: str
    item_id: str
    quantity: int = 1
    equipped_slot: str | None = None
    current_durability: int | None = None
    source_node_id: str | None = None
    source_session_id: str | None = None
    acquired_at: datetime | None = None

    @property
    def is_broken(self) -> bool:
        return self.current_durability is not None and self.current_durability <= 0


class CharacterInventory:
    """In-memory view of a character's entries that records what changed.

    Services load entries from the store, mutate them through this class and
    then persist :meth:`pending_changes`.
    """

    def __init__(self, character_id: str, entries: Iterable[InventoryEntry] = ()) -> None:
        self.character_id = character_id
        self._entries: Dict[str, InventoryEntry] = {}
        for entry in entries:
            self._entries[entry.item_id] = entry
        self._touched: set[str] = set()
        self._removed: set[str] = set()

    def entries(self) -> List[InventoryEntry]:
        return list(self._entries.values())

    def get(self, item_id: str) -> InventoryEntry | None:
        return self._entries.get(item_id)

    def count(self, item_id: str) -> int:
        entry = self._entries.get(item_id)
        return entry.quantity if entry else 0

    def has_item(self, item_id: str, quantity: int = 1) -> bool:
        return self.count(item_id) >= max(1, quantity)

    def add(
        self,
        item_id: str,
        quantity: int = 1,
        *,
        durability: int | None = None,
        source_node_id: str | None = None,
        source_session_id: str | None = None,
        acquired_at: datetime | None = None,
    ) -> InventoryEntry | None:
        if quantity <= 0:
            return self._entries.get(item_id)
        entry = self._entries.get(item_id)
        if entry is None:
            entry = InventoryEntry(
                character_id=self.character_id,
                item_id=item_id,
                quantity=0,
                current_durability=durability,
                source_node_id=source_node_id,
                source_session_id=source_session_id,
                acquired_at=acquired_at,
            )
            self._entries[item_id] = entry
        entry.quantity += quantity
        self._mark(item_id)
        return entry

    def remove(self, item_id: str, quantity: int = 1) -> bool:
        """Remove ``quantity`` units; the entry disappears when it hits zero."""
        if quantity <= 0:
            return True
        entry = self._entries.get(item_id)
        if entry is None or entry.quantity < quantity:
            return False
        entry.quantity -= quantity
        if entry.quantity == 0:
            del self._entries[item_id]
            self._touched.discard(item_id)
            self._removed.add(item_id)
        else:
            self._mark(item_id)
        return True

    def equipped_in(self, slot: str) -> InventoryEntry | None:
        for entry in self._entries.values():
            if entry.equipped_slot == slot:
                return entry
        return None

    def equipped(self) -> List[InventoryEntry]:
        return [entry for entry in self._entries.values() if entry.equipped_slot is not None]

    def equip(self, item_id: str, slot: str) -> InventoryEntry | None:
        """Place the item in ``slot`` and return whatever it displaced."""
        entry = self._entries[item_id]
        displaced = self.equipped_in(slot)
        if displaced is not None and displaced is not entry:
            displaced.equipped_slot = None
            self._mark(displaced.item_id)
        else:
            displaced = None
        entry.equipped_slot = slot
        self._mark(item_id)
        return displaced

    def unequip(self, item_id: str) -> str | None:
        entry = self._entries.get(item_id)
        if entry is None or entry.equipped_slot is None:
            return None
        slot = entry.equipped_slot
        entry.equipped_slot = None
        self._mark(item_id)
        return slot

    def degrade(self, item_id: str, amount: int = 1) -> int | None:
        entry = self._entries.get(item_id)
        if entry is None or entry.current_durability is None:
            return None
        entry.current_durability = max(0, entry.current_durability - max(0, amount))
        self._mark(item_id)
        return entry.current_durability

    def stat_bonuses(self, items: Mapping[str, ItemDef]) -> Dict[str, int]:
        """Sum stat bonuses of equipped, unbroken items."""
        bonuses: Dict[str, int] = {}
        for entry in self.equipped():
            if entry.is_broken:
                continue
            item = items.get(entry.item_id)
            if item is None:
                continue
            for stat, value in item.stat_bonus.items():
                bonuses[stat] = bonuses.get(stat, 0) + value
        return bonuses

    def pending_changes(self) -> tuple[List[InventoryEntry], List[str]]:
        touched = [self._entries[item_id] for item_id in self._touched]
        # Vacated slots are written before the entries that take them over.
        upserts = sorted(touched, key=lambda entry: (entry.equipped_slot is not None, entry.item_id))
        return upserts, sorted(self._removed)

    def _mark(self, item_id: str) -> None:
        self._touched.add(item_id)
        self._removed.discard(item_id)

"""Inventory and equipment orchestration services."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List

from lorechronicles.core.clock import Clock, utc_now
from lorechronicles.data.content_store import ContentStore
from lorechronicles.data.stores.protocols import GameStore
from lorechronicles.domain.inventory import CharacterInventory
from lorechronicles.domain.stats import CharacterStats
from lorechronicles.services.errors import NotFoundError

logger = logging.getLogger("lorechronicles.inventory")


@dataclass(slots=True)
class InventoryEvent:
    """Base class for inventory/equipment events."""


@dataclass(slots=True)
class ItemAddedEvent(InventoryEvent):
    character_id: str
    item_id: str
    item_name: str
    quantity: int
    total: int


@dataclass(slots=True)
class ItemRemovedEvent(InventoryEvent):
    character_id: str
    item_id: str
    item_name: str
    quantity: int
    remaining: int


@dataclass(slots=True)
class ItemEquippedEvent(InventoryEvent):
    character_id: str
    item_id: str
    item_name: str
    slot: str


@dataclass(slots=True)
class ItemUnequippedEvent(InventoryEvent):
    character_id: str
    item_id: str
    item_name: str
    slot: str


@dataclass(slots=True)
class ItemBrokenEvent(InventoryEvent):
    character_id: str
    item_id: str
    item_name: str


@dataclass(slots=True)
class InventoryActionFailedEvent(InventoryEvent):
    character_id: str
    item_id: str
    reason: str
    message: str


class InventoryService:
    """Service responsible for a character's items and equipment."""

    def __init__(self, content: ContentStore, store: GameStore, *, clock: Clock = utc_now) -> None:
        self._content = content
        self._store = store
        self._clock = clock

    # ------------------------------------------------------------------ Loading
    def load(self, character_id: str) -> CharacterInventory:
        """Return the character's inventory aggregate."""
        if self._store.get_character(character_id) is None:
            raise NotFoundError(f"Unknown character '{character_id}'.")
        return CharacterInventory(character_id, self._store.list_inventory(character_id))

    def save(self, inventory: CharacterInventory) -> None:
        """Write the aggregate's pending changes to the store."""
        upserts, removed = inventory.pending_changes()
        with self._store.transaction():
            for item_id in removed:
                self._store.remove_entry(inventory.character_id, item_id)
            for entry in upserts:
                self._store.upsert_entry(entry)

    # ------------------------------------------------------------------ Queries
    def has_item(self, character_id: str, item_id: str) -> bool:
        return self.load(character_id).has_item(item_id)

    def item_count(self, character_id: str, item_id: str) -> int:
        return self.load(character_id).count(item_id)

    def equipped_stat_bonuses(self, character_id: str) -> Dict[str, int]:
        inventory = self.load(character_id)
        return inventory.stat_bonuses(self._content.items_by_id())

    def effective_stats(self, character_id: str, base: CharacterStats | None = None) -> CharacterStats:
        """Stats with bonuses from equipped, unbroken items folded in."""
        if base is None:
            character = self._store.get_character(character_id)
            if character is None:
                raise NotFoundError(f"Unknown character '{character_id}'.")
            base = character.stats
        return base.with_bonuses(self.equipped_stat_bonuses(character_id))

    # ------------------------------------------------------------------ Mutations
    def add_item(
        self,
        character_id: str,
        item_id: str,
        quantity: int = 1,
        *,
        source_node_id: str | None = None,
        source_session_id: str | None = None,
    ) -> List[InventoryEvent]:
        item = self._content.get_item(item_id)
        with self._store.transaction():
            inventory = self.load(character_id)
            events = self.add_to(
                inventory,
                item_id,
                quantity,
                source_node_id=source_node_id,
                source_session_id=source_session_id,
            )
            self.save(inventory)
        logger.info("Added %sx %s to character %s.", quantity, item.id, character_id)
        return events

    def add_to(
        self,
        inventory: CharacterInventory,
        item_id: str,
        quantity: int,
        *,
        source_node_id: str | None = None,
        source_session_id: str | None = None,
    ) -> List[InventoryEvent]:
        """Add to an already loaded aggregate; the caller saves it."""
        item = self._content.get_item(item_id)
        if quantity <= 0:
            return [
                InventoryActionFailedEvent(
                    character_id=inventory.character_id,
                    item_id=item_id,
                    reason="invalid_quantity",
                    message="Quantity must be positive.",
                )
            ]
        entry = inventory.add(
            item_id,
            quantity,
            durability=item.max_durability,
            source_node_id=source_node_id,
            source_session_id=source_session_id,
            acquired_at=self._clock(),
        )
        assert entry is not None
        return [
            ItemAddedEvent(
                character_id=inventory.character_id,
                item_id=item_id,
                item_name=item.name,
                quantity=quantity,
                total=entry.quantity,
            )
        ]

    def remove_item(self, character_id: str, item_id: str, quantity: int = 1) -> List[InventoryEvent]:
        with self._store.transaction():
            inventory = self.load(character_id)
            events = self._remove(inventory, item_id, quantity)
            self.save(inventory)
        return events

    def drop_item(self, character_id: str, item_id: str, quantity: int = 1) -> List[InventoryEvent]:
        """Discard items; quest items cannot be dropped."""
        item = self._content.get_item(item_id)
        if item.is_quest_item:
            return [
                InventoryActionFailedEvent(
                    character_id=character_id,
                    item_id=item_id,
                    reason="quest_item",
                    message=f"{item.name} is a quest item and cannot be dropped.",
                )
            ]
        return self.remove_item(character_id, item_id, quantity)

    def equip_item(self, character_id: str, item_id: str, slot: str | None = None) -> List[InventoryEvent]:
        item = self._content.get_item(item_id)
        with self._store.transaction():
            inventory = self.load(character_id)
            if not inventory.has_item(item_id):
                return [self._failed(character_id, item_id, "not_owned", f"You do not have {item.name}.")]
            target_slot = slot or item.equipment_slot
            if target_slot is None:
                return [self._failed(character_id, item_id, "not_equippable", f"{item.name} cannot be equipped.")]
            if item.equipment_slot is not None and target_slot != item.equipment_slot:
                return [
                    self._failed(
                        character_id,
                        item_id,
                        "wrong_slot",
                        f"{item.name} goes in the {item.equipment_slot} slot.",
                    )
                ]
            events: List[InventoryEvent] = []
            previous_slot = inventory.get(item_id).equipped_slot  # type: ignore[union-attr]
            if previous_slot is not None and previous_slot != target_slot:
                inventory.unequip(item_id)
                events.append(ItemUnequippedEvent(character_id, item_id, item.name, previous_slot))
            displaced = inventory.equip(item_id, target_slot)
            if displaced is not None:
                events.append(
                    ItemUnequippedEvent(
                        character_id,
                        displaced.item_id,
                        self._item_name(displaced.item_id),
                        target_slot,
                    )
                )
            events.append(ItemEquippedEvent(character_id, item_id, item.name, target_slot))
            self.save(inventory)
        return events

    def unequip_item(self, character_id: str, item_id: str) -> List[InventoryEvent]:
        with self._store.transaction():
            inventory = self.load(character_id)
            slot = inventory.unequip(item_id)
            if slot is None:
                return [self._failed(character_id, item_id, "not_equipped", "That item is not equipped.")]
            self.save(inventory)
        return [ItemUnequippedEvent(character_id, item_id, self._item_name(item_id), slot)]

    def degrade_durability(self, character_id: str, item_id: str, amount: int = 1) -> List[InventoryEvent]:
        """Wear an item down; durability never drops below zero."""
        with self._store.transaction():
            inventory = self.load(character_id)
            entry = inventory.get(item_id)
            if entry is None:
                return [self._failed(character_id, item_id, "not_owned", "You do not have that item.")]
            was_broken = entry.is_broken
            remaining = inventory.degrade(item_id, amount)
            if remaining is None:
                return [self._failed(character_id, item_id, "no_durability", "That item does not wear out.")]
            self.save(inventory)
        if remaining == 0 and not was_broken:
            logger.info("Item %s broke for character %s.", item_id, character_id)
            return [ItemBrokenEvent(character_id, item_id, self._item_name(item_id))]
        return []

    # ------------------------------------------------------------------ Helpers
    def _remove(self, inventory: CharacterInventory, item_id: str, quantity: int) -> List[InventoryEvent]:
        name = self._item_name(item_id)
        if not inventory.remove(item_id, quantity):
            return [
                self._failed(
                    inventory.character_id,
                    item_id,
                    "insufficient_quantity",
                    f"You only have {inventory.count(item_id)} {name}.",
                )
            ]
        return [
            ItemRemovedEvent(
                character_id=inventory.character_id,
                item_id=item_id,
                item_name=name,
                quantity=quantity,
                remaining=inventory.count(item_id),
            )
        ]

    def _item_name(self, item_id: str) -> str:
        try:
            return self._content.get_item(item_id).name
        except NotFoundError:
            return item_id

    @staticmethod
    def _failed(character_id: str, item_id: str, reason: str, message: str) -> InventoryActionFailedEvent:
        return InventoryActionFailedEvent(character_id=character_id, item_id=item_id, reason=reason, message=message)

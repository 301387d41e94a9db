"""Crafting: turn ingredients into a result item."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from lorechronicles.data.content_store import ContentStore
from lorechronicles.data.stores.protocols import GameStore
from lorechronicles.domain.defs import RecipeDef
from lorechronicles.domain.inventory import CharacterInventory
from lorechronicles.domain.stats import CharacterStats
from lorechronicles.services.errors import RequirementNotMetError
from lorechronicles.services.inventory_service import InventoryEvent, InventoryService

logger = logging.getLogger("lorechronicles.crafting")


@dataclass(slots=True)
class RecipeView:
    recipe: RecipeDef
    can_craft: bool
    missing: List[str] = field(default_factory=list)


class CraftingService:
    def __init__(self, content: ContentStore, store: GameStore, inventory_service: InventoryService) -> None:
        self._content = content
        self._store = store
        self._inventory = inventory_service

    def list_recipes(self, campaign_id: str, character_id: str, stats: CharacterStats) -> List[RecipeView]:
        inventory = self._inventory.load(character_id)
        views: List[RecipeView] = []
        for recipe in self._content.list_recipes(campaign_id):
            missing = self._missing(recipe, inventory, stats)
            views.append(RecipeView(recipe=recipe, can_craft=not missing, missing=missing))
        return views

    def craft(self, recipe_id: str, character_id: str, stats: CharacterStats) -> List[InventoryEvent]:
        """Consume the ingredients and add the result in one transaction."""
        recipe = self._content.get_recipe(recipe_id)
        with self._store.transaction():
            inventory = self._inventory.load(character_id)
            missing = self._missing(recipe, inventory, stats)
            if missing:
                raise RequirementNotMetError(
                    f"Cannot craft {recipe.name}: {'; '.join(missing)}.",
                    reason="missing ingredients",
                )
            for item_id, quantity in _required_quantities(recipe).items():
                if not inventory.remove(item_id, quantity):
                    raise RequirementNotMetError(
                        f"Cannot craft {recipe.name}: not enough {item_id}.",
                        reason="missing ingredients",
                    )
            events = self._inventory.add_to(inventory, recipe.result_item_id, recipe.result_quantity)
            self._inventory.save(inventory)
        logger.info("Character %s crafted %s.", character_id, recipe.name)
        return events

    def _missing(self, recipe: RecipeDef, inventory: CharacterInventory, stats: CharacterStats) -> List[str]:
        missing: List[str] = []
        for item_id, quantity in _required_quantities(recipe).items():
            have = inventory.count(item_id)
            if have < quantity:
                missing.append(f"need {quantity} {item_id} (have {have})")
        if recipe.required_stat is not None and recipe.required_stat_value is not None:
            current = stats.get(recipe.required_stat)
            if current < recipe.required_stat_value:
                missing.append(f"requires {recipe.required_stat_value} {recipe.required_stat} (you have {current})")
        return missing


def _required_quantities(recipe: RecipeDef) -> Dict[str, int]:
    """Total quantity per item; a recipe may list the same item more than once."""
    totals: Dict[str, int] = {}
    for ingredient in recipe.ingredients:
        totals[ingredient.item_id] = totals.get(ingredient.item_id, 0) + ingredient.quantity
    return totals

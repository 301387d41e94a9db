"""Crafting recipe definitions."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from lorechronicles.core.types import StatName


@dataclass(frozen=True, slots=True)
class IngredientDef:
    item_id: str
    quantity: int = 1


@dataclass(slots=True)
class RecipeDef:
    id: str
    campaign_id: str
    name: str
    result_item_id: str
    result_quantity: int = 1
    description: str = ""
    required_stat: StatName | None = None
    required_stat_value: int | None = None
    ingredients: List[IngredientDef] = field(default_factory=list)

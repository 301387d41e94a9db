"""Repository for crafting recipes."""
from __future__ import annotations

from typing import Dict, List

from lorechronicles.data.errors import DataValidationError
from lorechronicles.data.repositories.base import RepositoryBase
from lorechronicles.domain.defs import IngredientDef, RecipeDef
from lorechronicles.domain.stats import is_stat_name


class RecipesRepository(RepositoryBase[RecipeDef]):
    def __init__(self, base_path=None) -> None:
        super().__init__("recipes.json", base_path)

    def _build(self, raw: dict[str, object]) -> Dict[str, RecipeDef]:
        recipes: Dict[str, RecipeDef] = {}
        for recipe_id, payload in raw.items():
            context = f"recipe '{recipe_id}'"
            data = self._require_mapping(payload, context)
            result_quantity = self._require_int(data.get("result_quantity", 1), f"{context} result_quantity")
            if result_quantity <= 0:
                raise DataValidationError(f"{context} result_quantity must be positive.")

            required_stat = self._optional_str(data.get("required_stat"), f"{context} required_stat")
            required_value = data.get("required_stat_value")
            if required_stat is not None:
                if not is_stat_name(required_stat):
                    raise DataValidationError(f"{context} required_stat '{required_stat}' is not a stat.")
                required_value = self._require_int(required_value, f"{context} required_stat_value")
            elif required_value is not None:
                raise DataValidationError(f"{context} required_stat_value needs required_stat.")

            ingredients: List[IngredientDef] = []
            for index, entry in enumerate(self._require_list(data.get("ingredients"), f"{context} ingredients")):
                entry_ctx = f"{context} ingredients[{index}]"
                entry_map = self._require_mapping(entry, entry_ctx)
                quantity = self._require_int(entry_map.get("quantity", 1), f"{entry_ctx} quantity")
                if quantity <= 0:
                    raise DataValidationError(f"{entry_ctx} quantity must be positive.")
                ingredients.append(
                    IngredientDef(
                        item_id=self._require_str(entry_map.get("item_id"), f"{entry_ctx} item_id"),
                        quantity=quantity,
                    )
                )
            if not ingredients:
                raise DataValidationError(f"{context} needs at least one ingredient.")

            recipes[recipe_id] = RecipeDef(
                id=recipe_id,
                campaign_id=self._require_str(data.get("campaign_id"), f"{context} campaign_id"),
                name=self._require_str(data.get("name"), f"{context} name"),
                result_item_id=self._require_str(data.get("result_item_id"), f"{context} result_item_id"),
                result_quantity=result_quantity,
                description=self._require_str(data.get("description", ""), f"{context} description"),
                required_stat=required_stat,  # type: ignore[arg-type]
                required_stat_value=required_value,
                ingredients=ingredients,
            )
        return recipes

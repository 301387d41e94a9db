"""Read-only facade over the campaign definition repositories."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List

from lorechronicles.data.repositories import (
    CampaignsRepository,
    ItemsRepository,
    LootTablesRepository,
    RecipesRepository,
    StoryNodesRepository,
)
from lorechronicles.domain.defs import (
    CampaignDef,
    ChoiceDef,
    ItemDef,
    LootTableDef,
    RecipeDef,
    StoryNodeDef,
)
from lorechronicles.services.errors import NotFoundError


class ContentStore:
    """Lookup surface for authored content; unknown ids raise NotFoundError."""

    def __init__(
        self,
        campaigns_repo: CampaignsRepository,
        story_nodes_repo: StoryNodesRepository,
        items_repo: ItemsRepository,
        loot_tables_repo: LootTablesRepository,
        recipes_repo: RecipesRepository,
    ) -> None:
        self._campaigns = campaigns_repo
        self._nodes = story_nodes_repo
        self._items = items_repo
        self._loot_tables = loot_tables_repo
        self._recipes = recipes_repo

    @classmethod
    def from_path(cls, base_path: Path | str | None = None) -> "ContentStore":
        return cls(
            CampaignsRepository(base_path),
            StoryNodesRepository(base_path),
            ItemsRepository(base_path),
            LootTablesRepository(base_path),
            RecipesRepository(base_path),
        )

    def get_campaign(self, campaign_id: str) -> CampaignDef:
        try:
            return self._campaigns.get(campaign_id)
        except KeyError as exc:
            raise NotFoundError(f"Unknown campaign '{campaign_id}'.") from exc

    def list_campaigns(self) -> List[CampaignDef]:
        return self._campaigns.all()

    def get_node(self, node_id: str) -> StoryNodeDef:
        try:
            return self._nodes.get(node_id)
        except KeyError as exc:
            raise NotFoundError(f"Unknown story node '{node_id}'.") from exc

    def get_choices(self, node_id: str) -> List[ChoiceDef]:
        """Return the node's choices ordered by ``order_index`` (stable)."""
        node = self.get_node(node_id)
        return sorted(node.choices, key=lambda choice: choice.order_index)

    def get_choice(self, node_id: str, choice_id: str) -> ChoiceDef:
        for choice in self.get_node(node_id).choices:
            if choice.id == choice_id:
                return choice
        raise NotFoundError(f"Choice '{choice_id}' does not belong to node '{node_id}'.")

    def nodes_for_campaign(self, campaign_id: str) -> List[StoryNodeDef]:
        return [node for node in self._nodes.all() if node.campaign_id == campaign_id]

    def get_item(self, item_id: str) -> ItemDef:
        try:
            return self._items.get(item_id)
        except KeyError as exc:
            raise NotFoundError(f"Unknown item '{item_id}'.") from exc

    def items_by_id(self) -> Dict[str, ItemDef]:
        return {item.id: item for item in self._items.all()}

    def get_loot_table(self, table_id: str) -> LootTableDef:
        try:
            return self._loot_tables.get(table_id)
        except KeyError as exc:
            raise NotFoundError(f"Unknown loot table '{table_id}'.") from exc

    def list_loot_tables(self, campaign_id: str | None = None, node_id: str | None = None) -> List[LootTableDef]:
        tables = self._loot_tables.all()
        if campaign_id is not None:
            tables = [table for table in tables if table.campaign_id == campaign_id]
        if node_id is not None:
            tables = [table for table in tables if table.node_id == node_id]
        return tables

    def get_recipe(self, recipe_id: str) -> RecipeDef:
        try:
            return self._recipes.get(recipe_id)
        except KeyError as exc:
            raise NotFoundError(f"Unknown recipe '{recipe_id}'.") from exc

    def list_recipes(self, campaign_id: str | None = None) -> List[RecipeDef]:
        recipes = self._recipes.all()
        if campaign_id is None:
            return recipes
        return [recipe for recipe in recipes if recipe.campaign_id == campaign_id]

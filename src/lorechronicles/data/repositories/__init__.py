"""Repository exports."""

from .campaigns_repo import CampaignsRepository
from .items_repo import ItemsRepository
from .loot_tables_repo import LootTablesRepository
from .recipes_repo import RecipesRepository
from .story_nodes_repo import StoryNodesRepository

__all__ = [
    "CampaignsRepository",
    "ItemsRepository",
    "LootTablesRepository",
    "RecipesRepository",
    "StoryNodesRepository",
]

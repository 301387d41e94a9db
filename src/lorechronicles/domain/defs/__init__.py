"""Domain definition exports."""

from .campaign_def import CampaignDef
from .item_def import ItemDef
from .loot_def import LootEntryDef, LootTableDef
from .recipe_def import IngredientDef, RecipeDef
from .story_def import ChoiceDef, NodeContent, StatRequirement, StoryNodeDef

__all__ = [
    "CampaignDef",
    "ChoiceDef",
    "IngredientDef",
    "ItemDef",
    "LootEntryDef",
    "LootTableDef",
    "NodeContent",
    "RecipeDef",
    "StatRequirement",
    "StoryNodeDef",
]

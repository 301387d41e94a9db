"""Story graph lookup and choice gating."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

from lorechronicles.core.types import TERMINAL_NODE_TYPES
from lorechronicles.data.content_store import ContentStore
from lorechronicles.domain.defs import ChoiceDef, StoryNodeDef
from lorechronicles.domain.inventory import CharacterInventory
from lorechronicles.domain.stats import CharacterStats
from lorechronicles.services.errors import NotFoundError

REASON_MISSING_ITEM = "missing item"
REASON_STAT_BELOW_THRESHOLD = "stat below threshold"


@dataclass(frozen=True, slots=True)
class ChoiceAvailability:
    available: bool
    reason: str | None = None
    message: str | None = None
    deficit: int | None = None


@dataclass(slots=True)
class ChoiceView:
    choice_id: str
    text: str
    ends_story: bool
    availability: ChoiceAvailability


@dataclass(slots=True)
class NodeView:
    """Data returned to the presentation layer for rendering."""

    node_id: str
    node_type: str
    title: str
    text: str
    choices: List[ChoiceView] = field(default_factory=list)
    allows_free_text: bool = False
    free_text_prompt: str | None = None
    xp_reward: int = 0
    npc_name: str | None = None
    backdrop_url: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.node_type in TERMINAL_NODE_TYPES


class StoryNavigator:
    """Loads nodes and decides which choices a character may take."""

    def __init__(self, content: ContentStore) -> None:
        self._content = content

    def load_node(self, node_id: str) -> Tuple[StoryNodeDef, List[ChoiceDef]]:
        node = self._content.get_node(node_id)
        return node, self._content.get_choices(node_id)

    def evaluate_choice(
        self,
        choice: ChoiceDef,
        stats: CharacterStats,
        inventory: CharacterInventory,
    ) -> ChoiceAvailability:
        """Item requirement first, then stat requirement."""
        if choice.item_requirement and not inventory.has_item(choice.item_requirement):
            return ChoiceAvailability(
                available=False,
                reason=REASON_MISSING_ITEM,
                message=f"Requires {self._item_name(choice.item_requirement)}",
            )
        requirement = choice.stat_requirement
        if requirement is not None:
            current = stats.get(requirement.stat)
            if current < requirement.min_value:
                return ChoiceAvailability(
                    available=False,
                    reason=REASON_STAT_BELOW_THRESHOLD,
                    message=f"Requires {requirement.min_value} {requirement.stat} (you have {current})",
                    deficit=requirement.min_value - current,
                )
        return ChoiceAvailability(available=True)

    def build_node_view(
        self,
        node_id: str,
        stats: CharacterStats,
        inventory: CharacterInventory,
    ) -> NodeView:
        node, choices = self.load_node(node_id)
        return NodeView(
            node_id=node.id,
            node_type=node.node_type,
            title=node.title,
            text=node.content.text,
            choices=[
                ChoiceView(
                    choice_id=choice.id,
                    text=choice.text,
                    ends_story=choice.ends_story,
                    availability=self.evaluate_choice(choice, stats, inventory),
                )
                for choice in choices
            ],
            allows_free_text=node.allows_free_text,
            free_text_prompt=node.free_text_prompt,
            xp_reward=node.xp_reward,
            npc_name=node.content.npc_name,
            backdrop_url=node.content.backdrop_url,
        )

    def _item_name(self, item_id: str) -> str:
        try:
            return self._content.get_item(item_id).name
        except NotFoundError:
            return item_id

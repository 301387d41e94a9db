"""Story graph definition structures used by the runtime."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from lorechronicles.core.types import TERMINAL_NODE_TYPES, NodeType, StatName


@dataclass(frozen=True, slots=True)
class StatRequirement:
    """Minimum stat value needed to pick a choice."""

    stat: StatName
    min_value: int


@dataclass(slots=True)
class NodeContent:
    """Narrative payload of a node plus optional presentation metadata."""

    text: str = ""
    backdrop_url: str | None = None
    npc_name: str | None = None
    npc_portrait: str | None = None
    weather: str | None = None
    time_of_day: str | None = None


@dataclass(slots=True)
class ChoiceDef:
    """Outgoing edge of a story node."""

    id: str
    node_id: str
    text: str
    target_node_id: str | None = None
    order_index: int = 0
    stat_requirement: StatRequirement | None = None
    item_requirement: str | None = None
    stat_effect: Dict[str, int] | None = None

    @property
    def ends_story(self) -> bool:
        return self.target_node_id is None


@dataclass(slots=True)
class StoryNodeDef:
    """Fully parsed story node."""

    id: str
    campaign_id: str
    node_type: NodeType
    title: str = ""
    content: NodeContent = field(default_factory=NodeContent)
    xp_reward: int = 0
    allows_free_text: bool = False
    free_text_prompt: str | None = None
    choices: List[ChoiceDef] = field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.node_type in TERMINAL_NODE_TYPES

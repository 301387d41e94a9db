"""Repository for story nodes and their outgoing choices."""
from __future__ import annotations

from typing import Dict, List

from lorechronicles.core.types import NODE_TYPES
from lorechronicles.data.errors import DataValidationError
from lorechronicles.data.repositories.base import RepositoryBase
from lorechronicles.domain.defs import ChoiceDef, NodeContent, StatRequirement, StoryNodeDef
from lorechronicles.domain.stats import is_stat_name

_CONTENT_FIELDS = ("backdrop_url", "npc_name", "npc_portrait", "weather", "time_of_day")


class StoryNodesRepository(RepositoryBase[StoryNodeDef]):
    """Loads story nodes and validates their structure.

    Item references and choice targets are left to the graph validator.
    """

    def __init__(self, base_path=None) -> None:
        super().__init__("story_nodes.json", base_path)

    def _build(self, raw: dict[str, object]) -> Dict[str, StoryNodeDef]:
        nodes: Dict[str, StoryNodeDef] = {}
        seen_choice_ids: set[str] = set()
        for node_id, node_payload in raw.items():
            context = f"story node '{node_id}'"
            node_data = self._require_mapping(node_payload, context)
            node_type = self._require_str(node_data.get("node_type"), f"{context} node_type")
            if node_type not in NODE_TYPES:
                raise DataValidationError(f"{context} node_type '{node_type}' is not recognised.")
            xp_reward = self._require_int(node_data.get("xp_reward", 0), f"{context} xp_reward")
            if xp_reward < 0:
                raise DataValidationError(f"{context} xp_reward must be >= 0.")
            choices = self._parse_choices(node_data.get("choices"), node_id)
            for choice in choices:
                if choice.id in seen_choice_ids:
                    raise DataValidationError(f"Duplicate choice id '{choice.id}'.")
                seen_choice_ids.add(choice.id)
            nodes[node_id] = StoryNodeDef(
                id=node_id,
                campaign_id=self._require_str(node_data.get("campaign_id"), f"{context} campaign_id"),
                node_type=node_type,  # type: ignore[arg-type]
                title=self._require_str(node_data.get("title", ""), f"{context} title"),
                content=self._parse_content(node_data.get("content"), context),
                xp_reward=xp_reward,
                allows_free_text=self._require_bool(
                    node_data.get("allows_free_text", False), f"{context} allows_free_text"
                ),
                free_text_prompt=self._optional_str(node_data.get("free_text_prompt"), f"{context} free_text_prompt"),
                choices=choices,
            )
        return nodes

    def _parse_content(self, raw_content: object, context: str) -> NodeContent:
        if raw_content is None:
            return NodeContent()
        if isinstance(raw_content, str):
            return NodeContent(text=raw_content)
        content_map = self._require_mapping(raw_content, f"{context} content")
        extras = {
            key: self._optional_str(content_map.get(key), f"{context} content.{key}") for key in _CONTENT_FIELDS
        }
        return NodeContent(
            text=self._require_str(content_map.get("text", ""), f"{context} content.text"),
            **extras,
        )

    def _parse_choices(self, raw_choices: object, node_id: str) -> List[ChoiceDef]:
        if raw_choices is None:
            return []
        choices: List[ChoiceDef] = []
        for index, entry in enumerate(self._require_list(raw_choices, f"story node '{node_id}' choices")):
            choice_ctx = f"story node '{node_id}' choices[{index}]"
            choice_map = self._require_mapping(entry, choice_ctx)
            stat_effect = None
            if choice_map.get("stat_effect") is not None:
                stat_effect = self._require_int_map(choice_map["stat_effect"], f"{choice_ctx} stat_effect")
            choices.append(
                ChoiceDef(
                    id=self._require_str(choice_map.get("id"), f"{choice_ctx} id"),
                    node_id=node_id,
                    text=self._require_str(choice_map.get("text"), f"{choice_ctx} text"),
                    target_node_id=self._optional_str(choice_map.get("target"), f"{choice_ctx} target"),
                    order_index=self._require_int(choice_map.get("order_index", index), f"{choice_ctx} order_index"),
                    stat_requirement=self._parse_requirement(choice_map.get("stat_requirement"), choice_ctx),
                    item_requirement=self._optional_str(
                        choice_map.get("item_requirement"), f"{choice_ctx} item_requirement"
                    ),
                    stat_effect=stat_effect,
                )
            )
        return choices

    def _parse_requirement(self, raw: object, context: str) -> StatRequirement | None:
        if raw is None:
            return None
        req_map = self._require_mapping(raw, f"{context} stat_requirement")
        stat = self._require_str(req_map.get("stat"), f"{context} stat_requirement.stat")
        if not is_stat_name(stat):
            raise DataValidationError(f"{context} stat_requirement.stat '{stat}' is not a stat.")
        min_value = self._require_int(req_map.get("min_value"), f"{context} stat_requirement.min_value")
        return StatRequirement(stat=stat, min_value=min_value)  # type: ignore[arg-type]

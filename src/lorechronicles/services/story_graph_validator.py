"""Static campaign graph validation utilities."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping

from lorechronicles.core.types import TERMINAL_NODE_TYPES
from lorechronicles.domain.defs import CampaignDef, ChoiceDef, ItemDef, StoryNodeDef
from lorechronicles.domain.stats import STAT_MAX, STAT_MIN, is_stat_name

Severity = str


@dataclass(frozen=True, slots=True)
class Issue:
    severity: Severity
    code: str
    message: str
    context: dict[str, str]

    @property
    def is_error(self) -> bool:
        return self.severity == "ERROR"


def format_issue(issue: Issue) -> str:
    context = " ".join(f"{key}={value}" for key, value in issue.context.items())
    suffix = f" ({context})" if context else ""
    return f"[{issue.severity}] {issue.code}: {issue.message}{suffix}"


def validate_campaign_graph(
    campaign: CampaignDef,
    nodes: Iterable[StoryNodeDef],
    items: Mapping[str, ItemDef] | None = None,
) -> list[Issue]:
    """Check one campaign's nodes for broken links, bad gates and dead ends.

    ``items`` enables item-requirement checks; pass ``None`` to skip them.
    """
    issues: list[Issue] = []
    node_map = {node.id: node for node in nodes}

    if not campaign.start_node_id or campaign.start_node_id not in node_map:
        issues.append(
            Issue(
                severity="ERROR",
                code="MISSING_START_NODE",
                message="Campaign start node is missing.",
                context={"campaign_id": campaign.id, "referenced_id": str(campaign.start_node_id)},
            )
        )

    for node in node_map.values():
        if node.campaign_id != campaign.id:
            issues.append(
                Issue(
                    severity="ERROR",
                    code="CAMPAIGN_MISMATCH",
                    message="Node belongs to a different campaign.",
                    context={"node_id": node.id, "campaign_id": node.campaign_id},
                )
            )
        _validate_node_shape(node, issues)
        for index, choice in enumerate(node.choices):
            _validate_choice(node, index, choice, node_map, items, issues)

    _validate_reachability(campaign, node_map, issues)

    if not any(node.node_type in TERMINAL_NODE_TYPES for node in node_map.values()) and not any(
        choice.ends_story for node in node_map.values() for choice in node.choices
    ):
        issues.append(
            Issue(
                severity="WARN",
                code="NO_TERMINAL_NODE",
                message="Campaign has no ending, death node or story-ending choice.",
                context={"campaign_id": campaign.id},
            )
        )
    return issues


def _validate_node_shape(node: StoryNodeDef, issues: list[Issue]) -> None:
    if node.node_type in TERMINAL_NODE_TYPES:
        if node.choices:
            issues.append(
                Issue(
                    severity="WARN",
                    code="TERMINAL_NODE_HAS_CHOICES",
                    message="Choices on ending and death nodes are never offered.",
                    context={"node_id": node.id, "node_type": node.node_type},
                )
            )
        return
    if not node.choices and not node.allows_free_text:
        issues.append(
            Issue(
                severity="WARN",
                code="DEAD_END_NODE",
                message="Node has no choices and no free-text input; play cannot continue.",
                context={"node_id": node.id},
            )
        )


def _validate_choice(
    node: StoryNodeDef,
    index: int,
    choice: ChoiceDef,
    node_map: Mapping[str, StoryNodeDef],
    items: Mapping[str, ItemDef] | None,
    issues: list[Issue],
) -> None:
    path = f"choices[{index}]"
    if choice.target_node_id is not None and choice.target_node_id not in node_map:
        issues.append(
            Issue(
                severity="ERROR",
                code="MISSING_CHOICE_TARGET",
                message="Choice references missing node.",
                context={
                    "node_id": node.id,
                    "field_path": f"{path}.target",
                    "referenced_id": choice.target_node_id,
                },
            )
        )

    requirement = choice.stat_requirement
    if requirement is not None:
        if not is_stat_name(requirement.stat):
            issues.append(
                Issue(
                    severity="ERROR",
                    code="UNKNOWN_STAT",
                    message="Stat requirement names an unknown stat.",
                    context={"node_id": node.id, "field_path": f"{path}.stat_requirement", "stat": requirement.stat},
                )
            )
        elif not STAT_MIN <= requirement.min_value <= STAT_MAX:
            issues.append(
                Issue(
                    severity="ERROR",
                    code="INVALID_REQUIREMENT",
                    message=f"Stat requirement must be between {STAT_MIN} and {STAT_MAX}.",
                    context={
                        "node_id": node.id,
                        "field_path": f"{path}.stat_requirement",
                        "min_value": str(requirement.min_value),
                    },
                )
            )

    for stat in (choice.stat_effect or {}):
        if not is_stat_name(stat):
            issues.append(
                Issue(
                    severity="ERROR",
                    code="UNKNOWN_STAT",
                    message="Stat effect names an unknown stat.",
                    context={"node_id": node.id, "field_path": f"{path}.stat_effect", "stat": stat},
                )
            )

    if items is not None and choice.item_requirement and choice.item_requirement not in items:
        issues.append(
            Issue(
                severity="ERROR",
                code="UNKNOWN_ITEM",
                message="Item requirement references missing item.",
                context={
                    "node_id": node.id,
                    "field_path": f"{path}.item_requirement",
                    "referenced_id": choice.item_requirement,
                },
            )
        )


def _validate_reachability(
    campaign: CampaignDef,
    node_map: Mapping[str, StoryNodeDef],
    issues: list[Issue],
) -> None:
    reachable: set[str] = set()
    stack: list[str] = []
    if campaign.start_node_id in node_map:
        stack.append(campaign.start_node_id)  # type: ignore[arg-type]
    while stack:
        node_id = stack.pop()
        if node_id in reachable:
            continue
        reachable.add(node_id)
        for choice in node_map[node_id].choices:
            if choice.target_node_id is not None and choice.target_node_id in node_map:
                stack.append(choice.target_node_id)
    if not reachable:
        return
    for node_id in sorted(set(node_map) - reachable):
        issues.append(
            Issue(
                severity="WARN",
                code="UNREACHABLE_NODE",
                message="Node is unreachable from the campaign start node.",
                context={"node_id": node_id},
            )
        )

from lorechronicles.domain.defs import CampaignDef, ChoiceDef, ItemDef, StatRequirement, StoryNodeDef
from lorechronicles.services.story_graph_validator import format_issue, validate_campaign_graph


def _node(node_id: str, node_type: str = "choice", choices=None) -> StoryNodeDef:
    return StoryNodeDef(id=node_id, campaign_id="c1", node_type=node_type, choices=choices or [])


def _choice(choice_id: str, node_id: str, target: str | None, **extra) -> ChoiceDef:
    return ChoiceDef(id=choice_id, node_id=node_id, text=choice_id, target_node_id=target, **extra)


def _codes(issues):
    return sorted(issue.code for issue in issues)


def test_valid_graph_has_no_issues() -> None:
    campaign = CampaignDef(id="c1", title="C", start_node_id="a")
    nodes = [
        _node("a", choices=[_choice("go", "a", "b")]),
        _node("b", node_type="ending"),
    ]

    assert validate_campaign_graph(campaign, nodes) == []


def test_reports_broken_references() -> None:
    campaign = CampaignDef(id="c1", title="C", start_node_id="missing")
    nodes = [
        _node(
            "a",
            choices=[
                _choice("lost", "a", "nowhere"),
                _choice("locked", "a", None, item_requirement="ghost_key"),
                _choice("hard", "a", None, stat_requirement=StatRequirement(stat="agility", min_value=12)),
            ],
        )
    ]

    issues = validate_campaign_graph(campaign, nodes, items={"key": ItemDef(id="key", name="Key", item_type="key")})

    assert _codes(issues) == ["INVALID_REQUIREMENT", "MISSING_CHOICE_TARGET", "MISSING_START_NODE", "UNKNOWN_ITEM"]
    assert all(issue.is_error for issue in issues)


def test_reports_dead_ends_and_unreachable_nodes() -> None:
    campaign = CampaignDef(id="c1", title="C", start_node_id="a")
    nodes = [
        _node("a", choices=[_choice("go", "a", "b")]),
        _node("b"),
        _node("island", node_type="ending", choices=[_choice("back", "island", "a")]),
    ]

    issues = validate_campaign_graph(campaign, nodes)

    assert _codes(issues) == ["DEAD_END_NODE", "TERMINAL_NODE_HAS_CHOICES", "UNREACHABLE_NODE"]
    assert not any(issue.is_error for issue in issues)


def test_warns_when_campaign_cannot_end() -> None:
    campaign = CampaignDef(id="c1", title="C", start_node_id="a")
    nodes = [_node("a", choices=[_choice("loop", "a", "a")])]

    issues = validate_campaign_graph(campaign, nodes)

    assert _codes(issues) == ["NO_TERMINAL_NODE"]
    assert format_issue(issues[0]) == (
        "[WARN] NO_TERMINAL_NODE: Campaign has no ending, death node or story-ending choice. (campaign_id=c1)"
    )


def test_unknown_stat_effect_is_an_error() -> None:
    campaign = CampaignDef(id="c1", title="C", start_node_id="a")
    nodes = [_node("a", choices=[_choice("go", "a", None, stat_effect={"luck": 1})])]

    assert _codes(validate_campaign_graph(campaign, nodes)) == ["UNKNOWN_STAT"]

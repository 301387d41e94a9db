import json

import pytest

from lorechronicles.data.content_store import ContentStore
from lorechronicles.data.errors import DataLoadError, DataValidationError
from lorechronicles.data.repositories import (
    CampaignsRepository,
    ItemsRepository,
    LootTablesRepository,
    RecipesRepository,
    StoryNodesRepository,
)
from lorechronicles.services.errors import NotFoundError
from lorechronicles.services.story_graph_validator import validate_campaign_graph
from tests.helpers.builders import STORY_NODES, write_definitions


def test_bundled_definitions_load_without_errors() -> None:
    content = ContentStore.from_path()
    campaigns = content.list_campaigns()

    assert [campaign.id for campaign in campaigns] == ["ashen_pass", "sunken_crypt"]
    for campaign in campaigns:
        issues = validate_campaign_graph(campaign, content.nodes_for_campaign(campaign.id), content.items_by_id())
        assert not [issue for issue in issues if issue.is_error]


def test_story_nodes_parse_content_and_requirements(tmp_path) -> None:
    content = ContentStore.from_path(write_definitions(tmp_path))

    start = content.get_node("t_start")
    sneak = content.get_choice("t_start", "t_sneak")
    leave = content.get_choice("t_hall", "t_leave")

    assert start.content.text == "A portcullis bars the keep."
    assert start.allows_free_text
    assert sneak.stat_requirement is not None
    assert sneak.stat_requirement.stat == "agility"
    assert sneak.stat_requirement.min_value == 4
    assert leave.ends_story
    assert content.get_node("t_end").is_terminal


def test_choices_are_ordered_by_order_index(tmp_path) -> None:
    nodes = {
        "a": {
            "campaign_id": "trial",
            "node_type": "choice",
            "content": {"text": "Pick one.", "npc_name": "Oracle"},
            "choices": [
                {"id": "late", "text": "Late", "target": "b", "order_index": 5},
                {"id": "early", "text": "Early", "target": "b", "order_index": 1},
            ],
        },
        "b": {"campaign_id": "trial", "node_type": "ending"},
    }
    content = ContentStore.from_path(write_definitions(tmp_path, story_nodes=nodes))

    assert [choice.id for choice in content.get_choices("a")] == ["early", "late"]
    assert content.get_node("a").content.npc_name == "Oracle"


def test_unknown_ids_raise_not_found(tmp_path) -> None:
    content = ContentStore.from_path(write_definitions(tmp_path))

    with pytest.raises(NotFoundError):
        content.get_node("nowhere")
    with pytest.raises(NotFoundError):
        content.get_campaign("nowhere")
    with pytest.raises(NotFoundError):
        content.get_choice("t_start", "t_win")


def test_invalid_node_type_is_rejected(tmp_path) -> None:
    nodes = {"a": {"campaign_id": "trial", "node_type": "cutscene"}}
    repo = StoryNodesRepository(write_definitions(tmp_path, story_nodes=nodes))

    with pytest.raises(DataValidationError):
        repo.get("a")


def test_unknown_requirement_stat_is_rejected(tmp_path) -> None:
    nodes = {
        "a": {
            "campaign_id": "trial",
            "node_type": "choice",
            "choices": [{"id": "c", "text": "Go", "target": None, "stat_requirement": {"stat": "luck", "min_value": 2}}],
        }
    }
    repo = StoryNodesRepository(write_definitions(tmp_path, story_nodes=nodes))

    with pytest.raises(DataValidationError):
        repo.all()


def test_duplicate_choice_ids_are_rejected(tmp_path) -> None:
    nodes = dict(STORY_NODES)
    nodes["extra"] = {
        "campaign_id": "trial",
        "node_type": "choice",
        "choices": [{"id": "t_walk", "text": "Again", "target": "t_hall"}],
    }
    repo = StoryNodesRepository(write_definitions(tmp_path, story_nodes=nodes))

    with pytest.raises(DataValidationError):
        repo.all()


def test_campaign_difficulty_is_validated(tmp_path) -> None:
    campaigns = {"x": {"title": "X", "start_node_id": "t_start", "difficulty": "brutal"}}
    repo = CampaignsRepository(write_definitions(tmp_path, campaigns=campaigns))

    with pytest.raises(DataValidationError):
        repo.all()


def test_items_reject_unknown_fields(tmp_path) -> None:
    items = {"cape": {"name": "Cape", "type": "armour", "weight": 3}}
    repo = ItemsRepository(write_definitions(tmp_path, items=items))

    with pytest.raises(DataValidationError):
        repo.get("cape")


def test_loot_tables_validate_drop_chance(tmp_path) -> None:
    tables = [{"id": "t", "campaign_id": "trial", "entries": [{"item_id": "herb", "drop_chance": 120}]}]
    repo = LootTablesRepository(write_definitions(tmp_path, loot_tables=tables))

    with pytest.raises(DataValidationError):
        repo.all()


def test_recipes_need_ingredients(tmp_path) -> None:
    recipes = {"r": {"campaign_id": "trial", "name": "R", "result_item_id": "tonic", "ingredients": []}}
    repo = RecipesRepository(write_definitions(tmp_path, recipes=recipes))

    with pytest.raises(DataValidationError):
        repo.all()


def test_missing_and_malformed_files_raise_load_errors(tmp_path) -> None:
    with pytest.raises(DataLoadError):
        CampaignsRepository(tmp_path).all()

    (tmp_path / "campaigns.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(DataLoadError):
        CampaignsRepository(tmp_path).all()

    (tmp_path / "campaigns.json").write_text(json.dumps(["a"]), encoding="utf-8")
    with pytest.raises(DataValidationError):
        CampaignsRepository(tmp_path).all()

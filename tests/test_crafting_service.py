import pytest

from lorechronicles.data.content_store import ContentStore
from lorechronicles.data.stores import InMemoryGameStore
from lorechronicles.domain.character import Character
from lorechronicles.domain.stats import CharacterStats
from lorechronicles.services.crafting_service import CraftingService
from lorechronicles.services.errors import RequirementNotMetError
from lorechronicles.services.inventory_service import InventoryService, ItemAddedEvent
from tests.helpers.builders import RECIPES, make_character, make_harness, write_definitions


def test_craft_consumes_ingredients(tmp_path) -> None:
    harness = make_harness(tmp_path)
    character = make_character(harness, wisdom=4)
    harness.inventory.add_item(character.id, "herb", 2)

    events = harness.crafting.craft("brew_tonic", character.id, character.stats)

    assert events == [ItemAddedEvent(character.id, "tonic", "Tonic", 1, 1)]
    assert harness.inventory.item_count(character.id, "herb") == 0
    assert harness.inventory.item_count(character.id, "tonic") == 1


def test_craft_requires_stat_and_ingredients(tmp_path) -> None:
    harness = make_harness(tmp_path)
    character = make_character(harness)
    harness.inventory.add_item(character.id, "herb", 1)

    with pytest.raises(RequirementNotMetError) as excinfo:
        harness.crafting.craft("brew_tonic", character.id, CharacterStats(wisdom=3))

    assert excinfo.value.reason == "missing ingredients"
    assert harness.inventory.item_count(character.id, "herb") == 1
    assert harness.inventory.item_count(character.id, "tonic") == 0


def test_list_recipes_reports_missing_requirements(tmp_path) -> None:
    harness = make_harness(tmp_path)
    character = make_character(harness)
    harness.inventory.add_item(character.id, "herb", 1)

    views = harness.crafting.list_recipes("trial", character.id, character.stats)

    assert len(views) == 1
    assert not views[0].can_craft
    assert views[0].missing == ["need 2 herb (have 1)", "requires 4 wisdom (you have 3)"]
    assert harness.crafting.list_recipes("mire", character.id, character.stats) == []


def test_repeated_ingredient_lines_are_summed(tmp_path) -> None:
    recipes = {
        "double_tonic": dict(
            RECIPES["brew_tonic"],
            name="Double Tonic",
            required_stat=None,
            required_stat_value=None,
            ingredients=[{"item_id": "herb", "quantity": 2}, {"item_id": "herb", "quantity": 2}],
        )
    }
    content = ContentStore.from_path(write_definitions(tmp_path / "definitions", recipes=recipes))
    store = InMemoryGameStore()
    inventory = InventoryService(content, store)
    crafting = CraftingService(content, store, inventory)
    store.add_character(Character(id="crafter", user_id="player-1", name="Brewer"))
    inventory.add_item("crafter", "herb", 3)

    with pytest.raises(RequirementNotMetError) as excinfo:
        crafting.craft("double_tonic", "crafter", CharacterStats())

    assert "need 4 herb (have 3)" in str(excinfo.value)
    assert inventory.item_count("crafter", "herb") == 3
    assert inventory.item_count("crafter", "tonic") == 0

    inventory.add_item("crafter", "herb", 1)
    crafting.craft("double_tonic", "crafter", CharacterStats())

    assert inventory.item_count("crafter", "herb") == 0
    assert inventory.item_count("crafter", "tonic") == 1

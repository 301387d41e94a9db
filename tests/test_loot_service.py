from lorechronicles.core.rng import RNG
from tests.helpers.builders import make_character, make_harness


class _ScriptedRNG(RNG):
    def __init__(self, rolls) -> None:
        super().__init__(0)
        self._rolls = list(rolls)

    def roll_percent(self) -> float:
        return self._rolls.pop(0)


def test_roll_respects_min_level_and_chance(tmp_path) -> None:
    harness = make_harness(tmp_path)

    drops = harness.loot.roll("trial_hoard", level=1, rng=_ScriptedRNG([10.0, 90.0, 5.0]))

    assert [drop.item_id for drop in drops] == ["herb", "rusty_key"]


def test_roll_stops_at_max_drops(tmp_path) -> None:
    harness = make_harness(tmp_path)

    drops = harness.loot.roll("trial_hoard", level=5, rng=_ScriptedRNG([10.0, 10.0]))

    assert [drop.item_id for drop in drops] == ["herb", "short_sword"]


def test_roll_at_exact_chance_misses(tmp_path) -> None:
    harness = make_harness(tmp_path)

    drops = harness.loot.roll("trial_hoard", level=1, rng=_ScriptedRNG([50.0, 30.0, 99.9]))

    assert [drop.item_id for drop in drops] == ["rusty_key"]


def test_seeded_rolls_are_repeatable(tmp_path) -> None:
    harness = make_harness(tmp_path)

    first = harness.loot.roll("trial_hoard", level=5, rng=RNG(42))
    second = harness.loot.roll("trial_hoard", level=5, rng=RNG(42))

    assert first == second


def test_grant_adds_drops_with_source(tmp_path) -> None:
    harness = make_harness(tmp_path)
    character = make_character(harness)

    events = harness.loot.grant("trial_hoard", character.id, 1, session_id="s1", rng=_ScriptedRNG([1.0, 99.0, 1.0]))

    assert [(event.item_id, event.quantity) for event in events] == [("herb", 2), ("rusty_key", 1)]
    entry = harness.inventory.load(character.id).get("herb")
    assert entry.source_node_id == "t_hall"
    assert entry.source_session_id == "s1"
    assert [table.id for table in harness.loot.tables_for_node("t_hall")] == ["trial_hoard"]

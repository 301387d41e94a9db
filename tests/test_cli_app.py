from lorechronicles.config import EngineConfig
from lorechronicles.data.stores import InMemoryGameStore
from lorechronicles.presentation.cli import app
from lorechronicles.services.errors import StaleWriteError
from lorechronicles.services.story_service import StoryService
from tests.helpers.builders import write_definitions


def _config(tmp_path) -> EngineConfig:
    return EngineConfig(
        definitions_path=str(write_definitions(tmp_path / "definitions")),
        data_dir=str(tmp_path / "data"),
    )


def _feed(monkeypatch, answers) -> None:
    iterator = iter(answers)
    monkeypatch.setattr("builtins.input", lambda prompt="": next(iterator))


def test_play_through_to_an_ending(monkeypatch, capsys, tmp_path) -> None:
    _feed(monkeypatch, ["3", "Aria", "", "1", "1", "2", "2", "4", "5"])

    app.main(_config(tmp_path))

    output = capsys.readouterr().out
    assert "Aria is ready for adventure." in output
    assert "=== Mire Edge ===" in output
    assert "Adventure complete!" in output
    assert "No heroes have fallen. Yet." in output
    assert "Farewell, adventurer." in output
    assert (tmp_path / "data" / "store.json").exists()


def test_leave_resume_and_fall(monkeypatch, capsys, tmp_path) -> None:
    _feed(monkeypatch, ["3", "Wren", "", "1", "1", "2", "q", "2", "1", "1", "4", "5"])

    app.main(_config(tmp_path))

    output = capsys.readouterr().out
    assert "Your progress is saved." in output
    assert "Wren has fallen: The mire swallows you whole." in output
    assert "Wren (Level 1) fell in The Mire: The mire swallows you whole." in output


def test_locked_choice_is_explained(monkeypatch, capsys, tmp_path) -> None:
    _feed(monkeypatch, ["3", "Aria", "", "1", "1", "3", "1", "q", "5"])

    app.main(_config(tmp_path))

    output = capsys.readouterr().out
    assert "1. Sneak along the wall.  [locked: Requires 4 agility (you have 3)]" in output
    assert "\nRequires 4 agility (you have 3)\n" in output


def test_menu_rejects_bad_input(monkeypatch, capsys, tmp_path) -> None:
    _feed(monkeypatch, ["zero", "9", "1", "5"])

    app.main(_config(tmp_path))

    output = capsys.readouterr().out
    assert "Please enter a number." in output
    assert "Please enter a value between 1 and 5." in output
    assert "You have no living characters. Create one first." in output


def test_build_engine_without_interpreter(tmp_path) -> None:
    engine = app.build_engine(_config(tmp_path), store=InMemoryGameStore())

    assert not engine.free_text.has_interpreter
    assert [campaign.id for campaign in engine.content.list_campaigns()] == ["doom", "mire", "trial"]


def test_failed_choice_keeps_player_on_the_node(monkeypatch, capsys, tmp_path) -> None:
    original = StoryService.apply_choice
    calls = []

    def _apply_choice(self, session_id, choice_id):
        calls.append(choice_id)
        if len(calls) == 1:
            raise StaleWriteError("Progress changed elsewhere.")
        return original(self, session_id, choice_id)

    monkeypatch.setattr(StoryService, "apply_choice", _apply_choice)
    _feed(monkeypatch, ["3", "Aria", "", "1", "1", "2", "2", "2", "5"])

    app.main(_config(tmp_path))

    output = capsys.readouterr().out
    assert calls == ["m_wade", "m_wade"]
    assert "! Progress changed elsewhere." in output
    assert output.count("=== Mire Edge ===") == 2
    assert "Adventure complete!" in output


def test_engine_close_releases_interpreter_client(tmp_path) -> None:
    config = _config(tmp_path)
    config.interpreter_url = "https://storyteller.test/interpret"
    engine = app.build_engine(config, store=InMemoryGameStore())

    assert engine.free_text.has_interpreter
    engine.close()

    assert engine.interpreter is not None
    assert engine.interpreter._client.is_closed

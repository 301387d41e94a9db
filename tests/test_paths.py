from pathlib import Path

from lorechronicles.data import paths


def test_definitions_path_defaults_to_repo_data(monkeypatch) -> None:
    monkeypatch.delenv(paths.DEFINITIONS_ENV_VAR, raising=False)

    resolved = paths.get_definitions_path()

    assert resolved == paths.get_repo_root() / "data" / "definitions"
    assert (resolved / "campaigns.json").exists()


def test_definitions_path_env_override(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv(paths.DEFINITIONS_ENV_VAR, str(tmp_path))

    assert paths.get_definitions_path() == tmp_path


def test_explicit_definitions_path_wins(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv(paths.DEFINITIONS_ENV_VAR, "/elsewhere")

    assert paths.get_definitions_path(tmp_path) == Path(tmp_path)

"""Resolve where campaign definitions live on disk."""
from __future__ import annotations

import os
from pathlib import Path

DEFINITIONS_ENV_VAR = "LORE_DEFINITIONS_PATH"


def get_repo_root() -> Path:
    return Path(__file__).resolve().parents[3]


def get_definitions_path(base_path: Path | str | None = None) -> Path:
    """Return the directory containing JSON definition files.

    An explicit ``base_path`` wins, then ``LORE_DEFINITIONS_PATH``, then the
    bundled ``data/definitions`` directory at the repository root.
    """
    if base_path is not None:
        return Path(base_path)
    override = os.environ.get(DEFINITIONS_ENV_VAR)
    if override:
        return Path(override)
    return get_repo_root() / "data" / "definitions"

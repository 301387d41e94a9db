"""Game store that persists a JSON snapshot after every committed transaction."""
from __future__ import annotations

import json
import logging
from pathlib import Path

from lorechronicles.data.stores.memory_store import InMemoryGameStore, StoreState
from lorechronicles.data.stores.snapshot_codec import decode_state, encode_state
from lorechronicles.services.errors import PersistenceError, SnapshotLoadError

logger = logging.getLogger("lorechronicles.store")


class JsonFileGameStore(InMemoryGameStore):
    """In-memory store mirrored to a single JSON file on disk."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        super().__init__(self._load(self._path))

    @property
    def path(self) -> Path:
        return self._path

    @staticmethod
    def _load(path: Path) -> StoreState:
        if not path.exists():
            return StoreState()
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise SnapshotLoadError(f"Store file {path} is not valid JSON: {exc}") from exc
        except OSError as exc:
            raise SnapshotLoadError(f"Unable to read store file {path}.") from exc
        state = decode_state(payload)
        logger.info("Loaded game store from %s (%d characters).", path, len(state.characters))
        return state

    def _commit(self, state: StoreState) -> None:
        payload = encode_state(state)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
            tmp_path.replace(self._path)
        except OSError as exc:
            logger.error("Failed to write game store %s: %s", self._path, exc)
            raise PersistenceError(f"Unable to write store file {self._path}.") from exc

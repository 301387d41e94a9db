"""Dictionary-backed game store with snapshot/rollback transactions."""
from __future__ import annotations

import copy
import dataclasses
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterator, List, Mapping, Tuple, TypeVar

from lorechronicles.domain.character import Character
from lorechronicles.domain.interpretation import PastAction
from lorechronicles.domain.inventory import InventoryEntry
from lorechronicles.domain.session import CharacterProgress, EndingSeen, Session
from lorechronicles.domain.trade import TradeOffer
from lorechronicles.services.errors import NotFoundError, PersistenceError, StaleWriteError

logger = logging.getLogger("lorechronicles.store")

T = TypeVar("T")


@dataclass(slots=True)
class StoreState:
    """Everything a store persists, keyed for direct lookup."""

    characters: Dict[str, Character] = field(default_factory=dict)
    sessions: Dict[str, Session] = field(default_factory=dict)
    progress: Dict[Tuple[str, str], CharacterProgress] = field(default_factory=dict)
    inventory: Dict[str, Dict[str, InventoryEntry]] = field(default_factory=dict)
    endings_seen: Dict[Tuple[str, str, str], EndingSeen] = field(default_factory=dict)
    play_counts: Dict[str, int] = field(default_factory=dict)
    trades: Dict[str, TradeOffer] = field(default_factory=dict)
    action_log: Dict[str, List[PastAction]] = field(default_factory=dict)


class InMemoryGameStore:
    """Reference :class:`GameStore` implementation.

    ``transaction()`` snapshots the whole state on entry to the outermost
    block and restores it if the block raises. Nested blocks join the
    outer transaction. Every mutating method opens its own block, so single
    writes outside a transaction are atomic too.
    """

    def __init__(self, state: StoreState | None = None) -> None:
        self._state = state or StoreState()
        self._lock = threading.RLock()
        self._depth = 0
        self._snapshot: StoreState | None = None

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            if self._depth == 0:
                self._snapshot = copy.deepcopy(self._state)
            self._depth += 1
            try:
                yield
            except BaseException:
                self._depth -= 1
                if self._depth == 0:
                    self._rollback()
                raise
            self._depth -= 1
            if self._depth == 0:
                try:
                    self._commit(self._state)
                except PersistenceError:
                    self._rollback()
                    raise
                self._snapshot = None

    def _commit(self, state: StoreState) -> None:
        """Hook for durable subclasses; runs when the outermost block exits."""

    def _rollback(self) -> None:
        assert self._snapshot is not None
        self._state = self._snapshot
        self._snapshot = None
        logger.debug("Store transaction rolled back.")

    # sessions

    def create_session(self, session: Session) -> Session:
        with self.transaction():
            if session.id in self._state.sessions:
                raise PersistenceError(f"Session '{session.id}' already exists.")
            self._state.sessions[session.id] = copy.deepcopy(session)
        return copy.deepcopy(session)

    def get_session(self, session_id: str) -> Session | None:
        with self._lock:
            return copy.deepcopy(self._state.sessions.get(session_id))

    def update_session(self, session_id: str, patch: Mapping[str, object]) -> Session:
        with self.transaction():
            current = self._require(self._state.sessions, session_id, "session")
            updated = _patched(current, patch)
            self._state.sessions[session_id] = updated
        return copy.deepcopy(updated)

    def list_sessions(
        self,
        *,
        user_id: str | None = None,
        campaign_id: str | None = None,
        character_id: str | None = None,
    ) -> List[Session]:
        with self._lock:
            sessions = [
                session
                for session in self._state.sessions.values()
                if (user_id is None or session.user_id == user_id)
                and (campaign_id is None or session.campaign_id == campaign_id)
                and (character_id is None or session.character_id == character_id)
            ]
            return copy.deepcopy(sessions)

    # progress

    def create_progress(self, progress: CharacterProgress) -> CharacterProgress:
        key = (progress.session_id, progress.character_id)
        with self.transaction():
            if key in self._state.progress:
                raise PersistenceError(f"Progress for {key} already exists.")
            self._state.progress[key] = copy.deepcopy(progress)
        return copy.deepcopy(progress)

    def get_progress(self, session_id: str, character_id: str) -> CharacterProgress | None:
        with self._lock:
            return copy.deepcopy(self._state.progress.get((session_id, character_id)))

    def update_progress(
        self,
        session_id: str,
        character_id: str,
        patch: Mapping[str, object],
        *,
        expected_version: int,
    ) -> CharacterProgress:
        if "version" in patch:
            raise PersistenceError("Progress version is managed by the store.")
        with self.transaction():
            current = self._require(self._state.progress, (session_id, character_id), "progress")
            if current.version != expected_version:
                logger.warning(
                    "Stale progress write for session %s (expected v%s, stored v%s).",
                    session_id,
                    expected_version,
                    current.version,
                )
                raise StaleWriteError(
                    f"Progress for session '{session_id}' changed since it was read "
                    f"(expected version {expected_version}, found {current.version})."
                )
            updated = _patched(current, {**patch, "version": current.version + 1})
            self._state.progress[(session_id, character_id)] = updated
        return copy.deepcopy(updated)

    # characters

    def add_character(self, character: Character) -> Character:
        with self.transaction():
            if character.id in self._state.characters:
                raise PersistenceError(f"Character '{character.id}' already exists.")
            self._state.characters[character.id] = copy.deepcopy(character)
        return copy.deepcopy(character)

    def get_character(self, character_id: str) -> Character | None:
        with self._lock:
            return copy.deepcopy(self._state.characters.get(character_id))

    def update_character(self, character_id: str, patch: Mapping[str, object]) -> Character:
        with self.transaction():
            current = self._require(self._state.characters, character_id, "character")
            updated = _patched(current, patch)
            self._state.characters[character_id] = updated
        return copy.deepcopy(updated)

    def delete_character(self, character_id: str) -> None:
        with self.transaction():
            self._require(self._state.characters, character_id, "character")
            del self._state.characters[character_id]
            self._state.inventory.pop(character_id, None)

    def list_characters(self, user_id: str | None = None) -> List[Character]:
        with self._lock:
            characters = [
                character
                for character in self._state.characters.values()
                if user_id is None or character.user_id == user_id
            ]
            return copy.deepcopy(characters)

    # inventory

    def list_inventory(self, character_id: str) -> List[InventoryEntry]:
        with self._lock:
            return copy.deepcopy(list(self._state.inventory.get(character_id, {}).values()))

    def upsert_entry(self, entry: InventoryEntry) -> InventoryEntry:
        if entry.quantity < 0:
            raise PersistenceError("Inventory quantity cannot be negative.")
        with self.transaction():
            self._require(self._state.characters, entry.character_id, "character")
            bag = self._state.inventory.setdefault(entry.character_id, {})
            if entry.equipped_slot is not None:
                for other in bag.values():
                    if other.item_id != entry.item_id and other.equipped_slot == entry.equipped_slot:
                        raise PersistenceError(
                            f"Slot '{entry.equipped_slot}' is already occupied by '{other.item_id}'."
                        )
            bag[entry.item_id] = copy.deepcopy(entry)
        return copy.deepcopy(entry)

    def remove_entry(self, character_id: str, item_id: str) -> None:
        with self.transaction():
            bag = self._state.inventory.get(character_id, {})
            bag.pop(item_id, None)

    # endings ledger

    def record_ending_seen(self, user_id: str, campaign_id: str, node_id: str, seen_at: datetime) -> bool:
        key = (user_id, campaign_id, node_id)
        with self.transaction():
            if key in self._state.endings_seen:
                return False
            self._state.endings_seen[key] = EndingSeen(user_id, campaign_id, node_id, seen_at)
        return True

    def list_endings_seen(self, user_id: str, campaign_id: str | None = None) -> List[EndingSeen]:
        with self._lock:
            return [
                row
                for row in self._state.endings_seen.values()
                if row.user_id == user_id and (campaign_id is None or row.campaign_id == campaign_id)
            ]

    # campaign counters

    def increment_play_count(self, campaign_id: str) -> int:
        with self.transaction():
            count = self._state.play_counts.get(campaign_id, 0) + 1
            self._state.play_counts[campaign_id] = count
        return count

    def get_play_count(self, campaign_id: str) -> int:
        with self._lock:
            return self._state.play_counts.get(campaign_id, 0)

    # trades

    def create_trade(self, offer: TradeOffer) -> TradeOffer:
        with self.transaction():
            if offer.id in self._state.trades:
                raise PersistenceError(f"Trade '{offer.id}' already exists.")
            self._state.trades[offer.id] = copy.deepcopy(offer)
        return copy.deepcopy(offer)

    def get_trade(self, trade_id: str) -> TradeOffer | None:
        with self._lock:
            return copy.deepcopy(self._state.trades.get(trade_id))

    def update_trade(self, trade_id: str, patch: Mapping[str, object]) -> TradeOffer:
        with self.transaction():
            current = self._require(self._state.trades, trade_id, "trade")
            updated = _patched(current, patch)
            self._state.trades[trade_id] = updated
        return copy.deepcopy(updated)

    def list_trades(self, session_id: str) -> List[TradeOffer]:
        with self._lock:
            trades = [offer for offer in self._state.trades.values() if offer.session_id == session_id]
            return copy.deepcopy(trades)

    # free-text action log

    def append_action(self, session_id: str, action: PastAction) -> None:
        with self.transaction():
            self._state.action_log.setdefault(session_id, []).append(action)

    def list_actions(self, session_id: str, limit: int | None = None) -> List[PastAction]:
        with self._lock:
            actions = list(self._state.action_log.get(session_id, []))
        if limit is not None:
            actions = actions[-limit:] if limit > 0 else []
        return actions

    @staticmethod
    def _require(table: Mapping, key: object, label: str):
        try:
            return table[key]
        except KeyError as exc:
            raise NotFoundError(f"Unknown {label} '{key}'.") from exc


def _patched(record: T, patch: Mapping[str, object]) -> T:
    names = {item.name for item in dataclasses.fields(record)}  # type: ignore[arg-type]
    unknown = set(patch) - names
    if unknown:
        raise PersistenceError(f"Unknown fields for {type(record).__name__}: {sorted(unknown)}")
    return dataclasses.replace(copy.deepcopy(record), **copy.deepcopy(dict(patch)))  # type: ignore[type-var]

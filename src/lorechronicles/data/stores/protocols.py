"""Persistence port the engine services depend on."""
from __future__ import annotations

from datetime import datetime
from typing import ContextManager, List, Mapping, Protocol

from lorechronicles.domain.character import Character
from lorechronicles.domain.interpretation import PastAction
from lorechronicles.domain.inventory import InventoryEntry
from lorechronicles.domain.session import CharacterProgress, EndingSeen, Session
from lorechronicles.domain.trade import TradeOffer


class GameStore(Protocol):
    """Mutable player state.

    Getters return copies (or ``None`` when missing); updates take a patch of
    field names to new values and return the stored result.
    """

    def transaction(self) -> ContextManager[None]: ...

    # sessions
    def create_session(self, session: Session) -> Session: ...

    def get_session(self, session_id: str) -> Session | None: ...

    def update_session(self, session_id: str, patch: Mapping[str, object]) -> Session: ...

    def list_sessions(
        self,
        *,
        user_id: str | None = None,
        campaign_id: str | None = None,
        character_id: str | None = None,
    ) -> List[Session]: ...

    # progress
    def create_progress(self, progress: CharacterProgress) -> CharacterProgress: ...

    def get_progress(self, session_id: str, character_id: str) -> CharacterProgress | None: ...

    def update_progress(
        self,
        session_id: str,
        character_id: str,
        patch: Mapping[str, object],
        *,
        expected_version: int,
    ) -> CharacterProgress: ...

    # characters
    def add_character(self, character: Character) -> Character: ...

    def get_character(self, character_id: str) -> Character | None: ...

    def update_character(self, character_id: str, patch: Mapping[str, object]) -> Character: ...

    def delete_character(self, character_id: str) -> None: ...

    def list_characters(self, user_id: str | None = None) -> List[Character]: ...

    # inventory
    def list_inventory(self, character_id: str) -> List[InventoryEntry]: ...

    def upsert_entry(self, entry: InventoryEntry) -> InventoryEntry: ...

    def remove_entry(self, character_id: str, item_id: str) -> None: ...

    # endings ledger
    def record_ending_seen(self, user_id: str, campaign_id: str, node_id: str, seen_at: datetime) -> bool: ...

    def list_endings_seen(self, user_id: str, campaign_id: str | None = None) -> List[EndingSeen]: ...

    # campaign counters
    def increment_play_count(self, campaign_id: str) -> int: ...

    def get_play_count(self, campaign_id: str) -> int: ...

    # trades
    def create_trade(self, offer: TradeOffer) -> TradeOffer: ...

    def get_trade(self, trade_id: str) -> TradeOffer | None: ...

    def update_trade(self, trade_id: str, patch: Mapping[str, object]) -> TradeOffer: ...

    def list_trades(self, session_id: str) -> List[TradeOffer]: ...

    # free-text action log
    def append_action(self, session_id: str, action: PastAction) -> None: ...

    def list_actions(self, session_id: str, limit: int | None = None) -> List[PastAction]: ...

"""Trade offers exchanged between characters sharing a session."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List

from lorechronicles.core.types import TradeStatus


@dataclass(frozen=True, slots=True)
class TradeItem:
    item_id: str
    quantity: int = 1


@dataclass(slots=True)
class TradeOffer:
    id: str
    session_id: str
    from_character_id: str
    to_character_id: str
    offered_items: List[TradeItem] = field(default_factory=list)
    requested_items: List[TradeItem] = field(default_factory=list)
    status: TradeStatus = "pending"
    message: str | None = None
    created_at: datetime | None = None
    responded_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"

"""Item trades between characters in the same session."""
from __future__ import annotations

import logging
import uuid
from typing import Callable, List, Sequence

from lorechronicles.core.clock import Clock, utc_now
from lorechronicles.data.stores.protocols import GameStore
from lorechronicles.domain.trade import TradeItem, TradeOffer
from lorechronicles.services.errors import InvalidTradeStateError, NotFoundError, RequirementNotMetError
from lorechronicles.services.inventory_service import InventoryService

logger = logging.getLogger("lorechronicles.trade")


class TradeService:
    def __init__(
        self,
        store: GameStore,
        inventory_service: InventoryService,
        *,
        clock: Clock = utc_now,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
    ) -> None:
        self._store = store
        self._inventory = inventory_service
        self._clock = clock
        self._new_id = id_factory

    def create_offer(
        self,
        session_id: str,
        from_character_id: str,
        to_character_id: str,
        offered_items: Sequence[TradeItem],
        requested_items: Sequence[TradeItem] = (),
        message: str | None = None,
    ) -> TradeOffer:
        if from_character_id == to_character_id:
            raise RequirementNotMetError("A character cannot trade with itself.", reason="self_trade")
        if not offered_items and not requested_items:
            raise RequirementNotMetError("A trade needs at least one item.", reason="empty_trade")
        for item in [*offered_items, *requested_items]:
            if item.quantity <= 0:
                raise RequirementNotMetError("Trade quantities must be positive.", reason="invalid_quantity")
        if self._store.get_character(to_character_id) is None:
            raise NotFoundError(f"Unknown character '{to_character_id}'.")
        self._require_holdings(from_character_id, offered_items)

        offer = TradeOffer(
            id=self._new_id(),
            session_id=session_id,
            from_character_id=from_character_id,
            to_character_id=to_character_id,
            offered_items=list(offered_items),
            requested_items=list(requested_items),
            message=message,
            created_at=self._clock(),
        )
        logger.info("Trade %s offered by %s to %s.", offer.id, from_character_id, to_character_id)
        return self._store.create_trade(offer)

    def respond(self, trade_id: str, responder_id: str, accept: bool) -> TradeOffer:
        """Accept or reject a pending offer; only its recipient may answer."""
        with self._store.transaction():
            offer = self._require_pending(trade_id)
            if responder_id != offer.to_character_id:
                raise InvalidTradeStateError("Only the recipient can respond to this trade.")
            if not accept:
                return self._store.update_trade(trade_id, {"status": "rejected", "responded_at": self._clock()})

            sender = self._inventory.load(offer.from_character_id)
            recipient = self._inventory.load(offer.to_character_id)
            for item in offer.offered_items:
                if not sender.remove(item.item_id, item.quantity):
                    raise RequirementNotMetError(
                        f"The offering character no longer has {item.quantity}x {item.item_id}.",
                        reason="missing item",
                    )
                self._inventory.add_to(recipient, item.item_id, item.quantity)
            for item in offer.requested_items:
                if not recipient.remove(item.item_id, item.quantity):
                    raise RequirementNotMetError(
                        f"You do not have {item.quantity}x {item.item_id} to give.",
                        reason="missing item",
                    )
                self._inventory.add_to(sender, item.item_id, item.quantity)
            self._inventory.save(sender)
            self._inventory.save(recipient)
            updated = self._store.update_trade(trade_id, {"status": "accepted", "responded_at": self._clock()})
        logger.info("Trade %s accepted.", trade_id)
        return updated

    def cancel(self, trade_id: str, by_character_id: str) -> TradeOffer:
        with self._store.transaction():
            offer = self._require_pending(trade_id)
            if by_character_id != offer.from_character_id:
                raise InvalidTradeStateError("Only the sender can cancel this trade.")
            return self._store.update_trade(trade_id, {"status": "cancelled", "responded_at": self._clock()})

    def list_offers(self, session_id: str, character_id: str | None = None) -> List[TradeOffer]:
        offers = self._store.list_trades(session_id)
        if character_id is not None:
            offers = [
                offer
                for offer in offers
                if character_id in (offer.from_character_id, offer.to_character_id)
            ]
        return sorted(
            offers,
            key=lambda offer: offer.created_at.timestamp() if offer.created_at else 0.0,
            reverse=True,
        )

    def pending_incoming(self, session_id: str, character_id: str) -> List[TradeOffer]:
        return [
            offer
            for offer in self.list_offers(session_id, character_id)
            if offer.is_pending and offer.to_character_id == character_id
        ]

    def pending_outgoing(self, session_id: str, character_id: str) -> List[TradeOffer]:
        return [
            offer
            for offer in self.list_offers(session_id, character_id)
            if offer.is_pending and offer.from_character_id == character_id
        ]

    def _require_pending(self, trade_id: str) -> TradeOffer:
        offer = self._store.get_trade(trade_id)
        if offer is None:
            raise NotFoundError(f"Unknown trade '{trade_id}'.")
        if not offer.is_pending:
            raise InvalidTradeStateError(f"Trade '{trade_id}' is already {offer.status}.")
        return offer

    def _require_holdings(self, character_id: str, items: Sequence[TradeItem]) -> None:
        inventory = self._inventory.load(character_id)
        for item in items:
            if inventory.count(item.item_id) < item.quantity:
                raise RequirementNotMetError(
                    f"You do not have {item.quantity}x {item.item_id} to offer.",
                    reason="missing item",
                )

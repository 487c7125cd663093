from __future__ import annotations

import logging
from typing import Any, Optional

from .client import BoardStoreClient
from .models import BoardList, BoardSnapshot, Card, MoveDescriptor, ReorderOutcome
from .ordering import next_order
from .reorder import ReorderEngine

logger = logging.getLogger("tackboard.session")


class BoardSession:
    """Holds the snapshot of one open board between gestures.

    Every mutation goes through the store first and then swaps in a new
    snapshot; the snapshot object itself is never edited in place. Drag and
    drop is delegated to a :class:`ReorderEngine`, which publishes its
    optimistic snapshot here before the store answers.
    """

    def __init__(
        self,
        client: BoardStoreClient,
        board_id: int,
        engine: Optional[ReorderEngine] = None,
    ) -> None:
        self.client = client
        self.board_id = board_id
        self.engine = engine or ReorderEngine(client)
        self.snapshot = BoardSnapshot(board_id=board_id)

    def _publish(self, snapshot: BoardSnapshot) -> None:
        self.snapshot = snapshot

    def _list(self, list_id: int) -> BoardList:
        lst = self.snapshot.find_list(list_id)
        if lst is None:
            raise KeyError(f"list {list_id} is not on board {self.board_id}")
        return lst

    def _card(self, card_id: int) -> Card:
        card = self.snapshot.find_card(card_id)
        if card is None:
            raise KeyError(f"card {card_id} is not on board {self.board_id}")
        return card

    async def load(self) -> BoardSnapshot:
        self._publish(await self.client.get_board_view(self.board_id))
        return self.snapshot

    # === Lists ===
    async def add_list(self, title: str) -> BoardList:
        if not title.strip():
            raise ValueError("list title must not be empty")
        order = next_order(lst.order for lst in self.snapshot.active_lists)
        lst = await self.client.create_list(self.board_id, title, order)
        self._publish(self.snapshot.with_list(lst))
        return lst

    async def rename_list(self, list_id: int, title: str) -> BoardList:
        self._list(list_id)
        lst = await self.client.update_list({"id": list_id, "title": title})
        self._publish(self.snapshot.with_list(lst))
        return lst

    async def toggle_archive_list(self, list_id: int) -> BoardList:
        status = "active" if self._list(list_id).status == "archived" else "archived"
        lst = await self.client.update_list({"id": list_id, "status": status})
        self._publish(self.snapshot.with_list(lst))
        return lst

    async def toggle_delete_list(self, list_id: int) -> BoardList:
        status = "active" if self._list(list_id).status == "deleted" else "deleted"
        lst = await self.client.update_list({"id": list_id, "status": status})
        self._publish(self.snapshot.with_list(lst))
        return lst

    async def permanently_delete_list(self, list_id: int) -> None:
        self._list(list_id)
        await self.client.delete_list(list_id)
        self._publish(self.snapshot.without_list(list_id))
        logger.info("list %s and its cards removed from board %s", list_id, self.board_id)

    # === Cards ===
    async def add_card(self, list_id: int, title: str, **fields: Any) -> Card:
        if not title.strip():
            raise ValueError("card title must not be empty")
        self._list(list_id)
        order = len(self.snapshot.cards_in(list_id))
        card = await self.client.create_card(list_id, title, order=order, **fields)
        self._publish(self.snapshot.with_card(card))
        return card

    async def update_card(self, card_id: int, **fields: Any) -> Card:
        self._card(card_id)
        card = await self.client.update_card({"id": card_id, **fields})
        self._publish(self.snapshot.with_card(card))
        return card

    async def toggle_archive_card(self, card_id: int) -> Card:
        status = "active" if self._card(card_id).status == "archived" else "archived"
        return await self.update_card(card_id, status=status)

    async def toggle_delete_card(self, card_id: int) -> Card:
        status = "active" if self._card(card_id).status == "deleted" else "deleted"
        return await self.update_card(card_id, status=status)

    async def permanently_delete_card(self, card_id: int) -> None:
        self._card(card_id)
        await self.client.delete_card(card_id)
        self._publish(self.snapshot.without_card(card_id))

    # === Drag and drop ===
    async def on_drag_end(self, move: MoveDescriptor) -> ReorderOutcome:
        before = self.snapshot
        try:
            outcome = await self.engine.apply(before, move, on_optimistic=self._publish)
        except BaseException:
            # Never keep an order the store did not confirm.
            self._publish(before)
            raise
        self._publish(outcome.snapshot)
        return outcome

"""Drag-and-drop reordering of lists and cards.

Planning is pure: each ``plan_*`` function takes a snapshot and a move and
returns the optimistic snapshot plus the update payloads that make storage
agree with it. :class:`ReorderEngine` applies a plan against a store and
decides which snapshot the caller keeps.

Lists are renumbered as a whole (``position * ORDER_STEP``); cards only ever
rewrite the dragged card, with ``order`` set to the destination index. Ties
between card orders are resolved by array position in the snapshot.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional, Protocol

from .client import BoardStoreError
from .models import BoardSnapshot, MoveDescriptor, ReorderOutcome
from .ordering import move_item, renumber

logger = logging.getLogger("tackboard.reorder")

Plan = tuple[BoardSnapshot, list[dict[str, Any]]]


class InvalidMove(ValueError):
    """The move does not describe the snapshot it was applied to."""


class Store(Protocol):
    async def update_list(self, payload: dict[str, Any]) -> Any: ...

    async def update_card(self, payload: dict[str, Any]) -> Any: ...


def _check_index(index: int, size: int, what: str) -> None:
    if not 0 <= index < size:
        raise InvalidMove(f"{what} {index} out of range for {size} items")


def _active_list(snapshot: BoardSnapshot, list_id: Optional[int]):
    lst = snapshot.find_list(list_id) if list_id is not None else None
    if lst is None or lst.status != "active":
        raise InvalidMove(f"list {list_id} is not an active list of board {snapshot.board_id}")
    return lst


def validate_source(snapshot: BoardSnapshot, move: MoveDescriptor) -> None:
    """Check that ``move.item_id`` sits at ``move.source_index`` of its container."""
    if move.kind == "list":
        if move.source_container_id != snapshot.board_id:
            raise InvalidMove("lists can only be reordered within their own board")
        sequence = snapshot.active_lists
        where = f"board {snapshot.board_id}"
    elif move.kind == "card":
        list_id = _active_list(snapshot, move.source_container_id).id
        sequence = snapshot.cards_in(list_id)
        where = f"list {list_id}"
    else:
        raise InvalidMove(f"unknown move kind {move.kind!r}")
    _check_index(move.source_index, len(sequence), "source index")
    if sequence[move.source_index].id != move.item_id:
        raise InvalidMove(f"{move.kind} {move.item_id} is not at index {move.source_index} of {where}")


def plan_list_reorder(snapshot: BoardSnapshot, move: MoveDescriptor) -> Plan:
    if move.source_container_id != snapshot.board_id or not move.same_container:
        raise InvalidMove("lists can only be reordered within their own board")
    active = snapshot.active_lists
    _check_index(move.source_index, len(active), "source index")
    _check_index(move.destination_index, len(active), "destination index")
    if active[move.source_index].id != move.item_id:
        raise InvalidMove(f"list {move.item_id} is not at index {move.source_index}")

    reordered = move_item(active, move.source_index, move.destination_index)
    working = snapshot.copy()
    by_id = {lst.id: lst for lst in working.lists}
    calls = []
    for order, lst in zip(renumber(len(reordered)), reordered):
        target = by_id[lst.id]
        if target.order != order:
            target.order = order
            calls.append({"id": target.id, "order": order})
    return working, calls


def plan_card_reorder(snapshot: BoardSnapshot, move: MoveDescriptor) -> Plan:
    list_id = _active_list(snapshot, move.source_container_id).id
    sequence = snapshot.cards_in(list_id)
    _check_index(move.source_index, len(sequence), "source index")
    _check_index(move.destination_index, len(sequence), "destination index")
    if sequence[move.source_index].id != move.item_id:
        raise InvalidMove(f"card {move.item_id} is not at index {move.source_index} of list {list_id}")

    reordered = move_item(sequence, move.source_index, move.destination_index)
    working = snapshot.copy()
    by_id = {card.id: card for card in working.cards}
    # The list's cards keep the array slots they had; only their sequence changes.
    slots = [i for i, card in enumerate(working.cards) if card.list_id == list_id and card.status == "active"]
    for slot, card in zip(slots, reordered):
        working.cards[slot] = by_id[card.id]
    by_id[move.item_id].order = move.destination_index
    return working, [{"id": move.item_id, "order": move.destination_index}]


def plan_card_move(snapshot: BoardSnapshot, move: MoveDescriptor) -> Plan:
    source_id = _active_list(snapshot, move.source_container_id).id
    dest_id = _active_list(snapshot, move.destination_container_id).id
    sequence = snapshot.cards_in(source_id)
    _check_index(move.source_index, len(sequence), "source index")
    if sequence[move.source_index].id != move.item_id:
        raise InvalidMove(f"card {move.item_id} is not at index {move.source_index} of list {source_id}")
    destination = snapshot.cards_in(dest_id)
    _check_index(move.destination_index, len(destination) + 1, "destination index")

    working = snapshot.copy()
    position = next(i for i, card in enumerate(working.cards) if card.id == move.item_id)
    card = working.cards.pop(position)
    card.list_id = dest_id
    card.order = move.destination_index

    neighbours = working.cards_in(dest_id)
    if move.destination_index < len(neighbours):
        anchor = neighbours[move.destination_index].id
        insert_at = next(i for i, c in enumerate(working.cards) if c.id == anchor)
    elif neighbours:
        last = neighbours[-1].id
        insert_at = next(i for i, c in enumerate(working.cards) if c.id == last) + 1
    else:
        insert_at = len(working.cards)
    working.cards.insert(insert_at, card)
    return working, [{"id": move.item_id, "listId": dest_id, "order": move.destination_index}]


class ReorderEngine:
    """Apply drag-and-drop moves optimistically and persist them.

    A failed list reorder always hands back the pre-move snapshot. A failed
    card update keeps the optimistic snapshot (storage and view diverge until
    the next reload) unless ``rollback_cards`` is set.
    """

    def __init__(self, store: Store, rollback_cards: bool = False) -> None:
        self.store = store
        self.rollback_cards = rollback_cards

    async def apply(
        self,
        snapshot: BoardSnapshot,
        move: MoveDescriptor,
        on_optimistic: Optional[Callable[[BoardSnapshot], None]] = None,
    ) -> ReorderOutcome:
        """Plan ``move`` against ``snapshot``, publish it, then persist it.

        ``on_optimistic`` receives the planned snapshot before any store call
        is awaited. Raises :class:`InvalidMove` without touching the store
        when the move does not fit the snapshot.
        """
        if move.destination_index is None:
            validate_source(snapshot, move)
            return ReorderOutcome(ok=True, snapshot=snapshot)
        if move.kind == "list":
            plan = plan_list_reorder
        elif move.kind == "card":
            plan = plan_card_reorder if move.same_container else plan_card_move
        else:
            raise InvalidMove(f"unknown move kind {move.kind!r}")

        attempted, calls = plan(snapshot, move)
        if move.is_noop:
            return ReorderOutcome(ok=True, snapshot=snapshot)
        if on_optimistic is not None:
            on_optimistic(attempted)
        if move.kind == "list":
            return await self._persist_lists(snapshot, attempted, calls)
        return await self._persist_card(snapshot, attempted, calls[0])

    async def _persist_lists(
        self,
        before: BoardSnapshot,
        attempted: BoardSnapshot,
        calls: list[dict[str, Any]],
    ) -> ReorderOutcome:
        if not calls:
            return ReorderOutcome(ok=True, snapshot=attempted, attempted=attempted)
        results = await asyncio.gather(
            *(self.store.update_list(payload) for payload in calls),
            return_exceptions=True,
        )
        failures = [result for result in results if isinstance(result, BaseException)]
        for failure in failures:
            if not isinstance(failure, BoardStoreError):
                raise failure
        if failures:
            logger.warning(
                "list reorder on board %s: %d of %d updates failed, restoring previous order "
                "(%d rows may already hold the new order)",
                before.board_id,
                len(failures),
                len(calls),
                len(calls) - len(failures),
            )
            return ReorderOutcome(ok=False, snapshot=before, attempted=attempted, calls=calls, error=failures[0])
        return ReorderOutcome(ok=True, snapshot=attempted, attempted=attempted, calls=calls)

    async def _persist_card(
        self,
        before: BoardSnapshot,
        attempted: BoardSnapshot,
        payload: dict[str, Any],
    ) -> ReorderOutcome:
        try:
            await self.store.update_card(payload)
        except BoardStoreError as exc:
            kept = before if self.rollback_cards else attempted
            logger.warning(
                "card %s update failed (%s); %s",
                payload["id"],
                exc,
                "restoring previous order" if self.rollback_cards else "keeping local order",
            )
            return ReorderOutcome(ok=False, snapshot=kept, attempted=attempted, calls=[payload], error=exc)
        return ReorderOutcome(ok=True, snapshot=attempted, attempted=attempted, calls=[payload])

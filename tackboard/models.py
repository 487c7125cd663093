from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from .schemas import CardOut, ListOut

# === Snapshot objects mirrored from the store ===


@dataclass
class BoardList:
    id: int
    board_id: int
    title: str
    order: int
    status: str = "active"
    archived_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> BoardList:
        out = ListOut.model_validate(data)
        return cls(
            id=out.id,
            board_id=out.boardId,
            title=out.title,
            order=out.order,
            status=out.status,
            archived_at=out.archivedAt,
            deleted_at=out.deletedAt,
            created_at=out.createdAt,
        )


@dataclass
class Card:
    id: int
    list_id: int
    title: str
    order: int
    status: str = "active"
    description: Optional[str] = None
    priority: str = "low"
    due_date: Optional[datetime] = None
    estimated_time: Optional[int] = None
    archived_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    label_ids: list[int] = field(default_factory=list)

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> Card:
        out = CardOut.model_validate(data)
        return cls(
            id=out.id,
            list_id=out.listId,
            title=out.title,
            order=out.order,
            status=out.status,
            description=out.description,
            priority=out.priority,
            due_date=out.dueDate,
            estimated_time=out.estimatedTime,
            archived_at=out.archivedAt,
            deleted_at=out.deletedAt,
            created_at=out.createdAt,
            label_ids=[label.id for label in out.labels],
        )


@dataclass
class BoardSnapshot:
    """In-memory copy of one board's lists and cards.

    Array position is meaningful: cards render in array order within their
    list, and lists sharing an ``order`` value keep their array order.
    """

    board_id: int
    lists: list[BoardList] = field(default_factory=list)
    cards: list[Card] = field(default_factory=list)
    title: str = ""

    @property
    def active_lists(self) -> list[BoardList]:
        return sorted((lst for lst in self.lists if lst.status == "active"), key=lambda lst: lst.order)

    @property
    def archived_lists(self) -> list[BoardList]:
        return [lst for lst in self.lists if lst.status == "archived"]

    @property
    def deleted_lists(self) -> list[BoardList]:
        return [lst for lst in self.lists if lst.status == "deleted"]

    @property
    def archived_cards(self) -> list[Card]:
        return [card for card in self.cards if card.status == "archived"]

    @property
    def deleted_cards(self) -> list[Card]:
        return [card for card in self.cards if card.status == "deleted"]

    def cards_in(self, list_id: int) -> list[Card]:
        """Active cards of a list in render order."""
        return [card for card in self.cards if card.list_id == list_id and card.status == "active"]

    def find_list(self, list_id: int) -> Optional[BoardList]:
        return next((lst for lst in self.lists if lst.id == list_id), None)

    def find_card(self, card_id: int) -> Optional[Card]:
        return next((card for card in self.cards if card.id == card_id), None)

    def copy(self) -> BoardSnapshot:
        return copy.deepcopy(self)

    def with_list(self, updated: BoardList) -> BoardSnapshot:
        """Copy with ``updated`` replacing the list of the same id, or appended."""
        out = self.copy()
        for i, lst in enumerate(out.lists):
            if lst.id == updated.id:
                out.lists[i] = updated
                return out
        out.lists.append(updated)
        return out

    def with_card(self, updated: Card) -> BoardSnapshot:
        out = self.copy()
        for i, card in enumerate(out.cards):
            if card.id == updated.id:
                out.cards[i] = updated
                return out
        out.cards.append(updated)
        return out

    def without_list(self, list_id: int) -> BoardSnapshot:
        """Copy with a list and all of its cards removed."""
        out = self.copy()
        out.lists = [lst for lst in out.lists if lst.id != list_id]
        out.cards = [card for card in out.cards if card.list_id != list_id]
        return out

    def without_card(self, card_id: int) -> BoardSnapshot:
        out = self.copy()
        out.cards = [card for card in out.cards if card.id != card_id]
        return out


# === Drag and drop ===


@dataclass(frozen=True)
class MoveDescriptor:
    """One completed drag gesture.

    Indices are positions in the rendered sequence: active lists by order for
    ``kind == "list"``, a list's active cards for ``kind == "card"``. A
    ``destination_index`` of ``None`` means the item was dropped outside any
    target.
    """

    kind: str  # list|card
    item_id: int
    source_index: int
    destination_index: Optional[int]
    source_container_id: int
    destination_container_id: Optional[int] = None

    @property
    def same_container(self) -> bool:
        return self.destination_container_id in (None, self.source_container_id)

    @property
    def is_noop(self) -> bool:
        return self.destination_index is None or (
            self.same_container and self.source_index == self.destination_index
        )


@dataclass
class ReorderOutcome:
    ok: bool
    snapshot: BoardSnapshot
    attempted: Optional[BoardSnapshot] = None
    calls: list[dict[str, Any]] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def rolled_back(self) -> bool:
        return not self.ok and self.attempted is not None and self.snapshot is not self.attempted

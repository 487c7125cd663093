from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, Optional, Union

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from .db import (
    Board,
    Card,
    Label,
    ListModel,
    Template,
    TemplateCard,
    TemplateList,
    now_utc,
)
from .ordering import next_order
from .utils import day_window, status_timestamps

logger = logging.getLogger("tackboard.store")

SearchHit = Union[Board, ListModel, Card]


class NotFound(LookupError):
    """Raised when an operation targets a row that does not exist."""

    def __init__(self, code: str) -> None:
        super().__init__(code)
        self.code = code


def _apply_status(entity: Any, status: str) -> None:
    entity.status = status
    for column, value in status_timestamps(status, now_utc()).items():
        setattr(entity, column, value)


class Storage:
    """Relational store for boards, lists, cards, labels and templates.

    One instance wraps one SQLAlchemy session; every mutating call commits.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def _get(self, model: type, ident: int, code: str) -> Any:
        entity = self.session.get(model, ident)
        if entity is None:
            raise NotFound(code)
        return entity

    def _commit(self, *entities: Any) -> None:
        self.session.commit()
        for entity in entities:
            self.session.refresh(entity)

    # === Board operations ===
    def list_boards(self) -> list[tuple[Board, int, int]]:
        """All boards newest first, with active list and active card counts."""
        boards = self.session.scalars(
            select(Board)
            .options(selectinload(Board.lists).selectinload(ListModel.cards))
            .order_by(Board.created_at.desc(), Board.id.desc())
        ).all()
        out = []
        for board in boards:
            active = [lst for lst in board.lists if lst.status == "active"]
            cards = sum(1 for lst in active for card in lst.cards if card.status == "active")
            out.append((board, len(active), cards))
        return out

    def get_board(self, board_id: int) -> Board:
        return self._get(Board, board_id, "board_not_found")

    def create_board(
        self,
        title: str,
        description: Optional[str],
        template_id: Optional[int] = None,
    ) -> Board:
        if template_id is not None:
            return self.instantiate_template(template_id, title, description)
        board = Board(title=title.strip(), description=description)
        self.session.add(board)
        self._commit(board)
        return board

    def update_board(self, board_id: int, **changes: Any) -> Board:
        board = self.get_board(board_id)
        if changes.get("title") is not None:
            board.title = changes["title"].strip()
        if "description" in changes:
            board.description = changes["description"]
        if changes.get("status") is not None:
            _apply_status(board, changes["status"])
        self._commit(board)
        return board

    def get_board_view(self, board_id: int) -> tuple[Board, list[ListModel], list[Card]]:
        """Board with every list and card it owns, each sorted by ``(order, id)``."""
        board = self.get_board(board_id)
        if board.status != "active":
            raise NotFound("board_not_found")
        lists = self.lists_for_board(board_id)
        cards = self.session.scalars(
            select(Card)
            .join(Card.parent_list)
            .where(ListModel.board_id == board_id)
            .options(selectinload(Card.labels))
            .order_by(Card.order, Card.id)
        ).all()
        return board, list(lists), list(cards)

    def delete_board(self, board_id: int) -> None:
        board = self.get_board(board_id)
        for template in self.session.scalars(select(Template).where(Template.source_board_id == board_id)):
            template.source_board_id = None
        self.session.delete(board)
        self.session.commit()
        logger.info("board %s permanently deleted", board_id)

    # === Label operations ===
    def list_labels(self, board_id: int) -> list[Label]:
        return list(
            self.session.scalars(
                select(Label).where(Label.board_id == board_id).order_by(Label.created_at, Label.id)
            )
        )

    def create_label(self, board_id: int, name: str, color: str) -> Label:
        self.get_board(board_id)
        label = Label(board_id=board_id, name=name, color=color)
        self.session.add(label)
        self._commit(label)
        return label

    def update_label(self, label_id: int, name: str, color: str) -> Label:
        label = self._get(Label, label_id, "label_not_found")
        label.name = name
        label.color = color
        self._commit(label)
        return label

    def delete_label(self, label_id: int) -> None:
        label = self._get(Label, label_id, "label_not_found")
        self.session.delete(label)
        self.session.commit()

    # === List operations ===
    def get_list(self, list_id: int) -> ListModel:
        return self._get(ListModel, list_id, "list_not_found")

    def lists_for_board(self, board_id: int) -> list[ListModel]:
        return list(
            self.session.scalars(
                select(ListModel).where(ListModel.board_id == board_id).order_by(ListModel.order, ListModel.id)
            )
        )

    def create_list(self, board_id: int, title: str, order: Optional[int] = None) -> ListModel:
        self.get_board(board_id)
        if order is None:
            order = next_order(
                lst.order for lst in self.lists_for_board(board_id) if lst.status == "active"
            )
        lst = ListModel(board_id=board_id, title=title.strip(), order=order)
        self.session.add(lst)
        self._commit(lst)
        return lst

    def update_list(self, list_id: int, **changes: Any) -> ListModel:
        lst = self.get_list(list_id)
        if changes.get("title") is not None:
            lst.title = changes["title"].strip()
        if changes.get("order") is not None:
            lst.order = changes["order"]
        if changes.get("status") is not None:
            _apply_status(lst, changes["status"])
        self._commit(lst)
        return lst

    def soft_delete_list(self, list_id: int) -> ListModel:
        """Mark a list and every card in it as deleted."""
        lst = self.get_list(list_id)
        for card in lst.cards:
            _apply_status(card, "deleted")
        _apply_status(lst, "deleted")
        self._commit(lst)
        return lst

    def delete_list(self, list_id: int) -> None:
        lst = self.get_list(list_id)
        self.session.delete(lst)
        self.session.commit()
        logger.info("list %s permanently deleted", list_id)

    # === Card operations ===
    def get_card(self, card_id: int) -> Card:
        return self._get(Card, card_id, "card_not_found")

    def create_card(
        self,
        list_id: int,
        title: str,
        description: Optional[str] = None,
        priority: str = "low",
        order: Optional[int] = None,
        due_date: Optional[Any] = None,
        estimated_time: Optional[int] = None,
    ) -> Card:
        lst = self.get_list(list_id)
        if order is None:
            order = len(lst.cards)
        card = Card(
            list_id=list_id,
            title=title.strip(),
            description=description,
            priority=priority,
            order=order,
            due_date=due_date,
            estimated_time=estimated_time,
        )
        self.session.add(card)
        self._commit(card)
        return card

    def update_card(self, card_id: int, **changes: Any) -> Card:
        card = self.get_card(card_id)
        if changes.get("list_id") is not None:
            card.list_id = self.get_list(changes["list_id"]).id
        for field in ("title", "priority", "order"):
            if changes.get(field) is not None:
                setattr(card, field, changes[field])
        for field in ("description", "due_date", "estimated_time"):
            if field in changes:
                setattr(card, field, changes[field])
        if changes.get("status") is not None:
            _apply_status(card, changes["status"])
        if changes.get("label_ids") is not None:
            card.labels = self._labels_for_card(card, changes["label_ids"])
        self._commit(card)
        return card

    def _labels_for_card(self, card: Card, label_ids: Iterable[int]) -> list[Label]:
        board_id = self.get_list(card.list_id).board_id
        wanted = set(label_ids)
        labels = list(self.session.scalars(select(Label).where(Label.id.in_(wanted), Label.board_id == board_id)))
        if len(labels) != len(wanted):
            raise NotFound("label_not_found")
        return labels

    def soft_delete_card(self, card_id: int) -> Card:
        card = self.get_card(card_id)
        _apply_status(card, "deleted")
        self._commit(card)
        return card

    def delete_card(self, card_id: int) -> None:
        card = self.get_card(card_id)
        self.session.delete(card)
        self.session.commit()
        logger.info("card %s permanently deleted", card_id)

    # === Template operations ===
    def list_templates(self) -> list[Template]:
        return list(
            self.session.scalars(
                select(Template)
                .options(selectinload(Template.lists).selectinload(TemplateList.cards))
                .order_by(Template.created_at, Template.id)
            )
        )

    def get_template(self, template_id: int) -> Template:
        return self._get(Template, template_id, "template_not_found")

    def create_template(self, board_id: int, name: str, description: Optional[str]) -> Template:
        """Copy a board's active lists and their active cards into a new template."""
        board = self.get_board(board_id)
        template = Template(name=name, description=description, source_board_id=board.id)
        for lst in board.lists:
            if lst.status != "active":
                continue
            template.lists.append(
                TemplateList(
                    title=lst.title,
                    order=lst.order,
                    cards=[
                        TemplateCard(
                            title=card.title,
                            description=card.description,
                            priority=card.priority,
                            order=card.order,
                            estimated_time=card.estimated_time,
                        )
                        for card in lst.cards
                        if card.status == "active"
                    ],
                )
            )
        self.session.add(template)
        self._commit(template)
        return template

    def update_template(self, template_id: int, **changes: Any) -> Template:
        template = self.get_template(template_id)
        if changes.get("name") is not None:
            template.name = changes["name"]
        if "description" in changes:
            template.description = changes["description"]
        self._commit(template)
        return template

    def delete_template(self, template_id: int) -> None:
        template = self.get_template(template_id)
        self.session.delete(template)
        self.session.commit()

    def instantiate_template(self, template_id: int, title: str, description: Optional[str]) -> Board:
        template = self.get_template(template_id)
        board = Board(title=title.strip(), description=description)
        for tlist in template.lists:
            board.lists.append(
                ListModel(
                    title=tlist.title,
                    order=tlist.order,
                    cards=[
                        Card(
                            title=tcard.title,
                            description=tcard.description,
                            priority=tcard.priority,
                            order=tcard.order,
                            estimated_time=tcard.estimated_time,
                        )
                        for tcard in tlist.cards
                    ],
                )
            )
        self.session.add(board)
        self._commit(board)
        logger.info("board %s created from template %s", board.id, template_id)
        return board

    # === Search ===
    def search(
        self,
        query: str,
        kind: str = "all",
        priority: Optional[str] = None,
        due_date: Optional[date] = None,
        label_ids: Optional[list[int]] = None,
    ) -> list[SearchHit]:
        """Free-text search over active boards, lists and cards.

        Exact (case-insensitive) title matches sort first, then newest first.
        The priority, due date and label filters only narrow card hits.
        """
        hits: list[SearchHit] = []
        if kind in ("all", "board"):
            hits.extend(
                self.session.scalars(
                    select(Board).where(
                        or_(
                            Board.title.contains(query, autoescape=True),
                            Board.description.contains(query, autoescape=True),
                        ),
                        Board.status == "active",
                    )
                )
            )
        if kind in ("all", "list"):
            hits.extend(
                self.session.scalars(
                    select(ListModel)
                    .join(ListModel.board)
                    .where(
                        ListModel.title.contains(query, autoescape=True),
                        ListModel.status == "active",
                        Board.status == "active",
                    )
                    .options(selectinload(ListModel.board))
                )
            )
        if kind in ("all", "card"):
            stmt = (
                select(Card)
                .join(Card.parent_list)
                .join(ListModel.board)
                .where(
                    or_(
                        Card.title.contains(query, autoescape=True),
                        Card.description.contains(query, autoescape=True),
                    ),
                    Card.status == "active",
                    ListModel.status == "active",
                    Board.status == "active",
                )
                .options(selectinload(Card.labels), selectinload(Card.parent_list).selectinload(ListModel.board))
            )
            if priority and priority != "all":
                stmt = stmt.where(Card.priority == priority)
            if due_date is not None:
                start, end = day_window(due_date)
                stmt = stmt.where(Card.due_date >= start, Card.due_date < end)
            if label_ids:
                stmt = stmt.where(Card.labels.any(Label.id.in_(label_ids)))
            hits.extend(self.session.scalars(stmt))

        needle = query.lower()
        hits.sort(key=lambda hit: (hit.created_at, hit.id), reverse=True)
        hits.sort(key=lambda hit: hit.title.lower() != needle)
        return hits

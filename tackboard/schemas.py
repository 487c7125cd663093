from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

Status = Literal["active", "archived", "deleted"]
Priority = Literal["low", "medium", "high"]


class Health(BaseModel):
    status: str = "ok"


class PasswordIn(BaseModel):
    password: str


# === Boards ===


class BoardIn(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=8000)
    templateId: Optional[int] = None


class BoardPatch(BaseModel):
    id: int
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=8000)
    status: Optional[Status] = None


class BoardCounts(BaseModel):
    lists: int
    cards: int


class BoardOut(BaseModel):
    id: int
    title: str
    description: Optional[str]
    status: Status
    archivedAt: Optional[datetime]
    deletedAt: Optional[datetime]
    createdAt: datetime
    updatedAt: datetime
    counts: Optional[BoardCounts] = None


# === Labels ===


class LabelIn(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    color: str = Field(pattern=r"^#[0-9A-Fa-f]{6}$")


class LabelPatch(LabelIn):
    id: int


class LabelOut(BaseModel):
    id: int
    boardId: int
    name: str
    color: str
    createdAt: datetime


# === Lists ===


class ListIn(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    boardId: int
    order: Optional[int] = None


class ListPatch(BaseModel):
    """Partial list update. Fields left out of the body are not touched.

    ``archivedAt``/``deletedAt`` are accepted for wire compatibility but the
    store always derives them from ``status``.
    """

    id: int
    order: Optional[int] = None
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    status: Optional[Status] = None
    archivedAt: Optional[datetime] = None
    deletedAt: Optional[datetime] = None


class ListOut(BaseModel):
    id: int
    boardId: int
    title: str
    order: int
    status: Status
    archivedAt: Optional[datetime]
    deletedAt: Optional[datetime]
    createdAt: datetime
    updatedAt: datetime


# === Cards ===


class CardIn(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    listId: int
    description: Optional[str] = Field(default=None, max_length=8000)
    priority: Priority = "low"
    order: Optional[int] = None
    dueDate: Optional[datetime] = None
    estimatedTime: Optional[int] = Field(default=None, ge=0)


class CardPatch(BaseModel):
    id: int
    order: Optional[int] = None
    listId: Optional[int] = None
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=8000)
    priority: Optional[Priority] = None
    dueDate: Optional[datetime] = None
    estimatedTime: Optional[int] = Field(default=None, ge=0)
    status: Optional[Status] = None
    archivedAt: Optional[datetime] = None
    deletedAt: Optional[datetime] = None
    labelIds: Optional[list[int]] = None


class CardOut(BaseModel):
    id: int
    listId: int
    title: str
    description: Optional[str]
    priority: Priority
    order: int
    status: Status
    dueDate: Optional[datetime]
    estimatedTime: Optional[int]
    archivedAt: Optional[datetime]
    deletedAt: Optional[datetime]
    createdAt: datetime
    updatedAt: datetime
    labels: list[LabelOut] = []


class BoardView(BaseModel):
    board: BoardOut
    lists: list[ListOut]
    cards: list[CardOut]


# === Templates ===


class TemplateIn(BaseModel):
    boardId: int
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=8000)


class TemplatePatch(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=8000)


class TemplatePatchWithId(TemplatePatch):
    id: int


class TemplateUse(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=8000)


class TemplateCardOut(BaseModel):
    id: int
    title: str
    description: Optional[str]
    priority: Priority
    order: int
    estimatedTime: Optional[int]


class TemplateListOut(BaseModel):
    id: int
    title: str
    order: int
    cards: list[TemplateCardOut]


class SourceBoardOut(BaseModel):
    title: str
    description: Optional[str]


class TemplateOut(BaseModel):
    id: int
    name: str
    description: Optional[str]
    sourceBoardId: Optional[int]
    sourceBoard: Optional[SourceBoardOut] = None
    lists: list[TemplateListOut]
    createdAt: datetime
    updatedAt: datetime


# === Search ===


class SearchResult(BaseModel):
    id: int
    type: Literal["board", "list", "card"]
    title: str
    createdAt: datetime
    boardId: int
    description: Optional[str] = None
    boardTitle: Optional[str] = None
    listId: Optional[int] = None
    listTitle: Optional[str] = None
    priority: Optional[Priority] = None
    dueDate: Optional[datetime] = None
    labels: Optional[list[LabelOut]] = None

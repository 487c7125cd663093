import logging
import time
from contextlib import asynccontextmanager
from datetime import date
from typing import Any, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from . import config
from .auth import login, logout, require_session
from .db import Board, Card, Label, ListModel, Template, get_session, init_db
from .schemas import (
    BoardCounts,
    BoardIn,
    BoardOut,
    BoardPatch,
    BoardView,
    CardIn,
    CardOut,
    CardPatch,
    Health,
    LabelIn,
    LabelOut,
    LabelPatch,
    ListIn,
    ListOut,
    ListPatch,
    PasswordIn,
    SearchResult,
    SourceBoardOut,
    TemplateCardOut,
    TemplateIn,
    TemplateListOut,
    TemplateOut,
    TemplatePatch,
    TemplatePatchWithId,
    TemplateUse,
)
from .storage import NotFound, Storage
from .utils import new_request_id, parse_id, parse_id_list

VERSION = "1.0.0"

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s %(message)s",
)
logger = logging.getLogger("tackboard")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Database ready at %s", config.DATABASE_URL)
    yield


app = FastAPI(title="Tackboard API", version=VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)

authed = [Depends(require_session)]


# === Middleware & error handlers ===


@app.middleware("http")
async def request_log_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or new_request_id()
    request.state.request_id = request_id
    start = time.perf_counter()
    response = await call_next(request)
    duration = time.perf_counter() - start
    response.headers["X-Request-ID"] = request_id
    logger.info(
        "%s %s -> %s (%.3fs) [rid=%s]",
        request.method,
        request.url.path,
        response.status_code,
        duration,
        request_id[:8],
    )
    return response


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"detail": exc.code})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "type": str(err.get("type", "unknown")),
            "loc": list(err.get("loc", [])),
            "msg": str(err.get("msg", "")),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={"detail": errors, "request_id": getattr(request.state, "request_id", None)},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "request_id": getattr(request.state, "request_id", None)},
    )


# === Helpers ===

_SNAKE = {
    "listId": "list_id",
    "dueDate": "due_date",
    "estimatedTime": "estimated_time",
    "labelIds": "label_ids",
}


def get_storage(session: Session = Depends(get_session)) -> Storage:
    return Storage(session)


def changes_from(payload: BaseModel) -> dict[str, Any]:
    """Fields the client actually sent, renamed to column names.

    ``id`` and the client-supplied timestamps are dropped; the store derives
    timestamps from ``status``.
    """
    sent = payload.model_dump(exclude_unset=True, exclude={"id", "archivedAt", "deletedAt"})
    return {_SNAKE.get(key, key): value for key, value in sent.items()}


def require_id(raw: Optional[str], what: str) -> int:
    ident = parse_id(raw)
    if ident is None:
        raise HTTPException(status_code=400, detail=f"Invalid {what} ID")
    return ident


def board_out(board: Board, counts: Optional[tuple[int, int]] = None) -> BoardOut:
    return BoardOut(
        id=board.id,
        title=board.title,
        description=board.description,
        status=board.status,
        archivedAt=board.archived_at,
        deletedAt=board.deleted_at,
        createdAt=board.created_at,
        updatedAt=board.updated_at,
        counts=BoardCounts(lists=counts[0], cards=counts[1]) if counts else None,
    )


def list_out(lst: ListModel) -> ListOut:
    return ListOut(
        id=lst.id,
        boardId=lst.board_id,
        title=lst.title,
        order=lst.order,
        status=lst.status,
        archivedAt=lst.archived_at,
        deletedAt=lst.deleted_at,
        createdAt=lst.created_at,
        updatedAt=lst.updated_at,
    )


def label_out(label: Label) -> LabelOut:
    return LabelOut(
        id=label.id,
        boardId=label.board_id,
        name=label.name,
        color=label.color,
        createdAt=label.created_at,
    )


def card_out(card: Card) -> CardOut:
    return CardOut(
        id=card.id,
        listId=card.list_id,
        title=card.title,
        description=card.description,
        priority=card.priority,
        order=card.order,
        status=card.status,
        dueDate=card.due_date,
        estimatedTime=card.estimated_time,
        archivedAt=card.archived_at,
        deletedAt=card.deleted_at,
        createdAt=card.created_at,
        updatedAt=card.updated_at,
        labels=[label_out(label) for label in card.labels],
    )


def template_out(template: Template) -> TemplateOut:
    source = template.source_board
    return TemplateOut(
        id=template.id,
        name=template.name,
        description=template.description,
        sourceBoardId=template.source_board_id,
        sourceBoard=SourceBoardOut(title=source.title, description=source.description) if source else None,
        lists=[
            TemplateListOut(
                id=tlist.id,
                title=tlist.title,
                order=tlist.order,
                cards=[
                    TemplateCardOut(
                        id=tcard.id,
                        title=tcard.title,
                        description=tcard.description,
                        priority=tcard.priority,
                        order=tcard.order,
                        estimatedTime=tcard.estimated_time,
                    )
                    for tcard in tlist.cards
                ],
            )
            for tlist in template.lists
        ],
        createdAt=template.created_at,
        updatedAt=template.updated_at,
    )


def search_out(hit: Any) -> SearchResult:
    if isinstance(hit, Board):
        return SearchResult(
            id=hit.id,
            type="board",
            title=hit.title,
            description=hit.description,
            createdAt=hit.created_at,
            boardId=hit.id,
        )
    if isinstance(hit, ListModel):
        return SearchResult(
            id=hit.id,
            type="list",
            title=hit.title,
            createdAt=hit.created_at,
            boardId=hit.board_id,
            boardTitle=hit.board.title,
        )
    return SearchResult(
        id=hit.id,
        type="card",
        title=hit.title,
        description=hit.description,
        priority=hit.priority,
        dueDate=hit.due_date,
        createdAt=hit.created_at,
        boardId=hit.parent_list.board_id,
        boardTitle=hit.parent_list.board.title,
        listId=hit.list_id,
        listTitle=hit.parent_list.title,
        labels=[label_out(label) for label in hit.labels],
    )


# === Health & auth ===


@app.get("/api/health", response_model=Health)
def health():
    return Health()


@app.get("/api/version")
def version() -> dict:
    return {"version": VERSION}


@app.post("/api/auth/password")
def password_login(payload: PasswordIn, response: Response) -> dict:
    login(response, payload.password)
    return {"ok": True}


@app.post("/api/auth/logout")
def password_logout(response: Response) -> dict:
    logout(response)
    return {"ok": True}


# === Board endpoints ===


@app.get("/api/boards", response_model=list[BoardOut], dependencies=authed)
def list_boards(storage: Storage = Depends(get_storage)):
    return [board_out(board, (lists, cards)) for board, lists, cards in storage.list_boards()]


@app.post("/api/boards", response_model=BoardOut, status_code=201, dependencies=authed)
def create_board(payload: BoardIn, storage: Storage = Depends(get_storage)):
    board = storage.create_board(payload.title, payload.description, payload.templateId)
    return board_out(board)


@app.put("/api/boards", response_model=BoardOut, dependencies=authed)
def update_board(payload: BoardPatch, storage: Storage = Depends(get_storage)):
    board = storage.update_board(payload.id, **changes_from(payload))
    return board_out(board)


@app.get("/api/boards/{board_id}", response_model=BoardView, dependencies=authed)
def get_board(board_id: str, storage: Storage = Depends(get_storage)):
    board, lists, cards = storage.get_board_view(require_id(board_id, "board"))
    return BoardView(
        board=board_out(board),
        lists=[list_out(lst) for lst in lists],
        cards=[card_out(card) for card in cards],
    )


@app.delete("/api/boards/{board_id}", status_code=204, dependencies=authed)
def delete_board(board_id: str, storage: Storage = Depends(get_storage)):
    storage.delete_board(require_id(board_id, "board"))
    return Response(status_code=204)


# === Label endpoints ===


@app.get("/api/boards/{board_id}/labels", response_model=list[LabelOut], dependencies=authed)
def list_labels(board_id: str, storage: Storage = Depends(get_storage)):
    return [label_out(label) for label in storage.list_labels(require_id(board_id, "board"))]


@app.post("/api/boards/{board_id}/labels", response_model=LabelOut, status_code=201, dependencies=authed)
def create_label(board_id: str, payload: LabelIn, storage: Storage = Depends(get_storage)):
    label = storage.create_label(require_id(board_id, "board"), payload.name, payload.color)
    return label_out(label)


@app.put("/api/boards/{board_id}/labels", response_model=LabelOut, dependencies=authed)
def update_label(board_id: str, payload: LabelPatch, storage: Storage = Depends(get_storage)):
    require_id(board_id, "board")
    return label_out(storage.update_label(payload.id, payload.name, payload.color))


@app.delete("/api/boards/{board_id}/labels", status_code=204, dependencies=authed)
def delete_label(board_id: str, labelId: Optional[str] = None, storage: Storage = Depends(get_storage)):
    require_id(board_id, "board")
    if labelId is None:
        raise HTTPException(status_code=400, detail="Label ID is required")
    storage.delete_label(require_id(labelId, "label"))
    return Response(status_code=204)


# === List endpoints ===


@app.get("/api/lists", response_model=list[ListOut], dependencies=authed)
def list_lists(boardId: Optional[str] = None, storage: Storage = Depends(get_storage)):
    if boardId is None:
        raise HTTPException(status_code=400, detail="Board ID is required")
    return [list_out(lst) for lst in storage.lists_for_board(require_id(boardId, "board"))]


@app.post("/api/lists", response_model=ListOut, status_code=201, dependencies=authed)
def create_list(payload: ListIn, storage: Storage = Depends(get_storage)):
    return list_out(storage.create_list(payload.boardId, payload.title, payload.order))


@app.put("/api/lists", response_model=ListOut, dependencies=authed)
def update_list(payload: ListPatch, storage: Storage = Depends(get_storage)):
    return list_out(storage.update_list(payload.id, **changes_from(payload)))


@app.delete("/api/lists", response_model=ListOut, dependencies=authed)
def soft_delete_list(id: Optional[str] = None, storage: Storage = Depends(get_storage)):
    if id is None:
        raise HTTPException(status_code=400, detail="Missing id")
    return list_out(storage.soft_delete_list(require_id(id, "list")))


@app.delete("/api/lists/{list_id}", status_code=204, dependencies=authed)
def delete_list(list_id: str, storage: Storage = Depends(get_storage)):
    storage.delete_list(require_id(list_id, "list"))
    return Response(status_code=204)


# === Card endpoints ===


@app.post("/api/cards", response_model=CardOut, status_code=201, dependencies=authed)
def create_card(payload: CardIn, storage: Storage = Depends(get_storage)):
    card = storage.create_card(
        payload.listId,
        payload.title,
        description=payload.description,
        priority=payload.priority,
        order=payload.order,
        due_date=payload.dueDate,
        estimated_time=payload.estimatedTime,
    )
    return card_out(card)


@app.put("/api/cards", response_model=CardOut, dependencies=authed)
def update_card(payload: CardPatch, storage: Storage = Depends(get_storage)):
    return card_out(storage.update_card(payload.id, **changes_from(payload)))


@app.delete("/api/cards", response_model=CardOut, dependencies=authed)
def soft_delete_card(id: Optional[str] = None, storage: Storage = Depends(get_storage)):
    if id is None:
        raise HTTPException(status_code=400, detail="Missing id")
    return card_out(storage.soft_delete_card(require_id(id, "card")))


@app.delete("/api/cards/{card_id}", status_code=204, dependencies=authed)
def delete_card(card_id: str, storage: Storage = Depends(get_storage)):
    storage.delete_card(require_id(card_id, "card"))
    return Response(status_code=204)


# === Template endpoints ===


@app.get("/api/templates", response_model=list[TemplateOut], dependencies=authed)
def list_templates(storage: Storage = Depends(get_storage)):
    return [template_out(template) for template in storage.list_templates()]


@app.post("/api/templates", response_model=TemplateOut, status_code=201, dependencies=authed)
def create_template(payload: TemplateIn, storage: Storage = Depends(get_storage)):
    return template_out(storage.create_template(payload.boardId, payload.name, payload.description))


@app.put("/api/templates", response_model=TemplateOut, dependencies=authed)
def update_template_by_body(payload: TemplatePatchWithId, storage: Storage = Depends(get_storage)):
    return template_out(storage.update_template(payload.id, **changes_from(payload)))


@app.put("/api/templates/{template_id}", response_model=TemplateOut, dependencies=authed)
def update_template(template_id: str, payload: TemplatePatch, storage: Storage = Depends(get_storage)):
    template = storage.update_template(require_id(template_id, "template"), **changes_from(payload))
    return template_out(template)


@app.delete("/api/templates/{template_id}", status_code=204, dependencies=authed)
def delete_template(template_id: str, storage: Storage = Depends(get_storage)):
    storage.delete_template(require_id(template_id, "template"))
    return Response(status_code=204)


@app.post("/api/templates/{template_id}/use", response_model=BoardOut, status_code=201, dependencies=authed)
def use_template(template_id: str, payload: TemplateUse, storage: Storage = Depends(get_storage)):
    board = storage.instantiate_template(require_id(template_id, "template"), payload.title, payload.description)
    return board_out(board)


# === Search ===


@app.get("/api/search", response_model=list[SearchResult], dependencies=authed)
def search(
    q: Optional[str] = None,
    type: str = "all",
    priority: Optional[str] = None,
    dueDate: Optional[date] = None,
    labels: Optional[str] = None,
    storage: Storage = Depends(get_storage),
):
    if not q:
        raise HTTPException(status_code=400, detail="Search query is required")
    if type not in ("all", "board", "list", "card"):
        raise HTTPException(status_code=400, detail="Invalid search type")
    if priority not in (None, "all", "low", "medium", "high"):
        raise HTTPException(status_code=400, detail="Invalid priority")
    try:
        label_ids = parse_id_list(labels)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid label ID")
    hits = storage.search(q, type, priority=priority, due_date=dueDate, label_ids=label_ids)
    return [search_out(hit) for hit in hits]

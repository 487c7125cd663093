"""Async HTTP client for the Tackboard board store."""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

import httpx

from . import config
from .models import BoardList, BoardSnapshot, Card

logger = logging.getLogger("tackboard.client")


class BoardStoreError(Exception):
    """A board store call failed, either in transport or with a non-2xx answer."""

    def __init__(self, message: str, status_code: Optional[int] = None, detail: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class NotFound(BoardStoreError):
    pass


class BoardStoreClient:
    """Client for the board store API.

    Pass ``transport`` (for example ``httpx.ASGITransport(app=app)``) to talk
    to an in-process app instead of the network.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url or config.TACKBOARD_URL
        self._http = httpx.AsyncClient(base_url=self.base_url, transport=transport, timeout=timeout)

    async def __aenter__(self) -> BoardStoreClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise BoardStoreError(f"{method} {path} failed: {exc}") from exc
        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = response.text
            # Proxies may answer with a bare list or string instead of {"detail": ...}.
            detail = body.get("detail") if isinstance(body, dict) else body
            error_cls = NotFound if response.status_code == 404 else BoardStoreError
            raise error_cls(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
                detail=detail,
            )
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # === Auth ===
    async def login(self, password: str) -> None:
        await self._request("POST", "/api/auth/password", json={"password": password})

    # === Boards ===
    async def list_boards(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/api/boards")

    async def create_board(
        self,
        title: str,
        description: Optional[str] = None,
        template_id: Optional[int] = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"title": title, "description": description}
        if template_id is not None:
            body["templateId"] = template_id
        return await self._request("POST", "/api/boards", json=body)

    async def update_board(self, board_id: int, **fields: Any) -> dict[str, Any]:
        return await self._request("PUT", "/api/boards", json={"id": board_id, **fields})

    async def delete_board(self, board_id: int) -> None:
        await self._request("DELETE", f"/api/boards/{board_id}")

    async def get_board_view(self, board_id: int) -> BoardSnapshot:
        data = await self._request("GET", f"/api/boards/{board_id}")
        return BoardSnapshot(
            board_id=data["board"]["id"],
            title=data["board"]["title"],
            lists=[BoardList.from_wire(item) for item in data["lists"]],
            cards=[Card.from_wire(item) for item in data["cards"]],
        )

    # === Lists ===
    async def create_list(self, board_id: int, title: str, order: Optional[int] = None) -> BoardList:
        body: dict[str, Any] = {"boardId": board_id, "title": title}
        if order is not None:
            body["order"] = order
        return BoardList.from_wire(await self._request("POST", "/api/lists", json=body))

    async def update_list(self, payload: dict[str, Any]) -> BoardList:
        """Partial update; ``payload`` must carry ``id`` plus the fields to change."""
        return BoardList.from_wire(await self._request("PUT", "/api/lists", json=payload))

    async def soft_delete_list(self, list_id: int) -> BoardList:
        return BoardList.from_wire(await self._request("DELETE", "/api/lists", params={"id": list_id}))

    async def delete_list(self, list_id: int) -> None:
        await self._request("DELETE", f"/api/lists/{list_id}")

    # === Cards ===
    async def create_card(self, list_id: int, title: str, **fields: Any) -> Card:
        body = {"listId": list_id, "title": title, **fields}
        return Card.from_wire(await self._request("POST", "/api/cards", json=body))

    async def update_card(self, payload: dict[str, Any]) -> Card:
        """Partial update; ``payload`` must carry ``id`` plus the fields to change."""
        return Card.from_wire(await self._request("PUT", "/api/cards", json=payload))

    async def soft_delete_card(self, card_id: int) -> Card:
        return Card.from_wire(await self._request("DELETE", "/api/cards", params={"id": card_id}))

    async def delete_card(self, card_id: int) -> None:
        await self._request("DELETE", f"/api/cards/{card_id}")

    # === Labels ===
    async def list_labels(self, board_id: int) -> list[dict[str, Any]]:
        return await self._request("GET", f"/api/boards/{board_id}/labels")

    async def create_label(self, board_id: int, name: str, color: str) -> dict[str, Any]:
        return await self._request("POST", f"/api/boards/{board_id}/labels", json={"name": name, "color": color})

    async def delete_label(self, board_id: int, label_id: int) -> None:
        await self._request("DELETE", f"/api/boards/{board_id}/labels", params={"labelId": label_id})

    # === Templates ===
    async def list_templates(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/api/templates")

    async def create_template(self, board_id: int, name: str, description: Optional[str] = None) -> dict[str, Any]:
        body = {"boardId": board_id, "name": name, "description": description}
        return await self._request("POST", "/api/templates", json=body)

    async def use_template(self, template_id: int, title: str, description: Optional[str] = None) -> dict[str, Any]:
        body = {"title": title, "description": description}
        return await self._request("POST", f"/api/templates/{template_id}/use", json=body)

    # === Search ===
    async def search(
        self,
        query: str,
        kind: str = "all",
        priority: Optional[str] = None,
        due_date: Optional[date] = None,
        label_ids: Optional[list[int]] = None,
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"q": query, "type": kind}
        if priority:
            params["priority"] = priority
        if due_date is not None:
            params["dueDate"] = due_date.isoformat()
        if label_ids:
            params["labels"] = ",".join(str(i) for i in label_ids)
        return await self._request("GET", "/api/search", params=params)

def test_new_list_goes_after_active_lists(client, board):
    created = client.post("/api/lists", json={"boardId": board["board"], "title": "Review"})
    assert created.status_code == 201
    assert created.json()["order"] == 3000


def test_new_list_ignores_inactive_orders(client, board):
    client.put("/api/lists", json={"id": board["Done"], "status": "archived"})
    created = client.post("/api/lists", json={"boardId": board["board"], "title": "Review"}).json()
    assert created["order"] == 2000


def test_first_list_starts_at_zero(client):
    board_id = client.post("/api/boards", json={"title": "Empty"}).json()["id"]
    created = client.post("/api/lists", json={"boardId": board_id, "title": "Backlog"}).json()
    assert created["order"] == 0


def test_create_list_on_unknown_board_is_404(client):
    response = client.post("/api/lists", json={"boardId": 42, "title": "Nowhere"})
    assert response.status_code == 404
    assert response.json() == {"detail": "board_not_found"}


def test_lists_require_board_id(client):
    response = client.get("/api/lists")
    assert response.status_code == 400
    assert response.json() == {"detail": "Board ID is required"}


def test_lists_sorted_by_order(client, board):
    client.put("/api/lists", json={"id": board["To Do"], "order": 5000})
    lists = client.get("/api/lists", params={"boardId": board["board"]}).json()
    assert [lst["title"] for lst in lists] == ["Doing", "Done", "To Do"]


def test_partial_update_leaves_other_fields(client, board):
    updated = client.put("/api/lists", json={"id": board["Doing"], "order": 0}).json()
    assert updated["order"] == 0
    assert updated["title"] == "Doing"
    assert updated["status"] == "active"


def test_archive_and_restore_list(client, board):
    archived = client.put("/api/lists", json={"id": board["Doing"], "status": "archived"}).json()
    assert archived["archivedAt"] is not None and archived["deletedAt"] is None
    restored = client.put("/api/lists", json={"id": board["Doing"], "status": "active"}).json()
    assert restored["archivedAt"] is None and restored["deletedAt"] is None


def test_update_unknown_list_is_404(client):
    response = client.put("/api/lists", json={"id": 12345, "order": 0})
    assert response.status_code == 404
    assert response.json() == {"detail": "list_not_found"}


def test_invalid_status_is_rejected(client, board):
    response = client.put("/api/lists", json={"id": board["Doing"], "status": "gone"})
    assert response.status_code == 422


def test_soft_delete_marks_list_and_cards(client, board):
    response = client.delete("/api/lists", params={"id": board["To Do"]})
    assert response.status_code == 200
    assert response.json()["status"] == "deleted"
    assert response.json()["deletedAt"] is not None

    view = client.get(f"/api/boards/{board['board']}").json()
    statuses = {card["title"]: card["status"] for card in view["cards"]}
    assert statuses == {"C1": "deleted", "C2": "deleted", "C3": "deleted", "D1": "active", "D2": "active"}


def test_soft_delete_requires_id(client):
    response = client.delete("/api/lists")
    assert response.status_code == 400
    assert response.json() == {"detail": "Missing id"}


def test_hard_delete_removes_cards(client, board):
    assert client.delete(f"/api/lists/{board['To Do']}").status_code == 204
    view = client.get(f"/api/boards/{board['board']}").json()
    assert [lst["title"] for lst in view["lists"]] == ["Doing", "Done"]
    assert [card["title"] for card in view["cards"]] == ["D1", "D2"]
    assert client.delete(f"/api/lists/{board['To Do']}").status_code == 404


def test_hard_delete_invalid_id(client):
    assert client.delete("/api/lists/not-a-number").status_code == 400

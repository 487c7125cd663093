import pytest


@pytest.fixture
def template(client, board):
    client.put("/api/lists", json={"id": board["Done"], "status": "archived"})
    client.put("/api/cards", json={"id": board["C3"], "status": "deleted"})
    response = client.post(
        "/api/templates",
        json={"boardId": board["board"], "name": "Sprint", "description": "Two week sprint"},
    )
    assert response.status_code == 201
    return response.json()


def test_template_copies_active_lists_and_cards(template, board):
    assert template["sourceBoardId"] == board["board"]
    assert template["sourceBoard"] == {"title": "Project Board", "description": None}
    assert [tl["title"] for tl in template["lists"]] == ["To Do", "Doing"]
    assert [tc["title"] for tc in template["lists"][0]["cards"]] == ["C1", "C2"]
    assert [tc["title"] for tc in template["lists"][1]["cards"]] == ["D1", "D2"]


def test_list_templates(client, template):
    templates = client.get("/api/templates").json()
    assert [t["id"] for t in templates] == [template["id"]]


def test_template_from_unknown_board_is_404(client):
    response = client.post("/api/templates", json={"boardId": 404, "name": "Nope"})
    assert response.status_code == 404


def test_use_template_creates_board(client, template):
    response = client.post(f"/api/templates/{template['id']}/use", json={"title": "Sprint 12"})
    assert response.status_code == 201
    created = response.json()
    assert created["title"] == "Sprint 12"

    view = client.get(f"/api/boards/{created['id']}").json()
    assert [lst["title"] for lst in view["lists"]] == ["To Do", "Doing"]
    assert sorted(card["title"] for card in view["cards"]) == ["C1", "C2", "D1", "D2"]
    assert all(card["status"] == "active" for card in view["cards"])


def test_create_board_from_template_id(client, template):
    created = client.post("/api/boards", json={"title": "From template", "templateId": template["id"]}).json()
    view = client.get(f"/api/boards/{created['id']}").json()
    assert len(view["lists"]) == 2


def test_rename_template_by_path_and_body(client, template):
    renamed = client.put(f"/api/templates/{template['id']}", json={"name": "Sprint v2"}).json()
    assert renamed["name"] == "Sprint v2"
    assert renamed["description"] == "Two week sprint"

    renamed = client.put("/api/templates", json={"id": template["id"], "description": None}).json()
    assert renamed["name"] == "Sprint v2"
    assert renamed["description"] is None


def test_delete_template(client, template):
    assert client.delete(f"/api/templates/{template['id']}").status_code == 204
    assert client.get("/api/templates").json() == []
    response = client.post(f"/api/templates/{template['id']}/use", json={"title": "Late"})
    assert response.status_code == 404
    assert response.json() == {"detail": "template_not_found"}


def test_template_survives_source_board_deletion(client, template, board):
    client.delete(f"/api/boards/{board['board']}")
    [kept] = client.get("/api/templates").json()
    assert kept["sourceBoardId"] is None
    assert kept["sourceBoard"] is None
    assert len(kept["lists"]) == 2

import pytest

from tackboard.client import NotFound
from tackboard.models import MoveDescriptor
from tackboard.reorder import ReorderEngine
from tackboard.session import BoardSession


def titles(lists):
    return [lst.title for lst in lists]


async def open_session(store_client, board):
    session = BoardSession(store_client, board["board"])
    await session.load()
    return session


@pytest.mark.asyncio
async def test_load(store_client, board):
    session = await open_session(store_client, board)
    assert session.snapshot.title == "Project Board"
    assert titles(session.snapshot.active_lists) == ["To Do", "Doing", "Done"]
    assert [card.title for card in session.snapshot.cards_in(board["To Do"])] == ["C1", "C2", "C3"]


@pytest.mark.asyncio
async def test_list_drag_is_persisted(store_client, board):
    session = await open_session(store_client, board)
    move = MoveDescriptor("list", board["Done"], 2, 0, board["board"], board["board"])

    outcome = await session.on_drag_end(move)

    assert outcome.ok
    assert session.snapshot is outcome.snapshot
    reloaded = await store_client.get_board_view(board["board"])
    assert titles(reloaded.active_lists) == ["Done", "To Do", "Doing"]
    assert [lst.order for lst in reloaded.active_lists] == [0, 1000, 2000]


@pytest.mark.asyncio
async def test_card_drag_across_lists_is_persisted(store_client, board):
    session = await open_session(store_client, board)
    move = MoveDescriptor("card", board["C1"], 0, 1, board["To Do"], board["Doing"])

    outcome = await session.on_drag_end(move)

    assert outcome.ok
    assert [c.title for c in session.snapshot.cards_in(board["Doing"])] == ["D1", "C1", "D2"]
    reloaded = await store_client.get_board_view(board["board"])
    assert [c.title for c in reloaded.cards_in(board["Doing"])] == ["D1", "C1", "D2"]
    assert [c.title for c in reloaded.cards_in(board["To Do"])] == ["C2", "C3"]


@pytest.mark.asyncio
async def test_card_drag_within_list_stores_destination_index(store_client, board):
    session = await open_session(store_client, board)
    move = MoveDescriptor("card", board["C1"], 0, 2, board["To Do"], board["To Do"])

    await session.on_drag_end(move)

    assert [c.title for c in session.snapshot.cards_in(board["To Do"])] == ["C2", "C3", "C1"]
    reloaded = await store_client.get_board_view(board["board"])
    assert reloaded.find_card(board["C1"]).order == 2
    assert reloaded.find_card(board["C2"]).order == 1


@pytest.mark.asyncio
async def test_list_drag_rolls_back_when_a_list_is_gone(store_client, client, board):
    session = await open_session(store_client, board)
    # Another client removes a list the open session still shows.
    assert client.delete(f"/api/lists/{board['Doing']}").status_code == 204
    move = MoveDescriptor("list", board["Done"], 2, 0, board["board"], board["board"])

    outcome = await session.on_drag_end(move)

    assert not outcome.ok
    assert isinstance(outcome.error, NotFound)
    assert titles(session.snapshot.active_lists) == ["To Do", "Doing", "Done"]
    assert [lst.order for lst in session.snapshot.active_lists] == [0, 1000, 2000]


@pytest.mark.asyncio
async def test_add_list_and_card(store_client, board):
    session = await open_session(store_client, board)

    review = await session.add_list("Review")
    card = await session.add_card(board["To Do"], "C4", priority="high")

    assert review.order == 3000
    assert titles(session.snapshot.active_lists)[-1] == "Review"
    assert card.order == 3
    assert card.priority == "high"
    assert session.snapshot.cards_in(board["To Do"])[-1].id == card.id


@pytest.mark.asyncio
async def test_blank_titles_are_rejected_locally(store_client, board):
    session = await open_session(store_client, board)
    with pytest.raises(ValueError):
        await session.add_list("   ")
    with pytest.raises(ValueError):
        await session.add_card(board["To Do"], "")


@pytest.mark.asyncio
async def test_archive_toggle_round_trip(store_client, board):
    session = await open_session(store_client, board)

    archived = await session.toggle_archive_list(board["Doing"])
    assert archived.status == "archived"
    assert archived.archived_at is not None
    assert titles(session.snapshot.active_lists) == ["To Do", "Done"]
    assert titles(session.snapshot.archived_lists) == ["Doing"]

    restored = await session.toggle_archive_list(board["Doing"])
    assert restored.status == "active"
    assert restored.archived_at is None


@pytest.mark.asyncio
async def test_card_toggles(store_client, board):
    session = await open_session(store_client, board)

    await session.toggle_delete_card(board["C2"])
    assert [c.title for c in session.snapshot.deleted_cards] == ["C2"]
    await session.toggle_archive_card(board["C2"])
    assert [c.title for c in session.snapshot.archived_cards] == ["C2"]
    assert session.snapshot.deleted_cards == []


@pytest.mark.asyncio
async def test_permanently_delete_list(store_client, board):
    session = await open_session(store_client, board)

    await session.permanently_delete_list(board["To Do"])

    assert session.snapshot.find_list(board["To Do"]) is None
    assert session.snapshot.find_card(board["C1"]) is None
    reloaded = await store_client.get_board_view(board["board"])
    assert reloaded.find_card(board["C1"]) is None


@pytest.mark.asyncio
async def test_update_card_labels(store_client, board):
    session = await open_session(store_client, board)
    label = await store_client.create_label(board["board"], "bug", "#ff0000")

    card = await session.update_card(board["D1"], labelIds=[label["id"]], estimatedTime=30)

    assert card.label_ids == [label["id"]]
    assert session.snapshot.find_card(board["D1"]).estimated_time == 30


@pytest.mark.asyncio
async def test_unknown_items_raise_key_error(store_client, board):
    session = await open_session(store_client, board)
    with pytest.raises(KeyError):
        await session.rename_list(999, "Ghost")
    with pytest.raises(KeyError):
        await session.permanently_delete_card(999)


@pytest.mark.asyncio
async def test_unexpected_error_after_publish_restores_snapshot(store_client, board):
    class BrokenStore:
        async def update_list(self, payload):
            raise RuntimeError("bug in store adapter")

        async def update_card(self, payload):
            raise RuntimeError("bug in store adapter")

    session = BoardSession(store_client, board["board"], engine=ReorderEngine(BrokenStore()))
    before = await session.load()
    move = MoveDescriptor("list", board["Done"], 2, 0, board["board"], board["board"])

    with pytest.raises(RuntimeError):
        await session.on_drag_end(move)

    assert session.snapshot is before
    assert titles(session.snapshot.active_lists) == ["To Do", "Doing", "Done"]

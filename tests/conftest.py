import os

os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTH_PASSWORD"] = "test-password"

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from tackboard.client import BoardStoreClient
from tackboard.db import Base, get_session
from tackboard.main import app

PASSWORD = "test-password"


@pytest.fixture
def db_engine(tmp_path):
    # File-backed so concurrent requests served from worker threads each get
    # their own connection.
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(autouse=True)
def override_session(session_factory):
    def _get_test_session():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_session] = _get_test_session
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def anon_client():
    return TestClient(app)


@pytest.fixture
def client():
    client = TestClient(app)
    response = client.post("/api/auth/password", json={"password": PASSWORD})
    assert response.status_code == 200
    return client


@pytest.fixture
def board(client):
    """A board with three lists (orders 0/1000/2000) and a few cards.

    Returns ids keyed by title.
    """
    ids = {"board": client.post("/api/boards", json={"title": "Project Board"}).json()["id"]}
    for title in ("To Do", "Doing", "Done"):
        ids[title] = client.post("/api/lists", json={"boardId": ids["board"], "title": title}).json()["id"]
    for order, title in enumerate(("C1", "C2", "C3")):
        ids[title] = client.post(
            "/api/cards", json={"listId": ids["To Do"], "title": title, "order": order}
        ).json()["id"]
    for order, title in enumerate(("D1", "D2")):
        ids[title] = client.post(
            "/api/cards", json={"listId": ids["Doing"], "title": title, "order": order}
        ).json()["id"]
    return ids


@pytest_asyncio.fixture
async def store_client():
    transport = httpx.ASGITransport(app=app)
    async with BoardStoreClient(base_url="http://testserver", transport=transport) as client:
        await client.login(PASSWORD)
        yield client

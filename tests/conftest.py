import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine

from locallibrary.config import Settings
from locallibrary.core import create_app

TEST_SECRET = "test-secret"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'library.db'}",
        jwt_secret=TEST_SECRET,
        environment="test",
    )


@pytest.fixture
def session(settings):
    engine = create_engine(
        settings.database_url, connect_args={"check_same_thread": False}
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as dbsession:
        yield dbsession
    engine.dispose()


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def register(client):
    """Register an account and return its auth headers and user id"""

    def _register(email="reader@mail.com", password="pw1", name=None):
        resp = client.post(
            "/api/register",
            json={"email": email, "password": password, "name": name},
        )
        assert resp.status_code == 200, resp.text
        body = resp.json()
        return {"Authorization": f"Bearer {body['token']}"}, body["user"]["id"]

    return _register

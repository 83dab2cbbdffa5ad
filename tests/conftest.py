import pytest

from app import create_app
from model import db

PASSWORD = "Secret123"


@pytest.fixture()
def app():
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret",
            "SQLALCHEMY_DATABASE_URI": "sqlite://",
            "LOG_LEVEL": "DEBUG",
        }
    )
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


def register(client, username):
    resp = client.post(
        "/auth/register",
        json={
            "email": f"{username}@example.com",
            "username": username,
            "password": PASSWORD,
            "passwordConfirm": PASSWORD,
        },
    )
    assert resp.status_code == 201, resp.get_json()
    body = resp.get_json()
    return body["user"]["id"], {"Authorization": f"Bearer {body['token']}"}


@pytest.fixture()
def alice(client):
    return register(client, "alice")


@pytest.fixture()
def bob(client):
    return register(client, "bob")


@pytest.fixture()
def make_task(client):
    def _make(headers, **fields):
        fields.setdefault("title", "Task")
        resp = client.post("/tasks", json=fields, headers=headers)
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()

    return _make

import os

# must be set before models is imported: the storage engine is built at import time
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from flask import has_app_context

from api import create_app
from models import storage
from models.base_model import Base
from models.post import Post
from models.user import User
from utils.security import hash_password


@pytest.fixture(scope="session")
def app():
    return create_app("test")


@pytest.fixture(autouse=True)
def reset_database():
    # Drop all tables and recreate them before each test
    storage.close()
    engine = storage.get_engine()
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    storage.close()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield


def _in_context(app, fn):
    if has_app_context():
        return fn()
    with app.app_context():
        return fn()


@pytest.fixture
def make_user(app):
    def _make(email="alice@example.com", password="password123", username="alice", **extra):
        def create():
            user = User(username=username, email=email, password_hash=hash_password(password), **extra)
            storage.new(user)
            storage.save()
            return user
        return _in_context(app, create)
    return _make


@pytest.fixture
def make_post(app):
    def _make(owner, content="hello world", like_count=0):
        def create():
            post = Post(user_id=owner.id, content=content, like_count=like_count)
            storage.new(post)
            storage.save()
            return post
        return _in_context(app, create)
    return _make


@pytest.fixture
def login(client):
    """POST /auth/login and return the JSON body (asserting success)."""
    def _login(email="alice@example.com", password="password123"):
        resp = client.post("/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.get_json()
        return resp.get_json()
    return _login


@pytest.fixture
def auth_headers(login):
    def _headers(email="alice@example.com", password="password123"):
        return {"Authorization": f"Bearer {login(email, password)['accessToken']}"}
    return _headers

"""Shared fixtures: a throwaway SQLite store, the API app and authenticated users."""

import pytest
from fastapi.testclient import TestClient

from services import users as user_service
from services.api.app import create_app
from utils.config import settings
from utils.db import Store
from utils.schemas import UserCreate
from utils.security import issue_token

PASSWORD = "Secret123"


@pytest.fixture
def store(tmp_path):
    store = Store(path=str(tmp_path / "storefront.db"), retry_delay=0)
    store.init_schema()
    return store


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(path))
    return path


@pytest.fixture
def app(store):
    return create_app(store=store)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def make_user(store):
    """Create a user row directly; approved unless told otherwise."""
    counter = {"n": 0}

    def _make_user(role="learner", approved=True, **overrides):
        counter["n"] += 1
        data = {
            "first_name": "Ada",
            "last_name": "Lovelace",
            "email": f"user{counter['n']}@example.com",
            "password": PASSWORD,
            "address": "12 Analytical Engine Way",
            "role": role,
        }
        data.update(overrides)
        user = user_service.create_user(store, UserCreate(**data))
        if approved:
            user = user_service.set_approval(store, user["id"], "approved")
        return user

    return _make_user


def auth_header(user):
    return {"Authorization": f"Bearer {issue_token(user)}"}


@pytest.fixture
def headers_for():
    return auth_header


@pytest.fixture
def admin(make_user):
    return make_user(role="admin", first_name="Grace", last_name="Hopper")


@pytest.fixture
def customer(make_user):
    return make_user(role="learner")


@pytest.fixture
def admin_headers(admin):
    return auth_header(admin)


@pytest.fixture
def customer_headers(customer):
    return auth_header(customer)

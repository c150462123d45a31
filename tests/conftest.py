"""Shared fixtures: an in-memory SQLite store and logged-in test clients."""
from collections.abc import Callable, Generator
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from loguru import logger
from sqlalchemy import StaticPool
from sqlmodel import create_engine

import repository
from db import Store, create_db_and_tables, get_store
from main import app
from models import Fundraiser, Role, User
from passwords import hash_password
from tests.utils import PASSWORD, login


@pytest.fixture(name="store")
def store_fixture() -> Generator[Store, None, None]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    store = Store(engine)
    create_db_and_tables(store)
    yield store
    engine.dispose()


@pytest.fixture(name="client_factory")
def client_factory_fixture(store: Store) -> Generator[Callable[[], TestClient], None, None]:
    app.dependency_overrides[get_store] = lambda: store
    yield lambda: TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(name="client")
def client_fixture(client_factory) -> TestClient:
    """Anonymous client."""
    return client_factory()


@pytest.fixture
def make_user(store: Store) -> Callable[..., User]:
    def _make(
        username: str,
        role: Role = Role.user,
        password: str = PASSWORD,
        email: Optional[str] = None,
    ) -> User:
        user = User(
            open_id=f"local:{username}",
            username=username,
            email=email or f"{username}@example.com",
            name=username,
            role=role,
            login_method="password",
        )
        return repository.create_user(store, user, hash_password(password))

    return _make


@pytest.fixture
def admin_user(make_user) -> User:
    return make_user("admin", role=Role.admin)


@pytest.fixture
def fundraiser_user(make_user) -> User:
    return make_user("fundraiser")


@pytest.fixture
def admin_client(client_factory, admin_user) -> TestClient:
    client = client_factory()
    login(client, admin_user.username)
    return client


@pytest.fixture
def user_client(client_factory, fundraiser_user) -> TestClient:
    client = client_factory()
    login(client, fundraiser_user.username)
    return client


@pytest.fixture
def fundraiser(store: Store, fundraiser_user: User) -> Fundraiser:
    return repository.create_fundraiser(
        store,
        {
            "user_id": fundraiser_user.id,
            "first_name": "Fay",
            "last_name": "Raiser",
            "email": "f@x.com",
        },
    )


@pytest.fixture
def log_messages() -> Generator[list, None, None]:
    """Messages logged through loguru while the test runs."""
    messages: list = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]))
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def dispatched(monkeypatch) -> list:
    """Record notifications scheduled by the routers instead of running them."""
    calls: list = []

    def _record(notify, *args):
        calls.append((notify.__name__, args))
        return True

    monkeypatch.setattr("routers.machines.dispatch", _record)
    monkeypatch.setattr("routers.redemptions.dispatch", _record)
    return calls

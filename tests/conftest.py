"""Shared pytest fixtures for the test suite.

Import any of these in a test file by simply declaring the fixture name as a
parameter; pytest discovers them automatically from this conftest.py.

Fixture overview
----------------
config        : default configuration pointed at an in-memory database and
                a temporary backup/output directory
database      : in-memory SQLite database with all tables created
session       : seeded session (chart of accounts, admin, sample catalog)
admin         : the seeded admin user
make_user     : factory that registers a user with a given role
product       : one seeded product with stock
client        : FastAPI TestClient signed in as the admin
login_as      : signs another user in and returns their auth header
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from fbms.backend.api.app import create_app
from fbms.backend.core.utils.config import get_default_config
from fbms.backend.db.models import Product, User
from fbms.backend.db.seed import ADMIN_EMAIL, DEFAULT_ADMIN_PASSWORD, seed_database
from fbms.backend.db.session import Database
from fbms.backend.schemas.auth import RegisterIn
from fbms.backend.services import auth

TEST_PASSWORD = "Secret@123"

# ── Configuration & database ─────────────────────────────────────────────────


@pytest.fixture
def config(tmp_path: Path) -> dict:
    cfg = get_default_config()
    cfg["database"]["url"] = "sqlite://"
    cfg["backup"]["directory"] = str(tmp_path / "backups")
    cfg["output_dir"] = str(tmp_path / "outputs")
    return cfg


@pytest.fixture
def database() -> Iterator[Database]:
    db = Database("sqlite://")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def session(database: Database, config: dict) -> Iterator[Session]:
    """Seeded session; changes are flushed but never committed."""
    s = database.session()
    seed_database(s, config)
    yield s
    s.rollback()
    s.close()


# ── Users ─────────────────────────────────────────────────────────────────────


@pytest.fixture
def admin(session: Session) -> User:
    user = auth.get_user_by_email(session, ADMIN_EMAIL)
    assert user is not None
    return user


@pytest.fixture
def make_user(session: Session) -> Callable[[str], User]:
    """Register ``<role>N@fbms.local`` with :data:`TEST_PASSWORD`."""
    counter = {"n": 0}

    def factory(role: str) -> User:
        counter["n"] += 1
        data = RegisterIn(
            email=f"{role}{counter['n']}@fbms.local",
            password=TEST_PASSWORD,
            first_name=role.title(),
            last_name=f"User{counter['n']}",
            role=role,
        )
        return auth.register(session, data)

    return factory


# ── Catalog ───────────────────────────────────────────────────────────────────


@pytest.fixture
def product(session: Session) -> Product:
    """Ligo Sardines: price 24.00, cost 19.00, 100 in stock."""
    return session.scalar(select(Product).where(Product.sku == "CAN-LIGO-155"))


# ── API ───────────────────────────────────────────────────────────────────────


@pytest.fixture
def api_database(config: dict) -> Iterator[Database]:
    db = Database("sqlite://")
    db.create_all()
    with db.session_scope() as s:
        seed_database(s, config)
    yield db
    db.dispose()


@pytest.fixture
def anon_client(config: dict, api_database: Database) -> Iterator[TestClient]:
    app = create_app(config, api_database)
    with TestClient(app) as c:
        yield c


def _login(client: TestClient, email: str, password: str) -> dict[str, str]:
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def client(anon_client: TestClient) -> TestClient:
    anon_client.headers.update(_login(anon_client, ADMIN_EMAIL, DEFAULT_ADMIN_PASSWORD))
    return anon_client


@pytest.fixture
def login_as(anon_client: TestClient) -> Callable[[str, str], dict[str, str]]:
    """Sign in and return the Authorization header for that user."""

    def do_login(email: str, password: str = TEST_PASSWORD) -> dict[str, str]:
        return _login(anon_client, email, password)

    return do_login

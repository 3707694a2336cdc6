# ruff: noqa: E402
import os
from typing import Any

import pytest

# Set testing environment flags before importing the app or settings
os.environ["APP_ENV"] = "test"
os.environ.setdefault("TEST_DATABASE_URL", "sqlite:///./tests/test.db")
os.environ["AUTO_CREATE_SCHEMA"] = "1"

from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from minilove.core.config import settings, with_shipped_driver
from minilove.core.database import Base, get_db
from minilove.core.database.session import json_dumps
from minilove.core.database.seed import seed_defaults
from minilove.main import app
from minilove import models
from minilove.modules.users.models import MembershipLevel, UserRole
from minilove.oauth2 import create_access_token
from tests.testclient import TestClient

API = settings.api_prefix


class AttrDict(dict):
    """Dict with attribute-style access for fixtures."""

    def __getattr__(self, item: str) -> Any:
        try:
            return self[item]
        except KeyError as exc:
            raise AttributeError(item) from exc


test_db_url = settings.get_database_url(use_test=True)

# Safety: never run tests against a non-test Postgres database.
_parsed_url = make_url(test_db_url)
if _parsed_url.drivername.startswith("postgresql") and not (
    _parsed_url.database or ""
).endswith("_test"):
    raise RuntimeError(
        f"Refusing to run tests against non-test database '{_parsed_url.database}'. "
        "Set TEST_DATABASE_URL to a dedicated *_test database."
    )


def _init_test_engine():
    engine_kwargs = {"echo": False, "json_serializer": json_dumps}
    if _parsed_url.drivername.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if _parsed_url.database and _parsed_url.database != ":memory:":
            os.makedirs(os.path.dirname(_parsed_url.database) or ".", exist_ok=True)
    return create_engine(with_shipped_driver(test_db_url), **engine_kwargs)


engine = _init_test_engine()
import minilove.models.registry  # noqa: F401

Base.metadata.drop_all(bind=engine)
Base.metadata.create_all(bind=engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def _clear_tables():
    with engine.begin() as connection:
        if engine.dialect.name == "sqlite":
            for table in reversed(Base.metadata.sorted_tables):
                connection.execute(table.delete())
        else:
            table_names = ", ".join(
                f'"{tbl.name}"' for tbl in Base.metadata.sorted_tables
            )
            connection.execute(text(f"TRUNCATE {table_names} RESTART IDENTITY CASCADE"))


# Autouse cleanup to keep DB isolated across all tests, including those that
# do not explicitly request the session fixture.
@pytest.fixture(autouse=True, scope="function")
def _clean_db_between_tests():
    _clear_tables()
    yield


@pytest.fixture(scope="function")
def session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def client(session):
    def override_get_db():
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        try:
            yield test_client
        finally:
            app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def seeded(session):
    seed_defaults(session)
    return session


def register_user(client, username, email, password="password123", **extra):
    payload = {"username": username, "email": email, "password": password, **extra}
    res = client.post(f"{API}/auth/register", json=payload)
    assert res.status_code == 201, res.text
    data = res.json()["data"]
    user = AttrDict(data["user"])
    user["password"] = password
    user["token"] = data["token"]
    user["headers"] = {"Authorization": f"Bearer {data['token']}"}
    return user


def _promote(user, **values):
    with TestingSessionLocal() as db:
        db.query(models.User).filter(models.User.id == user["id"]).update(values)
        db.commit()
        db_user = db.query(models.User).filter(models.User.id == user["id"]).one()
        token = create_access_token(db_user)
    user["token"] = token
    user["headers"] = {"Authorization": f"Bearer {token}"}
    return user


@pytest.fixture(scope="function")
def test_user(client):
    return register_user(client, "alice", "alice@example.com")


@pytest.fixture(scope="function")
def test_user2(client):
    return register_user(client, "bob", "bob@example.com")


@pytest.fixture(scope="function")
def token(test_user):
    return test_user["token"]


@pytest.fixture(scope="function")
def authorized_client(client, token):
    client.headers.update({"Authorization": f"Bearer {token}"})
    return client


@pytest.fixture(scope="function")
def admin_user(client):
    user = register_user(client, "admin", "admin@example.com")
    return _promote(user, role=UserRole.ADMIN)


@pytest.fixture(scope="function")
def premium_user(client):
    user = register_user(client, "vip_user", "vip@example.com")
    return _promote(user, membership_level=MembershipLevel.PREMIUM)


def create_post(client, headers, **overrides):
    payload = {
        "title": "A quiet evening",
        "content": "Spent the evening reading by the window.",
        "category": "日常分享",
        "tags": ["reading"],
        **overrides,
    }
    res = client.post(f"{API}/posts", json=payload, headers=headers)
    assert res.status_code == 201, res.text
    return res.json()["data"]["post"]


@pytest.fixture(scope="function")
def test_post(client, test_user):
    return create_post(client, test_user["headers"])


@pytest.fixture(scope="function")
def test_posts(client, test_user, test_user2):
    return [
        create_post(client, test_user["headers"], title="first title", content="first content here"),
        create_post(client, test_user["headers"], title="2nd title", content="second content here"),
        create_post(client, test_user["headers"], title="3rd title", content="third content here"),
        create_post(client, test_user2["headers"], title="bob title", content="content written by bob"),
    ]

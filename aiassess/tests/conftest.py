import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret-for-hs256-signing-at-least-32-bytes")

import uuid
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from aiassess import models  # noqa: F401
from aiassess.api.deps import get_db
from aiassess.main import app
from aiassess.seed.fixtures import FIXTURE_NAMES, load_fixture
from aiassess.seed.service import seed_table
from aiassess.tests.utils import auth_headers


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(engine) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def user_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def user_headers(user_id) -> dict[str, str]:
    return auth_headers(user_id)


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return auth_headers(role="service_role")


@pytest.fixture
def seeded(session) -> dict[str, int]:
    return {name: seed_table(session=session, table=name, rows=load_fixture(name)) for name in FIXTURE_NAMES}

import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("FIELD_CIPHER_KEY", "test-master-key-0123456789abcdef")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import app.models  # noqa: E402,F401
from app.api.deps import get_db  # noqa: E402
from app.db import Base  # noqa: E402
from app.main import app  # noqa: E402
from app.services.scope import Actor, ActorRole  # noqa: E402


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db_session(engine):
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    yield session
    session.rollback()
    session.close()
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture()
def client(db_session):
    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def admin():
    return Actor(id="admin-1", role=ActorRole.admin, ip_address="127.0.0.1")


@pytest.fixture()
def district_actor():
    return Actor(id="district-1", role=ActorRole.district, district_code="D01")


@pytest.fixture()
def local_actor():
    return Actor(
        id="local-1", role=ActorRole.local, district_code="D01", local_code="L001"
    )


@pytest.fixture()
def auth_headers():
    return {"X-Actor-Id": "admin-1", "X-Actor-Role": "admin"}


@pytest.fixture()
def local_headers():
    return {
        "X-Actor-Id": "local-1",
        "X-Actor-Role": "local",
        "X-District-Code": "D01",
        "X-Local-Code": "L001",
    }

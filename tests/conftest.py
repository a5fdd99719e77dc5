from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from adroi.core.db import Base, get_db
from adroi.core.security import hash_password
from adroi.main import app
from adroi.models import Organization, User


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    org_a = Organization(name="Agency A")
    org_b = Organization(name="Agency B")
    db.add_all([org_a, org_b])
    db.flush()

    password = hash_password("pass1234")
    db.add_all(
        [
            User(organization_id=org_a.id, email="admin@test.local", full_name="Admin A", password_hash=password, role="admin"),
            User(organization_id=org_a.id, email="manager@test.local", full_name="Manager A", password_hash=password, role="manager"),
            User(organization_id=org_a.id, email="viewer@test.local", full_name="Viewer A", password_hash=password, role="client"),
            User(organization_id=org_b.id, email="other@test.local", full_name="Admin B", password_hash=password, role="admin"),
            User(email="root@test.local", full_name="Root", password_hash=password, role="super_admin"),
        ]
    )
    db.commit()
    db.close()

    def override_get_db():
        test_db = TestingSessionLocal()
        try:
            yield test_db
        finally:
            test_db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.state.testing_sessionmaker = TestingSessionLocal

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture()
def db(client) -> Generator[Session, None, None]:
    session = app.state.testing_sessionmaker()
    try:
        yield session
    finally:
        session.close()

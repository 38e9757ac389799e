import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DB_LOG_SLOW_QUERIES", "false")

from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from visit_planner.database import Base, get_db
from visit_planner.main import app
from visit_planner.routes.postal_codes import rate_limit_lookup
from visit_planner.services.cep_service import (
    AddressFields,
    PostalCodeResolver,
    get_postal_code_resolver,
)

PAULISTA = AddressFields(
    postal_code="01310100",
    street="Avenida Paulista",
    sublocality="Bela Vista",
    city="São Paulo",
    state="SP",
)


class FakeResolver(PostalCodeResolver):
    """Resolver answering from a dict instead of the directory"""

    def __init__(self, known: Optional[dict] = None):
        super().__init__(cache_backend=None)
        self.known = dict(known or {})
        self.calls: list[str] = []

    async def lookup(self, canonical: str):
        self.calls.append(canonical)
        return self.known.get(canonical)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def resolver():
    return FakeResolver({"01310100": PAULISTA})


@pytest.fixture
def client(db_session, resolver):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_postal_code_resolver] = lambda: resolver
    app.dependency_overrides[rate_limit_lookup] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def paulista():
    return PAULISTA

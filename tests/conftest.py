from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from labextract.database import Base, get_db
from labextract.main import app
from labextract.routers.deps import get_extraction_client, get_storage
from labextract.services.storage import FileStorage
from fakes import FakeExtractor


@pytest.fixture()
def db_session() -> Generator:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)

@pytest.fixture()
def storage(tmp_path) -> FileStorage:
    return FileStorage(root=tmp_path, bucket="test-results")

@pytest.fixture()
def fake_extractor() -> FakeExtractor:
    return FakeExtractor()

@pytest.fixture()
def client(db_session, storage, fake_extractor) -> Generator[TestClient, None, None]:
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_extraction_client] = lambda: fake_extractor

    # Tests use an in-memory DB via dependency override; skip the startup schema check.
    original_startup = list(app.router.on_startup)
    app.router.on_startup.clear()
    with TestClient(app) as test_client:
        yield test_client
    app.router.on_startup[:] = original_startup
    app.dependency_overrides.clear()

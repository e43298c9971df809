import os
import tempfile
from collections.abc import Generator

# settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="blogspace-uploads-"))

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from blogspace.api.deps import get_storage
from blogspace.core.db import create_db_engine
from blogspace.main import app
from blogspace.storage.base import Storage
from blogspace.storage.database import DatabaseStorage
from blogspace.storage.memory import MemStorage


@pytest.fixture(params=["memory", "database"])
def storage(request) -> Generator[Storage, None, None]:
    if request.param == "memory":
        yield MemStorage(seed_tags=[])
        return

    engine = create_db_engine("sqlite://")
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield DatabaseStorage(session)
    engine.dispose()


@pytest.fixture
def client(storage: Storage) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_storage] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()

from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from archboard.api.deps import get_storage
from archboard.core.db import create_db_engine, init_db
from archboard.main import app
from archboard.stores import MemoryStorage, SqlStorage, Storage


@pytest.fixture(params=["memory", "sqlite"])
def storage(request: pytest.FixtureRequest, tmp_path: Path) -> Iterator[Storage]:
    if request.param == "memory":
        yield MemoryStorage()
        return
    engine = create_db_engine(f"sqlite:///{tmp_path / 'archboard.db'}")
    init_db(engine)
    yield SqlStorage(engine)
    engine.dispose()


@pytest.fixture
def client(storage: Storage) -> Iterator[TestClient]:
    app.dependency_overrides[get_storage] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()

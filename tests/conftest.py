from __future__ import annotations

from typing import Iterator

import mongomock
import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from datastore.mongo import ReadingStore
from settings import get_settings


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def collection():
    return mongomock.MongoClient()["esp32_iot"]["sensordatas"]


@pytest.fixture
def store(collection) -> ReadingStore:
    return ReadingStore(collection=collection)


@pytest.fixture
def api_client(store: ReadingStore) -> Iterator[TestClient]:
    app = create_app(store_factory=lambda: store)
    with TestClient(app) as client:
        yield client

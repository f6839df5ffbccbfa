"""Shared fixtures: an in-memory MongoDB, a stub identity provider and an API client."""

from typing import Iterator

import mongomock
import pytest
from fastapi.testclient import TestClient
from pymongo.database import Database

from database import ensure_indexes, get_db
from identity import get_identity_provider
from main import app
from tests.support import StubIdentityProvider


@pytest.fixture
def db() -> Database:
    database = mongomock.MongoClient()["foodieSpaceDB_test"]
    ensure_indexes(database)
    return database


@pytest.fixture
def identity() -> StubIdentityProvider:
    return StubIdentityProvider()


@pytest.fixture
def client(db: Database, identity: StubIdentityProvider) -> Iterator[TestClient]:
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_identity_provider] = lambda: identity
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()

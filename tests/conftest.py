"""Shared fixtures: settings env, an in-memory Mongo database and an API client."""

import os

os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-long-enough-0123456789")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import mongomock
import pytest
from fastapi.testclient import TestClient

from config import get_settings
from database import get_db
from main import app
from repository import ProfileDirectory
from schemas import ProfileType
from security import hash_password

PASSWORD = "s3cret-pass"


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def db():
    return mongomock.MongoClient()["profile_directory_test"]


@pytest.fixture
def directory(db):
    return ProfileDirectory(db)


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def failing_client(db):
    """Client that renders unhandled server errors instead of re-raising them."""
    app.dependency_overrides[get_db] = lambda: db
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture(scope="session")
def password_hash():
    return hash_password(PASSWORD)


class ProfileFactory:
    """Inserts profile documents with sensible listing-ready defaults."""

    def __init__(self, directory: ProfileDirectory, password_hash: str):
        self.directory = directory
        self.password_hash = password_hash
        self.counter = 0
        self.base_time = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(
        self,
        profile_type: ProfileType = ProfileType.ESCORT,
        package: Optional[str] = "basic",
        package_status: str = "active",
        county: str = "Nairobi",
        location: str = "Westlands",
        area: str = "Parklands",
        **fields: Any,
    ) -> Dict[str, Any]:
        self.counter += 1
        data: Dict[str, Any] = {
            "username": f"user{self.counter}",
            "email": f"user{self.counter}@example.com",
            "password": self.password_hash,
            "userType": profile_type,
            "currentPackage": {"packageType": package, "status": package_status},
            "location": {"county": county, "location": location, "area": area},
            "createdAt": self.base_time + timedelta(minutes=self.counter),
        }
        data.update(fields)
        return self.directory[profile_type].insert(**data)


@pytest.fixture
def make_profile(directory, password_hash):
    return ProfileFactory(directory, password_hash)


@pytest.fixture
def stored(directory):
    """Read a raw stored document, bypassing projections."""

    def _stored(profile: Dict[str, Any]) -> Dict[str, Any]:
        return directory[ProfileType(profile["userType"])].collection.find_one({"_id": profile["_id"]})

    return _stored

"""
Shared Test Fixtures

Every test gets a fresh in-memory MongoDB (mongomock) and a blob store rooted
in its own temporary directory, both wired into the app through FastAPI
dependency overrides.
"""

import os
import sys
import tempfile

import mongomock
import pytest
from fastapi.testclient import TestClient

# Configure before the application modules read the environment
os.environ.pop("DATABASE_URL", None)
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["UPLOADS_DIR"] = tempfile.mkdtemp(prefix="blog-uploads-")

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import ensure_indexes, get_db  # noqa: E402
from main import app  # noqa: E402
from storage import BlobStore, get_blob_store  # noqa: E402

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


# =============================================================================
# Infrastructure Fixtures
# =============================================================================

@pytest.fixture
def mongo_db():
    db = mongomock.MongoClient().db
    ensure_indexes(db)
    return db


@pytest.fixture
def blob_store(tmp_path):
    return BlobStore(tmp_path / "uploads")


@pytest.fixture
def client(mongo_db, blob_store):
    app.dependency_overrides[get_db] = lambda: mongo_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    yield TestClient(app)
    app.dependency_overrides.clear()


# =============================================================================
# Data Factories
# =============================================================================

@pytest.fixture
def register_user(client):
    """Register a user and return the response."""
    def _register(name="Alice", email="alice@example.com", password="secret1", password2=None):
        return client.post("/api/users/register", json={
            "name": name,
            "email": email,
            "password": password,
            "password2": password if password2 is None else password2,
        })
    return _register


@pytest.fixture
def login_user(client, register_user):
    """Register and log in a user, returning (user_id, auth headers)."""
    def _login(name="Alice", email="alice@example.com", password="secret1"):
        assert register_user(name=name, email=email, password=password).status_code == 201
        response = client.post("/api/users/login", json={"email": email, "password": password})
        assert response.status_code == 200
        data = response.json()
        return data["id"], {"Authorization": f"Bearer {data['token']}"}
    return _login


@pytest.fixture
def create_post(client):
    """Create a post through the API and return the response."""
    def _create(headers, title="First post", category="Art",
                description="A description long enough", filename="cat.png", content=PNG_BYTES):
        files = {"thumbnail": (filename, content, "image/png")} if filename else None
        return client.post(
            "/api/posts",
            data={"title": title, "category": category, "description": description},
            files=files,
            headers=headers,
        )
    return _create

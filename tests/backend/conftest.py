"""
Backend-specific test fixtures and configuration.

These fixtures extend the global fixtures with helpers for testing the
FastAPI routes against an in-memory store.
"""

import sys
from pathlib import Path

import pytest

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "backend"))


# =============================================================================
# FastAPI Client Fixtures
# =============================================================================

@pytest.fixture
def client():
    """
    TestClient for the app.

    Built without a ``with`` block so the lifespan (which connects to the
    real MongoDB) never runs.
    """
    from fastapi.testclient import TestClient
    from bookshare.main import app

    return TestClient(app)


@pytest.fixture
def api_store():
    """DocumentStore over a fresh mongomock-motor client for route tests."""
    try:
        from mongomock_motor import AsyncMongoMockClient
    except ImportError:
        pytest.skip("mongomock-motor not installed")

    from bookshare.database.transactions import DocumentStore

    return DocumentStore(AsyncMongoMockClient(), "bookshare_api_test", use_transactions=False)


@pytest.fixture
def api_client(api_store):
    """
    TestClient whose routes use ``api_store``.

    Usage in tests:
        def test_something(api_client, register):
            token = register("Alice")
            api_client.get("/api/user/me", headers={"Authorization": f"Bearer {token}"})
    """
    from fastapi.testclient import TestClient
    from bookshare.dependencies.store import get_document_store
    from bookshare.main import app

    async def _override_store():
        return api_store

    app.dependency_overrides[get_document_store] = _override_store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def register(api_client):
    """Factory registering a user through the API and returning their token."""
    def _register(name: str, email: str | None = None, password: str = "secret123") -> str:
        response = api_client.post(
            "/api/auth/register",
            json={
                "name": name,
                "email": email or f"{name.lower()}@example.com",
                "password": password,
                "password_confirm": password,
            },
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]["access_token"]

    return _register

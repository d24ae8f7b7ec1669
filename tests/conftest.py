"""
Global test fixtures for the Bookshare backend.

This module provides shared fixtures for all tests including:
- Mock MongoDB (mongomock-motor) behind a DocumentStore
- Service instances bound to that store
- User / book / forum factories
- A consistency check for the two membership mirrors
"""

import itertools
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
import pytest_asyncio

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))


# =============================================================================
# MongoDB Fixtures (mongomock-motor)
# =============================================================================

@pytest_asyncio.fixture
async def mock_async_mongo_client():
    """
    Create an async mock MongoDB client using mongomock-motor.
    """
    try:
        from mongomock_motor import AsyncMongoMockClient
        client = AsyncMongoMockClient()
        yield client
        client.close()
    except ImportError:
        pytest.skip("mongomock-motor not installed")


@pytest_asyncio.fixture
async def store(mock_async_mongo_client):
    """
    DocumentStore over the mock client.

    mongomock has no sessions, so transactions are switched off; the
    services run the same code path they use against a standalone mongod.
    """
    from bookshare.database.databases.bookshare_db import create_indexes
    from bookshare.database.transactions import DocumentStore

    document_store = DocumentStore(
        mock_async_mongo_client,
        "bookshare_test",
        use_transactions=False,
    )
    await create_indexes(document_store.db)
    yield document_store


@pytest.fixture
def db(store):
    """Raw database handle for asserting on stored documents."""
    return store.db


# =============================================================================
# Service Fixtures
# =============================================================================

@pytest.fixture
def catalog_service(store):
    from bookshare.services.catalog_service import CatalogService
    return CatalogService(store)


@pytest.fixture
def membership_service(store):
    from bookshare.services.membership_service import MembershipService
    return MembershipService(store)


@pytest.fixture
def account_service(store):
    from bookshare.services.account_service import AccountService
    return AccountService(store)


@pytest.fixture
def user_service(store):
    from bookshare.services.user_service import UserService
    return UserService(store)


@pytest.fixture
def auth_service(store):
    from bookshare.services.auth_service import AuthService
    return AuthService(store)


# =============================================================================
# Factories
# =============================================================================

@pytest.fixture
def make_user(db):
    """
    Factory inserting a user document directly.

    Usage:
        alice = await make_user("Alice")
    """
    counter = itertools.count(1)

    async def _make(name: str = "Reader", email: str | None = None) -> str:
        n = next(counter)
        doc = {
            "name": name,
            "email": email or f"reader{n}@example.com",
            "hashed_password": "$2b$12$notarealhashnotarealhashnotarealhashnotarealhashnot",
            "owned_books": [],
            "joined_forums": [],
            "created_at": datetime.now(timezone.utc),
        }
        result = await db.users.insert_one(doc)
        return str(result.inserted_id)

    return _make


@pytest.fixture
def add_book(catalog_service):
    """Factory adding a book to a user's collection through the service."""
    from bookshare.schemas.book import BookCreate

    async def _add(user_id: str, title: str, author: str, genre: str | None = None):
        return await catalog_service.add_owned_book(
            user_id, BookCreate(title=title, author=author, genre=genre)
        )

    return _add


@pytest.fixture
def make_forum(membership_service):
    """Factory creating a forum and optionally joining extra members to it."""
    from bookshare.schemas.forum import ForumCreate

    async def _make(admin_id: str, *member_ids: str, name: str = "Riverside Readers"):
        forum = await membership_service.create_forum(
            admin_id, ForumCreate(name=name, location="Main Street Library")
        )
        for member_id in member_ids:
            await membership_service.join_forum(forum.invite_code, member_id)
        return forum

    return _make


# =============================================================================
# Consistency Checks
# =============================================================================

@pytest.fixture
def check_mirrors(db):
    """
    Assert that ``forums.members`` and ``users.joined_forums`` agree.

    Also checks that no forum has duplicate members and that every
    non-empty forum has at least one admin.
    """
    async def _check():
        forums = await db.forums.find({}).to_list(length=None)
        users = await db.users.find({}).to_list(length=None)

        forum_side = set()
        for forum in forums:
            member_ids = [m["user_id"] for m in forum.get("members", [])]
            assert len(member_ids) == len(set(member_ids)), f"duplicate members in {forum['_id']}"
            if member_ids:
                assert any(m["role"] == "admin" for m in forum["members"]), (
                    f"forum {forum['_id']} has no admin"
                )
            for m in forum.get("members", []):
                forum_side.add((forum["_id"], m["user_id"], m["role"]))

        user_side = set()
        for user in users:
            forum_ids = [e["forum_id"] for e in user.get("joined_forums", [])]
            assert len(forum_ids) == len(set(forum_ids)), f"duplicate forums on {user['_id']}"
            for e in user.get("joined_forums", []):
                user_side.add((e["forum_id"], user["_id"], e["role"]))

        assert forum_side == user_side

    return _check

"""
Fixtures for tests against a real MongoDB replica set.

Set ``BOOKSHARE_TEST_MONGO_URI`` to a replica-set URI, for example
``mongodb://localhost:27017/?replicaSet=rs0``. Without it, or when the
server is unreachable or standalone, these tests are skipped.

The ``store`` fixture here overrides the mongomock one, so the shared
service fixtures and factories run with real multi-document transactions.
"""

import os
import uuid

import pytest
import pytest_asyncio
from pymongo.errors import PyMongoError

MONGO_URI_ENV = "BOOKSHARE_TEST_MONGO_URI"


@pytest_asyncio.fixture
async def replica_set_client():
    uri = os.environ.get(MONGO_URI_ENV)
    if not uri:
        pytest.skip(f"{MONGO_URI_ENV} not set")

    from motor.motor_asyncio import AsyncIOMotorClient

    client = AsyncIOMotorClient(uri, tz_aware=True, serverSelectionTimeoutMS=2000)
    try:
        hello = await client.admin.command("hello")
    except PyMongoError as e:
        client.close()
        pytest.skip(f"MongoDB unreachable: {e}")
    if not hello.get("setName"):
        client.close()
        pytest.skip("MongoDB is not a replica set member")

    yield client
    client.close()


@pytest_asyncio.fixture
async def store(replica_set_client):
    """DocumentStore with transactions on, over a throwaway database."""
    from bookshare.database.databases.bookshare_db import create_indexes
    from bookshare.database.transactions import DocumentStore

    db_name = f"bookshare_it_{uuid.uuid4().hex[:12]}"
    document_store = DocumentStore(replica_set_client, db_name, use_transactions=True)
    await create_indexes(document_store.db)

    yield document_store
    await replica_set_client.drop_database(db_name)

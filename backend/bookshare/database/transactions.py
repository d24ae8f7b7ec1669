"""
Transactional document store adapter.

Every service operation runs inside ``DocumentStore.transaction()``. The
yielded ``Transaction`` exposes the three collections bound to one client
session, so reads and writes issued through it commit or abort together.
"""
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from functools import partial
from typing import Any, AsyncIterator, Optional

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorClientSession,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pymongo.errors import PyMongoError

from bookshare.core.errors import InternalError
from bookshare.database.databases.bookshare_db import Collections

logger = logging.getLogger(__name__)


class SessionCollection:
    """Collection proxy that passes the transaction's session to every call."""

    def __init__(
        self,
        collection: AsyncIOMotorCollection,
        session: Optional[AsyncIOMotorClientSession],
    ):
        self._collection = collection
        self._session = session

    @property
    def name(self) -> str:
        return self._collection.name

    def __getattr__(self, attr: str) -> Any:
        value = getattr(self._collection, attr)
        if self._session is None or not callable(value):
            return value
        return partial(value, session=self._session)


@dataclass
class Transaction:
    """Session-scoped handle on the users, books and forums collections."""
    db: AsyncIOMotorDatabase
    session: Optional[AsyncIOMotorClientSession] = None
    users: SessionCollection = field(init=False)
    books: SessionCollection = field(init=False)
    forums: SessionCollection = field(init=False)

    def __post_init__(self):
        self.users = SessionCollection(self.db[Collections.USERS], self.session)
        self.books = SessionCollection(self.db[Collections.BOOKS], self.session)
        self.forums = SessionCollection(self.db[Collections.FORUMS], self.session)


class DocumentStore:
    """Opens multi-document transactions against the bookshare database."""

    def __init__(
        self,
        client: AsyncIOMotorClient,
        db_name: str,
        use_transactions: bool = True,
    ):
        self.client = client
        self.db = client[db_name]
        self.use_transactions = use_transactions

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        """
        Run a block as one unit of work.

        The transaction commits when the block exits normally and is aborted
        on any exception, before the exception propagates. Store failures are
        logged and surfaced as ``InternalError``; they are not retried.
        """
        try:
            if not self.use_transactions:
                yield Transaction(self.db)
                return

            async with await self.client.start_session() as session:
                async with session.start_transaction():
                    yield Transaction(self.db, session)
        except PyMongoError as e:
            logger.exception("Transaction aborted by store error")
            raise InternalError("Unexpected database error") from e

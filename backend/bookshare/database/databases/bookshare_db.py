"""
Bookshare database configuration.

Structure:
- users: identity, owned book references, joined forum mirror
- books: content-addressed catalog (normalized title + author)
- forums: forum metadata, member mirror, hidden book set
"""
import logging

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import OperationFailure

logger = logging.getLogger(__name__)


class Collections:
    """Collection names in the bookshare database."""
    USERS = "users"
    BOOKS = "books"
    FORUMS = "forums"

    # Index definitions for each collection
    INDEXES = {
        "users": [
            {"keys": [("email", 1)], "unique": True},
            {"keys": [("owned_books", 1)]},
            {"keys": [("joined_forums.forum_id", 1)]},
        ],
        "books": [
            {"keys": [("title", 1), ("author", 1)]},
        ],
        "forums": [
            {"keys": [("invite_code", 1)], "unique": True},
            {"keys": [("members.user_id", 1)]},
            {"keys": [("hidden_books", 1)]},
        ],
    }


async def create_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create indexes for all bookshare collections."""
    for collection_name, indexes in Collections.INDEXES.items():
        collection = db[collection_name]
        for index_def in indexes:
            keys = index_def["keys"]
            kwargs = {k: v for k, v in index_def.items() if k != "keys"}
            try:
                await collection.create_index(keys, **kwargs)
            except OperationFailure as e:
                # Index might already exist with different options
                logger.warning("Index %s on %s not created: %s", keys, collection_name, e)

"""
Database module - MongoDB connection, collection definitions and the
transactional document store.
"""
from bookshare.database.connections import (
    get_mongo_client,
    close_connections,
    get_database,
)
from bookshare.database.databases import bookshare_db
from bookshare.database.transactions import DocumentStore, Transaction

__all__ = [
    "get_mongo_client",
    "close_connections",
    "get_database",
    "bookshare_db",
    "DocumentStore",
    "Transaction",
]

"""
MongoDB client lifecycle.

One motor client is shared by the whole process; it is created lazily on
first use and closed by the application lifespan.
"""
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from bookshare.config import get_settings

APP_NAME = "bookshare-backend"

_mongo_client: Optional[AsyncIOMotorClient] = None


async def get_mongo_client() -> AsyncIOMotorClient:
    """Get or create the shared client. Datetimes are returned UTC-aware."""
    global _mongo_client
    if _mongo_client is None:
        _mongo_client = AsyncIOMotorClient(
            get_settings().mongo_uri,
            tz_aware=True,
            appname=APP_NAME,
        )
    return _mongo_client


async def close_connections():
    global _mongo_client
    if _mongo_client is not None:
        _mongo_client.close()
        _mongo_client = None


async def get_database(db_name: str | None = None) -> AsyncIOMotorDatabase:
    """The bookshare database, or ``db_name`` when given."""
    client = await get_mongo_client()
    return client[db_name or get_settings().mongo_db_name]

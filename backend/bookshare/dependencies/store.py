"""
Document store dependency.
"""
from bookshare.config import get_settings
from bookshare.database.connections import get_mongo_client
from bookshare.database.transactions import DocumentStore


async def get_document_store() -> DocumentStore:
    """Dependency to get the transactional DocumentStore."""
    settings = get_settings()
    client = await get_mongo_client()
    return DocumentStore(
        client,
        settings.mongo_db_name,
        use_transactions=settings.mongo_transactions,
    )

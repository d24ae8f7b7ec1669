"""
Database definitions and collection constants.
"""
from bookshare.database.databases import bookshare_db

__all__ = ["bookshare_db"]

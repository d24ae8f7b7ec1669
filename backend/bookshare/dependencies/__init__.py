"""
Dependencies for dependency injection in routes.
"""
from bookshare.dependencies.auth import get_current_user, CurrentUser
from bookshare.dependencies.store import get_document_store

__all__ = [
    "get_current_user",
    "CurrentUser",
    "get_document_store",
]

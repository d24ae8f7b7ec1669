"""
API Routers module.
"""
from bookshare.routers import auth, books, forums, health, users

__all__ = ["auth", "books", "forums", "health", "users"]

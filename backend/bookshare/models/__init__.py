"""
Pydantic models for database documents and data structures.
"""
from bookshare.models.user import User, JoinedForum, ForumRole
from bookshare.models.book import identity_filter
from bookshare.models.forum import Forum, ForumMember

__all__ = [
    "User",
    "JoinedForum",
    "ForumRole",
    "identity_filter",
    "Forum",
    "ForumMember",
]

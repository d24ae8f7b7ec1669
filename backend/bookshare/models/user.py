"""
User model for the users collection.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from bookshare.models.common import stringify_ids


class ForumRole(str, Enum):
    """Role of a user inside one forum."""
    ADMIN = "admin"
    MEMBER = "member"


class JoinedForum(BaseModel):
    """User-side mirror entry of a forum membership."""
    forum_id: str = Field(..., description="Forum ObjectId as string")
    role: ForumRole = Field(default=ForumRole.MEMBER)

    model_config = ConfigDict(use_enum_values=True)


class User(BaseModel):
    """
    User document model for the users collection.
    """
    id: Optional[str] = Field(None, alias="_id", description="MongoDB ObjectId as string")
    name: str = Field(..., description="Display name")
    email: EmailStr = Field(..., description="Unique, lowercased email address")
    hashed_password: str = Field(..., description="Bcrypt hashed password")
    owned_books: list[str] = Field(
        default_factory=list,
        description="Book ids owned by this user (set semantics)"
    )
    joined_forums: list[JoinedForum] = Field(
        default_factory=list,
        description="Forums this user belongs to, with role"
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Account creation timestamp"
    )
    updated_at: Optional[datetime] = Field(None, description="Last profile change")

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    @classmethod
    def from_document(cls, doc: dict) -> "User":
        return cls(**stringify_ids(doc))

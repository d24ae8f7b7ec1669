"""
User request/response schemas.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from bookshare.schemas.book import BookResponse


class JoinedForumResponse(BaseModel):
    """One of the user's forums."""
    forum_id: str
    name: Optional[str] = None
    location: Optional[str] = None
    role: str
    member_count: int = 0


class UserProfile(BaseModel):
    """User information response (excludes sensitive data)."""
    id: str = Field(..., description="User ID")
    name: str
    email: EmailStr
    created_at: datetime


class OwnProfile(UserProfile):
    """The caller's own profile with books and forums."""
    owned_books: list[BookResponse] = []
    joined_forums: list[JoinedForumResponse] = []


class PublicProfile(BaseModel):
    """Another user's public profile."""
    id: str
    name: str
    book_count: int


class UserUpdate(BaseModel):
    """Profile update request; absent fields are left untouched."""
    name: Optional[str] = Field(None, max_length=100, description="New display name")
    email: Optional[EmailStr] = Field(None, description="New email address")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().lower() if v is not None else v


class AccountDeletionResult(BaseModel):
    """Summary of an account deletion cascade."""
    user_id: str
    forums_left: list[str] = Field(default=[], description="Forums the user was removed from")
    forums_deleted: list[str] = Field(default=[], description="Forums deleted because the user was the last member")
    successors: dict[str, str] = Field(
        default={},
        description="forum_id -> user_id promoted to admin in the user's place"
    )
    books_deleted: list[str] = Field(default=[], description="Books no other user owned")

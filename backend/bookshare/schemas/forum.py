"""
Forum request/response schemas.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from bookshare.schemas.book import BookResponse


class ForumCreate(BaseModel):
    """Create forum request."""
    name: str = Field(..., max_length=100, description="Forum name")
    location: str = Field(..., max_length=200, description="Where the group meets")
    description: str = Field(default="", max_length=1000, description="Forum description")


class ForumUpdate(BaseModel):
    """
    Partial forum update.

    Only fields present in the request body are applied.
    """
    name: Optional[str] = Field(None, max_length=100)
    location: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    messenger_link: Optional[str] = Field(None, max_length=500)
    invite_code: Optional[str] = Field(None, max_length=64)
    featured_book: Optional[str] = Field(None, max_length=300)


class JoinForumRequest(BaseModel):
    """Join a forum through its invite code."""
    invite_code: str = Field(..., min_length=1, max_length=64)


class MemberResponse(BaseModel):
    """Forum member as shown in the roster."""
    user_id: str
    name: Optional[str] = None
    role: str
    joined_at: Optional[datetime] = None


class ForumBook(BookResponse):
    """Book visible in a forum, with the members who own it."""
    owner_ids: list[str] = []


class ForumResponse(BaseModel):
    """Forum summary."""
    id: str
    name: str
    location: str
    description: str = ""
    messenger_link: Optional[str] = None
    invite_code: str
    featured_book: Optional[str] = None
    member_count: int
    created_at: datetime


class ForumDetails(ForumResponse):
    """Forum with roster and aggregated book collection."""
    role: str = Field(..., description="Requester's role in the forum")
    members: list[MemberResponse] = []
    books: list[ForumBook] = []
    hidden_books: Optional[list[BookResponse]] = Field(
        None,
        description="Only returned to admins"
    )


class MemberDetails(BaseModel):
    """One member's profile as seen from inside a forum."""
    user_id: str
    name: str
    role: str
    books: list[BookResponse] = []


class LeaveResult(BaseModel):
    """Outcome of leaving a forum."""
    forum_id: str
    forum_deleted: bool = False

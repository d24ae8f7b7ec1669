"""
Forum model for the forums collection.
"""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from bookshare.models.common import stringify_ids
from bookshare.models.user import ForumRole


class ForumMember(BaseModel):
    """Forum-side mirror entry of a membership."""
    user_id: str = Field(..., description="Member user id")
    role: ForumRole = Field(default=ForumRole.MEMBER)
    joined_at: Optional[datetime] = None

    model_config = ConfigDict(use_enum_values=True)

    @property
    def is_admin(self) -> bool:
        return self.role == ForumRole.ADMIN.value


class Forum(BaseModel):
    """
    Forum document model.

    Invariants kept by the membership service:
    - no duplicate user ids in ``members``
    - at least one admin whenever ``members`` is non-empty
    """
    id: Optional[str] = Field(None, alias="_id", description="MongoDB ObjectId as string")
    name: str
    location: str
    description: str = ""
    messenger_link: Optional[str] = None
    invite_code: str
    featured_book: Optional[str] = None
    members: list[ForumMember] = Field(default_factory=list)
    hidden_books: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    @classmethod
    def from_document(cls, doc: dict) -> "Forum":
        return cls(**stringify_ids(doc))

    def member(self, user_id: str) -> Optional[ForumMember]:
        for m in self.members:
            if m.user_id == user_id:
                return m
        return None

    def admins(self) -> list[ForumMember]:
        return [m for m in self.members if m.is_admin]

    def others(self, user_id: str) -> list[ForumMember]:
        """Members other than ``user_id``."""
        return [m for m in self.members if m.user_id != user_id]

    def is_sole_admin(self, user_id: str) -> bool:
        admins = self.admins()
        return len(admins) == 1 and admins[0].user_id == user_id

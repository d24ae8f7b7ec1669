"""
Request and response schemas for API endpoints.
"""
from bookshare.schemas.common import ApiResponse
from bookshare.schemas.auth import LoginRequest, RegisterRequest, AuthResult
from bookshare.schemas.book import (
    BookCreate,
    BookUpdate,
    BookResponse,
    BookEditResult,
)
from bookshare.schemas.user import (
    UserProfile,
    OwnProfile,
    PublicProfile,
    UserUpdate,
    JoinedForumResponse,
    AccountDeletionResult,
)
from bookshare.schemas.forum import (
    ForumCreate,
    ForumUpdate,
    JoinForumRequest,
    ForumResponse,
    ForumDetails,
    ForumBook,
    MemberResponse,
    MemberDetails,
    LeaveResult,
)

__all__ = [
    "ApiResponse",
    # Auth
    "LoginRequest",
    "RegisterRequest",
    "AuthResult",
    # Book
    "BookCreate",
    "BookUpdate",
    "BookResponse",
    "BookEditResult",
    # User
    "UserProfile",
    "OwnProfile",
    "PublicProfile",
    "UserUpdate",
    "JoinedForumResponse",
    "AccountDeletionResult",
    # Forum
    "ForumCreate",
    "ForumUpdate",
    "JoinForumRequest",
    "ForumResponse",
    "ForumDetails",
    "ForumBook",
    "MemberResponse",
    "MemberDetails",
    "LeaveResult",
]

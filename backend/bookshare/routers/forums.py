"""
Forums router for forum lifecycle, membership and curation.
"""
from fastapi import APIRouter, Depends, status

from bookshare.database.transactions import DocumentStore
from bookshare.dependencies.auth import CurrentUser
from bookshare.dependencies.store import get_document_store
from bookshare.schemas.book import BookResponse
from bookshare.schemas.common import ApiResponse
from bookshare.schemas.forum import (
    ForumCreate,
    ForumDetails,
    ForumResponse,
    ForumUpdate,
    JoinForumRequest,
    LeaveResult,
    MemberDetails,
    MemberResponse,
)
from bookshare.services.membership_service import MembershipService

router = APIRouter(prefix="/api/forum", tags=["Forums"])


async def get_membership_service(
    store: DocumentStore = Depends(get_document_store),
) -> MembershipService:
    """Dependency to get MembershipService instance."""
    return MembershipService(store)


# ==================== Forum actions ====================


@router.post(
    "",
    response_model=ApiResponse[ForumResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create forum",
)
async def create_forum(
    body: ForumCreate,
    current_user: CurrentUser,
    membership_service: MembershipService = Depends(get_membership_service),
):
    """
    Create a forum with the caller as admin.

    - **name**: Forum name (required)
    - **location**: Where the group meets (required)
    - **description**: Optional description
    """
    forum = await membership_service.create_forum(current_user.id, body)
    return ApiResponse(message="Forum created successfully", data=forum)


@router.post(
    "/join",
    response_model=ApiResponse[ForumResponse],
    summary="Join forum by invite code",
)
async def join_forum(
    body: JoinForumRequest,
    current_user: CurrentUser,
    membership_service: MembershipService = Depends(get_membership_service),
):
    """Join the forum that owns the given invite code."""
    forum = await membership_service.join_forum(body.invite_code, current_user.id)
    return ApiResponse(message="Joined forum", data=forum)


@router.get(
    "/{forum_id}",
    response_model=ApiResponse[ForumDetails],
    summary="Get forum details",
)
async def get_forum_details(
    forum_id: str,
    current_user: CurrentUser,
    membership_service: MembershipService = Depends(get_membership_service),
):
    """
    Get a forum with its members and shared books.

    Members only. Admins also receive the hidden books.
    """
    details = await membership_service.get_forum_details(forum_id, current_user.id)
    return ApiResponse(message="Forum fetched", data=details)


@router.patch(
    "/{forum_id}",
    response_model=ApiResponse[ForumResponse],
    summary="Edit forum details",
)
async def edit_details(
    forum_id: str,
    body: ForumUpdate,
    current_user: CurrentUser,
    membership_service: MembershipService = Depends(get_membership_service),
):
    """Update any subset of the forum's details (admin only)."""
    forum = await membership_service.edit_forum_details(forum_id, current_user.id, body)
    return ApiResponse(message="Forum updated", data=forum)


@router.post(
    "/{forum_id}/invite-code",
    response_model=ApiResponse[ForumResponse],
    summary="Regenerate invite code",
)
async def change_invite_code(
    forum_id: str,
    current_user: CurrentUser,
    membership_service: MembershipService = Depends(get_membership_service),
):
    """Replace the invite code with a fresh one (admin only)."""
    forum = await membership_service.regenerate_invite_code(forum_id, current_user.id)
    return ApiResponse(message="Invite code changed", data=forum)


@router.delete(
    "/{forum_id}/leave",
    response_model=ApiResponse[LeaveResult],
    summary="Leave forum",
)
async def leave_forum(
    forum_id: str,
    current_user: CurrentUser,
    membership_service: MembershipService = Depends(get_membership_service),
):
    """
    Leave a forum.

    The only admin must promote another member first. The last member
    leaving deletes the forum.
    """
    result = await membership_service.leave_forum(forum_id, current_user.id)
    return ApiResponse(message="Left forum", data=result)


@router.delete(
    "/{forum_id}",
    response_model=ApiResponse[None],
    summary="Delete forum",
)
async def delete_forum(
    forum_id: str,
    current_user: CurrentUser,
    membership_service: MembershipService = Depends(get_membership_service),
):
    """
    Delete a forum (admin only).

    **Warning**: This action cannot be undone.
    """
    await membership_service.delete_forum(forum_id, current_user.id)
    return ApiResponse(message="Forum deleted")


# ==================== Member actions ====================


@router.get(
    "/{forum_id}/users/{user_id}",
    response_model=ApiResponse[MemberDetails],
    summary="Get member details",
)
async def get_member_details(
    forum_id: str,
    user_id: str,
    current_user: CurrentUser,
    membership_service: MembershipService = Depends(get_membership_service),
):
    """View a fellow member's profile and books."""
    details = await membership_service.get_member_details(forum_id, current_user.id, user_id)
    return ApiResponse(message="Member fetched", data=details)


@router.patch(
    "/{forum_id}/users/{user_id}",
    response_model=ApiResponse[MemberResponse],
    summary="Make member admin",
)
async def make_admin(
    forum_id: str,
    user_id: str,
    current_user: CurrentUser,
    membership_service: MembershipService = Depends(get_membership_service),
):
    """Promote a member to admin (admin only)."""
    member = await membership_service.promote_to_admin(forum_id, current_user.id, user_id)
    return ApiResponse(message="Member promoted to admin", data=member)


@router.delete(
    "/{forum_id}/users/{user_id}",
    response_model=ApiResponse[None],
    summary="Remove member",
)
async def remove_user(
    forum_id: str,
    user_id: str,
    current_user: CurrentUser,
    membership_service: MembershipService = Depends(get_membership_service),
):
    """Remove another member from the forum (admin only)."""
    await membership_service.remove_member(forum_id, current_user.id, user_id)
    return ApiResponse(message="Member removed")


# ==================== Book actions ====================


@router.patch(
    "/{forum_id}/books/{book_id}/hide",
    response_model=ApiResponse[BookResponse],
    summary="Hide book",
)
async def hide_book(
    forum_id: str,
    book_id: str,
    current_user: CurrentUser,
    membership_service: MembershipService = Depends(get_membership_service),
):
    """Hide a book from the forum's shared collection (admin only)."""
    book = await membership_service.hide_book(forum_id, current_user.id, book_id)
    return ApiResponse(message="Book hidden", data=book)


@router.patch(
    "/{forum_id}/books/{book_id}/unhide",
    response_model=ApiResponse[BookResponse],
    summary="Unhide book",
)
async def unhide_book(
    forum_id: str,
    book_id: str,
    current_user: CurrentUser,
    membership_service: MembershipService = Depends(get_membership_service),
):
    """Make a hidden book visible again (admin only)."""
    book = await membership_service.unhide_book(forum_id, current_user.id, book_id)
    return ApiResponse(message="Book unhidden", data=book)

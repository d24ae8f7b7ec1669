"""
Users router for the caller's profile, account deletion and public profiles.
"""
from fastapi import APIRouter, Depends, Response

from bookshare.database.transactions import DocumentStore
from bookshare.dependencies.auth import CurrentUser
from bookshare.dependencies.store import get_document_store
from bookshare.routers.auth import clear_session_cookie
from bookshare.schemas.common import ApiResponse
from bookshare.schemas.user import (
    AccountDeletionResult,
    JoinedForumResponse,
    OwnProfile,
    PublicProfile,
    UserProfile,
    UserUpdate,
)
from bookshare.services.account_service import AccountService
from bookshare.services.membership_service import MembershipService
from bookshare.services.user_service import UserService

router = APIRouter(prefix="/api", tags=["Users"])


async def get_user_service(
    store: DocumentStore = Depends(get_document_store),
) -> UserService:
    """Dependency to get UserService instance."""
    return UserService(store)


async def get_account_service(
    store: DocumentStore = Depends(get_document_store),
) -> AccountService:
    """Dependency to get AccountService instance."""
    return AccountService(store)


async def get_membership_service(
    store: DocumentStore = Depends(get_document_store),
) -> MembershipService:
    """Dependency to get MembershipService instance."""
    return MembershipService(store)


@router.get(
    "/user/me",
    response_model=ApiResponse[OwnProfile],
    summary="Get own profile",
)
async def get_own_info(
    current_user: CurrentUser,
    user_service: UserService = Depends(get_user_service),
):
    """Get the caller's profile with owned books and joined forums."""
    profile = await user_service.get_own_profile(current_user.id)
    return ApiResponse(message="Profile fetched", data=profile)


@router.patch(
    "/user/me",
    response_model=ApiResponse[UserProfile],
    summary="Edit own profile",
)
async def edit_own_info(
    body: UserUpdate,
    current_user: CurrentUser,
    user_service: UserService = Depends(get_user_service),
):
    """
    Update the caller's profile.

    - **name**: New display name
    - **email**: New email address (must be unique)
    """
    profile = await user_service.update_profile(current_user.id, body)
    return ApiResponse(message="Profile updated", data=profile)


@router.delete(
    "/user/me",
    response_model=ApiResponse[AccountDeletionResult],
    summary="Delete own account",
)
async def delete_account(
    response: Response,
    current_user: CurrentUser,
    account_service: AccountService = Depends(get_account_service),
):
    """
    Delete the caller's account.

    Admin rights in forums where the caller is the only admin pass to a
    random member; forums with no other member are deleted. Books nobody
    else owns are deleted.

    **Warning**: This action cannot be undone.
    """
    result = await account_service.delete_account(current_user.id)
    clear_session_cookie(response)
    return ApiResponse(message="Account deleted", data=result)


@router.get(
    "/user/me/forums",
    response_model=ApiResponse[list[JoinedForumResponse]],
    summary="List own forums",
)
async def list_own_forums(
    current_user: CurrentUser,
    membership_service: MembershipService = Depends(get_membership_service),
):
    """List the forums the caller belongs to, with their role."""
    forums = await membership_service.list_user_forums(current_user.id)
    return ApiResponse(message="Forums fetched", data=forums)


@router.get(
    "/users/{user_id}",
    response_model=ApiResponse[PublicProfile],
    summary="Get a user's public profile",
)
async def get_user_info(
    user_id: str,
    current_user: CurrentUser,
    user_service: UserService = Depends(get_user_service),
):
    """Get another user's public profile."""
    profile = await user_service.get_public_profile(user_id)
    return ApiResponse(message="Profile fetched", data=profile)

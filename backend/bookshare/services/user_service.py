"""
User service: profile lookup and editing.
"""
from datetime import datetime, timezone
from typing import Optional

from pymongo import ReturnDocument

from bookshare.core.errors import BadRequestError, NotFoundError, ValidationError
from bookshare.core.ids import to_object_id
from bookshare.database.transactions import DocumentStore
from bookshare.models.user import User
from bookshare.schemas.user import OwnProfile, PublicProfile, UserProfile, UserUpdate
from bookshare.services.catalog_service import CatalogService
from bookshare.services.membership_service import MembershipService


def user_to_profile(doc: dict) -> UserProfile:
    """Convert a user document to its public-safe profile."""
    return UserProfile(
        id=str(doc["_id"]),
        name=doc["name"],
        email=doc["email"],
        created_at=doc["created_at"],
    )


class UserService:
    """Service for user identity records."""

    def __init__(self, store: DocumentStore):
        """Initialize with the transactional document store."""
        self.store = store
        self.catalog = CatalogService(store)
        self.membership = MembershipService(store)

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        """
        Get user by ID.

        Returns:
            User model or None if not found or the id is malformed
        """
        try:
            user_oid = to_object_id(user_id, "user id")
        except ValidationError:
            return None

        async with self.store.transaction() as tx:
            doc = await tx.users.find_one({"_id": user_oid})

        if not doc:
            return None
        return User.from_document(doc)

    async def get_own_profile(self, user_id: str) -> OwnProfile:
        """Get the caller's profile with resolved books and forums."""
        user_oid = to_object_id(user_id, "user id")

        async with self.store.transaction() as tx:
            doc = await tx.users.find_one({"_id": user_oid})
            if not doc:
                raise NotFoundError("User not found")

            books = await self.catalog.load_books(tx, doc.get("owned_books", []))
            forums = await self.membership.load_joined_forums(tx, doc.get("joined_forums", []))

        return OwnProfile(
            **user_to_profile(doc).model_dump(),
            owned_books=books,
            joined_forums=forums,
        )

    async def get_public_profile(self, user_id: str) -> PublicProfile:
        """Get another user's public profile."""
        user_oid = to_object_id(user_id, "user id")

        async with self.store.transaction() as tx:
            doc = await tx.users.find_one({"_id": user_oid}, {"name": 1, "owned_books": 1})

        if not doc:
            raise NotFoundError("User not found")
        return PublicProfile(
            id=str(doc["_id"]),
            name=doc["name"],
            book_count=len(doc.get("owned_books", [])),
        )

    async def update_profile(self, user_id: str, request: UserUpdate) -> UserProfile:
        """
        Update the caller's name and/or email.

        Raises:
            ValidationError: If the name would become blank
            BadRequestError: If the email belongs to another account
        """
        user_oid = to_object_id(user_id, "user id")

        updates = {}
        if request.name is not None:
            name = request.name.strip()
            if not name:
                raise ValidationError("Name cannot be empty")
            updates["name"] = name
        if request.email is not None:
            updates["email"] = request.email

        async with self.store.transaction() as tx:
            if "email" in updates:
                taken = await tx.users.find_one(
                    {"email": updates["email"], "_id": {"$ne": user_oid}},
                    {"_id": 1},
                )
                if taken:
                    raise BadRequestError("Email already registered")

            if updates:
                updates["updated_at"] = datetime.now(timezone.utc)
                doc = await tx.users.find_one_and_update(
                    {"_id": user_oid},
                    {"$set": updates},
                    return_document=ReturnDocument.AFTER,
                )
            else:
                doc = await tx.users.find_one({"_id": user_oid})

            if not doc:
                raise NotFoundError("User not found")

        return user_to_profile(doc)

"""
Account lifecycle service: whole-account deletion.
"""
import logging
from typing import Optional

from bookshare.core.errors import NotFoundError
from bookshare.core.ids import to_object_id
from bookshare.database.transactions import DocumentStore
from bookshare.schemas.user import AccountDeletionResult
from bookshare.services.catalog_service import CatalogService
from bookshare.services.membership_service import MembershipService

logger = logging.getLogger(__name__)


class AccountService:
    """Orchestrates membership and catalog cleanup when an account goes away."""

    def __init__(
        self,
        store: DocumentStore,
        membership: Optional[MembershipService] = None,
        catalog: Optional[CatalogService] = None,
    ):
        self.store = store
        self.membership = membership or MembershipService(store)
        self.catalog = catalog or CatalogService(store)

    async def delete_account(self, user_id: str) -> AccountDeletionResult:
        """
        Delete a user and cascade the deletion in a single transaction.

        Steps:
        1. Load the user's forums and books
        2. Hand admin rights to a random peer in forums where the user is
           the sole admin, or delete forums the user is alone in
        3. Remove the user from every remaining forum
        4. Strip every book the user owned from every forum's hidden set,
           co-owned ones included
        5. Delete the user's books that nobody else owns
        6. Delete the user document

        Any failure aborts the whole transaction.

        Raises:
            NotFoundError: If the user does not exist
        """
        user_oid = to_object_id(user_id, "user id")

        async with self.store.transaction() as tx:
            user_doc = await tx.users.find_one(
                {"_id": user_oid},
                {"joined_forums": 1, "owned_books": 1},
            )
            if not user_doc:
                raise NotFoundError("User not found")

            vacated = await self.membership.vacate_forums(tx, user_doc)

            owned = user_doc.get("owned_books", [])
            if owned:
                await tx.forums.update_many(
                    {"hidden_books": {"$in": owned}},
                    {"$pullAll": {"hidden_books": owned}},
                )
            deleted_books = await self.catalog.delete_unowned_books(
                tx, owned, exclude_user=user_oid
            )
            await tx.users.delete_one({"_id": user_oid})

        logger.info(
            "Account %s deleted: left %d forums, deleted %d forums, %d books",
            user_oid,
            len(vacated.forums_left),
            len(vacated.forums_deleted),
            len(deleted_books),
        )
        return AccountDeletionResult(
            user_id=str(user_oid),
            forums_left=vacated.forums_left,
            forums_deleted=vacated.forums_deleted,
            successors=vacated.successors,
            books_deleted=[str(b) for b in deleted_books],
        )

"""
Catalog service: owned books and the content-addressed book catalog.

Books are identified by their trimmed (title, author) pair compared
case-insensitively. Adding or renaming into an existing identity reuses that
catalog entry instead of creating a duplicate.
"""
import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from bson import ObjectId

from bookshare.core.errors import ForbiddenError, NotFoundError, ValidationError
from bookshare.core.ids import to_object_id
from bookshare.database.transactions import DocumentStore, Transaction
from bookshare.models.book import identity_filter
from bookshare.schemas.book import (
    BookCreate,
    BookEditResult,
    BookResponse,
    BookUpdate,
)

logger = logging.getLogger(__name__)


def book_to_response(doc: dict) -> BookResponse:
    """Convert a book document to its response schema."""
    return BookResponse(
        id=str(doc["_id"]),
        title=doc["title"],
        author=doc["author"],
        genre=doc.get("genre") or None,
    )


def _normalize_pair(title: Optional[str], author: Optional[str]) -> tuple[str, str]:
    title = (title or "").strip()
    author = (author or "").strip()
    if not title or not author:
        raise ValidationError("Title and author are required")
    return title, author


def _dedupe(ids: Iterable[ObjectId]) -> list[ObjectId]:
    seen = set()
    result = []
    for i in ids:
        if i not in seen:
            seen.add(i)
            result.append(i)
    return result


class CatalogService:
    """Service for book ownership and catalog reconciliation."""

    def __init__(self, store: DocumentStore):
        """Initialize with the transactional document store."""
        self.store = store

    # ==================== Owned books ====================

    async def add_owned_book(self, user_id: str, request: BookCreate) -> BookResponse:
        """
        Add a book to a user's collection.

        If a book with the same normalized title and author already exists,
        the user gets a reference to that book. Adding a book the user
        already owns is a no-op.

        Raises:
            ValidationError: If title or author is blank
            NotFoundError: If the user does not exist
        """
        title, author = _normalize_pair(request.title, request.author)
        genre = (request.genre or "").strip() or None
        user_oid = to_object_id(user_id, "user id")

        async with self.store.transaction() as tx:
            user = await tx.users.find_one({"_id": user_oid}, {"_id": 1})
            if not user:
                raise NotFoundError("User not found")

            book = await tx.books.find_one(identity_filter(title, author))
            if book is None:
                book = {
                    "title": title,
                    "author": author,
                    "genre": genre,
                    "created_at": datetime.now(timezone.utc),
                }
                result = await tx.books.insert_one(book)
                book["_id"] = result.inserted_id

            await tx.users.update_one(
                {"_id": user_oid},
                {"$addToSet": {"owned_books": book["_id"]}},
            )

        return book_to_response(book)

    async def list_owned_books(self, user_id: str) -> list[BookResponse]:
        """List a user's books in the order they were added."""
        user_oid = to_object_id(user_id, "user id")

        async with self.store.transaction() as tx:
            user = await tx.users.find_one({"_id": user_oid}, {"owned_books": 1})
            if not user:
                raise NotFoundError("User not found")
            return await self.load_books(tx, user.get("owned_books", []))

    async def edit_owned_book(
        self, user_id: str, book_id: str, request: BookUpdate
    ) -> BookEditResult:
        """
        Rename an owned book.

        Renaming into the identity of a different existing book merges: the
        user's reference moves to that book, its genre is back-filled only if
        it has none, and the original is deleted once nobody owns it.
        Renaming into a free identity updates the book record in place.

        Raises:
            ValidationError: If the new title or author is blank
            NotFoundError: If the user or book does not exist
            ForbiddenError: If the user does not own the book
        """
        title, author = _normalize_pair(request.new_title, request.new_author)
        genre = (request.new_genre or "").strip()
        user_oid = to_object_id(user_id, "user id")
        book_oid = to_object_id(book_id, "book id")

        async with self.store.transaction() as tx:
            user = await tx.users.find_one({"_id": user_oid}, {"owned_books": 1})
            if not user:
                raise NotFoundError("User not found")

            owned = user.get("owned_books", [])
            if book_oid not in owned:
                raise ForbiddenError("User doesn't own this book")

            existing = await tx.books.find_one({
                "_id": {"$ne": book_oid},
                **identity_filter(title, author),
            })

            if existing is None:
                current = await tx.books.find_one({"_id": book_oid})
                if not current:
                    raise NotFoundError("Book not found")

                updates = {"title": title, "author": author, "genre": genre or None}
                await tx.books.update_one({"_id": book_oid}, {"$set": updates})
                current.update(updates)
                return BookEditResult(book=book_to_response(current), merged=False)

            if genre and not (existing.get("genre") or "").strip():
                await tx.books.update_one(
                    {"_id": existing["_id"]},
                    {"$set": {"genre": genre}},
                )
                existing["genre"] = genre

            redirected = _dedupe(
                existing["_id"] if b == book_oid else b for b in owned
            )
            await tx.users.update_one(
                {"_id": user_oid},
                {"$set": {"owned_books": redirected}},
            )

            deleted = await self.delete_unowned_books(tx, [book_oid], exclude_user=user_oid)

        logger.info(
            "Merged book %s into %s for user %s (original deleted: %s)",
            book_oid, existing["_id"], user_oid, bool(deleted),
        )
        return BookEditResult(
            book=book_to_response(existing),
            merged=True,
            previous_book_deleted=bool(deleted),
        )

    async def remove_owned_book(self, user_id: str, book_id: str) -> bool:
        """
        Remove a book from a user's collection.

        Returns:
            True if the book lost its last owner and was deleted

        Raises:
            NotFoundError: If the book is not in the user's collection
        """
        user_oid = to_object_id(user_id, "user id")
        book_oid = to_object_id(book_id, "book id")

        async with self.store.transaction() as tx:
            result = await tx.users.update_one(
                {"_id": user_oid, "owned_books": book_oid},
                {"$pull": {"owned_books": book_oid}},
            )
            if result.matched_count == 0:
                raise NotFoundError("Book not found in user's collection")

            deleted = await self.delete_unowned_books(tx, [book_oid], exclude_user=user_oid)

        return bool(deleted)

    # ==================== Transaction helpers ====================

    async def load_books(self, tx: Transaction, book_ids: list) -> list[BookResponse]:
        """Load books by id, preserving the order of ``book_ids``."""
        if not book_ids:
            return []
        docs = await tx.books.find({"_id": {"$in": list(book_ids)}}).to_list(length=None)
        by_id = {d["_id"]: d for d in docs}
        return [book_to_response(by_id[b]) for b in book_ids if b in by_id]

    async def delete_unowned_books(
        self,
        tx: Transaction,
        book_ids: list[ObjectId],
        exclude_user: Optional[ObjectId] = None,
    ) -> list[ObjectId]:
        """
        Delete the books no user (other than ``exclude_user``) owns.

        Deleted books are also stripped from every forum's hidden set so no
        forum keeps a dangling reference.

        Returns:
            Ids of the deleted books
        """
        orphaned = []
        for book_oid in _dedupe(book_ids):
            query: dict = {"owned_books": book_oid}
            if exclude_user is not None:
                query["_id"] = {"$ne": exclude_user}
            if await tx.users.count_documents(query) == 0:
                orphaned.append(book_oid)

        if not orphaned:
            return []

        await tx.books.delete_many({"_id": {"$in": orphaned}})
        await tx.forums.update_many(
            {"hidden_books": {"$in": orphaned}},
            {"$pullAll": {"hidden_books": orphaned}},
        )
        return orphaned

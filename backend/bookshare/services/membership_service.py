"""
Membership service: forums and the user <-> forum relation.

The relation is stored twice, as ``forums.members`` and
``users.joined_forums``. Every change to it goes through the mirror helpers
at the bottom of this class, which write both sides inside the caller's
transaction.
"""
import logging
import random
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from bookshare.config import get_settings
from bookshare.core.errors import (
    BadRequestError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from bookshare.core.ids import to_object_id
from bookshare.database.transactions import DocumentStore, Transaction
from bookshare.models.forum import Forum, ForumMember
from bookshare.models.user import ForumRole
from bookshare.schemas.book import BookResponse
from bookshare.schemas.forum import (
    ForumBook,
    ForumCreate,
    ForumDetails,
    ForumResponse,
    ForumUpdate,
    LeaveResult,
    MemberDetails,
    MemberResponse,
)
from bookshare.schemas.user import JoinedForumResponse
from bookshare.services.catalog_service import book_to_response

logger = logging.getLogger(__name__)

INVITE_CODE_ATTEMPTS = 5
REQUIRED_FORUM_FIELDS = ("name", "location", "invite_code")


def choose_successor(candidates: list[ForumMember]) -> ForumMember:
    """Pick the member promoted when the sole admin vacates a forum."""
    return random.choice(candidates)


@dataclass
class VacateOutcome:
    """What happened to a departing user's forums."""
    forums_left: list[str] = field(default_factory=list)
    forums_deleted: list[str] = field(default_factory=list)
    successors: dict[str, str] = field(default_factory=dict)


class MembershipService:
    """Service for forum lifecycle, membership and curation."""

    def __init__(self, store: DocumentStore):
        """Initialize with the transactional document store."""
        self.store = store
        self.settings = get_settings()

    # ==================== Forum lifecycle ====================

    async def create_forum(self, creator_id: str, request: ForumCreate) -> ForumResponse:
        """
        Create a forum with the creator as its sole admin.

        Raises:
            ValidationError: If name or location is blank
            NotFoundError: If the creator does not exist; nothing is persisted
        """
        name = request.name.strip()
        location = request.location.strip()
        if not name or not location:
            raise ValidationError("Forum name and location are required")
        creator_oid = to_object_id(creator_id, "user id")
        now = datetime.now(timezone.utc)

        async with self.store.transaction() as tx:
            await self._require_user(tx, creator_oid)
            forum_doc = {
                "name": name,
                "location": location,
                "description": (request.description or "").strip(),
                "messenger_link": None,
                "invite_code": await self._generate_invite_code(tx),
                "featured_book": None,
                "members": [
                    {"user_id": creator_oid, "role": ForumRole.ADMIN.value, "joined_at": now}
                ],
                "hidden_books": [],
                "created_at": now,
                "updated_at": now,
            }
            result = await tx.forums.insert_one(forum_doc)
            forum_doc["_id"] = result.inserted_id
            await self._link_user(tx, creator_oid, result.inserted_id, ForumRole.ADMIN)

        logger.info("Forum %s created by %s", result.inserted_id, creator_oid)
        return self._forum_to_response(Forum.from_document(forum_doc))

    async def get_forum_details(self, forum_id: str, requester_id: str) -> ForumDetails:
        """
        Get a forum with its roster and the books its members share.

        The book list is the de-duplicated union of every member's books,
        minus the forum's hidden set. Admins also receive the hidden books.

        Raises:
            NotFoundError: If the forum does not exist
            ForbiddenError: If the requester is not a member
        """
        forum_oid = to_object_id(forum_id, "forum id")

        async with self.store.transaction() as tx:
            forum = await self._load_forum(tx, forum_oid)
            me = self._require_member(forum, requester_id)

            member_oids = [ObjectId(m.user_id) for m in forum.members]
            users = await tx.users.find(
                {"_id": {"$in": member_oids}},
                {"name": 1, "owned_books": 1},
            ).to_list(length=None)
            users_by_id = {str(u["_id"]): u for u in users}

            owners: dict[ObjectId, list[str]] = {}
            for m in forum.members:
                for book_oid in users_by_id.get(m.user_id, {}).get("owned_books", []):
                    owners.setdefault(book_oid, []).append(m.user_id)

            hidden = {ObjectId(b) for b in forum.hidden_books}
            visible = [b for b in owners if b not in hidden]
            book_docs = await tx.books.find({"_id": {"$in": visible}}).to_list(length=None)

            hidden_books = None
            if me.is_admin:
                hidden_docs = await tx.books.find({"_id": {"$in": list(hidden)}}).to_list(length=None)
                hidden_books = _sorted_books(book_to_response(d) for d in hidden_docs)

        books = [
            ForumBook(**book_to_response(d).model_dump(), owner_ids=owners[d["_id"]])
            for d in book_docs
        ]
        members = [
            MemberResponse(
                user_id=m.user_id,
                name=users_by_id.get(m.user_id, {}).get("name"),
                role=m.role,
                joined_at=m.joined_at,
            )
            for m in forum.members
        ]

        return ForumDetails(
            **self._forum_to_response(forum).model_dump(),
            role=me.role,
            members=members,
            books=_sorted_books(books),
            hidden_books=hidden_books,
        )

    async def edit_forum_details(
        self, forum_id: str, requester_id: str, request: ForumUpdate
    ) -> ForumResponse:
        """
        Apply a partial update to a forum (admin only).

        Only fields present in the request are changed; each is trimmed.

        Raises:
            ValidationError: If name, location or invite code would become blank
            ForbiddenError: If the requester is not an admin
            BadRequestError: If the invite code is used by another forum
        """
        forum_oid = to_object_id(forum_id, "forum id")

        updates = {}
        for key, value in request.model_dump(exclude_unset=True).items():
            if value is None:
                continue
            value = value.strip()
            if key in REQUIRED_FORUM_FIELDS and not value:
                raise ValidationError(f"{key.replace('_', ' ').capitalize()} cannot be empty")
            updates[key] = value

        async with self.store.transaction() as tx:
            forum = await self._load_forum(tx, forum_oid)
            self._require_admin(forum, requester_id)

            if not updates:
                return self._forum_to_response(forum)

            code = updates.get("invite_code")
            if code is not None and code != forum.invite_code:
                clash = await tx.forums.find_one(
                    {"invite_code": code, "_id": {"$ne": forum_oid}},
                    {"_id": 1},
                )
                if clash:
                    raise BadRequestError("Invite code already in use")

            updates["updated_at"] = datetime.now(timezone.utc)
            try:
                doc = await tx.forums.find_one_and_update(
                    {"_id": forum_oid},
                    {"$set": updates},
                    return_document=ReturnDocument.AFTER,
                )
            except DuplicateKeyError:
                # Another admin took the code after the clash check
                raise BadRequestError("Invite code already in use")

        return self._forum_to_response(Forum.from_document(doc))

    async def regenerate_invite_code(self, forum_id: str, requester_id: str) -> ForumResponse:
        """Replace the forum's invite code with a fresh one (admin only)."""
        forum_oid = to_object_id(forum_id, "forum id")

        async with self.store.transaction() as tx:
            forum = await self._load_forum(tx, forum_oid)
            self._require_admin(forum, requester_id)

            doc = await tx.forums.find_one_and_update(
                {"_id": forum_oid},
                {"$set": {
                    "invite_code": await self._generate_invite_code(tx),
                    "updated_at": datetime.now(timezone.utc),
                }},
                return_document=ReturnDocument.AFTER,
            )

        return self._forum_to_response(Forum.from_document(doc))

    async def delete_forum(self, forum_id: str, requester_id: str) -> None:
        """
        Delete a forum and every member's reference to it (admin only).

        Raises:
            NotFoundError: If the forum does not exist
            ForbiddenError: If the requester is not an admin
        """
        forum_oid = to_object_id(forum_id, "forum id")

        async with self.store.transaction() as tx:
            forum = await self._load_forum(tx, forum_oid)
            self._require_admin(forum, requester_id)
            await self._delete_forum(tx, forum_oid)

        logger.info("Forum %s deleted by %s (%d members)", forum_oid, requester_id, len(forum.members))

    # ==================== Membership ====================

    async def join_forum(self, invite_code: str, user_id: str) -> ForumResponse:
        """
        Join the forum identified by an invite code as a regular member.

        Raises:
            NotFoundError: If no forum uses the code, or the user does not exist
            BadRequestError: If the user is already a member
        """
        user_oid = to_object_id(user_id, "user id")

        async with self.store.transaction() as tx:
            doc = await tx.forums.find_one({"invite_code": invite_code.strip()})
            if not doc:
                raise NotFoundError("Invalid invite code")

            forum = Forum.from_document(doc)
            if forum.member(user_id):
                raise BadRequestError("Already a member of this forum")

            await self._add_member(tx, doc["_id"], user_oid, ForumRole.MEMBER)

        forum.members.append(ForumMember(user_id=user_id, role=ForumRole.MEMBER))
        return self._forum_to_response(forum)

    async def leave_forum(self, forum_id: str, user_id: str) -> LeaveResult:
        """
        Leave a forum.

        The sole admin cannot leave while other members remain; another
        member must be promoted first. The last member leaving deletes the
        forum.

        Raises:
            BadRequestError: If the user is not a member
            ForbiddenError: If the user is the sole admin of a non-empty forum
        """
        forum_oid = to_object_id(forum_id, "forum id")
        user_oid = to_object_id(user_id, "user id")

        async with self.store.transaction() as tx:
            forum = await self._load_forum(tx, forum_oid)
            me = forum.member(user_id)
            if me is None:
                raise BadRequestError("You are not a member of this forum")

            if not forum.others(user_id):
                await self._delete_forum(tx, forum_oid)
                logger.info("Forum %s deleted after its last member %s left", forum_oid, user_oid)
                return LeaveResult(forum_id=forum_id, forum_deleted=True)

            if forum.is_sole_admin(user_id):
                raise ForbiddenError("Promote another member to admin before leaving")

            removed = await self._remove_member(
                tx, forum_oid, user_oid, require_other_admin=me.is_admin
            )
            if not removed:
                raise ForbiddenError("Promote another member to admin before leaving")

        return LeaveResult(forum_id=forum_id)

    async def promote_to_admin(
        self, forum_id: str, requester_id: str, target_user_id: str
    ) -> MemberResponse:
        """
        Make a member an admin.

        Raises:
            ForbiddenError: If the requester is not an admin
            BadRequestError: If the target is not a member or already an admin
        """
        forum_oid = to_object_id(forum_id, "forum id")
        target_oid = to_object_id(target_user_id, "user id")
        target_user_id = str(target_oid)

        async with self.store.transaction() as tx:
            forum = await self._load_forum(tx, forum_oid)
            self._require_admin(forum, requester_id)

            target = forum.member(target_user_id)
            if target is None:
                raise BadRequestError("User is not a member of this forum")
            if target.is_admin:
                raise BadRequestError("User is already an admin")

            await self._set_role(tx, forum_oid, target_oid, ForumRole.ADMIN)

        return MemberResponse(
            user_id=target_user_id,
            role=ForumRole.ADMIN.value,
            joined_at=target.joined_at,
        )

    async def remove_member(
        self, forum_id: str, requester_id: str, target_user_id: str
    ) -> None:
        """
        Remove another member from a forum (admin only).

        Raises:
            ForbiddenError: If the requester is not an admin
            BadRequestError: If the target is the requester or not a member
        """
        forum_oid = to_object_id(forum_id, "forum id")
        target_oid = to_object_id(target_user_id, "user id")
        target_user_id = str(target_oid)

        async with self.store.transaction() as tx:
            forum = await self._load_forum(tx, forum_oid)
            self._require_admin(forum, requester_id)

            if target_user_id == requester_id:
                raise BadRequestError(
                    "Admins cannot remove themselves; leave or delete the forum instead"
                )
            if forum.member(target_user_id) is None:
                raise BadRequestError("User is not a member of this forum")

            await self._remove_member(tx, forum_oid, target_oid)

    async def get_member_details(
        self, forum_id: str, requester_id: str, target_user_id: str
    ) -> MemberDetails:
        """
        View a fellow member's profile and books.

        Books hidden in this forum are left out unless the requester is an
        admin.
        """
        forum_oid = to_object_id(forum_id, "forum id")
        target_oid = to_object_id(target_user_id, "user id")
        target_user_id = str(target_oid)

        async with self.store.transaction() as tx:
            forum = await self._load_forum(tx, forum_oid)
            me = self._require_member(forum, requester_id)

            target = forum.member(target_user_id)
            if target is None:
                raise NotFoundError("User is not a member of this forum")

            user = await tx.users.find_one({"_id": target_oid}, {"name": 1, "owned_books": 1})
            if not user:
                raise NotFoundError("User not found")

            book_ids = user.get("owned_books", [])
            if not me.is_admin:
                hidden = {ObjectId(b) for b in forum.hidden_books}
                book_ids = [b for b in book_ids if b not in hidden]
            docs = await tx.books.find({"_id": {"$in": book_ids}}).to_list(length=None)

        return MemberDetails(
            user_id=target_user_id,
            name=user["name"],
            role=target.role,
            books=_sorted_books(book_to_response(d) for d in docs),
        )

    async def list_user_forums(self, user_id: str) -> list[JoinedForumResponse]:
        """List the user's forums with their role in each."""
        user_oid = to_object_id(user_id, "user id")

        async with self.store.transaction() as tx:
            user = await tx.users.find_one({"_id": user_oid}, {"joined_forums": 1})
            if not user:
                raise NotFoundError("User not found")
            return await self.load_joined_forums(tx, user.get("joined_forums", []))

    async def load_joined_forums(
        self, tx: Transaction, entries: list[dict]
    ) -> list[JoinedForumResponse]:
        """Resolve ``joined_forums`` mirror entries into forum summaries."""
        forum_oids = [e["forum_id"] for e in entries]
        docs = await tx.forums.find(
            {"_id": {"$in": forum_oids}},
            {"name": 1, "location": 1, "members": 1},
        ).to_list(length=None)
        by_id = {d["_id"]: d for d in docs}

        return [
            JoinedForumResponse(
                forum_id=str(e["forum_id"]),
                name=by_id[e["forum_id"]]["name"],
                location=by_id[e["forum_id"]]["location"],
                role=e["role"],
                member_count=len(by_id[e["forum_id"]].get("members", [])),
            )
            for e in entries
            if e["forum_id"] in by_id
        ]

    # ==================== Curation ====================

    async def hide_book(self, forum_id: str, requester_id: str, book_id: str) -> BookResponse:
        """
        Hide a book from the forum's shared collection (admin only).

        Hiding an already-hidden book is an error, not a no-op.

        Raises:
            NotFoundError: If the forum or book does not exist
            ForbiddenError: If the requester is not an admin
            BadRequestError: If the book is already hidden or no member owns it
        """
        forum_oid = to_object_id(forum_id, "forum id")
        book_oid = to_object_id(book_id, "book id")
        book_id = str(book_oid)

        async with self.store.transaction() as tx:
            forum = await self._load_forum(tx, forum_oid)
            self._require_admin(forum, requester_id)

            book = await tx.books.find_one({"_id": book_oid})
            if not book:
                raise NotFoundError("Book not found")
            if book_id in forum.hidden_books:
                raise BadRequestError("Book is already hidden")

            member_oids = [ObjectId(m.user_id) for m in forum.members]
            if await tx.users.count_documents(
                {"_id": {"$in": member_oids}, "owned_books": book_oid}
            ) == 0:
                raise BadRequestError("Book is not shared in this forum")

            result = await tx.forums.update_one(
                {"_id": forum_oid, "hidden_books": {"$ne": book_oid}},
                {"$addToSet": {"hidden_books": book_oid}},
            )
            if result.matched_count == 0:
                raise BadRequestError("Book is already hidden")

        return book_to_response(book)

    async def unhide_book(self, forum_id: str, requester_id: str, book_id: str) -> BookResponse:
        """
        Make a hidden book visible again (admin only).

        Raises:
            NotFoundError: If the forum or book does not exist
            ForbiddenError: If the requester is not an admin
            BadRequestError: If the book is not hidden
        """
        forum_oid = to_object_id(forum_id, "forum id")
        book_oid = to_object_id(book_id, "book id")
        book_id = str(book_oid)

        async with self.store.transaction() as tx:
            forum = await self._load_forum(tx, forum_oid)
            self._require_admin(forum, requester_id)

            book = await tx.books.find_one({"_id": book_oid})
            if not book:
                raise NotFoundError("Book not found")
            if book_id not in forum.hidden_books:
                raise BadRequestError("Book is not hidden")

            result = await tx.forums.update_one(
                {"_id": forum_oid, "hidden_books": book_oid},
                {"$pull": {"hidden_books": book_oid}},
            )
            if result.matched_count == 0:
                raise BadRequestError("Book is not hidden")

        return book_to_response(book)

    # ==================== Account departure ====================

    async def vacate_forums(self, tx: Transaction, user_doc: dict) -> VacateOutcome:
        """
        Remove a departing user from all their forums.

        Runs inside the caller's transaction. Where the user is the sole
        admin, a uniformly random other member is promoted first; a forum
        whose only member is the user is deleted. The user's own mirror is
        left alone since the caller deletes the user document.
        """
        user_oid = user_doc["_id"]
        user_id = str(user_oid)
        mirror_ids = [e["forum_id"] for e in user_doc.get("joined_forums", [])]
        outcome = VacateOutcome()

        docs = await tx.forums.find(
            {"$or": [{"_id": {"$in": mirror_ids}}, {"members.user_id": user_oid}]}
        ).to_list(length=None)

        for doc in docs:
            forum = Forum.from_document(doc)
            forum_oid = doc["_id"]
            others = forum.others(user_id)

            if not others:
                await tx.forums.delete_one({"_id": forum_oid})
                outcome.forums_deleted.append(forum.id)
                continue

            if forum.is_sole_admin(user_id):
                successor = choose_successor(others)
                await self._set_role(tx, forum_oid, ObjectId(successor.user_id), ForumRole.ADMIN)
                outcome.successors[forum.id] = successor.user_id
                logger.info(
                    "User %s promoted to admin of forum %s replacing %s",
                    successor.user_id, forum.id, user_id,
                )

            await tx.forums.update_one(
                {"_id": forum_oid},
                {"$pull": {"members": {"user_id": user_oid}}},
            )
            outcome.forums_left.append(forum.id)

        return outcome

    # ==================== Mirror helpers ====================

    async def _link_user(
        self, tx: Transaction, user_oid: ObjectId, forum_oid: ObjectId, role: ForumRole
    ) -> None:
        """Add the user-side mirror entry."""
        result = await tx.users.update_one(
            {"_id": user_oid, "joined_forums.forum_id": {"$ne": forum_oid}},
            {"$push": {"joined_forums": {"forum_id": forum_oid, "role": role.value}}},
        )
        if result.matched_count == 0:
            if await tx.users.count_documents({"_id": user_oid}) == 0:
                raise NotFoundError("User not found")
            raise BadRequestError("Already a member of this forum")

    async def _require_user(self, tx: Transaction, user_oid: ObjectId) -> None:
        if await tx.users.count_documents({"_id": user_oid}) == 0:
            raise NotFoundError("User not found")

    async def _add_member(
        self, tx: Transaction, forum_oid: ObjectId, user_oid: ObjectId, role: ForumRole
    ) -> None:
        # Both sides are written only once the user is known to exist
        await self._require_user(tx, user_oid)
        result = await tx.forums.update_one(
            {"_id": forum_oid, "members.user_id": {"$ne": user_oid}},
            {
                "$push": {"members": {
                    "user_id": user_oid,
                    "role": role.value,
                    "joined_at": datetime.now(timezone.utc),
                }},
                "$set": {"updated_at": datetime.now(timezone.utc)},
            },
        )
        if result.matched_count == 0:
            raise BadRequestError("Already a member of this forum")
        await self._link_user(tx, user_oid, forum_oid, role)

    async def _remove_member(
        self,
        tx: Transaction,
        forum_oid: ObjectId,
        user_oid: ObjectId,
        require_other_admin: bool = False,
    ) -> bool:
        """
        Remove a membership from both mirrors.

        With ``require_other_admin`` the forum side only matches while some
        other admin remains, so the last admin can never be removed here.
        """
        query: dict = {"_id": forum_oid, "members.user_id": user_oid}
        if require_other_admin:
            query["members"] = {"$elemMatch": {
                "role": ForumRole.ADMIN.value,
                "user_id": {"$ne": user_oid},
            }}

        result = await tx.forums.update_one(
            query,
            {
                "$pull": {"members": {"user_id": user_oid}},
                "$set": {"updated_at": datetime.now(timezone.utc)},
            },
        )
        if result.matched_count == 0:
            return False

        await tx.users.update_one(
            {"_id": user_oid},
            {"$pull": {"joined_forums": {"forum_id": forum_oid}}},
        )
        return True

    async def _set_role(
        self, tx: Transaction, forum_oid: ObjectId, user_oid: ObjectId, role: ForumRole
    ) -> None:
        await tx.forums.update_one(
            {"_id": forum_oid, "members.user_id": user_oid},
            {"$set": {"members.$.role": role.value}},
        )
        await tx.users.update_one(
            {"_id": user_oid, "joined_forums.forum_id": forum_oid},
            {"$set": {"joined_forums.$.role": role.value}},
        )

    async def _delete_forum(self, tx: Transaction, forum_oid: ObjectId) -> None:
        await tx.users.update_many(
            {"joined_forums.forum_id": forum_oid},
            {"$pull": {"joined_forums": {"forum_id": forum_oid}}},
        )
        await tx.forums.delete_one({"_id": forum_oid})

    # ==================== Lookups ====================

    async def _load_forum(self, tx: Transaction, forum_oid: ObjectId) -> Forum:
        doc = await tx.forums.find_one({"_id": forum_oid})
        if not doc:
            raise NotFoundError("Forum not found")
        return Forum.from_document(doc)

    @staticmethod
    def _require_member(forum: Forum, user_id: str) -> ForumMember:
        member = forum.member(user_id)
        if member is None:
            raise ForbiddenError("You are not a member of this forum")
        return member

    @staticmethod
    def _require_admin(forum: Forum, user_id: str) -> ForumMember:
        member = forum.member(user_id)
        if member is None or not member.is_admin:
            raise ForbiddenError("Only forum admins can do this")
        return member

    async def _generate_invite_code(self, tx: Transaction) -> str:
        for _ in range(INVITE_CODE_ATTEMPTS):
            code = secrets.token_urlsafe(self.settings.invite_code_bytes)
            if not await tx.forums.find_one({"invite_code": code}, {"_id": 1}):
                return code
        raise InternalError("Could not generate a unique invite code")

    @staticmethod
    def _forum_to_response(forum: Forum) -> ForumResponse:
        return ForumResponse(
            id=forum.id,
            name=forum.name,
            location=forum.location,
            description=forum.description,
            messenger_link=forum.messenger_link,
            invite_code=forum.invite_code,
            featured_book=forum.featured_book,
            member_count=len(forum.members),
            created_at=forum.created_at,
        )


def _sorted_books(books) -> list:
    return sorted(books, key=lambda b: (b.title.lower(), b.author.lower(), b.id))

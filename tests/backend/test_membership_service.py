"""
Tests for MembershipService.

These tests cover:
- Forum lifecycle (create, details, edit, invite codes, delete)
- Membership (join, leave, promote, remove) and the two mirrors
- Curation (hide / unhide) and what members vs. admins see
"""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from bookshare.core.errors import (
    BadRequestError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from bookshare.schemas.forum import ForumCreate, ForumUpdate


# =============================================================================
# Forum lifecycle
# =============================================================================

class TestCreateForum:
    """Tests for MembershipService.create_forum."""

    @pytest.mark.asyncio
    async def test_creator_becomes_sole_admin(self, db, make_user, membership_service, check_mirrors):
        alice = await make_user("Alice")

        forum = await membership_service.create_forum(
            alice, ForumCreate(name=" Book Club ", location=" Library ", description="Weekly")
        )

        assert forum.name == "Book Club"
        assert forum.location == "Library"
        assert forum.member_count == 1
        assert forum.invite_code

        doc = await db.forums.find_one({"_id": ObjectId(forum.id)})
        assert doc["members"][0]["user_id"] == ObjectId(alice)
        assert doc["members"][0]["role"] == "admin"
        assert doc["hidden_books"] == []

        user = await db.users.find_one({"_id": ObjectId(alice)})
        assert user["joined_forums"] == [{"forum_id": ObjectId(forum.id), "role": "admin"}]
        await check_mirrors()

    @pytest.mark.asyncio
    async def test_blank_location_rejected(self, db, make_user, membership_service):
        alice = await make_user()

        with pytest.raises(ValidationError):
            await membership_service.create_forum(alice, ForumCreate(name="Club", location="  "))
        assert await db.forums.count_documents({}) == 0

    @pytest.mark.asyncio
    async def test_unknown_creator_raises_not_found(self, db, membership_service):
        with pytest.raises(NotFoundError):
            await membership_service.create_forum(
                str(ObjectId()), ForumCreate(name="Club", location="Library")
            )

        assert await db.forums.count_documents({}) == 0

    @pytest.mark.asyncio
    async def test_invite_codes_are_unique(self, make_user, make_forum):
        alice = await make_user()

        first = await make_forum(alice, name="One")
        second = await make_forum(alice, name="Two")

        assert first.invite_code != second.invite_code


class TestForumDetails:
    """Tests for MembershipService.get_forum_details."""

    @pytest.mark.asyncio
    async def test_books_are_union_of_members_books(
        self, make_user, add_book, make_forum, membership_service
    ):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        dune = await add_book(alice, "Dune", "Frank Herbert")
        await add_book(bob, "dune", "frank herbert")
        emma = await add_book(bob, "Emma", "Jane Austen")
        forum = await make_forum(alice, bob)

        details = await membership_service.get_forum_details(forum.id, bob)

        assert details.role == "member"
        assert [b.id for b in details.books] == [dune.id, emma.id]
        dune_entry = details.books[0]
        assert sorted(dune_entry.owner_ids) == sorted([alice, bob])
        assert {m.name for m in details.members} == {"Alice", "Bob"}
        assert details.hidden_books is None

    @pytest.mark.asyncio
    async def test_hidden_books_only_shown_to_admins(
        self, make_user, add_book, make_forum, membership_service
    ):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        dune = await add_book(bob, "Dune", "Frank Herbert")
        emma = await add_book(bob, "Emma", "Jane Austen")
        forum = await make_forum(alice, bob)

        await membership_service.hide_book(forum.id, alice, dune.id)

        as_member = await membership_service.get_forum_details(forum.id, bob)
        as_admin = await membership_service.get_forum_details(forum.id, alice)

        assert [b.id for b in as_member.books] == [emma.id]
        assert as_member.hidden_books is None
        assert [b.id for b in as_admin.books] == [emma.id]
        assert [b.id for b in as_admin.hidden_books] == [dune.id]

    @pytest.mark.asyncio
    async def test_non_member_forbidden(self, make_user, make_forum, membership_service):
        alice = await make_user("Alice")
        mallory = await make_user("Mallory")
        forum = await make_forum(alice)

        with pytest.raises(ForbiddenError):
            await membership_service.get_forum_details(forum.id, mallory)

    @pytest.mark.asyncio
    async def test_unknown_forum_not_found(self, make_user, membership_service):
        alice = await make_user()

        with pytest.raises(NotFoundError):
            await membership_service.get_forum_details(str(ObjectId()), alice)


class TestEditForum:
    """Tests for edit_forum_details and regenerate_invite_code."""

    @pytest.mark.asyncio
    async def test_partial_update_only_touches_given_fields(
        self, make_user, make_forum, membership_service
    ):
        alice = await make_user()
        forum = await make_forum(alice)

        updated = await membership_service.edit_forum_details(
            forum.id, alice, ForumUpdate(description="  Sci-fi only  ", messenger_link="https://t.me/club")
        )

        assert updated.description == "Sci-fi only"
        assert updated.messenger_link == "https://t.me/club"
        assert updated.name == forum.name
        assert updated.invite_code == forum.invite_code

    @pytest.mark.asyncio
    async def test_blank_name_rejected(self, make_user, make_forum, membership_service):
        alice = await make_user()
        forum = await make_forum(alice)

        with pytest.raises(ValidationError):
            await membership_service.edit_forum_details(forum.id, alice, ForumUpdate(name="  "))

    @pytest.mark.asyncio
    async def test_member_cannot_edit(self, make_user, make_forum, membership_service):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        forum = await make_forum(alice, bob)

        with pytest.raises(ForbiddenError):
            await membership_service.edit_forum_details(forum.id, bob, ForumUpdate(name="Mine"))

    @pytest.mark.asyncio
    async def test_invite_code_clash_rejected(self, make_user, make_forum, membership_service):
        alice = await make_user()
        first = await make_forum(alice, name="One")
        second = await make_forum(alice, name="Two")

        with pytest.raises(BadRequestError):
            await membership_service.edit_forum_details(
                second.id, alice, ForumUpdate(invite_code=first.invite_code)
            )

    @pytest.mark.asyncio
    async def test_code_claimed_concurrently_rejected(
        self, db, make_user, make_forum, membership_service, monkeypatch
    ):
        """The unique index catches a code taken after the clash check passed."""
        alice = await make_user()
        forum = await make_forum(alice)
        open_transaction = membership_service.store.transaction

        @asynccontextmanager
        async def racing_transaction():
            async with open_transaction() as tx:
                forums = MagicMock(wraps=tx.forums)
                forums.find_one_and_update = AsyncMock(
                    side_effect=DuplicateKeyError("E11000 duplicate key error")
                )
                tx.forums = forums
                yield tx

        monkeypatch.setattr(membership_service.store, "transaction", racing_transaction)

        with pytest.raises(BadRequestError, match="Invite code already in use"):
            await membership_service.edit_forum_details(
                forum.id, alice, ForumUpdate(invite_code="fresh-code")
            )

        doc = await db.forums.find_one({"_id": ObjectId(forum.id)})
        assert doc["invite_code"] == forum.invite_code

    @pytest.mark.asyncio
    async def test_regenerated_code_replaces_old_one(
        self, make_user, make_forum, membership_service
    ):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        forum = await make_forum(alice)

        updated = await membership_service.regenerate_invite_code(forum.id, alice)

        assert updated.invite_code != forum.invite_code
        with pytest.raises(NotFoundError):
            await membership_service.join_forum(forum.invite_code, bob)
        await membership_service.join_forum(updated.invite_code, bob)


class TestDeleteForum:
    """Tests for MembershipService.delete_forum."""

    @pytest.mark.asyncio
    async def test_delete_clears_every_mirror(
        self, db, make_user, make_forum, membership_service, check_mirrors
    ):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        forum = await make_forum(alice, bob)

        await membership_service.delete_forum(forum.id, alice)

        assert await db.forums.count_documents({}) == 0
        bob_doc = await db.users.find_one({"_id": ObjectId(bob)})
        assert bob_doc["joined_forums"] == []
        await check_mirrors()

    @pytest.mark.asyncio
    async def test_member_cannot_delete(self, db, make_user, make_forum, membership_service):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        forum = await make_forum(alice, bob)

        with pytest.raises(ForbiddenError):
            await membership_service.delete_forum(forum.id, bob)
        assert await db.forums.count_documents({}) == 1


# =============================================================================
# Membership
# =============================================================================

class TestJoinForum:
    """Tests for MembershipService.join_forum."""

    @pytest.mark.asyncio
    async def test_join_adds_member_on_both_sides(
        self, db, make_user, make_forum, membership_service, check_mirrors
    ):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        forum = await make_forum(alice)

        joined = await membership_service.join_forum(forum.invite_code, bob)

        assert joined.member_count == 2
        bob_doc = await db.users.find_one({"_id": ObjectId(bob)})
        assert bob_doc["joined_forums"] == [{"forum_id": ObjectId(forum.id), "role": "member"}]
        await check_mirrors()

    @pytest.mark.asyncio
    async def test_join_twice_rejected(self, make_user, make_forum, membership_service, check_mirrors):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        forum = await make_forum(alice, bob)

        with pytest.raises(BadRequestError):
            await membership_service.join_forum(forum.invite_code, bob)
        await check_mirrors()

    @pytest.mark.asyncio
    async def test_unknown_code_not_found(self, make_user, membership_service):
        bob = await make_user()

        with pytest.raises(NotFoundError):
            await membership_service.join_forum("no-such-code", bob)

    @pytest.mark.asyncio
    async def test_deleted_user_cannot_join(
        self, db, make_user, make_forum, membership_service, check_mirrors
    ):
        """A user removed between login and join leaves the roster untouched."""
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        forum = await make_forum(alice)
        await db.users.delete_one({"_id": ObjectId(bob)})

        with pytest.raises(NotFoundError):
            await membership_service.join_forum(forum.invite_code, bob)

        doc = await db.forums.find_one({"_id": ObjectId(forum.id)})
        assert [m["user_id"] for m in doc["members"]] == [ObjectId(alice)]
        await check_mirrors()


class TestLeaveForum:
    """Tests for MembershipService.leave_forum."""

    @pytest.mark.asyncio
    async def test_member_leaves(self, db, make_user, make_forum, membership_service, check_mirrors):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        forum = await make_forum(alice, bob)

        result = await membership_service.leave_forum(forum.id, bob)

        assert result.forum_deleted is False
        doc = await db.forums.find_one({"_id": ObjectId(forum.id)})
        assert [m["user_id"] for m in doc["members"]] == [ObjectId(alice)]
        await check_mirrors()

    @pytest.mark.asyncio
    async def test_sole_admin_blocked_while_others_remain(
        self, db, make_user, make_forum, membership_service, check_mirrors
    ):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        forum = await make_forum(alice, bob)
        before = await db.forums.find_one({"_id": ObjectId(forum.id)})

        with pytest.raises(ForbiddenError):
            await membership_service.leave_forum(forum.id, alice)

        after = await db.forums.find_one({"_id": ObjectId(forum.id)})
        assert after["members"] == before["members"]
        await check_mirrors()

    @pytest.mark.asyncio
    async def test_admin_may_leave_when_another_admin_remains(
        self, make_user, make_forum, membership_service, check_mirrors
    ):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        forum = await make_forum(alice, bob)
        await membership_service.promote_to_admin(forum.id, alice, bob)

        result = await membership_service.leave_forum(forum.id, alice)

        assert result.forum_deleted is False
        await check_mirrors()

    @pytest.mark.asyncio
    async def test_last_member_leaving_deletes_forum(
        self, db, make_user, make_forum, membership_service, check_mirrors
    ):
        alice = await make_user("Alice")
        forum = await make_forum(alice)

        result = await membership_service.leave_forum(forum.id, alice)

        assert result.forum_deleted is True
        assert await db.forums.count_documents({}) == 0
        await check_mirrors()

    @pytest.mark.asyncio
    async def test_non_member_rejected(self, make_user, make_forum, membership_service):
        alice = await make_user("Alice")
        mallory = await make_user("Mallory")
        forum = await make_forum(alice)

        with pytest.raises(BadRequestError):
            await membership_service.leave_forum(forum.id, mallory)


class TestPromoteAndRemove:
    """Tests for promote_to_admin and remove_member."""

    @pytest.mark.asyncio
    async def test_promote_updates_both_mirrors(
        self, db, make_user, make_forum, membership_service, check_mirrors
    ):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        forum = await make_forum(alice, bob)

        member = await membership_service.promote_to_admin(forum.id, alice, bob)

        assert member.role == "admin"
        bob_doc = await db.users.find_one({"_id": ObjectId(bob)})
        assert bob_doc["joined_forums"][0]["role"] == "admin"
        await check_mirrors()

    @pytest.mark.asyncio
    async def test_promote_existing_admin_rejected(
        self, make_user, make_forum, membership_service
    ):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        forum = await make_forum(alice, bob)
        await membership_service.promote_to_admin(forum.id, alice, bob)

        with pytest.raises(BadRequestError):
            await membership_service.promote_to_admin(forum.id, alice, bob)

    @pytest.mark.asyncio
    async def test_promote_non_member_rejected(self, make_user, make_forum, membership_service):
        alice = await make_user("Alice")
        carol = await make_user("Carol")
        forum = await make_forum(alice)

        with pytest.raises(BadRequestError):
            await membership_service.promote_to_admin(forum.id, alice, carol)

    @pytest.mark.asyncio
    async def test_member_cannot_promote(self, make_user, make_forum, membership_service):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        carol = await make_user("Carol")
        forum = await make_forum(alice, bob, carol)

        with pytest.raises(ForbiddenError):
            await membership_service.promote_to_admin(forum.id, bob, carol)

    @pytest.mark.asyncio
    async def test_admin_removes_member(
        self, db, make_user, make_forum, membership_service, check_mirrors
    ):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        forum = await make_forum(alice, bob)

        await membership_service.remove_member(forum.id, alice, bob)

        doc = await db.forums.find_one({"_id": ObjectId(forum.id)})
        assert len(doc["members"]) == 1
        bob_doc = await db.users.find_one({"_id": ObjectId(bob)})
        assert bob_doc["joined_forums"] == []
        await check_mirrors()

    @pytest.mark.asyncio
    async def test_admin_cannot_remove_self(self, make_user, make_forum, membership_service):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        forum = await make_forum(alice, bob)

        with pytest.raises(BadRequestError):
            await membership_service.remove_member(forum.id, alice, alice)

    @pytest.mark.asyncio
    async def test_member_cannot_remove(self, make_user, make_forum, membership_service):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        forum = await make_forum(alice, bob)

        with pytest.raises(ForbiddenError):
            await membership_service.remove_member(forum.id, bob, alice)


class TestMemberDetails:
    """Tests for get_member_details and list_user_forums."""

    @pytest.mark.asyncio
    async def test_hidden_books_left_out_for_members(
        self, make_user, add_book, make_forum, membership_service
    ):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        carol = await make_user("Carol")
        dune = await add_book(bob, "Dune", "Frank Herbert")
        await add_book(bob, "Emma", "Jane Austen")
        forum = await make_forum(alice, bob, carol)
        await membership_service.hide_book(forum.id, alice, dune.id)

        seen_by_carol = await membership_service.get_member_details(forum.id, carol, bob)
        seen_by_alice = await membership_service.get_member_details(forum.id, alice, bob)

        assert [b.title for b in seen_by_carol.books] == ["Emma"]
        assert [b.title for b in seen_by_alice.books] == ["Dune", "Emma"]
        assert seen_by_carol.name == "Bob"

    @pytest.mark.asyncio
    async def test_target_outside_forum_not_found(self, make_user, make_forum, membership_service):
        alice = await make_user("Alice")
        carol = await make_user("Carol")
        forum = await make_forum(alice)

        with pytest.raises(NotFoundError):
            await membership_service.get_member_details(forum.id, alice, carol)

    @pytest.mark.asyncio
    async def test_list_user_forums_reports_roles(self, make_user, make_forum, membership_service):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        await make_forum(alice, bob, name="Club A")
        await make_forum(bob, name="Club B")

        forums = await membership_service.list_user_forums(bob)

        assert [(f.name, f.role) for f in forums] == [("Club A", "member"), ("Club B", "admin")]
        assert forums[0].member_count == 2


# =============================================================================
# Curation
# =============================================================================

class TestHideBook:
    """Tests for hide_book / unhide_book."""

    @pytest.mark.asyncio
    async def test_hide_twice_rejected(self, db, make_user, add_book, make_forum, membership_service):
        alice = await make_user("Alice")
        dune = await add_book(alice, "Dune", "Frank Herbert")
        forum = await make_forum(alice)

        await membership_service.hide_book(forum.id, alice, dune.id)
        with pytest.raises(BadRequestError):
            await membership_service.hide_book(forum.id, alice, dune.id)

        doc = await db.forums.find_one({"_id": ObjectId(forum.id)})
        assert doc["hidden_books"] == [ObjectId(dune.id)]

    @pytest.mark.asyncio
    async def test_unhide_restores_visibility(
        self, make_user, add_book, make_forum, membership_service
    ):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        dune = await add_book(bob, "Dune", "Frank Herbert")
        forum = await make_forum(alice, bob)
        await membership_service.hide_book(forum.id, alice, dune.id)

        await membership_service.unhide_book(forum.id, alice, dune.id)

        details = await membership_service.get_forum_details(forum.id, bob)
        assert [b.id for b in details.books] == [dune.id]

    @pytest.mark.asyncio
    async def test_unhide_visible_book_rejected(
        self, make_user, add_book, make_forum, membership_service
    ):
        alice = await make_user("Alice")
        dune = await add_book(alice, "Dune", "Frank Herbert")
        forum = await make_forum(alice)

        with pytest.raises(BadRequestError):
            await membership_service.unhide_book(forum.id, alice, dune.id)

    @pytest.mark.asyncio
    async def test_member_cannot_hide(self, make_user, add_book, make_forum, membership_service):
        alice = await make_user("Alice")
        bob = await make_user("Bob")
        dune = await add_book(bob, "Dune", "Frank Herbert")
        forum = await make_forum(alice, bob)

        with pytest.raises(ForbiddenError):
            await membership_service.hide_book(forum.id, bob, dune.id)

    @pytest.mark.asyncio
    async def test_book_outside_forum_cannot_be_hidden(
        self, make_user, add_book, make_forum, membership_service
    ):
        alice = await make_user("Alice")
        outsider = await make_user("Outsider")
        dune = await add_book(outsider, "Dune", "Frank Herbert")
        forum = await make_forum(alice)

        with pytest.raises(BadRequestError):
            await membership_service.hide_book(forum.id, alice, dune.id)

    @pytest.mark.asyncio
    async def test_unknown_book_not_found(self, make_user, make_forum, membership_service):
        alice = await make_user("Alice")
        forum = await make_forum(alice)

        with pytest.raises(NotFoundError):
            await membership_service.hide_book(forum.id, alice, str(ObjectId()))

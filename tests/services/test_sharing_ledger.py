"""Tests for SharingLedger: public links, email grants and visibility."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import pytest

from journal.core.exceptions import NotFoundError, ValidationError
from journal.models.memory import Visibility
from journal.models.memory_share import MemoryShare, SharePermission
from journal.services.sharing import SharingLedger, normalise_email
from tests.conftest import FRIEND_EMAIL, FRIEND_ID, OWNER_ID


class TestNormaliseEmail:

    def test_lowercases_and_strips(self):
        assert normalise_email("  A@Example.COM ") == "a@example.com"

    @pytest.mark.parametrize("bad", ["", "no-at-sign", "two@@example.com", "a@nodot", "a b@x.io"])
    def test_rejects_malformed(self, bad):
        with pytest.raises(ValidationError):
            normalise_email(bad)

    def test_rejects_overlong(self):
        with pytest.raises(ValidationError):
            normalise_email("a" * 320 + "@example.com")


@pytest.mark.asyncio
class TestPublicLinks:

    async def test_token_is_long_and_unguessable(self, store, make_memory):
        memory = await make_memory()
        token = await SharingLedger(store).generate_public_link(memory.id)

        assert len(token) >= 43
        assert memory.share_token == token
        assert memory.is_public is True
        assert memory.visibility == Visibility.SHARED

    async def test_resolve_returns_memory(self, store, make_memory):
        memory = await make_memory("Lake swim at dawn")
        ledger = SharingLedger(store)
        token = await ledger.generate_public_link(memory.id)

        resolved = await ledger.resolve_by_token(token)
        assert resolved.id == memory.id

    async def test_rotation_invalidates_old_token(self, store, make_memory):
        memory = await make_memory()
        ledger = SharingLedger(store)
        first = await ledger.generate_public_link(memory.id)
        second = await ledger.generate_public_link(memory.id)

        assert first != second
        with pytest.raises(NotFoundError):
            await ledger.resolve_by_token(first)
        assert (await ledger.resolve_by_token(second)).id == memory.id

    async def test_tokens_differ_across_memories(self, store, make_memory):
        ledger = SharingLedger(store)
        tokens = {await ledger.generate_public_link((await make_memory()).id) for _ in range(5)}
        assert len(tokens) == 5

    async def test_unknown_memory(self, store):
        with pytest.raises(NotFoundError):
            await SharingLedger(store).generate_public_link(uuid.uuid4())

    @pytest.mark.parametrize("token", ["", "does-not-exist"])
    async def test_unknown_token(self, store, token):
        with pytest.raises(NotFoundError):
            await SharingLedger(store).resolve_by_token(token)

    async def test_private_closes_link_and_public_reopens_it(self, store, make_memory):
        memory = await make_memory()
        ledger = SharingLedger(store)
        token = await ledger.generate_public_link(memory.id)

        await ledger.set_visibility(memory.id, Visibility.PRIVATE)
        with pytest.raises(NotFoundError):
            await ledger.resolve_by_token(token)

        await ledger.set_visibility(memory.id, "public")
        assert (await ledger.resolve_by_token(token)).id == memory.id


@pytest.mark.asyncio
class TestEmailGrants:

    async def test_share_list_revoke_scenario(self, store, users, make_memory):
        memory = await make_memory("Hiking in the Alps")
        ledger = SharingLedger(store)

        share = await ledger.share_with_user(
            memory.id, email="A@Example.com", granter_id=OWNER_ID
        )
        assert share.shared_with_email == FRIEND_EMAIL
        assert share.shared_with_user_id == FRIEND_ID
        assert share.permission == SharePermission.VIEW

        shared = await ledger.list_shared_with_email(FRIEND_EMAIL)
        assert [m.id for m in shared] == [memory.id]

        assert await ledger.revoke(share.id) is True
        assert await ledger.list_shared_with_email(FRIEND_EMAIL) == []

    async def test_revoke_is_idempotent(self, store, make_memory):
        memory = await make_memory()
        ledger = SharingLedger(store)
        share = await ledger.share_with_user(memory.id, email=FRIEND_EMAIL, granter_id=OWNER_ID)

        assert await ledger.revoke(share.id) is True
        assert await ledger.revoke(share.id) is False
        assert await ledger.revoke(uuid.uuid4()) is False

    async def test_grant_for_unregistered_email(self, store, make_memory):
        memory = await make_memory()
        share = await SharingLedger(store).share_with_user(
            memory.id, email="nobody@example.org", granter_id=OWNER_ID
        )
        assert share.shared_with_user_id is None

    async def test_edit_permission_string(self, store, make_memory):
        memory = await make_memory()
        share = await SharingLedger(store).share_with_user(
            memory.id, email=FRIEND_EMAIL, granter_id=OWNER_ID, permission="edit"
        )
        assert share.permission == SharePermission.EDIT

    async def test_bad_permission(self, store, make_memory):
        memory = await make_memory()
        with pytest.raises(ValidationError):
            await SharingLedger(store).share_with_user(
                memory.id, email=FRIEND_EMAIL, granter_id=OWNER_ID, permission="admin"
            )

    async def test_bad_email(self, store, make_memory):
        memory = await make_memory()
        with pytest.raises(ValidationError):
            await SharingLedger(store).share_with_user(
                memory.id, email="not-an-email", granter_id=OWNER_ID
            )

    async def test_missing_memory(self, store):
        with pytest.raises(NotFoundError):
            await SharingLedger(store).share_with_user(
                uuid.uuid4(), email=FRIEND_EMAIL, granter_id=OWNER_ID
            )

    async def test_duplicate_grants_listed_once_and_revoked_individually(
        self, store, make_memory
    ):
        memory = await make_memory()
        ledger = SharingLedger(store)
        first = await ledger.share_with_user(memory.id, email=FRIEND_EMAIL, granter_id=OWNER_ID)
        await ledger.share_with_user(memory.id, email=FRIEND_EMAIL, granter_id=OWNER_ID)

        assert len(await ledger.list_shares(memory.id)) == 2
        assert len(await ledger.list_shared_with_email(FRIEND_EMAIL)) == 1

        await ledger.revoke(first.id)
        assert [m.id for m in await ledger.list_shared_with_email(FRIEND_EMAIL)] == [memory.id]

    async def test_shared_with_email_newest_grant_first(self, store, make_memory):
        older = await make_memory("older grant")
        newer = await make_memory("newer grant")
        base = datetime(2024, 5, 1, tzinfo=UTC)
        for memory, created in ((older, base), (newer, base + timedelta(hours=1))):
            await store.add_share(
                MemoryShare(
                    memory_id=memory.id,
                    shared_with_email=FRIEND_EMAIL,
                    shared_by_user_id=OWNER_ID,
                    created_at=created,
                )
            )

        shared = await SharingLedger(store).list_shared_with_email(FRIEND_EMAIL.upper())
        assert [m.id for m in shared] == [newer.id, older.id]

    async def test_deleting_memory_drops_its_grants(self, store, make_memory):
        memory = await make_memory()
        ledger = SharingLedger(store)
        share = await ledger.share_with_user(memory.id, email=FRIEND_EMAIL, granter_id=OWNER_ID)

        await store.delete_memory(memory.id)

        assert await ledger.get_share(share.id) is None
        assert await ledger.list_shared_with_email(FRIEND_EMAIL) == []


@pytest.mark.asyncio
class TestSetVisibility:

    async def test_shared_keeps_public_flag(self, store, make_memory):
        memory = await make_memory(is_public=True, share_token="tok")
        updated = await SharingLedger(store).set_visibility(memory.id, Visibility.SHARED)
        assert updated.visibility == Visibility.SHARED
        assert updated.is_public is True

    async def test_invalid_value(self, store, make_memory):
        memory = await make_memory()
        with pytest.raises(ValidationError):
            await SharingLedger(store).set_visibility(memory.id, "friends-only")

    async def test_missing_memory(self, store):
        with pytest.raises(NotFoundError):
            await SharingLedger(store).set_visibility(uuid.uuid4(), Visibility.PUBLIC)

"""Tests for the visibility policy (can_view / can_edit)."""

from __future__ import annotations

import uuid

import pytest

from journal.core.visibility import (
    Anonymous,
    EmailIdentity,
    Owner,
    TokenHolder,
    can_edit,
    can_view,
    viewer_for,
)
from journal.models.memory import Memory, Visibility
from journal.models.memory_share import MemoryShare, SharePermission


def _memory(visibility: Visibility = Visibility.PRIVATE, **kwargs) -> Memory:
    return Memory(
        id=uuid.uuid4(),
        user_id="owner",
        content="Evening by the lake",
        visibility=visibility,
        is_public=kwargs.pop("is_public", False),
        **kwargs,
    )


def _share(memory: Memory, email: str, permission=SharePermission.VIEW) -> MemoryShare:
    return MemoryShare(
        id=uuid.uuid4(),
        memory_id=memory.id,
        shared_with_email=email,
        shared_by_user_id=memory.user_id,
        permission=permission,
    )


class TestCanView:

    def test_owner_always_allowed(self):
        for visibility in Visibility:
            assert can_view(_memory(visibility), Owner("owner"))

    def test_other_user_id_is_not_owner(self):
        assert not can_view(_memory(Visibility.PUBLIC), Owner("someone-else"))

    def test_private_memory_hidden_from_everyone_but_owner(self):
        memory = _memory(Visibility.PRIVATE, share_token="tok", is_public=True)
        share = _share(memory, "friend@example.com")

        assert not can_view(memory, TokenHolder("tok"))
        assert not can_view(memory, Anonymous())
        # an email grant still counts: grants are explicit owner decisions
        assert can_view(memory, EmailIdentity("friend@example.com"), [share])
        assert not can_view(memory, EmailIdentity("other@example.com"), [share])

    def test_token_holder_needs_matching_token_and_public_flag(self):
        memory = _memory(Visibility.SHARED, share_token="right", is_public=True)

        assert can_view(memory, TokenHolder("right"))
        assert not can_view(memory, TokenHolder("wrong"))

        memory.is_public = False
        assert not can_view(memory, TokenHolder("right"))

    def test_token_holder_without_token_on_memory(self):
        memory = _memory(Visibility.PUBLIC, share_token=None, is_public=True)
        assert not can_view(memory, TokenHolder(""))

    def test_email_identity_is_case_insensitive(self):
        memory = _memory(Visibility.SHARED)
        share = _share(memory, "a@example.com")
        assert can_view(memory, EmailIdentity("A@Example.COM"), [share])

    def test_share_for_another_memory_does_not_count(self):
        memory = _memory(Visibility.SHARED)
        other = _memory(Visibility.SHARED)
        share = _share(other, "a@example.com")
        assert not can_view(memory, EmailIdentity("a@example.com"), [share])

    @pytest.mark.parametrize(
        ("visibility", "expected"),
        [(Visibility.PRIVATE, False), (Visibility.SHARED, False), (Visibility.PUBLIC, True)],
    )
    def test_anonymous_sees_only_public(self, visibility, expected):
        assert can_view(_memory(visibility), Anonymous()) is expected


class TestCanEdit:

    def test_owner_can_edit(self):
        assert can_edit(_memory(), Owner("owner"))

    def test_edit_grant_allows_edit_view_grant_does_not(self):
        memory = _memory(Visibility.SHARED)
        view = _share(memory, "viewer@example.com")
        edit = _share(memory, "editor@example.com", SharePermission.EDIT)

        assert can_edit(memory, EmailIdentity("editor@example.com"), [view, edit])
        assert not can_edit(memory, EmailIdentity("viewer@example.com"), [view, edit])

    def test_token_holders_and_anonymous_never_edit(self):
        memory = _memory(Visibility.PUBLIC, share_token="tok", is_public=True)
        assert not can_edit(memory, TokenHolder("tok"))
        assert not can_edit(memory, Anonymous())


def test_viewer_for_classifies_caller():
    memory = _memory()
    assert viewer_for(memory, user_id="owner", email="o@example.com") == Owner("owner")
    assert viewer_for(memory, user_id="x", email="x@example.com") == EmailIdentity("x@example.com")

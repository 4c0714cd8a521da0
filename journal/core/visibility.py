"""Who may see or change a memory.

Pure functions over a memory, a viewer and the memory's shares. No I/O
happens here: callers load the shares (only when the viewer is an
EmailIdentity) and pass them in.

Viewer kinds:

  Owner(user_id)        the authenticated owner
  TokenHolder(token)    someone presenting a public share token
  EmailIdentity(email)  an authenticated non-owner, known by email
  Anonymous             nobody in particular
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from journal.models.memory import Memory, Visibility
from journal.models.memory_share import MemoryShare, SharePermission


@dataclass(frozen=True)
class Owner:
    user_id: str


@dataclass(frozen=True)
class TokenHolder:
    token: str


@dataclass(frozen=True)
class EmailIdentity:
    email: str


@dataclass(frozen=True)
class Anonymous:
    pass


Viewer = Owner | TokenHolder | EmailIdentity | Anonymous


def _grants_for(
    memory: Memory, email: str, shares: Iterable[MemoryShare]
) -> list[MemoryShare]:
    wanted = email.lower()
    return [
        s for s in shares
        if s.memory_id == memory.id and s.shared_with_email.lower() == wanted
    ]


def can_view(memory: Memory, viewer: Viewer, shares: Iterable[MemoryShare] = ()) -> bool:
    """Return True if viewer may read memory."""
    match viewer:
        case Owner(user_id=user_id):
            return memory.user_id == user_id
        case TokenHolder(token=token):
            return (
                memory.visibility != Visibility.PRIVATE
                and memory.share_token is not None
                and token == memory.share_token
                and bool(memory.is_public)
            )
        case EmailIdentity(email=email):
            return bool(_grants_for(memory, email, shares))
        case Anonymous():
            return memory.visibility == Visibility.PUBLIC
    return False


def can_edit(memory: Memory, viewer: Viewer, shares: Iterable[MemoryShare] = ()) -> bool:
    """Return True if viewer may modify memory content."""
    match viewer:
        case Owner(user_id=user_id):
            return memory.user_id == user_id
        case EmailIdentity(email=email):
            return any(
                s.permission == SharePermission.EDIT
                for s in _grants_for(memory, email, shares)
            )
    return False


def viewer_for(memory: Memory, *, user_id: str, email: str) -> Owner | EmailIdentity:
    """Classify an authenticated caller relative to one memory."""
    if memory.user_id == user_id:
        return Owner(user_id)
    return EmailIdentity(email)

"""User profile endpoints (self only).

GET /api/users/{user_id}
PUT /api/users/{user_id}
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from journal.api.schemas import UserResponse, UserUpdateRequest
from journal.auth.dependencies import AuthenticatedUser, get_current_user
from journal.core.exceptions import NotFoundError, UnauthorizedError
from journal.storage import JournalStore, get_store

router = APIRouter(prefix="/users", tags=["users"])


def _assert_self(user_id: str, current_user: AuthenticatedUser) -> None:
    if user_id != current_user.id:
        raise UnauthorizedError("You can only access your own profile")


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> UserResponse:
    _assert_self(user_id, current_user)
    return UserResponse.from_user(current_user.user)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    body: UserUpdateRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    store: JournalStore = Depends(get_store),
) -> UserResponse:
    _assert_self(user_id, current_user)

    sent = body.model_dump(exclude_unset=True)
    changes = {}
    if "name" in sent:
        changes["display_name"] = sent["name"]
    if "avatar_url" in sent:
        changes["avatar_url"] = sent["avatar_url"]

    user = await store.update_user(user_id, changes) if changes else current_user.user
    if user is None:
        raise NotFoundError("User not found")
    return UserResponse.from_user(user)

"""Request/response schemas shared by the routers.

JSON uses camelCase (audioUrl, sharedByUserId, ...). Requests also accept
snake_case field names.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from journal.models.memory import Emotion, Memory, MemoryType, Visibility
from journal.models.memory_share import MemoryShare, SharePermission
from journal.models.user import User


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ---------------------------------------------------------------------------
# Memories
# ---------------------------------------------------------------------------


class Attachment(CamelModel):
    url: str = Field(..., min_length=1, max_length=2048)
    mime_type: str | None = Field(default=None, max_length=255)
    filename: str | None = Field(default=None, max_length=512)
    size: int | None = Field(default=None, ge=0)


class _MemoryFields(CamelModel):
    type: MemoryType | None = None
    title: str | None = Field(default=None, max_length=255)
    transcript: str | None = None
    audio_url: str | None = Field(default=None, max_length=2048)
    audio_duration: int | None = Field(default=None, ge=0)
    image_url: str | None = Field(default=None, max_length=2048)
    video_url: str | None = Field(default=None, max_length=2048)
    attachments: list[Attachment] | None = None
    people: list[str] | None = None
    location: str | None = Field(default=None, max_length=512)
    emotion: Emotion | None = None
    date: datetime | None = None
    prompt: str | None = None


class MemoryCreateRequest(_MemoryFields):
    content: str = Field(..., min_length=1)
    visibility: Visibility = Visibility.PRIVATE
    user_id: str | None = Field(
        default=None,
        description="Optional; must equal the caller when sent",
    )

    def to_fields(self) -> dict[str, Any]:
        return self.model_dump(exclude={"visibility", "user_id"}, exclude_none=True)


class MemoryUpdateRequest(_MemoryFields):
    content: str | None = Field(default=None, min_length=1)

    def to_changes(self) -> dict[str, Any]:
        """Only the fields the client actually sent."""
        return self.model_dump(exclude_unset=True)


class MemoryResponse(CamelModel):
    id: uuid.UUID
    user_id: str
    type: MemoryType
    title: str | None = None
    content: str
    transcript: str | None = None
    audio_url: str | None = None
    audio_duration: int | None = None
    image_url: str | None = None
    video_url: str | None = None
    attachments: list[Attachment] = Field(default_factory=list)
    people: list[str] = Field(default_factory=list)
    location: str | None = None
    emotion: Emotion | None = None
    date: datetime
    prompt: str | None = None
    visibility: Visibility
    is_public: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_memory(cls, memory: Memory) -> MemoryResponse:
        return cls.model_validate(memory)


class MessageResponse(BaseModel):
    message: str


# ---------------------------------------------------------------------------
# Sharing
# ---------------------------------------------------------------------------


class ShareLinkResponse(BaseModel):
    token: str
    url: str


class ShareWithUserRequest(CamelModel):
    email: str = Field(..., min_length=3, max_length=320)
    permission: SharePermission = SharePermission.VIEW
    shared_by_user_id: str | None = None


class MemoryShareResponse(CamelModel):
    id: uuid.UUID
    memory_id: uuid.UUID
    shared_with_email: str
    shared_with_user_id: str | None = None
    shared_by_user_id: str
    permission: SharePermission
    created_at: datetime

    @classmethod
    def from_share(cls, share: MemoryShare) -> MemoryShareResponse:
        return cls.model_validate(share)


class RevokeResponse(BaseModel):
    message: str
    revoked: bool


class VisibilityRequest(CamelModel):
    visibility: Visibility


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


class SemanticSearchRequest(CamelModel):
    query: str = Field(..., min_length=1, max_length=1000)
    user_id: str | None = None


class QueryExpansionResponse(CamelModel):
    expanded_query: str
    search_terms: list[str]
    search_strategy: str


class SearchHitResponse(CamelModel):
    memory: MemoryResponse
    similarity: float
    explanation: str


class SemanticSearchResponse(CamelModel):
    results: list[SearchHitResponse]
    query_expansion: QueryExpansionResponse | None
    original_query: str
    message: str


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserResponse(CamelModel):
    id: str
    email: str
    name: str | None = None
    avatar_url: str | None = None

    @classmethod
    def from_user(cls, user: User) -> UserResponse:
        return cls(
            id=user.id,
            email=user.email,
            name=user.display_name,
            avatar_url=user.avatar_url,
        )


class UserUpdateRequest(CamelModel):
    name: str | None = Field(default=None, max_length=255)
    avatar_url: str | None = Field(default=None, max_length=2048)


# ---------------------------------------------------------------------------
# Prompts / media
# ---------------------------------------------------------------------------


class PromptResponse(CamelModel):
    id: int
    category: str
    prompt: str
    is_active: bool


class GeneratePromptRequest(CamelModel):
    category: str | None = Field(default=None, max_length=50)


class GeneratedPromptResponse(BaseModel):
    prompt: str
    category: str


class TranscriptionResponse(BaseModel):
    text: str
    duration: float | None = None

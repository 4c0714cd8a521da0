"""Memory CRUD endpoints.

GET    /api/memories           - List the caller's memories (filters, paging)
POST   /api/memories           - Create a memory (emotion auto-tagged if omitted)
GET    /api/memories/{id}      - Read one memory (owner, grantee, or public)
PUT    /api/memories/{id}      - Partial update (owner or edit grantee)
DELETE /api/memories/{id}      - Delete (owner only; shares go with it)
"""

from __future__ import annotations

import uuid
from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, Query, status

from journal.ai.llm import LLMClient, get_llm_client
from journal.api.schemas import (
    MemoryCreateRequest,
    MemoryResponse,
    MemoryUpdateRequest,
    MessageResponse,
)
from journal.auth.dependencies import AuthenticatedUser, get_current_user
from journal.core.exceptions import NotFoundError, UnauthorizedError
from journal.models.memory import Emotion
from journal.services.enrichment import EnrichmentService
from journal.services.memory import DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT, MemoryService
from journal.storage import JournalStore, MemoryFilters, get_store

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/memories", tags=["memories"])


@router.get("", response_model=list[MemoryResponse], summary="List my memories")
async def list_memories(
    emotion: Emotion | None = Query(default=None),
    location: str | None = Query(default=None, max_length=512),
    people: list[str] = Query(default=[]),
    start_date: datetime | None = Query(default=None, alias="startDate"),
    end_date: datetime | None = Query(default=None, alias="endDate"),
    search: str | None = Query(default=None, max_length=500),
    limit: int = Query(default=DEFAULT_LIST_LIMIT, ge=1, le=MAX_LIST_LIMIT),
    offset: int = Query(default=0, ge=0),
    current_user: AuthenticatedUser = Depends(get_current_user),
    store: JournalStore = Depends(get_store),
) -> list[MemoryResponse]:
    """List the caller's memories, newest first.

    people may be repeated (?people=Ana&people=Ben) or comma separated.
    """
    names = tuple(
        name.strip() for value in people for name in value.split(",") if name.strip()
    )
    filters = MemoryFilters(
        emotion=emotion,
        location=location or None,
        people=names,
        start_date=start_date,
        end_date=end_date,
        search=search or None,
    )
    memories = await MemoryService(store).list_memories(
        owner_id=current_user.id, filters=filters, limit=limit, offset=offset
    )
    return [MemoryResponse.from_memory(m) for m in memories]


@router.post(
    "",
    response_model=MemoryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a memory",
)
async def create_memory(
    body: MemoryCreateRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    store: JournalStore = Depends(get_store),
    llm: LLMClient = Depends(get_llm_client),
) -> MemoryResponse:
    if body.user_id is not None and body.user_id != current_user.id:
        raise UnauthorizedError("Cannot create memories for another user")

    service = MemoryService(store, EnrichmentService(llm))
    memory = await service.create(
        owner_id=current_user.id,
        data=body.to_fields(),
        visibility=body.visibility,
    )
    return MemoryResponse.from_memory(memory)


@router.get("/{memory_id}", response_model=MemoryResponse, summary="Get a memory")
async def get_memory(
    memory_id: uuid.UUID,
    current_user: AuthenticatedUser = Depends(get_current_user),
    store: JournalStore = Depends(get_store),
) -> MemoryResponse:
    memory = await MemoryService(store).get_visible(
        memory_id, user_id=current_user.id, email=current_user.email
    )
    return MemoryResponse.from_memory(memory)


@router.put("/{memory_id}", response_model=MemoryResponse, summary="Update a memory")
async def update_memory(
    memory_id: uuid.UUID,
    body: MemoryUpdateRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    store: JournalStore = Depends(get_store),
) -> MemoryResponse:
    memory = await MemoryService(store).update_as(
        memory_id,
        body.to_changes(),
        user_id=current_user.id,
        email=current_user.email,
    )
    return MemoryResponse.from_memory(memory)


@router.delete("/{memory_id}", response_model=MessageResponse, summary="Delete a memory")
async def delete_memory(
    memory_id: uuid.UUID,
    current_user: AuthenticatedUser = Depends(get_current_user),
    store: JournalStore = Depends(get_store),
) -> MessageResponse:
    service = MemoryService(store)
    await service.require_owner(memory_id, current_user.id)
    if not await service.delete(memory_id):
        raise NotFoundError(f"Memory {memory_id} not found")
    return MessageResponse(message="Memory deleted successfully")

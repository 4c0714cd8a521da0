"""Memory Service - business logic for journal entries.

Provides create, get, list, update and delete, plus the access-checked
variants the HTTP layer uses (get_visible, update_as, require_owner).

Input coming from outside (enum strings, naive datetimes, attachment
dicts) is normalised here so that every store sees the same shapes.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

import structlog

from journal.core.exceptions import NotFoundError, UnauthorizedError, UpstreamError, ValidationError
from journal.core.visibility import Anonymous, can_edit, can_view, viewer_for
from journal.models.memory import Emotion, Memory, MemoryType, Visibility
from journal.services.enrichment import EnrichmentService
from journal.storage import JournalStore, MemoryFilters

log = structlog.get_logger(__name__)

MAX_LIST_LIMIT = 200
DEFAULT_LIST_LIMIT = 50

_EDITABLE_FIELDS = frozenset({
    "type",
    "title",
    "content",
    "transcript",
    "audio_url",
    "audio_duration",
    "image_url",
    "video_url",
    "attachments",
    "people",
    "location",
    "emotion",
    "date",
    "prompt",
})


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _normalise_attachment(raw: Any) -> dict[str, Any]:
    if not isinstance(raw, dict) or not raw.get("url"):
        raise ValidationError("Each attachment needs a url")
    size = raw.get("size")
    if size is not None and (not isinstance(size, int) or size < 0):
        raise ValidationError("Attachment size must be a non-negative integer")
    return {
        "url": str(raw["url"]),
        "mime_type": raw.get("mime_type"),
        "filename": raw.get("filename"),
        "size": size,
    }


def _normalise_fields(data: dict[str, Any]) -> dict[str, Any]:
    """Validate and coerce memory fields.

    Raises:
        ValidationError: unknown field, bad enum value, empty content, ...
    """
    unknown = set(data) - _EDITABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown or read-only memory fields: {sorted(unknown)}")

    out: dict[str, Any] = {}
    for key, value in data.items():
        if key == "type":
            try:
                out[key] = MemoryType(value)
            except ValueError as exc:
                raise ValidationError(f"Invalid memory type: {value!r}") from exc
        elif key == "emotion":
            if value is None or value == "":
                out[key] = None
            else:
                try:
                    out[key] = Emotion(value)
                except ValueError as exc:
                    raise ValidationError(f"Invalid emotion: {value!r}") from exc
        elif key == "content":
            if not isinstance(value, str) or not value.strip():
                raise ValidationError("Memory content must not be empty")
            out[key] = value
        elif key == "audio_duration":
            if value is None:
                out[key] = None
            elif isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
                raise ValidationError("audio_duration must be a non-negative number of seconds")
            else:
                out[key] = round(value)
        elif key == "date":
            if value is None:
                continue
            if not isinstance(value, datetime):
                raise ValidationError("date must be a datetime")
            out[key] = as_utc(value)
        elif key == "people":
            out[key] = [str(p).strip() for p in (value or []) if str(p).strip()]
        elif key == "attachments":
            out[key] = [_normalise_attachment(a) for a in (value or [])]
        else:
            out[key] = value
    return out


class MemoryService:
    """CRUD and access checks for memories."""

    def __init__(self, store: JournalStore, enrichment: EnrichmentService | None = None) -> None:
        self._store = store
        self._enrichment = enrichment

    # ------------------------------------------------------------------
    # create
    # ------------------------------------------------------------------

    async def create(
        self,
        *,
        owner_id: str,
        data: dict[str, Any],
        visibility: Visibility | str = Visibility.PRIVATE,
    ) -> Memory:
        """Persist a new memory for owner_id.

        When no emotion is given and there is content, the sentiment
        classifier fills it in. A classifier failure is logged and the
        memory is saved without an emotion.

        Args:
            owner_id: Id of the owning user
            data: Memory fields (content is required)
            visibility: Initial visibility; "public" also opens token lookup

        Returns:
            The persisted Memory
        """
        fields = _normalise_fields(data)
        if "content" not in fields:
            raise ValidationError("Memory content must not be empty")
        try:
            visibility = Visibility(visibility)
        except ValueError as exc:
            raise ValidationError(f"Invalid visibility: {visibility!r}") from exc

        if fields.get("emotion") is None and self._enrichment is not None:
            try:
                sentiment = await self._enrichment.analyze_sentiment(fields["content"])
                fields["emotion"] = sentiment.emotion
            except UpstreamError as exc:
                log.warning("memory.sentiment_failed", owner_id=owner_id, error=exc.message)

        memory = Memory(
            user_id=owner_id,
            visibility=visibility,
            is_public=visibility == Visibility.PUBLIC,
            **fields,
        )
        memory = await self._store.create_memory(memory)

        log.info(
            "memory.created",
            memory_id=str(memory.id),
            owner_id=owner_id,
            type=str(memory.type),
            emotion=str(memory.emotion) if memory.emotion else None,
        )
        return memory

    # ------------------------------------------------------------------
    # read
    # ------------------------------------------------------------------

    async def get(self, memory_id: uuid.UUID) -> Memory:
        memory = await self._store.get_memory(memory_id)
        if memory is None:
            raise NotFoundError(f"Memory {memory_id} not found")
        return memory

    async def get_visible(self, memory_id: uuid.UUID, *, user_id: str, email: str) -> Memory:
        """Return the memory if the authenticated caller may read it.

        Raises:
            NotFoundError: no such memory
            UnauthorizedError: caller is not the owner or a grantee, and the
                memory is not public
        """
        memory = await self.get(memory_id)
        viewer = viewer_for(memory, user_id=user_id, email=email)
        shares = [] if memory.user_id == user_id else await self._store.list_shares(memory.id)
        if not (can_view(memory, viewer, shares) or can_view(memory, Anonymous())):
            log.info("memory.view_denied", memory_id=str(memory_id), user_id=user_id)
            raise UnauthorizedError("You do not have access to this memory")
        return memory

    async def require_owner(self, memory_id: uuid.UUID, user_id: str) -> Memory:
        """Return the memory if user_id owns it, else raise."""
        memory = await self.get(memory_id)
        if memory.user_id != user_id:
            raise UnauthorizedError("Only the owner can do this")
        return memory

    async def list_memories(
        self,
        *,
        owner_id: str,
        filters: MemoryFilters | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
        offset: int = 0,
    ) -> list[Memory]:
        """List the owner's memories, newest first, with optional filters."""
        limit = max(1, min(limit, MAX_LIST_LIMIT))
        offset = max(0, offset)
        if filters is not None:
            filters = MemoryFilters(
                emotion=filters.emotion,
                location=filters.location,
                people=filters.people,
                start_date=as_utc(filters.start_date) if filters.start_date else None,
                end_date=as_utc(filters.end_date) if filters.end_date else None,
                search=filters.search,
            )
        return await self._store.list_memories(owner_id, filters, limit=limit, offset=offset)

    # ------------------------------------------------------------------
    # update / delete
    # ------------------------------------------------------------------

    async def update(self, memory_id: uuid.UUID, changes: dict[str, Any]) -> Memory:
        """Apply a partial update. Ownership and sharing state are not editable here."""
        fields = _normalise_fields(changes)
        memory = await self._store.update_memory(memory_id, fields)
        if memory is None:
            raise NotFoundError(f"Memory {memory_id} not found")
        log.info("memory.updated", memory_id=str(memory_id), fields=sorted(fields))
        return memory

    async def update_as(
        self,
        memory_id: uuid.UUID,
        changes: dict[str, Any],
        *,
        user_id: str,
        email: str,
    ) -> Memory:
        """Update on behalf of a caller who must be the owner or an edit grantee."""
        memory = await self.get(memory_id)
        viewer = viewer_for(memory, user_id=user_id, email=email)
        shares = [] if memory.user_id == user_id else await self._store.list_shares(memory.id)
        if not can_edit(memory, viewer, shares):
            raise UnauthorizedError("You do not have permission to edit this memory")
        return await self.update(memory_id, changes)

    async def delete(self, memory_id: uuid.UUID) -> bool:
        """Delete a memory and its shares. Returns False if it did not exist."""
        deleted = await self._store.delete_memory(memory_id)
        if deleted:
            log.info("memory.deleted", memory_id=str(memory_id))
        return deleted

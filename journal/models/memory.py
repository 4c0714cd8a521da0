"""Memory model - a single journal entry owned by one user.

A memory carries its content, optional media references, people/location/
emotion metadata and its sharing state:

- visibility: private | shared | public (tri-state access level)
- is_public: gate for share-token lookup; a token only resolves while true
- share_token: opaque random string, set once a public link is generated

Attachments are stored as a JSON list of structured objects
({url, mime_type, filename, size}), never as re-serialised strings.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from journal.database import Base


class MemoryType(StrEnum):
    TEXT = "text"
    AUDIO = "audio"
    MIXED = "mixed"


class Emotion(StrEnum):
    HAPPY = "happy"
    SAD = "sad"
    GRATEFUL = "grateful"
    PEACEFUL = "peaceful"
    EXCITED = "excited"
    NOSTALGIC = "nostalgic"
    ANXIOUS = "anxious"
    CONTENT = "content"
    MIXED = "mixed"


class Visibility(StrEnum):
    PRIVATE = "private"
    SHARED = "shared"
    PUBLIC = "public"


def _enum_values(enum_cls: type[StrEnum]) -> list[str]:
    return [member.value for member in enum_cls]


class Memory(Base):
    __tablename__ = "memories"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    type: Mapped[MemoryType] = mapped_column(
        Enum(MemoryType, name="memory_type", values_callable=_enum_values),
        nullable=False,
        default=MemoryType.TEXT,
    )
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    transcript: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Media references (binary storage lives elsewhere)
    audio_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    audio_duration: Mapped[int | None] = mapped_column(
        Integer, nullable=True, comment="Seconds"
    )
    image_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    video_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    attachments: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB, nullable=False, default=list
    )

    # Metadata
    people: Mapped[list[str]] = mapped_column(
        ARRAY(String(255)), nullable=False, default=list
    )
    location: Mapped[str | None] = mapped_column(String(512), nullable=True)
    emotion: Mapped[Emotion | None] = mapped_column(
        Enum(Emotion, name="memory_emotion", values_callable=_enum_values),
        nullable=True,
    )
    date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        comment="When the remembered event happened",
    )
    prompt: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Sharing state
    visibility: Mapped[Visibility] = mapped_column(
        Enum(Visibility, name="memory_visibility", values_callable=_enum_values),
        nullable=False,
        default=Visibility.PRIVATE,
    )
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    share_token: Mapped[str | None] = mapped_column(
        String(128), nullable=True, unique=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    # Relationships
    owner: Mapped[User] = relationship("User", back_populates="memories")  # type: ignore[name-defined]  # noqa: F821
    shares: Mapped[list[MemoryShare]] = relationship(  # type: ignore[name-defined]  # noqa: F821
        "MemoryShare",
        back_populates="memory",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_memories_user_date", "user_id", "date"),
    )

    def search_text(self) -> str:
        """Concatenate the searchable fields, skipping empty ones."""
        parts = [
            self.content,
            self.transcript,
            self.location,
            " ".join(self.people or []),
            str(self.emotion) if self.emotion else None,
            self.prompt,
        ]
        return " ".join(part for part in parts if part)

    def __repr__(self) -> str:
        return f"<Memory id={self.id} user={self.user_id!r} visibility={self.visibility}>"

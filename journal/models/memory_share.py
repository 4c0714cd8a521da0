"""MemoryShare model - an explicit grant of access to one email address.

The grantee is addressed by email because they may not have an account
yet; shared_with_user_id is filled in when a user with that email already
exists at share time.

Shares are never mutated. They are removed by an explicit revoke or by
cascade when the memory is deleted. Several shares for the same
(memory, email) pair may coexist; each must be revoked on its own.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from journal.database import Base


class SharePermission(StrEnum):
    VIEW = "view"
    EDIT = "edit"


class MemoryShare(Base):
    __tablename__ = "memory_shares"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    memory_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("memories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    shared_with_email: Mapped[str] = mapped_column(String(320), nullable=False)
    shared_with_user_id: Mapped[str | None] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
    )
    shared_by_user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    permission: Mapped[SharePermission] = mapped_column(
        Enum(
            SharePermission,
            name="share_permission",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=SharePermission.VIEW,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    memory: Mapped[Memory] = relationship("Memory", back_populates="shares")  # type: ignore[name-defined]  # noqa: F821

    __table_args__ = (
        Index("ix_memory_shares_email", "shared_with_email"),
    )

    def __repr__(self) -> str:
        return (
            f"<MemoryShare id={self.id} memory={self.memory_id} "
            f"email={self.shared_with_email!r} permission={self.permission}>"
        )

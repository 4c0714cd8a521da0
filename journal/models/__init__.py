"""ORM models package.

Import all models here so that SQLAlchemy's metadata is fully populated
when Alembic runs autogenerate and relationship strings resolve.
"""

from journal.models.memory import Emotion, Memory, MemoryType, Visibility
from journal.models.memory_prompt import MemoryPrompt
from journal.models.memory_share import MemoryShare, SharePermission
from journal.models.user import AuthProvider, User

__all__ = [
    "AuthProvider",
    "Emotion",
    "Memory",
    "MemoryPrompt",
    "MemoryShare",
    "MemoryType",
    "SharePermission",
    "User",
    "Visibility",
]

"""Prompt Catalog - inspiration prompts for new memories.

A fixed set of categories, a seeded default catalog, random picks and
LLM-generated prompts.
"""

from __future__ import annotations

import random

import structlog

from journal.core.exceptions import NotFoundError, ValidationError
from journal.models.memory_prompt import MemoryPrompt
from journal.services.enrichment import EnrichmentService
from journal.storage import JournalStore

log = structlog.get_logger(__name__)

CATEGORIES: tuple[str, ...] = (
    "childhood",
    "daily",
    "relationships",
    "travel",
    "achievements",
    "family",
    "work",
    "hobbies",
)

GENERAL_CATEGORY = "general"

DEFAULT_PROMPTS: dict[str, list[str]] = {
    "childhood": [
        "Describe a birthday that stands out from your childhood",
        "What was your favorite hiding spot as a child?",
        "Tell me about your first day of school",
    ],
    "daily": [
        "Describe a perfect ordinary day in your life",
        "Tell me about a meal that was more than just food",
        "What's a small victory you had this week?",
    ],
    "relationships": [
        "Write about a conversation that changed your perspective",
        "Describe a moment when you felt truly understood by someone",
        "Tell me about a time you made a new friend",
    ],
    "travel": [
        "Describe a place that took your breath away",
        "Tell me about getting lost and finding something unexpected",
    ],
    "achievements": [
        "Write about a goal you achieved that seemed impossible",
        "Describe a moment when you overcame a fear",
    ],
    "family": [
        "Describe a family tradition you still think about",
        "Tell me about a lesson a grandparent taught you",
    ],
    "work": [
        "Write about the first job you ever had",
        "Describe a colleague who made a difference to you",
    ],
    "hobbies": [
        "Tell me about the first time you tried your favorite hobby",
        "Describe something you made with your own hands",
    ],
}


def _check_category(category: str | None) -> str | None:
    if category is None:
        return None
    category = category.strip().lower()
    if category and category not in CATEGORIES and category != GENERAL_CATEGORY:
        raise ValidationError(f"Unknown prompt category: {category!r}")
    return category or None


async def seed_default_prompts(store: JournalStore) -> int:
    """Insert DEFAULT_PROMPTS when the catalog is empty. Returns rows added."""
    if await store.count_prompts() > 0:
        return 0
    added = 0
    for category, prompts in DEFAULT_PROMPTS.items():
        for text in prompts:
            await store.add_prompt(MemoryPrompt(category=category, prompt=text, is_active=True))
            added += 1
    log.info("prompts.seeded", count=added)
    return added


class PromptCatalog:
    def __init__(self, store: JournalStore, enrichment: EnrichmentService) -> None:
        self._store = store
        self._enrichment = enrichment

    async def list_prompts(self, category: str | None = None) -> list[MemoryPrompt]:
        return await self._store.list_prompts(_check_category(category))

    async def random_prompt(self) -> MemoryPrompt:
        prompts = await self._store.list_prompts()
        if not prompts:
            raise NotFoundError("No prompts available")
        return random.choice(prompts)

    async def generate(self, category: str | None = None) -> tuple[str, str]:
        """Return (prompt text, category) from the LLM, or the fallback prompt."""
        category = _check_category(category)
        text = await self._enrichment.generate_prompt(category)
        return text, category or GENERAL_CATEGORY

    @staticmethod
    def categories() -> list[str]:
        return list(CATEGORIES)

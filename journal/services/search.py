"""Semantic Search Engine - embedding-ranked retrieval over a user's memories.

Pipeline for one request:

1. Fetch the user's most recent memories (the candidate set)
2. Expand the query with the LLM (best effort, falls back to the raw query)
3. Embed the query once and every distinct candidate text concurrently
4. Rank by cosine similarity, keep scores above the threshold, cap the count
5. Ask the LLM for a one or two sentence explanation per kept match

Search is best effort: upstream failures degrade the outcome instead of
failing the request.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import math
from collections.abc import Sequence
from dataclasses import dataclass, field

import structlog

from journal.ai.llm import LLMClient
from journal.config import Settings
from journal.core.exceptions import UpstreamError, ValidationError
from journal.core.security import sanitize_log_value
from journal.models.memory import Memory
from journal.storage import JournalStore

log = structlog.get_logger(__name__)

FALLBACK_EXPLANATION = "This memory contains relevant content."
FALLBACK_STRATEGY = "direct keyword"

NO_MEMORIES_MESSAGE = "No memories found for semantic search"
DEGRADED_MESSAGE = "Semantic search unavailable, showing 0 AI matches"

_EXPANSION_SYSTEM_PROMPT = (
    "You are a search expert. Analyze the search query and suggest expanded search "
    "terms, synonyms, and related concepts that would help find relevant memories. "
    'Respond with JSON in this format: {"expandedQuery": "string", '
    '"searchTerms": ["term1", "term2"], "searchStrategy": "explanation"}'
)

_EXPLANATION_SYSTEM_PROMPT = (
    "You are a helpful assistant that explains why a memory matches a search query. "
    "Provide a brief, natural explanation of the connection in 1-2 sentences."
)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """dot(a, b) / (|a| * |b|), or 0.0 when either vector has zero norm.

    Raises:
        ValidationError: vectors of different length
    """
    if len(a) != len(b):
        raise ValidationError(f"Vectors must have the same length ({len(a)} != {len(b)})")
    dot = math.fsum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(math.fsum(x * x for x in a))
    norm_b = math.sqrt(math.fsum(y * y for y in b))
    magnitude = norm_a * norm_b
    if magnitude == 0:
        return 0.0
    # Clamp float drift so sim(a, a) is exactly 1 and results stay in [-1, 1]
    return max(-1.0, min(1.0, dot / magnitude))


def text_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class QueryExpansion:
    expanded_query: str
    search_terms: list[str]
    search_strategy: str

    @classmethod
    def fallback(cls, query: str) -> QueryExpansion:
        return cls(expanded_query=query, search_terms=[query], search_strategy=FALLBACK_STRATEGY)


@dataclass(frozen=True)
class SearchHit:
    memory: Memory
    similarity: float
    explanation: str


@dataclass
class SearchOutcome:
    original_query: str
    message: str
    query_expansion: QueryExpansion | None = None
    results: list[SearchHit] = field(default_factory=list)


def _parse_expansion(raw: str, query: str) -> QueryExpansion:
    try:
        payload = json.loads(raw or "{}")
    except json.JSONDecodeError:
        return QueryExpansion.fallback(query)
    if not isinstance(payload, dict):
        return QueryExpansion.fallback(query)

    expanded = payload.get("expandedQuery")
    terms = payload.get("searchTerms")
    strategy = payload.get("searchStrategy")

    if not isinstance(terms, list) or not all(isinstance(t, str) for t in terms) or not terms:
        terms = [query]
    return QueryExpansion(
        expanded_query=expanded if isinstance(expanded, str) and expanded.strip() else query,
        search_terms=terms,
        search_strategy=(
            strategy if isinstance(strategy, str) and strategy.strip() else FALLBACK_STRATEGY
        ),
    )


class SemanticSearchEngine:
    """Ranks a user's memories against a natural-language query."""

    def __init__(self, store: JournalStore, llm: LLMClient, settings: Settings) -> None:
        self._store = store
        self._llm = llm
        self._candidate_limit = settings.search_candidate_limit
        self._threshold = settings.search_similarity_threshold
        self._max_results = settings.search_max_results

    async def search(self, *, user_id: str, query: str) -> SearchOutcome:
        """Run the full pipeline for one user and query.

        Never raises for upstream failures; see the module docstring.

        Raises:
            ValidationError: blank query
        """
        query = (query or "").strip()
        if not query:
            raise ValidationError("Query is required")

        candidates = await self._store.list_memories(user_id, limit=self._candidate_limit)
        if not candidates:
            return SearchOutcome(original_query=query, message=NO_MEMORIES_MESSAGE)

        expansion = await self.expand_query(query)

        try:
            query_vector = await self._llm.embed(query)
        except UpstreamError as exc:
            log.warning(
                "search.degraded",
                user_id=user_id,
                query=sanitize_log_value(query),
                error=exc.message,
            )
            return SearchOutcome(
                original_query=query,
                message=DEGRADED_MESSAGE,
                query_expansion=expansion,
            )

        candidate_vectors = await self._embed_candidates([m.search_text() for m in candidates])
        ranked = self._rank(query_vector, candidates, candidate_vectors)

        explanations = await asyncio.gather(
            *(self.explain(query, memory, score) for memory, score in ranked)
        )
        hits = [
            SearchHit(memory=memory, similarity=score, explanation=explanation)
            for (memory, score), explanation in zip(ranked, explanations)
        ]

        log.info(
            "search.completed",
            user_id=user_id,
            candidates=len(candidates),
            results=len(hits),
        )
        return SearchOutcome(
            original_query=query,
            message=f"Found {len(hits)} relevant memories",
            query_expansion=expansion,
            results=hits,
        )

    # ------------------------------------------------------------------
    # Pipeline steps
    # ------------------------------------------------------------------

    async def expand_query(self, query: str) -> QueryExpansion:
        """LLM query expansion; any failure yields the direct-keyword fallback."""
        try:
            raw = await self._llm.complete(
                _EXPANSION_SYSTEM_PROMPT,
                f'Expand this search query to find relevant personal memories: "{query}"',
                json_mode=True,
                temperature=0.3,
                max_tokens=300,
            )
        except UpstreamError as exc:
            log.warning("search.expansion_failed", error=exc.message)
            return QueryExpansion.fallback(query)
        return _parse_expansion(raw, query)

    async def explain(self, query: str, memory: Memory, similarity: float) -> str:
        user_prompt = (
            f'Search query: "{query}"\n\n'
            f'Memory content: "{memory.content}"\n'
            f"Location: {memory.location or 'Not specified'}\n"
            f"People: {', '.join(memory.people or []) or 'Not specified'}\n"
            f"Emotion: {memory.emotion or 'Not specified'}\n"
            f"Similarity score: {similarity:.2f}\n\n"
            "Explain why this memory matches the search query."
        )
        try:
            text = await self._llm.complete(
                _EXPLANATION_SYSTEM_PROMPT,
                user_prompt,
                temperature=0.7,
                max_tokens=100,
            )
        except UpstreamError as exc:
            log.debug("search.explanation_failed", memory_id=str(memory.id), error=exc.message)
            return FALLBACK_EXPLANATION
        return text.strip() or FALLBACK_EXPLANATION

    async def _embed_candidates(self, texts: list[str]) -> list[list[float] | None]:
        """Embed each distinct text once, concurrently; None marks a failed embed."""
        unique: dict[str, str] = {}
        for text in texts:
            unique.setdefault(text_hash(text), text)

        keys = list(unique)
        vectors = await asyncio.gather(*(self._safe_embed(unique[k]) for k in keys))
        by_hash = dict(zip(keys, vectors))
        return [by_hash[text_hash(text)] for text in texts]

    async def _safe_embed(self, text: str) -> list[float] | None:
        try:
            return await self._llm.embed(text)
        except UpstreamError as exc:
            log.warning("search.candidate_embed_failed", error=exc.message)
            return None

    def _rank(
        self,
        query_vector: list[float],
        candidates: list[Memory],
        vectors: list[list[float] | None],
    ) -> list[tuple[Memory, float]]:
        scored: list[tuple[Memory, float]] = []
        for memory, vector in zip(candidates, vectors):
            if vector is None:
                continue
            try:
                score = cosine_similarity(query_vector, vector)
            except ValidationError as exc:
                log.warning("search.dimension_mismatch", memory_id=str(memory.id), error=exc.message)
                continue
            if score > self._threshold:
                scored.append((memory, score))

        # sorted() is stable: equal scores keep candidate (newest-first) order
        scored = sorted(scored, key=lambda pair: pair[1], reverse=True)
        return scored[: self._max_results]

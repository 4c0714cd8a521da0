"""Semantic search endpoint.

POST /api/memories/semantic-search

Always answers 200 once the query is valid: when the embedding provider
is down the response carries no results and an explanatory message.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from journal.ai.llm import LLMClient, get_llm_client
from journal.api.schemas import (
    MemoryResponse,
    QueryExpansionResponse,
    SearchHitResponse,
    SemanticSearchRequest,
    SemanticSearchResponse,
)
from journal.auth.dependencies import AuthenticatedUser, get_current_user
from journal.config import Settings, get_settings
from journal.core.exceptions import UnauthorizedError
from journal.services.search import SemanticSearchEngine
from journal.storage import JournalStore, get_store

router = APIRouter(prefix="/memories", tags=["search"])


@router.post(
    "/semantic-search",
    response_model=SemanticSearchResponse,
    summary="Search my memories by meaning",
)
async def semantic_search(
    body: SemanticSearchRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    store: JournalStore = Depends(get_store),
    llm: LLMClient = Depends(get_llm_client),
    settings: Settings = Depends(get_settings),
) -> SemanticSearchResponse:
    if body.user_id is not None and body.user_id != current_user.id:
        raise UnauthorizedError("userId must be the calling user")

    engine = SemanticSearchEngine(store, llm, settings)
    outcome = await engine.search(user_id=current_user.id, query=body.query)

    expansion = outcome.query_expansion
    return SemanticSearchResponse(
        results=[
            SearchHitResponse(
                memory=MemoryResponse.from_memory(hit.memory),
                similarity=hit.similarity,
                explanation=hit.explanation,
            )
            for hit in outcome.results
        ],
        query_expansion=(
            QueryExpansionResponse(
                expanded_query=expansion.expanded_query,
                search_terms=expansion.search_terms,
                search_strategy=expansion.search_strategy,
            )
            if expansion is not None
            else None
        ),
        original_query=outcome.original_query,
        message=outcome.message,
    )

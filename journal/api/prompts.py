"""Writing prompt endpoints.

GET  /api/prompts?category=   - Catalog prompts
GET  /api/prompts/random      - One random catalog prompt
POST /api/prompts/generate    - A fresh LLM-written prompt
GET  /api/prompts/categories  - Known categories
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from journal.ai.llm import LLMClient, get_llm_client
from journal.api.schemas import GeneratedPromptResponse, GeneratePromptRequest, PromptResponse
from journal.auth.dependencies import AuthenticatedUser, get_current_user
from journal.services.enrichment import EnrichmentService
from journal.services.prompts import PromptCatalog
from journal.storage import JournalStore, get_store

router = APIRouter(prefix="/prompts", tags=["prompts"])


def _catalog(
    store: JournalStore = Depends(get_store),
    llm: LLMClient = Depends(get_llm_client),
) -> PromptCatalog:
    return PromptCatalog(store, EnrichmentService(llm))


@router.get("", response_model=list[PromptResponse])
async def list_prompts(
    category: str | None = Query(default=None, max_length=50),
    _: AuthenticatedUser = Depends(get_current_user),
    catalog: PromptCatalog = Depends(_catalog),
) -> list[PromptResponse]:
    prompts = await catalog.list_prompts(category)
    return [PromptResponse.model_validate(p) for p in prompts]


@router.get("/random", response_model=PromptResponse)
async def random_prompt(
    _: AuthenticatedUser = Depends(get_current_user),
    catalog: PromptCatalog = Depends(_catalog),
) -> PromptResponse:
    return PromptResponse.model_validate(await catalog.random_prompt())


@router.post("/generate", response_model=GeneratedPromptResponse)
async def generate_prompt(
    body: GeneratePromptRequest,
    _: AuthenticatedUser = Depends(get_current_user),
    catalog: PromptCatalog = Depends(_catalog),
) -> GeneratedPromptResponse:
    text, category = await catalog.generate(body.category)
    return GeneratedPromptResponse(prompt=text, category=category)


@router.get("/categories", response_model=list[str])
async def list_categories(
    _: AuthenticatedUser = Depends(get_current_user),
) -> list[str]:
    return PromptCatalog.categories()

"""Main API router - aggregates all sub-routers.

Everything lives under /api except the health probes. The public share
link lookup is the only /api route that does not require a bearer token.
"""

from __future__ import annotations

from fastapi import APIRouter

from journal.api import health, media, memories, prompts, search, sharing, users

# Public router (no auth required)
public_router = APIRouter()
public_router.include_router(health.router)

api_router = APIRouter(prefix="/api")
# search before memories so /memories/semantic-search is not read as an id
api_router.include_router(search.router)
api_router.include_router(memories.router)
api_router.include_router(sharing.router)
api_router.include_router(sharing.public_router)
api_router.include_router(prompts.router)
api_router.include_router(users.router)
api_router.include_router(media.router)

"""Audio transcription endpoint.

POST /api/transcribe  (multipart form, file field "audio")
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, File, UploadFile

from journal.ai.llm import LLMClient, get_llm_client
from journal.api.schemas import TranscriptionResponse
from journal.auth.dependencies import AuthenticatedUser, get_current_user
from journal.services.enrichment import EnrichmentService

log = structlog.get_logger(__name__)

router = APIRouter(tags=["media"])


@router.post("/transcribe", response_model=TranscriptionResponse)
async def transcribe_audio(
    audio: UploadFile = File(...),
    current_user: AuthenticatedUser = Depends(get_current_user),
    llm: LLMClient = Depends(get_llm_client),
) -> TranscriptionResponse:
    """Transcribe a recorded clip. Provider failures surface as 502."""
    data = await audio.read()
    result = await EnrichmentService(llm).transcribe(data, audio.filename)
    log.info("media.transcribed", user_id=current_user.id, audio_bytes=len(data))
    return TranscriptionResponse(text=result.text, duration=result.duration)

"""LiteLLM wrapper used as the journal's text/embedding oracle.

Every AI feature (query expansion, match explanations, sentiment tagging,
prompt generation, embeddings, transcription) goes through LLMClient so
that provider choice stays a configuration concern.

This module:
- Wraps litellm.acompletion(), litellm.aembedding() and litellm.atranscription()
- Retries transient failures with exponential backoff via tenacity
- Bounds every call with LLM_TIMEOUT_SECONDS
- Normalizes every failure to UpstreamError
- Logs token usage
"""

from __future__ import annotations

import asyncio
from typing import Any

import litellm
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from journal.config import Settings, get_settings
from journal.core.exceptions import UpstreamError

log = structlog.get_logger(__name__)

# Transient network/rate-limit failures worth retrying
_RETRYABLE = (
    litellm.exceptions.RateLimitError,
    litellm.exceptions.ServiceUnavailableError,
    litellm.exceptions.Timeout,
    ConnectionError,
    TimeoutError,
)

_retry_transient = retry(
    retry=retry_if_exception_type(_RETRYABLE),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    reraise=True,
)


class LLMClient:
    """Thin wrapper around LiteLLM with retries, timeouts and structured logging."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._timeout = self._settings.llm_timeout_seconds

    def _provider_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "api_key": self._settings.litellm_api_key.get_secret_value(),
        }
        if self._settings.litellm_base_url:
            kwargs["api_base"] = self._settings.litellm_base_url
        return kwargs

    # ------------------------------------------------------------------
    # Raw provider calls (retried)
    # ------------------------------------------------------------------

    @_retry_transient
    async def _acompletion(self, **kwargs: Any) -> litellm.ModelResponse:
        return await asyncio.wait_for(
            litellm.acompletion(**kwargs, **self._provider_kwargs()),
            timeout=self._timeout,
        )

    @_retry_transient
    async def _aembedding(self, **kwargs: Any) -> Any:
        return await asyncio.wait_for(
            litellm.aembedding(**kwargs, **self._provider_kwargs()),
            timeout=self._timeout,
        )

    @_retry_transient
    async def _atranscription(self, **kwargs: Any) -> Any:
        # Audio uploads are slower than text calls; allow a few timeouts' worth
        return await asyncio.wait_for(
            litellm.atranscription(**kwargs, **self._provider_kwargs()),
            timeout=self._timeout * 6,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        json_mode: bool = False,
        temperature: float = 0.3,
        max_tokens: int = 500,
        model: str | None = None,
    ) -> str:
        """Run a two-message chat completion and return the assistant text.

        Args:
            system_prompt: Instructions for the model
            user_prompt: The user's message
            json_mode: Ask the provider for a JSON object response
            temperature: Sampling temperature
            max_tokens: Maximum output tokens
            model: Model identifier. Falls back to LITELLM_DEFAULT_MODEL.

        Returns:
            The assistant message content (may be empty)

        Raises:
            UpstreamError: provider failure or timeout after retries
        """
        effective_model = model or self._settings.litellm_default_model
        kwargs: dict[str, Any] = {
            "model": effective_model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        log.debug(
            "llm.completion_request",
            model=effective_model,
            json_mode=json_mode,
            max_tokens=max_tokens,
        )

        try:
            response = await self._acompletion(**kwargs)
        except TimeoutError as exc:
            raise UpstreamError(f"LLM completion timed out after {self._timeout}s") from exc
        except Exception as exc:
            raise UpstreamError(f"LLM completion failed: {exc}") from exc

        usage = getattr(response, "usage", None)
        if usage:
            log.info(
                "llm.completion_done",
                model=effective_model,
                prompt_tokens=usage.prompt_tokens,
                completion_tokens=usage.completion_tokens,
                total_tokens=usage.total_tokens,
            )

        return self.extract_text(response)

    async def embed(self, text: str, model: str | None = None) -> list[float]:
        """Embed a single text. Raises UpstreamError on failure."""
        vectors = await self.embed_many([text], model=model)
        return vectors[0]

    async def embed_many(
        self,
        texts: list[str],
        model: str | None = None,
    ) -> list[list[float]]:
        """Create embeddings for a list of texts.

        Returns:
            One embedding vector per input text, in input order

        Raises:
            UpstreamError: If embedding fails or returns the wrong shape
        """
        if not texts:
            return []

        effective_model = model or self._settings.litellm_embedding_model

        try:
            response = await self._aembedding(model=effective_model, input=texts)
        except TimeoutError as exc:
            raise UpstreamError(f"Embedding timed out after {self._timeout}s") from exc
        except Exception as exc:
            raise UpstreamError(f"Embedding failed: {exc}") from exc

        try:
            embeddings = [list(item["embedding"]) for item in response.data]
        except (AttributeError, KeyError, TypeError) as exc:
            raise UpstreamError("Embedding response was malformed") from exc
        if len(embeddings) != len(texts):
            raise UpstreamError(
                f"Embedding returned {len(embeddings)} vectors for {len(texts)} inputs"
            )

        log.debug(
            "llm.embedding_done",
            model=effective_model,
            text_count=len(texts),
            dimensions=len(embeddings[0]) if embeddings else 0,
        )
        return embeddings

    async def transcribe(
        self,
        audio: bytes,
        filename: str = "audio.webm",
        model: str | None = None,
    ) -> tuple[str, float | None]:
        """Transcribe an audio clip.

        Returns:
            (transcript text, duration in seconds if the provider reports it)

        Raises:
            UpstreamError: provider failure or timeout
        """
        effective_model = model or self._settings.litellm_transcription_model

        try:
            response = await self._atranscription(
                model=effective_model,
                file=(filename, audio),
                response_format="verbose_json",
            )
        except TimeoutError as exc:
            raise UpstreamError("Transcription timed out") from exc
        except Exception as exc:
            raise UpstreamError(f"Transcription failed: {exc}") from exc

        text = getattr(response, "text", None) or ""
        duration = getattr(response, "duration", None)
        log.info(
            "llm.transcription_done",
            model=effective_model,
            audio_bytes=len(audio),
            chars=len(text),
        )
        return text, float(duration) if duration is not None else None

    def extract_text(self, response: litellm.ModelResponse) -> str:
        """Extract the assistant text content from a completion response."""
        try:
            return response.choices[0].message.content or ""
        except (AttributeError, IndexError, KeyError):
            return ""


def get_llm_client() -> LLMClient:
    """FastAPI dependency returning an LLMClient bound to current settings."""
    return LLMClient(get_settings())

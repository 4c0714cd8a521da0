"""AI helpers layered on the LLM client: sentiment, prompt ideas, transcription."""

from __future__ import annotations

import json
from dataclasses import dataclass

import structlog

from journal.ai.llm import LLMClient
from journal.core.exceptions import UpstreamError, ValidationError
from journal.models.memory import Emotion

log = structlog.get_logger(__name__)

FALLBACK_PROMPT = "Tell me about a moment that made you smile today."

_SENTIMENT_SYSTEM_PROMPT = (
    "You are a sentiment analysis expert. Analyze the emotional tone of the text "
    "and classify it into one of these categories: happy, sad, grateful, peaceful, "
    "excited, nostalgic, anxious, content, or mixed. Also provide a confidence score "
    "between 0 and 1. Respond with JSON in this format: "
    '{"emotion": "category", "confidence": number}'
)

_PROMPT_SYSTEM_PROMPT = (
    "You are a helpful assistant that creates thoughtful prompts to help people "
    "remember and write about their personal experiences and memories."
)


@dataclass(frozen=True)
class Sentiment:
    emotion: Emotion
    confidence: float


@dataclass(frozen=True)
class Transcription:
    text: str
    duration: float | None


def _parse_sentiment(raw: str) -> Sentiment:
    try:
        payload = json.loads(raw or "{}")
    except json.JSONDecodeError as exc:
        raise UpstreamError("Sentiment response was not valid JSON") from exc
    if not isinstance(payload, dict):
        raise UpstreamError("Sentiment response was not a JSON object")

    try:
        emotion = Emotion(str(payload.get("emotion", "")).strip().lower())
    except ValueError:
        emotion = Emotion.CONTENT

    try:
        confidence = float(payload.get("confidence", 0.5))
    except (TypeError, ValueError):
        confidence = 0.5

    return Sentiment(emotion=emotion, confidence=max(0.0, min(1.0, confidence)))


class EnrichmentService:
    """Sentiment tagging, prompt generation and audio transcription."""

    def __init__(self, llm: LLMClient) -> None:
        self._llm = llm

    async def analyze_sentiment(self, text: str) -> Sentiment:
        """Classify the emotional tone of text.

        Unknown emotion labels map to "content"; confidence is clamped to
        [0, 1] and defaults to 0.5.

        Raises:
            UpstreamError: the provider failed or returned unparseable output
        """
        raw = await self._llm.complete(
            _SENTIMENT_SYSTEM_PROMPT,
            text,
            json_mode=True,
            temperature=0.0,
            max_tokens=60,
        )
        sentiment = _parse_sentiment(raw)
        log.debug(
            "enrichment.sentiment",
            emotion=sentiment.emotion.value,
            confidence=sentiment.confidence,
        )
        return sentiment

    async def generate_prompt(self, category: str | None = None) -> str:
        """Ask the model for a fresh writing prompt. Never raises."""
        category_context = f"in the {category} category" if category else ""
        user_prompt = (
            f"Generate a thoughtful, personal memory prompt {category_context} that would "
            "help someone recall and write about a meaningful experience from their life. "
            "The prompt should be engaging, specific enough to spark a memory, but broad "
            "enough to be relatable. Return only the prompt text, nothing else."
        )
        try:
            text = await self._llm.complete(
                _PROMPT_SYSTEM_PROMPT,
                user_prompt,
                temperature=0.8,
                max_tokens=100,
            )
        except UpstreamError as exc:
            log.warning("enrichment.prompt_fallback", category=category, error=exc.message)
            return FALLBACK_PROMPT
        return text.strip() or FALLBACK_PROMPT

    async def transcribe(self, audio: bytes, filename: str | None = None) -> Transcription:
        """Transcribe an uploaded audio clip.

        Raises:
            ValidationError: empty upload
            UpstreamError: provider failure
        """
        if not audio:
            raise ValidationError("Audio file is empty")
        text, duration = await self._llm.transcribe(audio, filename or "audio.webm")
        return Transcription(text=text, duration=duration)

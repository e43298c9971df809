"""
Writing assistant helpers exposed under ``/api/ai``.

Each helper degrades to a fixed fallback when the provider fails, so the
editor keeps working without an API key.
"""
import logging

from blogspace.ai.llm_client import LLMClient
from blogspace.ai.prompts import (
    RELATED_TOPICS_PROMPT,
    SUMMARY_PROMPT,
    WRITING_QUALITY_PROMPT,
)
from blogspace.core.config import settings
from blogspace.models import RelatedTopicsResponse, WritingAnalysis

logger = logging.getLogger(__name__)

SUMMARY_FALLBACK = "Summary could not be generated at this time."
ANALYSIS_FALLBACK = "Analysis could not be completed at this time."
MAX_RELATED_TOPICS = 5

_client: LLMClient | None = None


def get_llm_client() -> LLMClient:
    global _client
    if _client is None:
        _client = LLMClient()
    return _client


def _clip(text: str) -> str:
    return text[: settings.AI_MAX_INPUT_CHARS]


async def generate_article_summary(content: str) -> str:
    try:
        summary = await get_llm_client().generate_text(
            SUMMARY_PROMPT.format(content=_clip(content))
        )
    except Exception as e:
        logger.error("Error generating article summary: %s", e)
        return SUMMARY_FALLBACK
    return summary or "Summary not available"


async def generate_related_topics(content: str) -> list[str]:
    try:
        result = await get_llm_client().generate_structured(
            RELATED_TOPICS_PROMPT.format(content=_clip(content)),
            RelatedTopicsResponse,
        )
    except Exception as e:
        logger.error("Error generating related topics: %s", e)
        return []
    topics = [t.strip() for t in result.topics if isinstance(t, str) and t.strip()]
    return topics[:MAX_RELATED_TOPICS]


async def analyze_writing_quality(content: str) -> WritingAnalysis:
    try:
        return await get_llm_client().generate_structured(
            WRITING_QUALITY_PROMPT.format(content=_clip(content)),
            WritingAnalysis,
        )
    except Exception as e:
        logger.error("Error analyzing writing quality: %s", e)
        return WritingAnalysis(score=0, feedback=ANALYSIS_FALLBACK)


async def generate_audio_from_text(text: str) -> bytes | None:
    try:
        return await get_llm_client().generate_speech(_clip(text))
    except Exception as e:
        logger.error("Error generating audio: %s", e)
        return None

from typing import Any

from fastapi import APIRouter, HTTPException, Response

from blogspace.ai import writing
from blogspace.models import (
    AIContentRequest,
    AITextRequest,
    RelatedTopicsResponse,
    SummaryResponse,
    WritingAnalysis,
)

router = APIRouter()

MIN_CONTENT_CHARS = 10


def _require_content(value: str, name: str = "content") -> str:
    if len(value.strip()) < MIN_CONTENT_CHARS:
        raise HTTPException(status_code=400, detail=f"Valid {name} is required")
    return value


@router.post("/summary", response_model=SummaryResponse)
async def summarize(body: AIContentRequest) -> Any:
    content = _require_content(body.content)
    return SummaryResponse(summary=await writing.generate_article_summary(content))


@router.post("/related-topics", response_model=RelatedTopicsResponse)
async def related_topics(body: AIContentRequest) -> Any:
    content = _require_content(body.content)
    return RelatedTopicsResponse(topics=await writing.generate_related_topics(content))


@router.post("/analyze", response_model=WritingAnalysis)
async def analyze(body: AIContentRequest) -> Any:
    content = _require_content(body.content)
    return await writing.analyze_writing_quality(content)


@router.post("/text-to-speech")
async def text_to_speech(body: AITextRequest) -> Response:
    text = _require_content(body.text, "text")
    audio = await writing.generate_audio_from_text(text)
    if not audio:
        raise HTTPException(status_code=500, detail="Failed to generate audio")
    return Response(content=audio, media_type="audio/mpeg")

import json
import logging
import re
from typing import TypeVar

from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

from blogspace.core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


def _extract_fenced_block(text: str) -> str | None:
    blocks = re.findall(r"```(?:json)?\s*(.*?)\s*```", text, re.DOTALL | re.IGNORECASE)
    return blocks[0].strip() if blocks else None


def _extract_json_object(text: str) -> str | None:
    """Best-effort extraction of the first balanced top-level JSON object."""
    start = text.find("{")
    if start == -1:
        return None
    depth = 0
    in_string = False
    escape = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def _json_candidates(raw_text: str) -> list[str]:
    text = (raw_text or "").strip()
    if not text:
        return []
    candidates = [c for c in (_extract_fenced_block(text), text, _extract_json_object(text)) if c]
    # Deduplicate while preserving order.
    return list(dict.fromkeys(c.strip() for c in candidates))


class LLMClient:
    """Thin wrapper over an OpenAI-compatible completion API."""

    def __init__(
        self,
        model_name: str | None = None,
        base_url: str | None = None,
        api_key: str | None = None,
    ):
        self.model_name = model_name or settings.MODEL_DEFAULT
        self.client = AsyncOpenAI(
            base_url=base_url or settings.LLM_BASE_URL,
            api_key=api_key or settings.LLM_API_KEY,
        )

    async def generate_text(self, user_prompt: str, *, system_prompt: str | None = None) -> str:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})

        logger.info("Issuing text request to model %s", self.model_name)
        response = await self.client.chat.completions.create(
            model=self.model_name,
            messages=messages,
        )
        if not getattr(response, "choices", None):
            raise ValueError(f"Provider {self.model_name} returned no output")
        return (response.choices[0].message.content or "").strip()

    async def generate_structured(self, user_prompt: str, response_schema: type[T]) -> T:
        """
        Ask for a JSON object and validate it into ``response_schema``.
        A second attempt with stricter instructions is made when parsing fails.
        """
        prompts = [
            user_prompt,
            (
                f"{user_prompt}\n\n"
                "Your previous response was invalid. Return ONLY a single JSON object, "
                "no prose and no markdown fences."
            ),
        ]
        for attempt_idx, prompt in enumerate(prompts, start=1):
            response = await self.client.chat.completions.create(
                model=self.model_name,
                messages=[{"role": "user", "content": prompt}],
                response_format={"type": "json_object"},
            )
            if not getattr(response, "choices", None):
                raise ValueError(f"Provider {self.model_name} returned no output")
            text_response = response.choices[0].message.content or ""

            parse_errors: list[str] = []
            for candidate in _json_candidates(text_response):
                try:
                    return response_schema.model_validate(json.loads(candidate, strict=False))
                except (json.JSONDecodeError, ValidationError) as candidate_error:
                    parse_errors.append(str(candidate_error))

            if attempt_idx < len(prompts):
                logger.warning(
                    "Structured parsing failed for %s on attempt %s/%s: %s. Retrying...",
                    self.model_name,
                    attempt_idx,
                    len(prompts),
                    " | ".join(parse_errors[:3]) or "empty response",
                )
        raise ValueError(f"Unable to parse structured response from {self.model_name}")

    async def generate_speech(self, text: str) -> bytes:
        response = await self.client.audio.speech.create(
            model=settings.MODEL_TTS,
            voice=settings.TTS_VOICE,
            input=text,
        )
        return response.content

"""
Gemini Provider - Google's GenAI SDK.

Every LLM call of the assistant goes through here: intent classification,
event extraction (text and images), update extraction, briefings and
small talk.
"""

import re
import time
import logging
from typing import Optional, List

from google import genai
from google.genai import types

from app.core.config import settings
from app.ai.providers.base import (
    AIProvider,
    AIResponse,
    Attachment,
    ProviderType,
    TokenUsage
)

logger = logging.getLogger("calendar_ai.ai.gemini")

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def strip_code_fences(content: str) -> str:
    """Remove a surrounding ```json ... ``` block if the model added one."""
    content = content.strip()
    match = _FENCE_RE.match(content)
    if match:
        return match.group(1).strip()
    return content


class GeminiProvider(AIProvider):
    provider_type = ProviderType.GEMINI

    def __init__(self, model: str = None, api_key: str = None):
        self.model = model or settings.GEMINI_MODEL
        self.api_key = api_key or settings.GEMINI_API_KEY

        if self.api_key:
            self._client = genai.Client(
                api_key=self.api_key,
                http_options=types.HttpOptions(timeout=settings.AI_REQUEST_TIMEOUT * 1000),
            )
            logger.info(f"Gemini provider initialized with model: {self.model}")
        else:
            self._client = None
            logger.warning("Gemini API key not configured")

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        **kwargs
    ) -> AIResponse:
        start_time = time.time()

        if not self._client:
            return self._error("API key missing", start_time)

        try:
            config = types.GenerateContentConfig(
                temperature=temperature,
                max_output_tokens=max_tokens,
                system_instruction=system_prompt,
            )

            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=config
            )

            return AIResponse(
                content=response.text or "",
                provider=self.provider_type,
                model=self.model,
                usage=self._extract_usage(response),
                latency_ms=self._measure_latency(start_time),
                success=True,
                raw_response=response,
            )

        except Exception as e:
            logger.error(f"Gemini generation failed: {e}")
            return self._error(str(e), start_time)

    async def generate_json(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        attachments: Optional[List[Attachment]] = None,
        temperature: float = 0.2,
        max_tokens: int = 1024,
        **kwargs
    ) -> AIResponse:
        start_time = time.time()
        if not self._client:
            return self._error("API key missing", start_time)

        try:
            config = types.GenerateContentConfig(
                temperature=temperature,
                max_output_tokens=max_tokens,
                response_mime_type="application/json",
                system_instruction=system_prompt
            )

            text = f"{prompt}\n\nIMPORTANT: Respond ONLY with valid JSON."
            if attachments:
                contents = [
                    types.Part.from_bytes(data=a.data, mime_type=a.mime_type)
                    for a in attachments
                ]
                contents.append(text)
            else:
                contents = text

            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=contents,
                config=config
            )

            return AIResponse(
                content=strip_code_fences(response.text or ""),
                provider=self.provider_type,
                model=self.model,
                usage=self._extract_usage(response),
                latency_ms=self._measure_latency(start_time),
                success=True,
            )

        except Exception as e:
            logger.error(f"Gemini JSON generation failed: {e}")
            return self._error(str(e), start_time)

    # ---------------------------------------------------------------------------
    # PRIVATE HELPERS
    # ---------------------------------------------------------------------------

    def _extract_usage(self, response):
        # usage_metadata is None when the API reports no usage
        meta = response.usage_metadata
        prompt_t = (meta.prompt_token_count or 0) if meta else 0
        comp_t = (meta.candidates_token_count or 0) if meta else 0
        return TokenUsage(prompt_tokens=prompt_t, completion_tokens=comp_t)

    def _error(self, msg, start_time):
        return self._create_error_response(
            error=msg, model=self.model, latency_ms=self._measure_latency(start_time)
        )


# Singleton instance
gemini_provider = GeminiProvider()

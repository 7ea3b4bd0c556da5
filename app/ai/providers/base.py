"""
Base AI Provider - Abstract interface for LLM providers.

This module defines the contract every provider follows, so the intent
classifier, event extractor and briefing service never depend on a
specific SDK.

Design Pattern: Strategy Pattern
================================
The base class defines the interface, and each provider implements it.
Tests swap in an AsyncMock for generate/generate_json without touching
the callers.

Example:
    provider = GeminiProvider()
    response = await provider.generate_json("Classify: 내일 3시 회의 추가해줘")
    if response.success:
        data = json.loads(response.content)
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Any, Dict, List
from enum import Enum
import logging

logger = logging.getLogger("calendar_ai.ai")


class ProviderType(str, Enum):
    """Enum of supported AI providers."""
    GEMINI = "gemini"


@dataclass
class TokenUsage:
    """
    Token usage statistics for an AI request.

    Fed into AIMonitor for cost tracking.
    """
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __post_init__(self):
        """Calculate total if not provided."""
        if self.total_tokens == 0:
            self.total_tokens = self.prompt_tokens + self.completion_tokens


@dataclass
class Attachment:
    """Inline binary input for multimodal prompts (e.g. a poster photo)."""
    data: bytes
    mime_type: str


@dataclass
class AIResponse:
    """
    Standardized response from any AI provider.

    Attributes:
        content: The generated text (or JSON string for generate_json)
        provider: Which provider generated this response
        model: The specific model used
        usage: Token usage statistics
        latency_ms: How long the request took
        success: Whether the request succeeded
        error: Error message if failed
        raw_response: Original provider response (for debugging)
        created_at: Timestamp of the response
    """
    content: str
    provider: ProviderType
    model: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    latency_ms: float = 0.0
    success: bool = True
    error: Optional[str] = None
    raw_response: Optional[Any] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "content": self.content[:100] + "..." if len(self.content) > 100 else self.content,
            "provider": self.provider.value,
            "model": self.model,
            "tokens": {
                "prompt": self.usage.prompt_tokens,
                "completion": self.usage.completion_tokens,
                "total": self.usage.total_tokens,
            },
            "latency_ms": self.latency_ms,
            "success": self.success,
            "error": self.error,
            "created_at": self.created_at.isoformat(),
        }


class AIProvider(ABC):
    """
    Abstract base class for AI providers.

    Responsibilities:
    - Generate text responses from prompts
    - Generate JSON for structured extraction (intents, events)
    - Never raise: failures are reported through AIResponse.error
    """

    provider_type: ProviderType

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        **kwargs
    ) -> AIResponse:
        """
        Generate a free-text response (briefings, conversation).

        Raises:
            This method should NOT raise exceptions.
            Errors are captured in AIResponse.error
        """
        pass

    @abstractmethod
    async def generate_json(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        attachments: Optional[List[Attachment]] = None,
        **kwargs
    ) -> AIResponse:
        """
        Generate a JSON response from the AI model.

        Used for intent classification and event extraction. The content
        must be a bare JSON string, without Markdown code fences.

        Args:
            prompt: The instruction and user message
            system_prompt: System prompt with JSON schema instructions
            attachments: Optional images sent alongside the prompt
        """
        pass

    def _measure_latency(self, start_time: float) -> float:
        """Calculate latency in milliseconds."""
        return (time.time() - start_time) * 1000

    def _create_error_response(
        self,
        error: str,
        model: str,
        latency_ms: float = 0.0
    ) -> AIResponse:
        """Create a standardized error response."""
        logger.error(f"AI Provider Error [{self.provider_type.value}]: {error}")
        return AIResponse(
            content="",
            provider=self.provider_type,
            model=model,
            latency_ms=latency_ms,
            success=False,
            error=error,
        )

    async def health_check(self) -> bool:
        """
        Check if the provider is available and configured.

        Returns:
            True if provider is ready to use, False otherwise
        """
        try:
            response = await self.generate(
                prompt="Say 'ok' and nothing else.",
                max_tokens=10,
            )
            return response.success and len(response.content) > 0
        except Exception as e:
            logger.error(f"Health check failed for {self.provider_type.value}: {e}")
            return False

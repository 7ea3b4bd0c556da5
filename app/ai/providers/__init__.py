"""
AI Providers Module - LLM clients behind a common interface.

    response = await provider.generate(prompt, **kwargs)
    response = await provider.generate_json(prompt, attachments=[...])

Only Gemini is wired in; AIProvider keeps callers independent of the SDK.
"""

from app.ai.providers.base import AIProvider, AIResponse, Attachment, ProviderType, TokenUsage
from app.ai.providers.gemini import GeminiProvider, gemini_provider

__all__ = [
    "AIProvider",
    "AIResponse",
    "Attachment",
    "ProviderType",
    "TokenUsage",
    "GeminiProvider",
    "gemini_provider",
]

"""Model provider adapters.

Each adapter turns (system prompt, user prompt, model) into a response dict
``{"text": ..., "meta": {...}}``. Network and provider-side failures surface as
TransientProviderError so the run can be retried.
"""
from .base import LLMAdapter
from .gemini_adapter import GeminiAdapter
from .openai_adapter import OpenAIAdapter
from .anthropic_adapter import AnthropicAdapter

__all__ = ["LLMAdapter", "GeminiAdapter", "OpenAIAdapter", "AnthropicAdapter"]

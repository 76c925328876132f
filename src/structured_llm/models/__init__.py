from __future__ import annotations

from .anthropic import AnthropicModel
from .base import DEFAULT_RATE_LIMIT, BaseModelCapability, BodyRequest, ModelCapability, RateLimit
from .deepseek import DeepSeekModel
from .google import GoogleApi, GoogleModel
from .mistral import MistralModel
from .openai import OpenAIApi, OpenAIEndpoint, OpenAIModel
from .perplexity import PerplexityModel
from .xai import XAIModel

__all__ = [
    "DEFAULT_RATE_LIMIT",
    "AnthropicModel",
    "BaseModelCapability",
    "BodyRequest",
    "DeepSeekModel",
    "GoogleApi",
    "GoogleModel",
    "MistralModel",
    "ModelCapability",
    "OpenAIApi",
    "OpenAIEndpoint",
    "OpenAIModel",
    "PerplexityModel",
    "RateLimit",
    "XAIModel",
    "resolve_model",
]

# OpenAI last: it accepts any name as a custom model.
_LOOKUP_ORDER = (AnthropicModel, GoogleModel, MistralModel, DeepSeekModel, PerplexityModel, XAIModel)


def resolve_model(name: str) -> BaseModelCapability:
    """Find the vendor family that publishes ``name``; unknown names are treated as custom OpenAI models."""
    for family in _LOOKUP_ORDER:
        model = family.try_from_str(name)
        if model is not None:
            return model
    return OpenAIModel.try_from_str(name)

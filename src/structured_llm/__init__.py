from __future__ import annotations

from .assistants import AssistantVersion, OpenAIAssistant
from .completions import Completions
from .config import ProviderConfig
from .errors import (
    BudgetExceededError,
    ConfigurationError,
    ProviderError,
    ResourceStateError,
    ResponseParseError,
    RunFailedError,
    RunTimeoutError,
    StructuredExtractionError,
    TransportError,
)
from .models import (
    AnthropicModel,
    DeepSeekModel,
    GoogleModel,
    MistralModel,
    OpenAIModel,
    PerplexityModel,
    XAIModel,
    resolve_model,
)
from .observability import configure_observability

__all__ = [
    "AnthropicModel",
    "AssistantVersion",
    "BudgetExceededError",
    "Completions",
    "ConfigurationError",
    "DeepSeekModel",
    "GoogleModel",
    "MistralModel",
    "OpenAIAssistant",
    "OpenAIModel",
    "PerplexityModel",
    "ProviderConfig",
    "ProviderError",
    "ResourceStateError",
    "ResponseParseError",
    "RunFailedError",
    "RunTimeoutError",
    "StructuredExtractionError",
    "TransportError",
    "XAIModel",
    "configure_observability",
    "resolve_model",
]

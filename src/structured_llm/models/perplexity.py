from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

from ..config import ProviderConfig
from ..prompts import schema_first_prompt
from ..sanitize import remove_json_wrapper, remove_think_wrapper
from .base import BaseModelCapability, BodyRequest, RateLimit, chat_messages, first_assistant_content

_MAX_TOKENS = {
    "sonar-pro": 200_000,
    "sonar": 127_072,
    "sonar-reasoning": 127_072,
    # legacy
    "llama-3.1-sonar-small-128k-online": 127_072,
    "llama-3.1-sonar-large-128k-online": 127_072,
    "llama-3.1-sonar-huge-128k-online": 127_072,
}

_REASONING_MODELS = frozenset({"sonar-reasoning"})


@dataclass(frozen=True)
class PerplexityModel(BaseModelCapability):
    vendor: ClassVar[str] = "perplexity"
    # Upper bound is exclusive on the API side.
    temperature_range: ClassVar[tuple[float, float]] = (0.0, 1.99999)

    name: str

    @classmethod
    def try_from_str(cls, name: str) -> PerplexityModel | None:
        lowered = name.strip().lower()
        return cls(lowered) if lowered in _MAX_TOKENS else None

    @property
    def default_max_tokens(self) -> int:
        return _MAX_TOKENS.get(self.name, 127_072)

    def rate_limit(self) -> RateLimit:
        return RateLimit(tpm=50 * 127_072, rpm=50)

    def endpoint(self, config: ProviderConfig, version: str | None = None) -> str:
        return config.perplexity_api_url

    def sanitize(self, text: str) -> str:
        text = remove_json_wrapper(text)
        if self.name in _REASONING_MODELS:
            return remove_think_wrapper(text)
        return text

    def compile_body(self, request: BodyRequest) -> dict[str, Any]:
        # max_tokens is left out; the model stops at its own context window.
        return {
            "model": self.name,
            "temperature": request.temperature,
            "messages": chat_messages(
                self.base_instructions(request.function_call),
                schema_first_prompt(request.instructions, request.schema.compact),
            ),
        }

    def extract_answer(self, raw_body: str, *, function_call: bool, version: str | None = None) -> str:
        return first_assistant_content(self, raw_body)

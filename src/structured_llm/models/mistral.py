from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

from ..config import ProviderConfig
from ..prompts import schema_first_prompt
from .base import BaseModelCapability, BodyRequest, RateLimit, chat_messages, first_assistant_content

_MAX_TOKENS = {
    "mistral-large-latest": 128_000,
    "open-mistral-nemo": 128_000,
    "open-mistral-7b": 32_000,
    "open-mixtral-8x7b": 32_000,
    "open-mixtral-8x22b": 64_000,
    # legacy
    "mistral-tiny": 32_000,
    "mistral-small": 32_000,
    "mistral-medium": 32_000,
}


@dataclass(frozen=True)
class MistralModel(BaseModelCapability):
    vendor: ClassVar[str] = "mistral"
    temperature_range: ClassVar[tuple[float, float]] = (0.0, 1.0)

    name: str

    @classmethod
    def try_from_str(cls, name: str) -> MistralModel | None:
        lowered = name.strip().lower()
        return cls(lowered) if lowered in _MAX_TOKENS else None

    @property
    def default_max_tokens(self) -> int:
        return _MAX_TOKENS.get(self.name, 32_000)

    def rate_limit(self) -> RateLimit:
        return RateLimit(tpm=2_000_000, rpm=120)

    def endpoint(self, config: ProviderConfig, version: str | None = None) -> str:
        return config.mistral_api_url

    def compile_body(self, request: BodyRequest) -> dict[str, Any]:
        return {
            "model": self.name,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "messages": chat_messages(
                self.base_instructions(request.function_call),
                schema_first_prompt(request.instructions, request.schema.compact),
            ),
        }

    def extract_answer(self, raw_body: str, *, function_call: bool, version: str | None = None) -> str:
        return first_assistant_content(self, raw_body)

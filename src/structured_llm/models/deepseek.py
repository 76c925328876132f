from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

from ..config import ProviderConfig
from ..prompts import tagged_prompt
from .base import BaseModelCapability, BodyRequest, RateLimit, chat_messages, first_assistant_content

_MODELS = frozenset({"deepseek-chat", "deepseek-reasoner"})


@dataclass(frozen=True)
class DeepSeekModel(BaseModelCapability):
    vendor: ClassVar[str] = "deepseek"
    temperature_range: ClassVar[tuple[float, float]] = (0.0, 1.5)

    name: str

    @classmethod
    def try_from_str(cls, name: str) -> DeepSeekModel | None:
        lowered = name.strip().lower()
        return cls(lowered) if lowered in _MODELS else None

    @property
    def default_max_tokens(self) -> int:
        return 8192

    def rate_limit(self) -> RateLimit:
        # DeepSeek publishes no limit.
        return RateLimit(tpm=100_000_000, rpm=100_000_000)

    def endpoint(self, config: ProviderConfig, version: str | None = None) -> str:
        return config.deepseek_api_url

    def compile_body(self, request: BodyRequest) -> dict[str, Any]:
        return {
            "model": self.name,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "messages": chat_messages(
                self.base_instructions(request.function_call),
                tagged_prompt(request.instructions, request.schema.compact),
            ),
        }

    def extract_answer(self, raw_body: str, *, function_call: bool, version: str | None = None) -> str:
        return first_assistant_content(self, raw_body)

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, ClassVar

from ..config import ProviderConfig
from ..responses import ChatResponse, parse_view
from ..tools import XAIWebSearch
from .base import BaseModelCapability, BodyRequest, RateLimit, chat_messages

_MAX_TOKENS = {
    "grok-4-1-fast-reasoning": 2_097_152,
    "grok-4-1-fast-non-reasoning": 2_097_152,
    "grok-4-fast-reasoning": 2_097_152,
    "grok-4-fast-non-reasoning": 2_097_152,
    "grok-4": 256_000,
    "grok-code-fast-1": 256_000,
    "grok-3": 131_072,
    "grok-3-mini": 131_072,
    "grok-3-fast": 131_072,
    "grok-3-mini-fast": 131_072,
}

_ALIASES = {
    "grok-4-1-fast": "grok-4-1-fast-reasoning",
    "grok-4-1-fast-reasoning-latest": "grok-4-1-fast-reasoning",
    "grok-4-1-fast-non-reasoning-latest": "grok-4-1-fast-non-reasoning",
    "grok-4-fast": "grok-4-fast-reasoning",
    "grok-4-fast-reasoning-latest": "grok-4-fast-reasoning",
    "grok-4-fast-non-reasoning-latest": "grok-4-fast-non-reasoning",
    "grok-4-latest": "grok-4",
    "grok-4-0709": "grok-4",
    "grok-code-fast": "grok-code-fast-1",
    "grok-code-fast-1-0825": "grok-code-fast-1",
}

_RATE_LIMITS = {
    "grok-4-1-fast-reasoning": RateLimit(4_000_000, 480),
    "grok-4-1-fast-non-reasoning": RateLimit(4_000_000, 480),
    "grok-4-fast-reasoning": RateLimit(4_000_000, 480),
    "grok-4-fast-non-reasoning": RateLimit(4_000_000, 480),
    "grok-3": RateLimit(2_000_000, 600),
}
_DEFAULT_RATE_LIMIT = RateLimit(2_000_000, 480)


def _resolve(name: str) -> str | None:
    lowered = name.strip().lower()
    lowered = _ALIASES.get(lowered, lowered)
    for suffix in ("-latest", "-beta"):
        # grok-3 family names are published with both suffixes.
        if lowered.startswith("grok-3") and lowered.endswith(suffix):
            lowered = lowered[: -len(suffix)]
    return lowered if lowered in _MAX_TOKENS else None


@dataclass(frozen=True)
class XAIModel(BaseModelCapability):
    vendor: ClassVar[str] = "xai"
    temperature_range: ClassVar[tuple[float, float]] = (0.0, 2.0)

    name: str

    @classmethod
    def try_from_str(cls, name: str) -> XAIModel | None:
        resolved = _resolve(name)
        return cls(resolved) if resolved is not None else None

    @property
    def default_max_tokens(self) -> int:
        return _MAX_TOKENS.get(self.name, 131_072)

    def rate_limit(self) -> RateLimit:
        return _RATE_LIMITS.get(self.name, _DEFAULT_RATE_LIMIT)

    def supported_tools(self) -> Sequence[str]:
        return (XAIWebSearch.kind,)

    def endpoint(self, config: ProviderConfig, version: str | None = None) -> str:
        return config.xai_api_url

    def compile_body(self, request: BodyRequest) -> dict[str, Any]:
        user_prompt = (
            f"<instructions>{request.instructions}</instructions>\n"
            f"<output_json_schema>{request.schema.compact}</output_json_schema>"
        )
        body: dict[str, Any] = {
            "model": self.name,
            "max_completion_tokens": request.max_tokens,
            "temperature": request.temperature,
            "messages": chat_messages(self.base_instructions(request.function_call), user_prompt),
        }
        search = next((t for t in request.tools if isinstance(t, XAIWebSearch)), None)
        if search is not None:
            body["search_parameters"] = search.config_json()
        return body

    def extract_answer(self, raw_body: str, *, function_call: bool, version: str | None = None) -> str:
        view = parse_view(ChatResponse, raw_body, vendor=self.vendor)
        parts: list[str] = []
        for choice in view.choices or []:
            message = choice.message
            if message is None or message.role != "assistant":
                continue
            text = message.content if message.content is not None else message.reasoning_content
            if text is not None:
                parts.append(self.sanitize(text))
        return "".join(parts)

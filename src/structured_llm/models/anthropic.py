from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, ClassVar

from ..config import ProviderConfig
from ..errors import ResponseParseError
from ..prompts import schema_first_prompt, tagged_prompt
from ..responses import AnthropicCompletionResponse, AnthropicMessagesResponse, parse_view
from ..tools import (
    AnthropicCodeExecution,
    AnthropicComputerUse,
    AnthropicFileSearch,
    AnthropicWebSearch,
    Tool,
    filter_supported,
    tool_configs,
)
from .base import BaseModelCapability, BodyRequest

CODE_EXECUTION_BETA = "code-execution-2025-08-25"
COMPUTER_USE_BETA = "computer-use-2025-01-24"
LEGACY_COMPUTER_USE_BETA = "computer-use-2024-10-22"

# Values are response-token ceilings, not context windows.
_MAX_TOKENS = {
    "claude-sonnet-4-5": 64_000,
    "claude-haiku-4-5": 64_000,
    "claude-opus-4-1-20250805": 32_000,
    "claude-sonnet-4-20250514": 64_000,
    "claude-opus-4-20250514": 32_000,
    "claude-3-7-sonnet-latest": 64_000,
    "claude-3-5-sonnet-latest": 8192,
    "claude-3-5-haiku-latest": 8192,
    "claude-3-opus-latest": 4096,
    "claude-3-sonnet-20240229": 4096,
    "claude-3-haiku-20240307": 4096,
    "claude-2.1": 4096,
    "claude-instant-1.2": 4096,
}

_ALIASES = {
    "claude-sonnet-4-5-20250929": "claude-sonnet-4-5",
    "claude-haiku-4-5-20251001": "claude-haiku-4-5",
    "claude-opus-4-1": "claude-opus-4-1-20250805",
    "claude-sonnet-4-0": "claude-sonnet-4-20250514",
    "claude-opus-4-0": "claude-opus-4-20250514",
    "claude-3-5-sonnet-20240620": "claude-3-5-sonnet-latest",
    "claude-3-opus-20240229": "claude-3-opus-latest",
}

# Served by the single-prompt /v1/complete endpoint.
_LEGACY_MODELS = frozenset({"claude-2.1", "claude-instant-1.2"})

_ALL_TOOLS = (
    AnthropicCodeExecution.kind,
    AnthropicComputerUse.kind,
    AnthropicFileSearch.kind,
    AnthropicWebSearch.kind,
)

_SUPPORTED_TOOLS: dict[str, tuple[str, ...]] = {
    "claude-sonnet-4-5": _ALL_TOOLS,
    "claude-opus-4-1-20250805": _ALL_TOOLS,
    "claude-sonnet-4-20250514": _ALL_TOOLS,
    "claude-opus-4-20250514": _ALL_TOOLS,
    "claude-3-7-sonnet-latest": _ALL_TOOLS,
    "claude-3-5-haiku-latest": _ALL_TOOLS,
    "claude-haiku-4-5": (AnthropicCodeExecution.kind, AnthropicComputerUse.kind, AnthropicWebSearch.kind),
    "claude-3-5-sonnet-latest": (AnthropicComputerUse.kind, AnthropicFileSearch.kind),
}

_CODE_EXECUTION_MODELS = frozenset(
    {
        "claude-sonnet-4-5",
        "claude-haiku-4-5",
        "claude-opus-4-1-20250805",
        "claude-sonnet-4-20250514",
        "claude-opus-4-20250514",
        "claude-3-7-sonnet-latest",
        "claude-3-5-haiku-latest",
    }
)
_COMPUTER_USE_MODELS = _CODE_EXECUTION_MODELS - {"claude-3-5-haiku-latest"}
_FILE_MODELS = (_CODE_EXECUTION_MODELS - {"claude-haiku-4-5"}) | {"claude-3-5-sonnet-latest"}


@dataclass(frozen=True)
class AnthropicModel(BaseModelCapability):
    vendor: ClassVar[str] = "anthropic"
    temperature_range: ClassVar[tuple[float, float]] = (0.0, 1.0)

    name: str

    @classmethod
    def try_from_str(cls, name: str) -> AnthropicModel | None:
        lowered = name.strip().lower()
        lowered = _ALIASES.get(lowered, lowered)
        if lowered in _MAX_TOKENS:
            return cls(lowered)
        return None

    @property
    def is_legacy(self) -> bool:
        return self.name in _LEGACY_MODELS

    @property
    def default_max_tokens(self) -> int:
        return _MAX_TOKENS.get(self.name, 4096)

    def supported_tools(self) -> Sequence[str]:
        return _SUPPORTED_TOOLS.get(self.name, ())

    def endpoint(self, config: ProviderConfig, version: str | None = None) -> str:
        if self.is_legacy:
            return config.anthropic_api_url
        return config.anthropic_messages_api_url

    def beta_header(self, tool: Tool, config: ProviderConfig) -> str | None:
        """The ``anthropic-beta`` feature flag a tool needs on this model, if any."""
        if isinstance(tool, AnthropicCodeExecution) and self.name in _CODE_EXECUTION_MODELS:
            return CODE_EXECUTION_BETA
        if isinstance(tool, AnthropicComputerUse):
            if self.name in _COMPUTER_USE_MODELS:
                return COMPUTER_USE_BETA
            if self.name == "claude-3-5-sonnet-latest":
                return LEGACY_COMPUTER_USE_BETA
        if isinstance(tool, AnthropicFileSearch) and self.name in _FILE_MODELS:
            return config.anthropic_files_version
        return None

    def headers(
        self, api_key: str, config: ProviderConfig, *, version: str | None = None, tools: Sequence[Tool] = ()
    ) -> dict[str, str]:
        headers = {
            "x-api-key": api_key,
            "anthropic-version": config.anthropic_messages_version,
        }
        betas: list[str] = []
        for tool in tools:
            beta = self.beta_header(tool, config)
            if beta is not None and beta not in betas:
                betas.append(beta)
        if betas:
            headers["anthropic-beta"] = ",".join(betas)
        return headers

    def compile_body(self, request: BodyRequest) -> dict[str, Any]:
        base = self.base_instructions(request.function_call)
        if self.is_legacy:
            return {
                "model": self.name,
                "max_tokens_to_sample": request.max_tokens,
                "temperature": request.temperature,
                "prompt": (
                    f"\n\nHuman: {base}\n\n"
                    f"{schema_first_prompt(request.instructions, request.schema.compact)}"
                    "\n\nAssistant:"
                ),
            }

        user_prompt = tagged_prompt(request.instructions, request.schema.compact)
        supported = filter_supported(request.tools, self.supported_tools(), vendor=self.vendor)
        file_tool = next((t for t in supported if isinstance(t, AnthropicFileSearch)), None)
        user_content: str | list[dict[str, Any]]
        if file_tool is not None:
            user_content = [file_tool.content(), {"type": "text", "text": user_prompt}]
        else:
            user_content = user_prompt

        body: dict[str, Any] = {
            "model": self.name,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "messages": [
                {"role": "user", "content": base},
                {"role": "user", "content": user_content},
            ],
        }
        # File search travels in the message content, never in `tools`.
        declared = [t for t in supported if not isinstance(t, AnthropicFileSearch)]
        if declared:
            body["tools"] = tool_configs(declared)
        return body

    def extract_answer(self, raw_body: str, *, function_call: bool, version: str | None = None) -> str:
        if self.is_legacy:
            return parse_view(AnthropicCompletionResponse, raw_body, vendor=self.vendor).completion

        view = parse_view(AnthropicMessagesResponse, raw_body, vendor=self.vendor)
        texts = [item.text for item in view.content if item.type == "text" and item.text is not None]
        if not texts:
            raise ResponseParseError(self.vendor, raw_body, message="No assistant text block found")
        return self.sanitize(texts[-1])

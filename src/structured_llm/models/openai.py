from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar

import structlog

from ..config import ProviderConfig
from ..errors import ResponseParseError
from ..prompts import (
    ANALYZE_FUNCTION_DESCRIPTION,
    ANALYZE_FUNCTION_NAME,
    BASE_INSTRUCTIONS,
    FUNCTION_INSTRUCTIONS,
    tagged_prompt,
)
from ..responses import ChatResponse, CompletionsResponse, ResponsesResponse, parse_view
from ..sanitize import remove_json_wrapper, remove_schema_wrappers
from ..tools import (
    OpenAICodeInterpreter,
    OpenAIComputerUse,
    OpenAIFileSearch,
    OpenAIReasoning,
    OpenAIWebSearch,
    filter_supported,
    tool_configs,
)
from .base import BaseModelCapability, BodyRequest, RateLimit

log = structlog.get_logger()

DEFAULT_AZURE_VERSION = "2025-01-01-preview"


class OpenAIApi(str, Enum):
    COMPLETIONS = "openai_completions"
    RESPONSES = "openai_responses"
    AZURE_COMPLETIONS = "azure_completions"
    AZURE_RESPONSES = "azure_responses"


@dataclass(frozen=True)
class OpenAIEndpoint:
    """Which OpenAI-compatible API a request targets, parsed from the builder's version string."""

    api: OpenAIApi = OpenAIApi.COMPLETIONS
    azure_version: str | None = None

    @classmethod
    def parse(cls, version: str | None, *, default_azure_version: str = DEFAULT_AZURE_VERSION) -> OpenAIEndpoint:
        """Accepted forms (case-insensitive):

        - ``openai`` / ``openai_completions``: chat completions
        - ``openai_responses``: Responses API
        - ``azure[:<ver>]`` / ``azure_completions[:<ver>]``: Azure chat deployment
        - ``azure_responses[:<ver>]``: Azure Responses deployment

        Anything else, including ``None``, selects chat completions.
        """
        if version is None:
            return cls()
        value = version.strip().lower()
        if value in ("openai", "openai_completions"):
            return cls()
        if value == "openai_responses":
            return cls(api=OpenAIApi.RESPONSES)
        # azure_responses shares the "azure" prefix, so it has to be matched first.
        if value.startswith("azure_responses"):
            return cls(
                api=OpenAIApi.AZURE_RESPONSES,
                azure_version=_azure_version(value, "azure_responses:", default_azure_version),
            )
        if value.startswith("azure"):
            prefix = "azure_completions:" if value.startswith("azure_completions") else "azure:"
            return cls(
                api=OpenAIApi.AZURE_COMPLETIONS,
                azure_version=_azure_version(value, prefix, default_azure_version),
            )
        log.debug("openai_version_unrecognized", version=version)
        return cls()

    @property
    def is_azure(self) -> bool:
        return self.api in (OpenAIApi.AZURE_COMPLETIONS, OpenAIApi.AZURE_RESPONSES)

    @property
    def uses_responses(self) -> bool:
        return self.api in (OpenAIApi.RESPONSES, OpenAIApi.AZURE_RESPONSES)


def _azure_version(value: str, prefix: str, default: str) -> str:
    if value.startswith(prefix):
        parsed = value[len(prefix) :].strip()
        if parsed:
            return parsed
    return default


@dataclass(frozen=True)
class _ModelSpec:
    max_tokens: int
    rate_limit: RateLimit
    function_call: bool = True
    assistants_tools: bool = False


_ALL_TOOLS = (
    OpenAIFileSearch.kind,
    OpenAICodeInterpreter.kind,
    OpenAIWebSearch.kind,
    OpenAIComputerUse.kind,
)
_REASONING_TOOLS = (OpenAIFileSearch.kind, OpenAICodeInterpreter.kind)

_REASONING_MODELS = frozenset({"o1-preview", "o1-mini", "o1", "o1-pro", "o3", "o3-mini", "o4-mini"})
# Not served by chat completions; always sent to the Responses API.
_RESPONSES_ONLY_MODELS = frozenset({"o1-pro", "gpt-5.2-pro"})
# No `temperature` parameter.
_GPT5_MODELS = frozenset({"gpt-5", "gpt-5-mini", "gpt-5-nano", "gpt-5.1", "gpt-5.2", "gpt-5.2-pro"})
_LEGACY_COMPLETION_MODELS = frozenset({"text-davinci-003"})

_MODELS: dict[str, _ModelSpec] = {
    "gpt-5.2": _ModelSpec(400_000, RateLimit(40_000_000, 15_000)),
    "gpt-5.2-pro": _ModelSpec(400_000, RateLimit(30_000_000, 10_000)),
    "gpt-5.1": _ModelSpec(400_000, RateLimit(40_000_000, 15_000)),
    "gpt-5": _ModelSpec(400_000, RateLimit(40_000_000, 15_000), assistants_tools=True),
    "gpt-5-mini": _ModelSpec(400_000, RateLimit(180_000_000, 30_000), assistants_tools=True),
    "gpt-5-nano": _ModelSpec(400_000, RateLimit(180_000_000, 30_000), assistants_tools=True),
    "gpt-3.5-turbo": _ModelSpec(4096, RateLimit(50_000_000, 10_000), function_call=False, assistants_tools=True),
    "gpt-3.5-turbo-0613": _ModelSpec(4096, RateLimit(2_000_000, 10_000)),
    "gpt-3.5-turbo-16k": _ModelSpec(16384, RateLimit(2_000_000, 10_000)),
    "gpt-4": _ModelSpec(8192, RateLimit(1_000_000, 10_000)),
    "gpt-4-32k": _ModelSpec(32768, RateLimit(300_000, 10_000), function_call=False),
    "gpt-4-turbo": _ModelSpec(128_000, RateLimit(2_000_000, 10_000), assistants_tools=True),
    "gpt-4-turbo-preview": _ModelSpec(128_000, RateLimit(2_000_000, 10_000), assistants_tools=True),
    "gpt-4o": _ModelSpec(128_000, RateLimit(150_000_000, 50_000), assistants_tools=True),
    "gpt-4o-2024-08-06": _ModelSpec(128_000, RateLimit(150_000_000, 50_000), assistants_tools=True),
    "gpt-4o-mini": _ModelSpec(128_000, RateLimit(150_000_000, 30_000), assistants_tools=True),
    "gpt-4.1": _ModelSpec(1_047_576, RateLimit(30_000_000, 10_000), assistants_tools=True),
    "gpt-4.1-mini": _ModelSpec(1_047_576, RateLimit(150_000_000, 30_000), assistants_tools=True),
    "gpt-4.1-nano": _ModelSpec(1_047_576, RateLimit(150_000_000, 30_000), assistants_tools=True),
    "gpt-4.5-preview": _ModelSpec(128_000, RateLimit(2_000_000, 10_000), assistants_tools=True),
    "o1-preview": _ModelSpec(128_000, RateLimit(30_000_000, 10_000), function_call=False),
    "o1-mini": _ModelSpec(128_000, RateLimit(150_000_000, 30_000), function_call=False),
    "o1": _ModelSpec(200_000, RateLimit(30_000_000, 10_000), function_call=False),
    "o1-pro": _ModelSpec(200_000, RateLimit(30_000_000, 10_000), function_call=False),
    "o3": _ModelSpec(200_000, RateLimit(30_000_000, 10_000), function_call=False),
    "o3-mini": _ModelSpec(200_000, RateLimit(150_000_000, 30_000), function_call=False),
    "o4-mini": _ModelSpec(200_000, RateLimit(150_000_000, 30_000), function_call=False),
    "text-davinci-003": _ModelSpec(4097, RateLimit(250_000, 3_000), function_call=False),
}

# Unlisted names are assumed to behave like gpt-4o.
_CUSTOM = _ModelSpec(128_000, RateLimit(150_000_000, 50_000), assistants_tools=True)

_ALIASES = {
    "gpt-5.2-2025-12-11": "gpt-5.2",
    "gpt-5.2-pro-2025-12-11": "gpt-5.2-pro",
    "gpt-5.1-2025-11-13": "gpt-5.1",
    "gpt-5-2025-08-07": "gpt-5",
    "gpt-5-mini-2025-08-07": "gpt-5-mini",
    "gpt-5-nano-2025-08-07": "gpt-5-nano",
}


@dataclass(frozen=True)
class OpenAIModel(BaseModelCapability):
    """OpenAI and Azure OpenAI chat, Responses and legacy completion models."""

    vendor: ClassVar[str] = "openai"
    temperature_range: ClassVar[tuple[float, float]] = (0.0, 2.0)

    name: str

    @classmethod
    def try_from_str(cls, name: str) -> OpenAIModel:
        """Resolve a model name; names outside the catalogue become custom models."""
        lowered = name.strip().lower()
        lowered = _ALIASES.get(lowered, lowered)
        if lowered in _MODELS:
            return cls(lowered)
        return cls(name)

    @property
    def _spec(self) -> _ModelSpec:
        return _MODELS.get(self.name.lower(), _CUSTOM)

    @property
    def is_custom(self) -> bool:
        return self.name.lower() not in _MODELS

    @property
    def is_reasoning(self) -> bool:
        return self.name.lower() in _REASONING_MODELS

    @property
    def is_gpt5(self) -> bool:
        return self.name.lower() in _GPT5_MODELS

    @property
    def default_max_tokens(self) -> int:
        return self._spec.max_tokens

    def rate_limit(self) -> RateLimit:
        return self._spec.rate_limit

    def function_call_default(self) -> bool:
        return self._spec.function_call

    def tools_support(self) -> bool:
        """Whether the Assistants API accepts a file search tool for this model."""
        return self._spec.assistants_tools

    def base_instructions(self, function_call: bool) -> str:
        return FUNCTION_INSTRUCTIONS if function_call else BASE_INSTRUCTIONS

    def supported_tools(self) -> Sequence[str]:
        lowered = self.name.lower()
        if lowered in _REASONING_MODELS:
            return _REASONING_TOOLS
        if lowered == "gpt-5.2":
            return (OpenAIFileSearch.kind, OpenAICodeInterpreter.kind, OpenAIWebSearch.kind)
        if lowered == "gpt-5.2-pro":
            return (OpenAIFileSearch.kind, OpenAIWebSearch.kind)
        return _ALL_TOOLS

    def sanitize(self, text: str) -> str:
        return remove_schema_wrappers(remove_json_wrapper(text))

    def _endpoint(self, config: ProviderConfig, version: str | None) -> OpenAIEndpoint:
        return OpenAIEndpoint.parse(version, default_azure_version=config.azure_completions_version)

    def _uses_legacy(self) -> bool:
        return self.name.lower() in _LEGACY_COMPLETION_MODELS

    def _uses_responses(self, endpoint: OpenAIEndpoint) -> bool:
        return endpoint.uses_responses or self.name.lower() in _RESPONSES_ONLY_MODELS

    def endpoint(self, config: ProviderConfig, version: str | None = None) -> str:
        route = self._endpoint(config, version)
        base = config.openai_api_url.rstrip("/")
        if route.is_azure:
            path = "responses" if self._uses_responses(route) else "chat/completions"
            return f"{base}/openai/deployments/{self.name}/{path}?api-version={route.azure_version}"
        if self._uses_legacy():
            return f"{base}/v1/completions"
        if self._uses_responses(route):
            return f"{base}/v1/responses"
        return f"{base}/v1/chat/completions"

    def compile_body(self, request: BodyRequest) -> dict[str, Any]:
        route = OpenAIEndpoint.parse(request.version)
        base = self.base_instructions(request.function_call)
        user_prompt = tagged_prompt(request.instructions, request.schema.compact)

        if self._uses_legacy():
            return {
                "model": self.name,
                "max_tokens": request.max_tokens,
                "temperature": request.temperature,
                "prompt": f"{base}{user_prompt}",
            }
        if self._uses_responses(route):
            return self._responses_body(request, base, user_prompt)
        if self.is_reasoning:
            # Reasoning models on chat completions take no system role and no temperature.
            return {
                "model": self.name,
                "messages": [
                    {"role": "user", "content": base},
                    {"role": "user", "content": user_prompt},
                ],
            }

        body: dict[str, Any]
        if request.function_call:
            body = {
                "model": self.name,
                "messages": [
                    {"role": "system", "content": base},
                    {"role": "user", "content": request.instructions},
                ],
                "functions": [
                    {
                        "name": ANALYZE_FUNCTION_NAME,
                        "description": ANALYZE_FUNCTION_DESCRIPTION,
                        "parameters": request.schema.schema,
                    }
                ],
                "function_call": {"name": ANALYZE_FUNCTION_NAME},
            }
        else:
            body = {
                "model": self.name,
                "messages": [
                    {"role": "system", "content": base},
                    {"role": "user", "content": user_prompt},
                ],
            }
        if not self.is_gpt5:
            body["temperature"] = request.temperature
        return body

    def _responses_body(self, request: BodyRequest, base: str, user_prompt: str) -> dict[str, Any]:
        tools = filter_supported(request.tools, self.supported_tools(), vendor=self.vendor)
        body: dict[str, Any] = {
            "model": self.name,
            "input": user_prompt,
            "instructions": base,
            "max_output_tokens": request.max_tokens,
        }
        if self.is_reasoning:
            reasoning = next((t for t in request.tools if isinstance(t, OpenAIReasoning)), None)
            body["reasoning"] = reasoning.config_json() if reasoning is not None else None
        else:
            body["temperature"] = None if self.is_gpt5 else request.temperature
        body["tools"] = tool_configs(tools) if request.tools else None
        return body

    def extract_answer(self, raw_body: str, *, function_call: bool, version: str | None = None) -> str:
        if self._uses_legacy():
            legacy = parse_view(CompletionsResponse, raw_body, vendor=self.vendor)
            if legacy.choices is None:
                raise ResponseParseError(self.vendor, raw_body, message="Completions response carries no choices")
            return "".join(choice.text for choice in legacy.choices if choice.text is not None)

        if self._uses_responses(OpenAIEndpoint.parse(version)):
            responses = parse_view(ResponsesResponse, raw_body, vendor=self.vendor)
            return "".join(
                self.sanitize(content.text)
                for output in responses.output
                if output.role == "assistant" and output.type == "message"
                for content in output.content or []
                if content.type == "output_text" and content.text is not None
            )

        chat = parse_view(ChatResponse, raw_body, vendor=self.vendor)
        if chat.choices is None:
            raise ResponseParseError(self.vendor, raw_body, message="Chat response carries no choices")
        parts: list[str] = []
        for choice in chat.choices:
            message = choice.message
            if message is None:
                continue
            if function_call:
                if message.function_call is not None:
                    parts.append(self.sanitize(message.function_call.arguments))
            elif message.content is not None:
                parts.append(self.sanitize(message.content))
        return "".join(parts)

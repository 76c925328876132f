from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, ClassVar, Protocol, runtime_checkable

from ..config import ProviderConfig
from ..errors import ResponseParseError
from ..prompts import BASE_INSTRUCTIONS
from ..responses import ChatResponse, parse_view
from ..sanitize import map_to_range, remove_json_wrapper
from ..schema import CompiledSchema
from ..tools import Tool
from ..transport import Transport


@dataclass(frozen=True)
class RateLimit:
    tpm: int
    rpm: int


# Assumed when a vendor publishes no limit for a model.
DEFAULT_RATE_LIMIT = RateLimit(tpm=100_000_000, rpm=100_000)


@dataclass(frozen=True)
class BodyRequest:
    """Everything a capability needs to compile one wire payload."""

    instructions: str
    schema: CompiledSchema
    function_call: bool
    max_tokens: int
    temperature: float
    version: str | None = None
    tools: tuple[Tool, ...] = ()


@runtime_checkable
class ModelCapability(Protocol):
    """How to address, budget and parse one model's API."""

    vendor: ClassVar[str]

    @property
    def name(self) -> str: ...

    @property
    def default_max_tokens(self) -> int: ...

    @property
    def default_temperature(self) -> float: ...

    def rate_limit(self) -> RateLimit: ...

    def max_requests(self) -> int: ...

    def normalized_temperature(self, relative: int) -> float: ...

    def function_call_default(self) -> bool: ...

    def base_instructions(self, function_call: bool) -> str: ...

    def supported_tools(self) -> Sequence[str]: ...

    def endpoint(self, config: ProviderConfig, version: str | None = None) -> str: ...

    def headers(
        self, api_key: str, config: ProviderConfig, *, version: str | None = None, tools: Sequence[Tool] = ()
    ) -> dict[str, str]: ...

    def compile_body(self, request: BodyRequest) -> dict[str, Any]: ...

    async def call(
        self,
        transport: Transport,
        config: ProviderConfig,
        api_key: str,
        body: dict[str, Any],
        *,
        version: str | None = None,
        tools: Sequence[Tool] = (),
        debug: bool = False,
    ) -> str: ...

    def extract_answer(self, raw_body: str, *, function_call: bool, version: str | None = None) -> str: ...

    def sanitize(self, text: str) -> str: ...


class BaseModelCapability(ABC):
    """Defaults shared by every vendor family; subclasses are frozen dataclasses."""

    vendor: ClassVar[str] = "generic"
    temperature_range: ClassVar[tuple[float, float]] = (0.0, 1.0)

    name: str

    @property
    @abstractmethod
    def default_max_tokens(self) -> int: ...

    def rate_limit(self) -> RateLimit:
        return DEFAULT_RATE_LIMIT

    def max_requests(self) -> int:
        """Requests per minute this model sustains, assuming each uses half its context window."""
        limit = self.rate_limit()
        tokens_per_request = math.ceil(self.default_max_tokens * 0.5)
        return min(limit.rpm, limit.tpm // tokens_per_request)

    def normalized_temperature(self, relative: int) -> float:
        low, high = self.temperature_range
        return map_to_range(low, high, relative)

    @property
    def default_temperature(self) -> float:
        return self.normalized_temperature(0)

    def function_call_default(self) -> bool:
        return False

    def base_instructions(self, function_call: bool) -> str:
        return BASE_INSTRUCTIONS

    def supported_tools(self) -> Sequence[str]:
        return ()

    def sanitize(self, text: str) -> str:
        return remove_json_wrapper(text)

    def headers(
        self, api_key: str, config: ProviderConfig, *, version: str | None = None, tools: Sequence[Tool] = ()
    ) -> dict[str, str]:
        return {"Authorization": f"Bearer {api_key}"}

    @abstractmethod
    def endpoint(self, config: ProviderConfig, version: str | None = None) -> str: ...

    @abstractmethod
    def compile_body(self, request: BodyRequest) -> dict[str, Any]: ...

    async def call(
        self,
        transport: Transport,
        config: ProviderConfig,
        api_key: str,
        body: dict[str, Any],
        *,
        version: str | None = None,
        tools: Sequence[Tool] = (),
        debug: bool = False,
    ) -> str:
        return await transport.request(
            "POST",
            self.endpoint(config, version),
            vendor=self.vendor,
            headers=self.headers(api_key, config, version=version, tools=tools),
            json=body,
            debug=debug,
        )

    @abstractmethod
    def extract_answer(self, raw_body: str, *, function_call: bool, version: str | None = None) -> str: ...

    def __str__(self) -> str:
        return self.name


def chat_messages(system: str, user: str, *, system_role: str = "system") -> list[dict[str, str]]:
    return [
        {"role": system_role, "content": system},
        {"role": "user", "content": user},
    ]


def first_assistant_content(capability: BaseModelCapability, raw_body: str) -> str:
    """Sanitized content of the first assistant-authored choice in a chat completions body."""
    view = parse_view(ChatResponse, raw_body, vendor=capability.vendor)
    for choice in view.choices or []:
        message = choice.message
        if message is not None and message.role == "assistant" and message.content is not None:
            return capability.sanitize(message.content)
    raise ResponseParseError(capability.vendor, raw_body, message="Assistant role content not found")

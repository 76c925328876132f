from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar

import structlog

from ..config import ProviderConfig
from ..responses import GeminiResponse, parse_view
from ..tools import GeminiCodeInterpreter, GeminiWebSearch, Tool, filter_supported
from ..transport import Transport
from .base import BaseModelCapability, BodyRequest, RateLimit

log = structlog.get_logger()


class GoogleApi(str, Enum):
    STUDIO = "google-studio"
    VERTEX = "google-vertex"

    @classmethod
    def parse(cls, version: str | None) -> GoogleApi:
        """``google-vertex`` selects Vertex AI; anything else, including ``None``, AI Studio."""
        if version is not None and version.strip().lower() == cls.VERTEX.value:
            return cls.VERTEX
        return cls.STUDIO


_MAX_TOKENS = {
    "gemini-1.5-pro": 2_097_152,
    "gemini-1.5-flash": 1_048_576,
    "gemini-1.5-flash-8b": 1_048_576,
    "gemini-2.0-flash": 1_048_576,
    "gemini-2.0-flash-lite": 1_048_576,
    "gemini-2.0-pro-exp-02-05": 2_097_152,
    "gemini-2.0-flash-thinking-exp-01-21": 1_048_576,
    "gemini-2.5-flash": 1_048_576,
    "gemini-2.5-pro": 1_048_576,
    "gemini-2.5-flash-lite": 1_048_576,
}
_FINE_TUNED_MAX_TOKENS = 1_048_576

_ALIASES = {
    "gemini-2.0-pro": "gemini-2.0-pro-exp-02-05",
    "gemini-2.0-pro-exp": "gemini-2.0-pro-exp-02-05",
    "gemini-2.0-flash-thinking": "gemini-2.0-flash-thinking-exp-01-21",
    "gemini-2.0-flash-thinking-exp": "gemini-2.0-flash-thinking-exp-01-21",
    # 1.0 Pro is retired; requests go to 1.5 Pro.
    "gemini-pro": "gemini-1.5-pro",
    "gemini-1.0-pro": "gemini-1.5-pro",
}

_RATE_LIMITS = {
    "gemini-1.5-flash": RateLimit(4_000_000, 2_000),
    "gemini-1.5-flash-8b": RateLimit(4_000_000, 4_000),
    "gemini-1.5-pro": RateLimit(4_000_000, 1_000),
    "gemini-2.0-flash": RateLimit(30_000_000, 30_000),
    "gemini-2.0-flash-lite": RateLimit(30_000_000, 30_000),
    "gemini-2.5-flash": RateLimit(8_000_000, 10_000),
    "gemini-2.5-pro": RateLimit(8_000_000, 2_000),
    "gemini-2.5-flash-lite": RateLimit(30_000_000, 30_000),
}
# Experimental models have no published limits.
_UNPUBLISHED_RATE_LIMIT = RateLimit(120_000, 360)
_FINE_TUNED_RATE_LIMIT = RateLimit(30_000_000, 30_000)

# Served only by the v1beta AI Studio API.
_BETA_MODELS = frozenset({"gemini-2.5-flash", "gemini-2.5-pro", "gemini-2.5-flash-lite"})
_TOOL_MODELS = frozenset({"gemini-2.5-pro", "gemini-2.5-flash", "gemini-2.5-flash-lite", "gemini-2.0-flash"})


@dataclass(frozen=True)
class GoogleModel(BaseModelCapability):
    """Gemini through AI Studio or Vertex AI, plus fine-tuned Vertex endpoints.

    ``vertex_only`` models ignore the version string and always stream from
    Vertex AI. A fine-tuned model's ``name`` is its Vertex endpoint id.
    """

    vendor: ClassVar[str] = "google"
    temperature_range: ClassVar[tuple[float, float]] = (0.0, 2.0)

    name: str
    vertex_only: bool = False
    fine_tuned: bool = False

    @classmethod
    def try_from_str(cls, name: str) -> GoogleModel | None:
        lowered = name.strip().lower()
        vertex_only = lowered.endswith("-vertex")
        if vertex_only:
            lowered = lowered[: -len("-vertex")]
        lowered = _ALIASES.get(lowered, lowered)
        if lowered not in _MAX_TOKENS:
            return None
        if vertex_only and lowered in _BETA_MODELS:
            return None
        return cls(lowered, vertex_only=vertex_only)

    @classmethod
    def fine_tuned_endpoint(cls, endpoint_id: str) -> GoogleModel:
        return cls(endpoint_id, fine_tuned=True)

    @property
    def default_max_tokens(self) -> int:
        if self.fine_tuned:
            return _FINE_TUNED_MAX_TOKENS
        return _MAX_TOKENS.get(self.name, _FINE_TUNED_MAX_TOKENS)

    def rate_limit(self) -> RateLimit:
        if self.fine_tuned:
            return _FINE_TUNED_RATE_LIMIT
        return _RATE_LIMITS.get(self.name, _UNPUBLISHED_RATE_LIMIT)

    def supported_tools(self) -> Sequence[str]:
        if self.name in _TOOL_MODELS and not self.fine_tuned:
            return (GeminiCodeInterpreter.kind, GeminiWebSearch.kind)
        return ()

    def api(self, version: str | None) -> GoogleApi:
        return GoogleApi.VERTEX if self.vertex_only else GoogleApi.parse(version)

    def streams(self, version: str | None) -> bool:
        return not self.fine_tuned and self.api(version) is GoogleApi.VERTEX

    def endpoint(self, config: ProviderConfig, version: str | None = None) -> str:
        if self.fine_tuned:
            return f"{config.google_vertex_endpoint_api_url}/{self.name}:generateContent"
        if self.api(version) is GoogleApi.VERTEX:
            return f"{config.google_vertex_api_url}/{self.name}:streamGenerateContent?alt=sse"
        base = config.google_gemini_beta_api_url if self.name in _BETA_MODELS else config.google_gemini_api_url
        return f"{base}/{self.name}:generateContent"

    def headers(
        self, api_key: str, config: ProviderConfig, *, version: str | None = None, tools: Sequence[Tool] = ()
    ) -> dict[str, str]:
        if self.fine_tuned or self.api(version) is GoogleApi.VERTEX:
            return {"Authorization": f"Bearer {api_key}"}
        # AI Studio authenticates with the `key` query parameter.
        return {}

    def compile_body(self, request: BodyRequest) -> dict[str, Any]:
        parts: list[dict[str, str]] = [
            {"text": self.base_instructions(request.function_call)},
            {"text": f"<output json schema>\n{request.schema.compact}\n</output json schema>"},
            {"text": f"<instructions>\n{request.instructions}\n</instructions>"},
        ]
        web_search = next((t for t in request.tools if isinstance(t, GeminiWebSearch)), None)
        if web_search is not None and web_search.context_urls:
            urls = "\n".join(web_search.context_urls)
            parts.append({"text": f"<url_context>\n{urls}\n</url_context>"})

        body: dict[str, Any] = {
            "contents": {"role": "user", "parts": parts},
            "generationConfig": {"temperature": request.temperature},
        }
        tools: list[Any] = []
        for tool in filter_supported(request.tools, self.supported_tools(), vendor=self.vendor):
            config = tool.config_json()
            if isinstance(config, list):
                tools.extend(config)
            else:
                tools.append(config)
        if tools:
            body["tools"] = tools
        return body

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
        url = self.endpoint(config, version)
        headers = self.headers(api_key, config, version=version, tools=tools)
        if self.streams(version):
            return await self._drain_stream(transport, url, headers, body, debug=debug)
        params = None if self.fine_tuned or self.api(version) is GoogleApi.VERTEX else {"key": api_key}
        return await transport.request(
            "POST", url, vendor=self.vendor, headers=headers, params=params, json=body, debug=debug
        )

    async def _drain_stream(
        self,
        transport: Transport,
        url: str,
        headers: dict[str, str],
        body: dict[str, Any],
        *,
        debug: bool,
    ) -> str:
        """Collect every streamed chunk's model text into one buffer."""
        buffer: list[str] = []
        chunks = 0
        async for payload in transport.stream_events(url, vendor=self.vendor, headers=headers, json=body, debug=debug):
            chunk = parse_view(GeminiResponse, payload, vendor=self.vendor)
            buffer.append(chunk.model_text())
            chunks += 1
        log.debug("vertex_stream_drained", model=self.name, chunks=chunks)
        return self.sanitize("".join(buffer))

    def extract_answer(self, raw_body: str, *, function_call: bool, version: str | None = None) -> str:
        if self.streams(version):
            # Already drained and sanitized in `call`.
            return raw_body
        view = parse_view(GeminiResponse, raw_body, vendor=self.vendor)
        return self.sanitize(view.model_text())

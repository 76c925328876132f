from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, ClassVar, Literal

import structlog
from pydantic import BaseModel, ConfigDict, Field

log = structlog.get_logger()


class Tool(BaseModel):
    """A vendor tool configuration attached verbatim to a request body."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    kind: ClassVar[str]

    def config_json(self) -> Any:
        return self.model_dump(by_alias=True, exclude_none=True)


class CacheControl(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    cache_type: Literal["ephemeral"] = Field(default="ephemeral", alias="type")
    ttl: Literal["5m", "1h"] = "5m"


# OpenAI


class OpenAIFileSearch(Tool):
    kind: ClassVar[str] = "openai_file_search"

    tool_type: Literal["file_search"] = Field(default="file_search", alias="type")
    vector_store_ids: list[str] = Field(default_factory=list)
    max_num_results: int | None = None


class OpenAIWebSearch(Tool):
    kind: ClassVar[str] = "openai_web_search"

    tool_type: Literal["web_search_preview", "web_search_preview_2025_03_11"] = Field(
        default="web_search_preview", alias="type"
    )
    search_context_size: Literal["low", "medium", "high"] | None = None


class OpenAIComputerUse(Tool):
    kind: ClassVar[str] = "openai_computer_use"

    tool_type: Literal["computer_use_preview"] = Field(default="computer_use_preview", alias="type")
    display_height: int = 1080
    display_width: int = 1920
    environment: str = "default"


class OpenAICodeInterpreter(Tool):
    kind: ClassVar[str] = "openai_code_interpreter"

    tool_type: Literal["code_interpreter"] = Field(default="code_interpreter", alias="type")
    container: str | dict[str, Any] = Field(default_factory=lambda: {"type": "auto", "file_ids": []})


class OpenAIReasoning(Tool):
    """Reasoning settings for o-series models; sent as the ``reasoning`` field, never as a tool."""

    kind: ClassVar[str] = "openai_reasoning"

    effort: Literal["low", "medium", "high"] | None = None
    summary: Literal["auto", "concise", "detailed"] | None = None


# Anthropic


class AnthropicCodeExecution(Tool):
    kind: ClassVar[str] = "anthropic_code_execution"

    name: Literal["code_execution"] = "code_execution"
    tool_type: Literal["code_execution_20250522"] = Field(default="code_execution_20250522", alias="type")
    cache_control: CacheControl | None = None


class AnthropicComputerUse(Tool):
    kind: ClassVar[str] = "anthropic_computer_use"

    name: Literal["computer"] = "computer"
    tool_type: Literal["computer_20241022"] = Field(default="computer_20241022", alias="type")
    display_height_px: int = Field(default=1080, ge=1)
    display_width_px: int = Field(default=1920, ge=1)
    display_number: int | None = None
    cache_control: CacheControl | None = None


class AnthropicWebSearch(Tool):
    kind: ClassVar[str] = "anthropic_web_search"

    name: Literal["web_search"] = "web_search"
    tool_type: Literal["web_search_20250305"] = Field(default="web_search_20250305", alias="type")
    allowed_domains: list[str] | None = None
    blocked_domains: list[str] | None = None
    max_uses: int | None = None
    cache_control: CacheControl | None = None


class AnthropicFileSearch(Tool):
    """A previously uploaded file, attached to the user message as a document block."""

    kind: ClassVar[str] = "anthropic_file_search"

    file_id: str

    def content(self) -> dict[str, Any]:
        return {"type": "document", "source": {"type": "file", "file_id": self.file_id}}


# Google


class GeminiCodeInterpreter(Tool):
    kind: ClassVar[str] = "gemini_code_interpreter"

    code_execution: dict[str, Any] = Field(default_factory=dict)


class GeminiWebSearch(Tool):
    kind: ClassVar[str] = "gemini_web_search"

    context_urls: list[str] = Field(default_factory=list)
    include_web: bool = False

    def config_json(self) -> Any:
        if not self.context_urls:
            return {"google_search": {}}
        if not self.include_web:
            return {"url_context": {}}
        return [{"url_context": {}}, {"google_search": {}}]


# xAI


class XAIWebSearch(Tool):
    kind: ClassVar[str] = "xai_web_search"

    mode: Literal["auto", "on", "off"] = "auto"
    allowed_domains: list[str] | None = None
    excluded_domains: list[str] | None = None
    return_citations: bool | None = None


def filter_supported(tools: Iterable[Tool] | None, supported: Sequence[str], *, vendor: str) -> list[Tool]:
    """Keep tools whose kind the vendor declares; drop the rest with a debug note."""
    kept: list[Tool] = []
    for tool in tools or ():
        if tool.kind in supported:
            kept.append(tool)
        else:
            log.debug("tool_not_supported", vendor=vendor, tool=tool.kind)
    return kept


def tool_configs(tools: Iterable[Tool]) -> list[Any]:
    return [tool.config_json() for tool in tools]

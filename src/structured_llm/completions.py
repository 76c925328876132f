from __future__ import annotations

from typing import Any, Generic, TypeVar

import structlog
from pydantic import TypeAdapter

from .config import ProviderConfig
from .errors import ConfigurationError, ResourceStateError, ResponseParseError, StructuredExtractionError
from .extract import SchemaFallbackExtractor
from .logging import redact
from .models.base import BodyRequest, ModelCapability
from .prompts import ESTIMATE_PROMPT, context_block
from .schema import CompiledSchema, compile_schema
from .tokens import TokenBudgeter, TokenCounter
from .tools import Tool
from .transport import Transport

log = structlog.get_logger()

T = TypeVar("T")

_ANY_ADAPTER: TypeAdapter[Any] = TypeAdapter(Any)


class Completions(Generic[T]):
    """Single-shot structured completion against one model.

    Configure fluently, then await ``get_answer`` exactly once::

        answer = await (
            Completions(OpenAIModel("gpt-4o"), api_key)
            .set_context("Document", doc)
            .temperature(20)
            .get_answer("Summarize the document", Summary)
        )
    """

    def __init__(
        self,
        model: ModelCapability,
        api_key: str,
        *,
        max_tokens: int | None = None,
        temperature: int | None = None,
        config: ProviderConfig | None = None,
        transport: Transport | None = None,
        counter: TokenCounter | None = None,
    ):
        self.model = model
        self.config = config or ProviderConfig()
        self.max_tokens = max_tokens if max_tokens is not None else model.default_max_tokens
        self.temperature_value = (
            model.normalized_temperature(temperature) if temperature is not None else model.default_temperature
        )
        self.function_call = model.function_call_default()
        self.api_version: str | None = None
        self.tools: list[Tool] = []
        self.context: str | None = None
        self.debug_enabled = False

        self._api_key = api_key
        self._transport = transport
        self._budgeter = TokenBudgeter(model.name, counter=counter)
        self._consumed = False

    def debug(self) -> Completions[T]:
        self.debug_enabled = True
        return self

    def function_calling(self, enabled: bool) -> Completions[T]:
        self.function_call = enabled
        return self

    def temperature(self, relative: int) -> Completions[T]:
        """Set temperature as 0-100 of the model's native range."""
        self.temperature_value = self.model.normalized_temperature(relative)
        return self

    def temperature_unchecked(self, value: float) -> Completions[T]:
        self.temperature_value = value
        return self

    def version(self, version: str) -> Completions[T]:
        self.api_version = version
        return self

    def add_tool(self, tool: Tool) -> Completions[T]:
        self.tools.append(tool)
        return self

    def set_context(self, name: str, data: Any) -> Completions[T]:
        """Append ``data`` as JSON wrapped in ``<name>`` tags to the prompt context."""
        try:
            data_json = _ANY_ADAPTER.dump_json(data).decode()
        except ValueError as e:
            raise ConfigurationError(f"Unable to serialize context {name!r}") from e
        block = context_block(name, data_json)
        self.context = block if self.context is None else f"{self.context}\n\n{block}"
        return self

    def _context_suffix(self) -> str:
        return f"\n\n{self.context}" if self.context is not None else ""

    def _estimate(self, instructions: str, schema: CompiledSchema) -> int:
        prompt = ESTIMATE_PROMPT.format(instructions=instructions, context=self._context_suffix())
        full_prompt = f"{self.model.base_instructions(self.function_call)}{prompt}{schema.text}"
        return self._budgeter.estimate(full_prompt)

    def check_prompt_tokens(self, instructions: str, target: Any) -> int:
        """Approximate prompt size in tokens, including instructions, context and schema."""
        return self._estimate(instructions, compile_schema(target))

    async def get_answer(self, instructions: str, target: type[T] | Any) -> T:
        if self._consumed:
            raise ResourceStateError("This completion request was already sent; build a new one.")
        self._consumed = True

        schema = compile_schema(target)
        prompt_tokens = self._estimate(instructions, schema)
        budget = self._budgeter.check(prompt_tokens, self.max_tokens)

        body = self.model.compile_body(
            BodyRequest(
                instructions=f"{instructions}{self._context_suffix()}",
                schema=schema,
                function_call=self.function_call,
                max_tokens=budget.response_tokens,
                temperature=self.temperature_value,
                version=self.api_version,
                tools=tuple(self.tools),
            )
        )
        if self.debug_enabled:
            log.info(
                "completion_debug_body",
                model=self.model.name,
                body=redact(body, secrets=[self._api_key]),
                prompt_tokens=budget.prompt_tokens,
                response_tokens=budget.response_tokens,
            )

        raw_body = await self._send(body)

        try:
            answer = self.model.extract_answer(raw_body, function_call=self.function_call, version=self.api_version)
        except ResponseParseError as e:
            log.error("completion_response_unparseable", model=self.model.name, vendor=e.vendor, error=str(e))
            raise
        if self.debug_enabled:
            log.info("completion_debug_answer", model=self.model.name, answer=answer)

        return self._deserialize(target, answer, raw_body)

    async def _send(self, body: dict[str, Any]) -> str:
        owned = self._transport is None
        transport = self._transport or Transport(timeout_seconds=self.config.request_timeout_seconds)
        try:
            return await self.model.call(
                transport,
                self.config,
                self._api_key,
                body,
                version=self.api_version,
                tools=self.tools,
                debug=self.debug_enabled,
            )
        finally:
            if owned:
                await transport.close()

    def _deserialize(self, target: Any, answer: str, raw_body: str) -> T:
        extractor: SchemaFallbackExtractor[T] = SchemaFallbackExtractor(target, model_name=self.model.name)
        try:
            return extractor.extract(answer, raw_body)
        except StructuredExtractionError as e:
            log.error(
                "completion_extraction_failed",
                model=self.model.name,
                error=str(e),
                answer=answer[:500],
            )
            raise

from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

import structlog
from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError
from pydantic import BaseModel, TypeAdapter

from ..config import ProviderConfig
from ..errors import ConfigurationError, ResourceStateError, StructuredExtractionError
from ..extract import REJECTED, SchemaFallbackExtractor
from ..models.openai import OpenAIModel
from ..prompts import ASSISTANT_INSTRUCTIONS, ASSISTANT_SCHEMA_MESSAGE
from ..responses import AssistantObject, MessageList, RunObject, RunStatus, ThreadObject, parse_view
from ..sanitize import remove_json_wrapper
from ..schema import compile_schema, parse_schema
from ..transport import Transport
from .api_version import V1, AssistantVersion
from .poller import Clock, RunPoller, Sleeper
from .session import AssistantSession

log = structlog.get_logger()

T = TypeVar("T")
V = TypeVar("V", bound=BaseModel)

VENDOR = "openai_assistants"

_ANY_ADAPTER: TypeAdapter[Any] = TypeAdapter(Any)


class OpenAIAssistant:
    """Conversation with an OpenAI (or Azure OpenAI) assistant over a single thread.

    The assistant and thread are created lazily on first use. If any step
    fails the instance is spent; further calls raise ``ResourceStateError``.
    """

    def __init__(
        self,
        model: OpenAIModel,
        api_key: str,
        *,
        version: AssistantVersion | str = V1,
        config: ProviderConfig | None = None,
        transport: Transport | None = None,
        sleeper: Sleeper | None = None,
        clock: Clock | None = None,
    ):
        if isinstance(version, str):
            version = AssistantVersion.parse(version)
        self.model = model
        self.config = config or ProviderConfig()
        self.session = AssistantSession(model=model.name, version=version, instructions=ASSISTANT_INSTRUCTIONS)
        self.debug_enabled = False

        self._api_key = api_key
        self._owns_transport = transport is None
        self._transport = transport or Transport(timeout_seconds=self.config.request_timeout_seconds)
        self._sleeper = sleeper
        self._clock = clock
        self._spent = False

    @property
    def version(self) -> AssistantVersion:
        return self.session.version

    def debug(self) -> OpenAIAssistant:
        self.debug_enabled = True
        return self

    async def close(self) -> None:
        if self._owns_transport:
            await self._transport.close()

    async def __aenter__(self) -> OpenAIAssistant:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # Public operations

    async def set_context(self, name: str, data: Any) -> OpenAIAssistant:
        """Post ``data`` to the thread as a named JSON dataset."""
        try:
            data_json = _ANY_ADAPTER.dump_json(data).decode()
        except ValueError as e:
            raise ConfigurationError(f"Unable to serialize context {name!r}") from e

        async with self._step("set_context"):
            await self._ensure_assistant()
            await self._add_message(f"'{name}'= {data_json}")
        return self

    async def get_answer(self, message: str, target: type[T] | Any, file_ids: Sequence[str] = ()) -> T:
        """Ask ``message`` and return the first assistant reply that validates into ``target``."""
        schema = compile_schema(target)
        extractor: SchemaFallbackExtractor[T] = SchemaFallbackExtractor(target, model_name=self.model.name)

        return await self._converse(schema.compact, message, file_ids, extractor.try_direct)

    async def get_json_answer(
        self, message: str, json_schema: str | dict[str, Any], file_ids: Sequence[str] = ()
    ) -> Any:
        """Like ``get_answer`` but validated against a caller-supplied JSON schema."""
        schema = parse_schema(json_schema)
        try:
            Draft202012Validator.check_schema(schema.schema)
        except SchemaError as e:
            raise ConfigurationError(f"Invalid JSON schema: {e.message}") from e
        validator = Draft202012Validator(schema.schema)

        def accept(text: str) -> Any:
            try:
                value = json.loads(text)
            except json.JSONDecodeError:
                return REJECTED
            if not validator.is_valid(value):
                return REJECTED
            return value

        return await self._converse(schema.compact, message, file_ids, accept)

    async def attach_vector_store(self, vector_store_id: str) -> OpenAIAssistant:
        """Give the assistant's file search tool access to an existing vector store."""
        if self.version.kind == "v1":
            raise ConfigurationError("Assistants API v1 does not support vector stores.")
        if not vector_store_id:
            raise ConfigurationError("A vector store id is required.")

        async with self._step("attach_vector_store"):
            await self._ensure_assistant()
            assistant_id = self.session.require_assistant()
            await self._call(
                "POST",
                f"assistants/{assistant_id}",
                AssistantObject,
                json={"tool_resources": {"file_search": {"vector_store_ids": [vector_store_id]}}},
            )
        log.info("assistant_vector_store_attached", assistant_id=assistant_id, vector_store_id=vector_store_id)
        return self

    # Pipeline steps

    async def _converse(
        self,
        schema_text: str,
        message: str,
        file_ids: Sequence[str],
        accept: Callable[[str], Any],
    ) -> Any:
        async with self._step("get_answer"):
            await self._ensure_assistant()
            await self._add_message(ASSISTANT_SCHEMA_MESSAGE.format(schema=schema_text))
            await self._add_message(message, file_ids)

            run = await self._start_run()
            poller = RunPoller(
                self._fetch_run_status,
                interval_seconds=self.config.run_poll_interval_seconds,
                deadline_seconds=self.config.run_deadline_seconds,
                **self._poller_overrides(),
            )
            await poller.wait(run.status)
            return await self._select_answer(accept)

    def _poller_overrides(self) -> dict[str, Any]:
        overrides: dict[str, Any] = {}
        if self._sleeper is not None:
            overrides["sleeper"] = self._sleeper
        if self._clock is not None:
            overrides["clock"] = self._clock
        return overrides

    async def _ensure_assistant(self) -> None:
        if self.session.assistant_id is not None:
            return
        body: dict[str, Any] = {"instructions": self.session.instructions, "model": self.model.name}
        if self.model.tools_support():
            body["tools"] = self.version.tools_payload()
        created = await self._call("POST", "assistants", AssistantObject, json=body)
        self.session = self.session.with_assistant(created.id)
        log.info("assistant_created", assistant_id=created.id, model=self.model.name)

        await self._add_message(ASSISTANT_INSTRUCTIONS)

    async def _add_message(self, content: str, file_ids: Sequence[str] = ()) -> None:
        message = self.version.with_attachments({"role": "user", "content": content}, file_ids)
        if self.session.thread_id is None:
            thread = await self._call("POST", "threads", ThreadObject, json={"messages": [message]})
            self.session = self.session.with_thread(thread.id)
            log.info("assistant_thread_created", thread_id=thread.id)
            return
        await self._call("POST", f"threads/{self.session.thread_id}/messages", _MessageAck, json=message)

    async def _start_run(self) -> RunObject:
        assistant_id = self.session.require_assistant()
        thread_id = self.session.require_thread()
        run = await self._call("POST", f"threads/{thread_id}/runs", RunObject, json={"assistant_id": assistant_id})
        self.session = self.session.with_run(run.id)
        log.info("assistant_run_started", run_id=run.id, status=run.status.value)
        return run

    async def _fetch_run_status(self) -> RunStatus:
        thread_id = self.session.require_thread()
        run_id = self.session.require_run()
        run = await self._call("GET", f"threads/{thread_id}/runs/{run_id}", RunObject)
        return run.status

    async def _select_answer(self, accept: Callable[[str], Any]) -> Any:
        thread_id = self.session.require_thread()
        raw_body = await self._raw("GET", f"threads/{thread_id}/messages")
        messages = parse_view(MessageList, raw_body, vendor=VENDOR)

        candidates: list[str] = []
        for item in messages.data:
            if item.role != "assistant":
                continue
            text = item.first_text()
            if text is None:
                continue
            candidate = remove_json_wrapper(text)
            candidates.append(candidate)
            value = accept(candidate)
            if value is not REJECTED:
                log.info("assistant_answer_selected", position=len(candidates))
                return value

        log.error("assistant_no_valid_answer", candidates=len(candidates))
        raise StructuredExtractionError(candidates[0] if candidates else "", raw_body)

    # HTTP

    async def _raw(self, method: str, resource: str, *, json: Any = None) -> str:
        return await self._transport.request(
            method,
            self.version.endpoint(self.config, resource),
            vendor=VENDOR,
            headers=self.version.headers(self._api_key),
            json=json,
            debug=self.debug_enabled,
        )

    async def _call(self, method: str, resource: str, view: type[V], *, json: Any = None) -> V:
        return parse_view(view, await self._raw(method, resource, json=json), vendor=VENDOR)

    def _step(self, operation: str) -> _Step:
        if self._spent:
            raise ResourceStateError("A previous assistant step failed; start a new assistant session.")
        return _Step(self, operation)


class _MessageAck(BaseModel):
    id: str


class _Step:
    """Marks the owning assistant spent when the wrapped step raises."""

    def __init__(self, assistant: OpenAIAssistant, operation: str):
        self._assistant = assistant
        self._operation = operation

    async def __aenter__(self) -> None:
        return None

    async def __aexit__(self, exc_type: Any, exc: BaseException | None, tb: Any) -> None:
        if exc is not None:
            self._assistant._spent = True
            log.warning("assistant_step_failed", operation=self._operation, error=str(exc))

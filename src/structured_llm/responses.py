from __future__ import annotations

from enum import Enum
from typing import TypeVar

from pydantic import BaseModel, Field, ValidationError

from .errors import ResponseParseError

M = TypeVar("M", bound=BaseModel)


def parse_view(view: type[M], raw_body: str, *, vendor: str) -> M:
    """Validate a raw response body against a vendor response shape."""
    try:
        return view.model_validate_json(raw_body)
    except ValidationError as e:
        raise ResponseParseError(vendor, raw_body, message=f"Unexpected {view.__name__} shape: {e.error_count()} error(s)") from e


# Chat completions (OpenAI, Azure, Mistral, DeepSeek, Perplexity, xAI)


class ChatFunctionCall(BaseModel):
    name: str | None = None
    arguments: str


class ChatMessage(BaseModel):
    role: str | None = None
    content: str | None = None
    reasoning_content: str | None = None
    function_call: ChatFunctionCall | None = None


class ChatChoice(BaseModel):
    index: int | None = None
    message: ChatMessage | None = None
    finish_reason: str | None = None


class ChatResponse(BaseModel):
    id: str | None = None
    model: str | None = None
    choices: list[ChatChoice] | None = None


# Legacy single-prompt completions


class CompletionChoice(BaseModel):
    text: str | None = None


class CompletionsResponse(BaseModel):
    choices: list[CompletionChoice] | None = None


# OpenAI Responses API


class ResponsesContent(BaseModel):
    type: str
    text: str | None = None


class ResponsesOutput(BaseModel):
    type: str | None = None
    role: str | None = None
    content: list[ResponsesContent] | None = None


class ResponsesResponse(BaseModel):
    output: list[ResponsesOutput]


# Anthropic


class AnthropicContent(BaseModel):
    type: str
    text: str | None = None


class AnthropicMessagesResponse(BaseModel):
    content: list[AnthropicContent]


class AnthropicCompletionResponse(BaseModel):
    completion: str


# Google Gemini


class GeminiPart(BaseModel):
    text: str | None = None


class GeminiContent(BaseModel):
    role: str | None = None
    parts: list[GeminiPart] = Field(default_factory=list)


class GeminiCandidate(BaseModel):
    content: GeminiContent
    finish_reason: str | None = Field(default=None, alias="finishReason")


class GeminiResponse(BaseModel):
    candidates: list[GeminiCandidate]

    def model_text(self) -> str:
        return "".join(
            part.text
            for candidate in self.candidates
            if candidate.content.role == "model"
            for part in candidate.content.parts
            if part.text is not None
        )


# Assistants API


class RunStatus(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    REQUIRES_ACTION = "requires_action"
    CANCELLING = "cancelling"
    CANCELLED = "cancelled"
    FAILED = "failed"
    COMPLETED = "completed"
    EXPIRED = "expired"

    @property
    def keeps_polling(self) -> bool:
        return self in (RunStatus.QUEUED, RunStatus.IN_PROGRESS)

    @property
    def is_terminal_failure(self) -> bool:
        return not self.keeps_polling and self is not RunStatus.COMPLETED


class AssistantObject(BaseModel):
    id: str


class ThreadObject(BaseModel):
    id: str


class RunObject(BaseModel):
    id: str
    status: RunStatus


class MessageText(BaseModel):
    value: str


class MessageContent(BaseModel):
    type: str
    text: MessageText | None = None


class ThreadMessage(BaseModel):
    id: str
    role: str
    content: list[MessageContent] = Field(default_factory=list)

    def first_text(self) -> str | None:
        for item in self.content:
            if item.text is not None:
                return item.text.value
        return None


class MessageList(BaseModel):
    data: list[ThreadMessage]

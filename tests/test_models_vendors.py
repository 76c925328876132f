import json

import pytest

from structured_llm.config import ProviderConfig
from structured_llm.errors import ResponseParseError
from structured_llm.models import (
    AnthropicModel,
    DeepSeekModel,
    MistralModel,
    OpenAIModel,
    PerplexityModel,
    XAIModel,
    resolve_model,
)
from structured_llm.models.base import BodyRequest
from structured_llm.prompts import BASE_INSTRUCTIONS, schema_first_prompt, tagged_prompt
from structured_llm.schema import compile_schema
from structured_llm.tools import (
    AnthropicCodeExecution,
    AnthropicComputerUse,
    AnthropicFileSearch,
    OpenAIWebSearch,
    XAIWebSearch,
)


def _config() -> ProviderConfig:
    return ProviderConfig(
        anthropic_api_url="https://anthropic.test/v1/complete",
        anthropic_messages_api_url="https://anthropic.test/v1/messages",
        anthropic_messages_version="2023-06-01",
        anthropic_files_version="files-api-2025-04-14",
        mistral_api_url="https://mistral.test/v1/chat/completions",
    )


def _request(**overrides) -> BodyRequest:
    fields = {
        "instructions": "List the colors",
        "schema": compile_schema(list[str]),
        "function_call": False,
        "max_tokens": 500,
        "temperature": 0.3,
    }
    fields.update(overrides)
    return BodyRequest(**fields)


def _chat(*messages: dict) -> str:
    return json.dumps({"choices": [{"index": i, "message": m} for i, m in enumerate(messages)]})


# Anthropic


def test_anthropic_lookup_resolves_dated_aliases():
    assert AnthropicModel.try_from_str("claude-sonnet-4-5-20250929") == AnthropicModel("claude-sonnet-4-5")
    assert AnthropicModel.try_from_str("gpt-4o") is None


def test_anthropic_headers_join_beta_flags():
    model = AnthropicModel("claude-sonnet-4-5")
    headers = model.headers(
        "ak-1",
        _config(),
        tools=[AnthropicCodeExecution(), AnthropicFileSearch(file_id="file_1"), AnthropicCodeExecution()],
    )
    assert headers == {
        "x-api-key": "ak-1",
        "anthropic-version": "2023-06-01",
        "anthropic-beta": "code-execution-2025-08-25,files-api-2025-04-14",
    }


def test_anthropic_legacy_computer_use_beta():
    model = AnthropicModel("claude-3-5-sonnet-latest")
    assert model.beta_header(AnthropicComputerUse(), _config()) == "computer-use-2024-10-22"
    assert model.beta_header(AnthropicCodeExecution(), _config()) is None


def test_anthropic_messages_body_puts_file_in_content_and_tools_in_body():
    model = AnthropicModel("claude-sonnet-4-5")
    request = _request(tools=(AnthropicFileSearch(file_id="file_1"), AnthropicCodeExecution(), OpenAIWebSearch()))
    body = model.compile_body(request)

    assert body["max_tokens"] == 500
    assert body["messages"][0] == {"role": "user", "content": BASE_INSTRUCTIONS}
    content = body["messages"][1]["content"]
    assert content[0] == {"type": "document", "source": {"type": "file", "file_id": "file_1"}}
    assert content[1] == {"type": "text", "text": tagged_prompt("List the colors", request.schema.compact)}
    assert body["tools"] == [{"name": "code_execution", "type": "code_execution_20250522"}]


def test_anthropic_legacy_body_and_endpoint():
    model = AnthropicModel("claude-2.1")
    request = _request()
    body = model.compile_body(request)
    assert model.endpoint(_config()) == "https://anthropic.test/v1/complete"
    assert body["max_tokens_to_sample"] == 500
    assert body["prompt"] == (
        f"\n\nHuman: {BASE_INSTRUCTIONS}\n\n"
        f"{schema_first_prompt('List the colors', request.schema.compact)}\n\nAssistant:"
    )


def test_anthropic_extract_uses_last_text_block():
    raw = json.dumps(
        {
            "content": [
                {"type": "text", "text": "Let me run that."},
                {"type": "server_tool_use", "id": "t1", "name": "code_execution", "input": {}},
                {"type": "text", "text": "```json\n[\"red\"]\n```"},
            ]
        }
    )
    assert AnthropicModel("claude-sonnet-4-5").extract_answer(raw, function_call=False) == '["red"]'


def test_anthropic_extract_without_text_raises():
    raw = json.dumps({"content": [{"type": "tool_use", "id": "t1"}]})
    with pytest.raises(ResponseParseError):
        AnthropicModel("claude-sonnet-4-5").extract_answer(raw, function_call=False)


def test_anthropic_legacy_extract_reads_completion():
    raw = json.dumps({"completion": '["blue"]', "stop_reason": "stop_sequence"})
    assert AnthropicModel("claude-2.1").extract_answer(raw, function_call=False) == '["blue"]'


# Mistral / DeepSeek / Perplexity


def test_mistral_body_inlines_schema_first():
    request = _request()
    body = MistralModel("mistral-large-latest").compile_body(request)
    assert body["messages"][1]["content"] == schema_first_prompt("List the colors", request.schema.compact)
    assert body["max_tokens"] == 500
    assert MistralModel("mistral-large-latest").endpoint(_config()) == "https://mistral.test/v1/chat/completions"


def test_mistral_extract_skips_non_assistant_choices():
    raw = _chat({"role": "tool", "content": "ignored"}, {"role": "assistant", "content": '["green"]'})
    assert MistralModel("mistral-small").extract_answer(raw, function_call=False) == '["green"]'


def test_deepseek_body_uses_tagged_prompt():
    request = _request()
    body = DeepSeekModel("deepseek-chat").compile_body(request)
    assert body["messages"][1]["content"] == tagged_prompt("List the colors", request.schema.compact)
    assert DeepSeekModel("deepseek-chat").normalized_temperature(100) == 1.5


def test_deepseek_extract_without_assistant_raises():
    with pytest.raises(ResponseParseError) as exc:
        DeepSeekModel("deepseek-chat").extract_answer(_chat({"role": "user", "content": "x"}), function_call=False)
    assert "Assistant role content not found" in str(exc.value)


def test_perplexity_body_omits_max_tokens():
    body = PerplexityModel("sonar").compile_body(_request())
    assert "max_tokens" not in body
    assert body["temperature"] == 0.3


def test_perplexity_reasoning_strips_think_block():
    raw = _chat({"role": "assistant", "content": "<think>hmm</think>\n```json\n[\"a\"]\n```"})
    assert PerplexityModel("sonar-reasoning").extract_answer(raw, function_call=False) == '["a"]'


# xAI


def test_xai_lookup_strips_release_suffixes():
    assert XAIModel.try_from_str("grok-3-latest") == XAIModel("grok-3")
    assert XAIModel.try_from_str("grok-3-mini-beta") == XAIModel("grok-3-mini")
    assert XAIModel.try_from_str("grok-4-latest") == XAIModel("grok-4")
    assert XAIModel.try_from_str("grok-1") is None


def test_xai_body_adds_search_parameters():
    body = XAIModel("grok-4").compile_body(_request(tools=(XAIWebSearch(mode="on"),)))
    assert body["max_completion_tokens"] == 500
    assert body["search_parameters"] == {"mode": "on"}
    assert body["messages"][1]["content"].startswith("<instructions>List the colors</instructions>\n<output_json_schema>")


def test_xai_extract_falls_back_to_reasoning_content():
    raw = _chat({"role": "assistant", "content": None, "reasoning_content": '["x"]'})
    assert XAIModel("grok-3-mini").extract_answer(raw, function_call=False) == '["x"]'


# Lookup


def test_resolve_model_picks_vendor_family():
    assert isinstance(resolve_model("claude-3-5-haiku-latest"), AnthropicModel)
    assert isinstance(resolve_model("sonar-pro"), PerplexityModel)
    assert isinstance(resolve_model("deepseek-reasoner"), DeepSeekModel)
    assert isinstance(resolve_model("grok-code-fast"), XAIModel)
    fallback = resolve_model("my-private-model")
    assert isinstance(fallback, OpenAIModel)
    assert fallback.is_custom

import json

import httpx
import pytest

from structured_llm.config import ProviderConfig
from structured_llm.errors import ConfigurationError
from structured_llm.models import GoogleModel
from structured_llm.models.base import BodyRequest
from structured_llm.schema import compile_schema
from structured_llm.tools import GeminiWebSearch
from structured_llm.transport import Transport


def _config(**overrides) -> ProviderConfig:
    fields = {
        "google_gemini_api_url": "https://gl.test/v1/models",
        "google_gemini_beta_api_url": "https://gl.test/v1beta/models",
        "google_region": "us-central1",
        "google_project_id": "proj-1",
    }
    fields.update(overrides)
    return ProviderConfig(**fields)


def _request(**overrides) -> BodyRequest:
    fields = {
        "instructions": "Name three planets",
        "schema": compile_schema(list[str]),
        "function_call": False,
        "max_tokens": 1000,
        "temperature": 0.0,
    }
    fields.update(overrides)
    return BodyRequest(**fields)


def _gemini_chunk(text: str) -> dict:
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


def test_lookup_handles_vertex_suffix_and_aliases():
    assert GoogleModel.try_from_str("gemini-2.0-flash-vertex") == GoogleModel("gemini-2.0-flash", vertex_only=True)
    assert GoogleModel.try_from_str("gemini-pro") == GoogleModel("gemini-1.5-pro")
    # v1beta-only models are not served by Vertex.
    assert GoogleModel.try_from_str("gemini-2.5-pro-vertex") is None
    assert GoogleModel.try_from_str("claude-2.1") is None


def test_endpoints_per_api():
    config = _config()
    assert GoogleModel("gemini-1.5-flash").endpoint(config) == "https://gl.test/v1/models/gemini-1.5-flash:generateContent"
    assert (
        GoogleModel("gemini-2.5-pro").endpoint(config) == "https://gl.test/v1beta/models/gemini-2.5-pro:generateContent"
    )
    assert GoogleModel("gemini-2.0-flash").endpoint(config, "google-vertex") == (
        "https://us-central1-aiplatform.googleapis.com/v1/projects/proj-1/locations/us-central1"
        "/publishers/google/models/gemini-2.0-flash:streamGenerateContent?alt=sse"
    )
    assert GoogleModel.fine_tuned_endpoint("123").endpoint(config) == (
        "https://us-central1-aiplatform.googleapis.com/v1/projects/proj-1/locations/us-central1"
        "/endpoints/123:generateContent"
    )


def test_vertex_without_project_raises_configuration_error():
    with pytest.raises(ConfigurationError):
        GoogleModel("gemini-2.0-flash").endpoint(_config(google_project_id=None), "google-vertex")


def test_body_flattens_tool_lists_and_adds_url_context():
    search = GeminiWebSearch(context_urls=["https://a.test", "https://b.test"], include_web=True)
    body = GoogleModel("gemini-2.5-pro").compile_body(_request(temperature=0.7, tools=(search,)))

    parts = body["contents"]["parts"]
    assert parts[-1] == {"text": "<url_context>\nhttps://a.test\nhttps://b.test\n</url_context>"}
    assert body["generationConfig"] == {"temperature": 0.7}
    assert body["tools"] == [{"url_context": {}}, {"google_search": {}}]


def test_body_without_supported_tools_has_no_tools_key():
    body = GoogleModel("gemini-1.5-pro").compile_body(_request(tools=(GeminiWebSearch(),)))
    assert "tools" not in body
    assert len(body["contents"]["parts"]) == 3


@pytest.mark.asyncio
async def test_studio_call_authenticates_with_key_param():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1beta/models/gemini-2.5-flash:generateContent"
        assert request.url.params.get("key") == "g-key"
        assert "authorization" not in request.headers
        return httpx.Response(200, json=_gemini_chunk("```json\n[\"Mars\"]\n```"))

    model = GoogleModel("gemini-2.5-flash")
    async with Transport(client=httpx.AsyncClient(transport=httpx.MockTransport(handler))) as transport:
        raw = await model.call(transport, _config(), "g-key", model.compile_body(_request()))

    assert model.extract_answer(raw, function_call=False) == '["Mars"]'


@pytest.mark.asyncio
async def test_vertex_call_drains_stream_into_one_answer():
    chunks = [_gemini_chunk('["Mer'), _gemini_chunk('cury", "Venus"'), _gemini_chunk("]")]
    stream = "".join(f"data: {json.dumps(chunk)}\r\n\r\n" for chunk in chunks).encode()

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/models/gemini-2.0-flash:streamGenerateContent")
        assert request.url.params.get("alt") == "sse"
        assert request.headers["authorization"] == "Bearer ya29.token"
        assert "key" not in request.url.params
        return httpx.Response(200, content=stream, headers={"content-type": "text/event-stream"})

    model = GoogleModel("gemini-2.0-flash")
    async with Transport(client=httpx.AsyncClient(transport=httpx.MockTransport(handler))) as transport:
        raw = await model.call(
            transport, _config(), "ya29.token", model.compile_body(_request()), version="google-vertex"
        )

    assert raw == '["Mercury", "Venus"]'
    assert model.extract_answer(raw, function_call=False, version="google-vertex") == raw

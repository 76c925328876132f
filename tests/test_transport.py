import httpx
import pytest

from structured_llm.errors import ResponseParseError, TransportError
from structured_llm.transport import Transport


@pytest.mark.asyncio
async def test_request_returns_error_bodies_for_the_caller_to_parse():
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"error": {"message": "rate limited"}})

    async with Transport(client=httpx.AsyncClient(transport=httpx.MockTransport(handler))) as transport:
        body = await transport.request("POST", "https://api.test/v1/chat/completions", vendor="openai", json={})

    assert "rate limited" in body


@pytest.mark.asyncio
async def test_request_sends_exactly_one_attempt():
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503, text="unavailable")

    async with Transport(client=httpx.AsyncClient(transport=httpx.MockTransport(handler))) as transport:
        assert await transport.request("GET", "https://api.test/x", vendor="openai", debug=True) == "unavailable"

    assert len(calls) == 1


@pytest.mark.asyncio
async def test_network_failure_becomes_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with Transport(client=httpx.AsyncClient(transport=httpx.MockTransport(handler))) as transport:
        with pytest.raises(TransportError) as exc:
            await transport.request("POST", "https://api.test/x", vendor="mistral", json={})

    assert "[mistral]" in str(exc.value)
    assert isinstance(exc.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_timeout_becomes_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    async with Transport(client=httpx.AsyncClient(transport=httpx.MockTransport(handler))) as transport:
        with pytest.raises(TransportError, match="timed out"):
            await transport.request("POST", "https://api.test/x", vendor="xai", json={})


@pytest.mark.asyncio
async def test_stream_events_yields_data_payloads_only():
    stream = b": keep-alive\n\ndata: {\"a\": 1}\n\nevent: ping\ndata:\n\ndata: {\"a\": 2}\n\n"

    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=stream, headers={"content-type": "text/event-stream"})

    async with Transport(client=httpx.AsyncClient(transport=httpx.MockTransport(handler))) as transport:
        payloads = [p async for p in transport.stream_events("https://api.test/s", vendor="google", json={})]

    assert payloads == ['{"a": 1}', '{"a": 2}']


@pytest.mark.asyncio
async def test_stream_rejection_raises_parse_error_with_body():
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"error": {"status": "PERMISSION_DENIED"}})

    async with Transport(client=httpx.AsyncClient(transport=httpx.MockTransport(handler))) as transport:
        with pytest.raises(ResponseParseError) as exc:
            async for _ in transport.stream_events("https://api.test/s", vendor="google", json={}):
                pass

    assert "PERMISSION_DENIED" in exc.value.raw_body

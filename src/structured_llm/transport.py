from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from typing import Any

import httpx
import structlog

from .errors import ResponseParseError, TransportError
from .logging import redact
from .metrics import request_latency_seconds, requests_total

log = structlog.get_logger()


class Transport:
    """One HTTP exchange per call. No retries; non-2xx bodies are returned for the caller to parse."""

    def __init__(self, *, client: httpx.AsyncClient | None = None, timeout_seconds: float = 120.0):
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> Transport:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def request(
        self,
        method: str,
        url: str,
        *,
        vendor: str,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, str] | None = None,
        json: Any = None,
        debug: bool = False,
    ) -> str:
        if debug:
            log.info(
                "provider_debug_request",
                vendor=vendor,
                method=method,
                url=redact(url),
                headers=redact(dict(headers or {})),
                body=redact(json),
            )
        try:
            with request_latency_seconds.labels(vendor=vendor).time():
                resp = await self._client.request(method, url, headers=headers, params=params, json=json)
        except httpx.TimeoutException as e:
            requests_total.labels(vendor=vendor, status="timeout").inc()
            raise TransportError(f"[{vendor}] request timed out") from e
        except httpx.HTTPError as e:
            requests_total.labels(vendor=vendor, status="network_error").inc()
            raise TransportError(f"[{vendor}] request failed: {e}") from e

        requests_total.labels(vendor=vendor, status=str(resp.status_code)).inc()
        if debug:
            log.info("provider_debug_response", vendor=vendor, status_code=resp.status_code, body=resp.text)
        elif resp.status_code >= 400:
            log.warning("provider_error_status", vendor=vendor, status_code=resp.status_code, body=resp.text[:500])
        return resp.text

    async def stream_events(
        self,
        url: str,
        *,
        vendor: str,
        headers: Mapping[str, str] | None = None,
        json: Any = None,
        debug: bool = False,
    ) -> AsyncIterator[str]:
        """POST and yield each server-sent ``data:`` payload as raw text."""
        if debug:
            log.info(
                "provider_debug_request",
                vendor=vendor,
                method="POST",
                url=redact(url),
                headers=redact(dict(headers or {})),
                body=redact(json),
            )
        try:
            async with self._client.stream("POST", url, headers=headers, json=json) as resp:
                requests_total.labels(vendor=vendor, status=str(resp.status_code)).inc()
                if resp.status_code >= 400:
                    body = (await resp.aread()).decode("utf-8", errors="replace")
                    raise ResponseParseError(vendor, body, message=f"Streaming request rejected with {resp.status_code}")

                async for line in resp.aiter_lines():
                    if not line.startswith("data:"):
                        continue
                    raw = line[len("data:") :].strip()
                    if not raw:
                        continue
                    if debug:
                        log.info("provider_debug_chunk", vendor=vendor, chunk=raw)
                    yield raw
        except httpx.TimeoutException as e:
            requests_total.labels(vendor=vendor, status="timeout").inc()
            raise TransportError(f"[{vendor}] streaming request timed out") from e
        except httpx.HTTPError as e:
            requests_total.labels(vendor=vendor, status="network_error").inc()
            raise TransportError(f"[{vendor}] streaming request failed: {e}") from e

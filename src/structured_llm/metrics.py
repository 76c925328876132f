from __future__ import annotations

from prometheus_client import Counter, Histogram, start_http_server

requests_total = Counter(
    "provider_requests_total",
    "Total outbound provider requests",
    labelnames=["vendor", "status"],
)

request_latency_seconds = Histogram(
    "provider_request_latency_seconds",
    "Provider request latency",
    buckets=[0.1, 0.3, 0.5, 1, 2, 5, 10, 30, 60, 120],
    labelnames=["vendor"],
)

budget_rejections_total = Counter(
    "completion_budget_rejections_total",
    "Completions rejected before dispatch because the prompt exceeded the token budget",
    labelnames=["model"],
)

extraction_fallbacks_total = Counter(
    "completion_extraction_fallbacks_total",
    "Answers recovered through the data envelope fallback",
    labelnames=["model", "outcome"],
)

run_polls_total = Counter(
    "assistant_run_polls_total",
    "Assistant run status polls",
    labelnames=["status"],
)


def maybe_start_metrics(*, enable: bool, bind: str, port: int) -> None:
    if not enable:
        return
    start_http_server(port, addr=bind)

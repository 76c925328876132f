from __future__ import annotations

from collections.abc import Iterable

from .config import ProviderConfig
from .logging import configure_logging
from .metrics import maybe_start_metrics


def configure_observability(config: ProviderConfig | None = None, *, secrets: Iterable[str] = ()) -> ProviderConfig:
    """Apply the logging and metrics settings of ``config``.

    ``secrets`` are API keys to mask in every log line. Call once at process
    start; the metrics server binds only when ``enable_metrics`` is set.
    """
    cfg = config or ProviderConfig()
    configure_logging(level=cfg.log_level, fmt=cfg.log_format, secrets=[s for s in secrets if s])
    maybe_start_metrics(enable=cfg.enable_metrics, bind=cfg.metrics_bind, port=cfg.metrics_port)
    return cfg

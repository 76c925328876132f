from __future__ import annotations

from functools import lru_cache
from typing import Any, Generic, TypeVar

import structlog
from pydantic import TypeAdapter, ValidationError, create_model

from .errors import StructuredExtractionError
from .metrics import extraction_fallbacks_total

log = structlog.get_logger()

T = TypeVar("T")

# Returned by try_direct when the text does not validate; None may be a valid answer.
REJECTED: Any = object()


@lru_cache(maxsize=256)
def _envelope_adapter(target: Any) -> TypeAdapter[Any]:
    envelope = create_model("DataEnvelope", data=(target, ...))
    return TypeAdapter(envelope)


class SchemaFallbackExtractor(Generic[T]):
    """Deserialize an answer into ``target``.

    Some providers wrap the requested object as ``{"data": ...}``. When the
    answer does not validate directly, the full raw response body is parsed
    as that envelope instead.
    """

    def __init__(self, target: type[T] | Any, *, model_name: str = "unknown"):
        self.target = target
        self.model_name = model_name
        self._adapter: TypeAdapter[T] = TypeAdapter(target)

    def try_direct(self, text: str) -> T | Any:
        """Validate ``text`` as the target, or return ``REJECTED``."""
        try:
            return self._adapter.validate_json(text)
        except ValidationError:
            return REJECTED

    def extract(self, answer: str, raw_body: str) -> T:
        try:
            return self._adapter.validate_json(answer)
        except ValidationError as e:
            direct_error = e

        log.debug("extract_direct_failed", target=repr(self.target), errors=direct_error.error_count())
        try:
            wrapped = _envelope_adapter(self.target).validate_json(raw_body)
        except ValidationError as e:
            extraction_fallbacks_total.labels(model=self.model_name, outcome="failed").inc()
            raise StructuredExtractionError(
                answer,
                raw_body,
                direct_error=direct_error,
                envelope_error=e,
            ) from e
        extraction_fallbacks_total.labels(model=self.model_name, outcome="recovered").inc()
        return wrapped.data

from __future__ import annotations


class ProviderError(Exception):
    """Base error for structured completion failures."""


class ConfigurationError(ProviderError):
    """Bad credential, endpoint setting or unserializable caller context."""


class BudgetExceededError(ProviderError):
    def __init__(self, prompt_tokens: int, max_tokens: int, message: str | None = None):
        super().__init__(
            message
            or f"The prompt requires ~{prompt_tokens} tokens which does not fit the {max_tokens} token budget."
        )
        self.prompt_tokens = prompt_tokens
        self.max_tokens = max_tokens


class TransportError(ProviderError):
    """Network failure before a response body was received."""


class ResponseParseError(ProviderError):
    def __init__(self, vendor: str, raw_body: str, message: str = "Response body matched no recognized shape"):
        super().__init__(f"[{vendor}] {message}")
        self.vendor = vendor
        self.raw_body = raw_body


class StructuredExtractionError(ProviderError):
    """Neither the answer nor the enveloped body deserialized into the target type."""

    def __init__(
        self,
        answer: str,
        raw_body: str,
        *,
        direct_error: Exception | None = None,
        envelope_error: Exception | None = None,
    ):
        reported = envelope_error or direct_error
        super().__init__(f"Unable to deserialize response into the target type: {reported}")
        self.answer = answer
        self.raw_body = raw_body
        self.direct_error = direct_error
        self.envelope_error = envelope_error


class RunFailedError(ProviderError):
    def __init__(self, status: str, message: str | None = None):
        super().__init__(message or f"Run ended with status {status!r}")
        self.status = status


class RunTimeoutError(ProviderError):
    def __init__(self, elapsed_seconds: float, deadline_seconds: float):
        super().__init__(f"Run did not complete within {deadline_seconds:g}s (elapsed {elapsed_seconds:.1f}s)")
        self.elapsed_seconds = elapsed_seconds
        self.deadline_seconds = deadline_seconds


class ResourceStateError(ProviderError):
    """Operation attempted on a session or builder missing a required prior step."""

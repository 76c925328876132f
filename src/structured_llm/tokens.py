from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import structlog
import tiktoken

from .errors import BudgetExceededError
from .metrics import budget_rejections_total

log = structlog.get_logger()

FALLBACK_ENCODING = "cl100k_base"
# Headroom for the braces, quoting and whitespace the model adds when rendering JSON.
JSON_OVERHEAD = 1.05

TokenCounter = Callable[[str], int]


def tiktoken_counter(model_name: str) -> TokenCounter:
    """Token counter for ``model_name``; unknown models fall back to the generic chat encoding."""
    try:
        encoding = tiktoken.encoding_for_model(model_name)
    except KeyError:
        encoding = tiktoken.get_encoding(FALLBACK_ENCODING)

    def _count(text: str) -> int:
        return len(encoding.encode(text, allowed_special="all"))

    return _count


@dataclass(frozen=True)
class Budget:
    prompt_tokens: int
    max_tokens: int

    @property
    def response_tokens(self) -> int:
        return self.max_tokens - self.prompt_tokens


class TokenBudgeter:
    def __init__(self, model_name: str, *, counter: TokenCounter | None = None):
        self.model_name = model_name
        self._counter = counter

    def _get_counter(self) -> TokenCounter:
        if self._counter is None:
            self._counter = tiktoken_counter(self.model_name)
        return self._counter

    def estimate(self, prompt: str) -> int:
        return int(self._get_counter()(prompt) * JSON_OVERHEAD)

    def check(self, prompt_tokens: int, max_tokens: int) -> Budget:
        """Pre-flight gate: fail when the prompt alone fills the budget, warn past half of it."""
        if prompt_tokens >= max_tokens:
            budget_rejections_total.labels(model=self.model_name).inc()
            raise BudgetExceededError(prompt_tokens, max_tokens)

        budget = Budget(prompt_tokens=prompt_tokens, max_tokens=max_tokens)
        if prompt_tokens * 2 >= max_tokens:
            log.warning(
                "completion_budget_warning",
                model=self.model_name,
                response_tokens=budget.response_tokens,
                max_tokens=max_tokens,
                prompt_tokens=prompt_tokens,
            )
        return budget

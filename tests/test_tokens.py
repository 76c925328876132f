import pytest
from structlog.testing import capture_logs

from structured_llm.errors import BudgetExceededError
from structured_llm.tokens import TokenBudgeter


def test_estimate_applies_json_overhead():
    budgeter = TokenBudgeter("gpt-4o", counter=lambda _: 100)
    assert budgeter.estimate("anything") == 105


def test_estimate_truncates_fractional_tokens():
    budgeter = TokenBudgeter("gpt-4o", counter=lambda _: 7)
    assert budgeter.estimate("anything") == 7


def test_check_rejects_prompt_that_fills_the_budget():
    budgeter = TokenBudgeter("gpt-4o", counter=lambda _: 0)
    with pytest.raises(BudgetExceededError) as exc:
        budgeter.check(1000, 1000)
    assert exc.value.prompt_tokens == 1000
    assert exc.value.max_tokens == 1000


def test_check_returns_remaining_response_tokens():
    budgeter = TokenBudgeter("gpt-4o", counter=lambda _: 0)
    assert budgeter.check(100, 1000).response_tokens == 900


def test_check_warns_but_allows_prompt_past_half_the_budget():
    budgeter = TokenBudgeter("gpt-4o", counter=lambda _: 0)
    with capture_logs() as logs:
        budget = budgeter.check(600, 1000)
    assert budget.prompt_tokens == 600
    assert budget.response_tokens == 400

    warnings = [entry for entry in logs if entry["event"] == "completion_budget_warning"]
    assert len(warnings) == 1
    assert warnings[0]["log_level"] == "warning"
    assert warnings[0]["response_tokens"] == 400


def test_check_is_quiet_below_half_the_budget():
    budgeter = TokenBudgeter("gpt-4o", counter=lambda _: 0)
    with capture_logs() as logs:
        budgeter.check(499, 1000)
    assert [entry for entry in logs if entry["event"] == "completion_budget_warning"] == []

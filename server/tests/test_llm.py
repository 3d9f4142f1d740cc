from __future__ import annotations

from types import SimpleNamespace

import httpx
import pytest
from anthropic import APIConnectionError, RateLimitError

from server.core.llm import ClaudeEstimator, EstimationError, build_prompt


class _FakeMessages:
    def __init__(self, outcomes) -> None:
        self.outcomes = list(outcomes)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _response(text: str):
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=text)], stop_reason="end_turn")


def _request() -> httpx.Request:
    return httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def _rate_limited() -> RateLimitError:
    return RateLimitError("rate limited", response=httpx.Response(429, request=_request()), body=None)


def _estimator(outcomes):
    sleeps = []
    estimator = ClaudeEstimator(api_key="test-key", sleeper=sleeps.append)
    messages = _FakeMessages(outcomes)
    estimator.client = SimpleNamespace(messages=messages)
    return estimator, messages, sleeps


def test_prompt_includes_scope_and_feedback() -> None:
    prompt = build_prompt("Build a portal", "add a risk section")
    assert "Scope of Work:\nBuild a portal" in prompt
    assert "User feedback (if any):\nadd a risk section" in prompt
    assert "Work Breakdown Structure (WBS)" in prompt


def test_prompt_without_feedback_says_none() -> None:
    assert build_prompt("Build a portal").rstrip().endswith("User feedback (if any):\nNone")


def test_generate_estimate_strips_output() -> None:
    estimator, messages, _ = _estimator([_response("\n  # Estimate\n\n")])

    assert estimator.generate_estimate("Build a portal") == "# Estimate"
    assert messages.calls[0]["temperature"] == pytest.approx(0.4)
    assert messages.calls[0]["messages"][0]["role"] == "user"


def test_rate_limit_is_retried() -> None:
    estimator, messages, sleeps = _estimator([_rate_limited(), _response("# Estimate")])

    assert estimator.generate_estimate("Build a portal") == "# Estimate"
    assert sleeps == [30]
    assert len(messages.calls) == 2


def test_rate_limit_gives_up_after_backoff_schedule() -> None:
    estimator, _, sleeps = _estimator([_rate_limited() for _ in range(4)])

    with pytest.raises(EstimationError):
        estimator.generate_estimate("Build a portal")
    assert sleeps == [30, 60, 120]


def test_api_error_becomes_estimation_error() -> None:
    estimator, _, _ = _estimator([APIConnectionError(request=_request())])

    with pytest.raises(EstimationError):
        estimator.generate_estimate("Build a portal")


def test_empty_output_is_an_error() -> None:
    estimator, _, _ = _estimator([_response("   ")])

    with pytest.raises(EstimationError):
        estimator.generate_estimate("Build a portal")


def test_missing_api_key(monkeypatch) -> None:
    monkeypatch.setattr("server.core.llm.ANTHROPIC_API_KEY", None)
    with pytest.raises(ValueError):
        ClaudeEstimator()

"""End-to-end pipeline runs through the LangGraph graph with a scripted model."""

import threading

import pytest

from config import PipelineConfig
from errors import ModelExhaustedError, RequestValidationError, TransientModelError
from orchestrator import Orchestrator, build_response, determine_outcome, validate_request
from routing import is_terminal_state
from state import Outcome, initial_state

from conftest import (
    SECTION_TITLES,
    VAGUE_INTENT,
    WEB_CLASSIFICATION,
    FakeModelClient,
    happy_script,
    reply,
)

PROMPT = "e-commerce site, Stripe payments, React"


def _run(script, sleep, prompt=PROMPT, **config_overrides):
    client = FakeModelClient(script)
    orchestrator = Orchestrator(client, config=PipelineConfig(**config_overrides), sleep=sleep)
    return orchestrator.execute(prompt), client


def _check_invariants(state):
    assert state["step_count"] <= state["max_steps"]
    assert state["retry_count"] <= state["max_retries"] + 1
    assert len(state["plan_sections"]) == len(state["generated_sections"])
    if state.get("sections") is not None:
        assert state["generated_sections"] <= {s["title"] for s in state["sections"]}
    orders = [s["order"] for s in state["plan_sections"]]
    assert orders == sorted(set(orders))


def test_vague_request_asks_for_clarification(sleep):
    script = {
        "initial_analysis": [reply(VAGUE_INTENT)],
        "clarification": [reply({"questions": ["What platform?", "Who will use it?", "What must it do?"]})],
    }
    result, client = _run(script, sleep, prompt="build an app")

    assert result.outcome is Outcome.CLARIFICATION
    assert result.state["needs_clarification"] is True
    assert 2 <= len(result.state["clarification_questions"]) <= 4
    assert result.state["plan_sections"] == []
    assert "section_generator" not in client.agents_called()
    _check_invariants(result.state)

    response = build_response(result.state, result.outcome).to_dict()
    assert response["success"] is False
    assert response["needsClarification"] is True
    assert response["data"] is None
    assert "1. What platform?" in response["message"]


def test_clear_request_goes_straight_to_plan(sleep):
    result, client = _run(happy_script(), sleep)
    state = result.state

    assert result.outcome is Outcome.SUCCESS
    assert "clarification" not in client.agents_called()
    assert state["project_category"] == "web_app"
    assert {"React", "Stripe"} <= set(state["detected_tech_stack"])
    assert [s["title"] for s in state["plan_sections"]] == SECTION_TITLES
    assert state["final_plan"].startswith("# Development Plan")
    assert state["salvaged"] is False
    assert client.count("classification") == 1
    assert state["total_tokens_used"] == 10 * len(client.calls)
    _check_invariants(state)

    response = build_response(state, result.outcome).to_dict()
    assert response["success"] is True
    assert response["message"] == "Plan generated successfully"
    assert response["data"]["metadata"]["classification"] == "web_app"
    assert response["data"]["metadata"]["model_used"] == "fake-model"
    assert "needsClarification" not in response


def test_reasoning_trace_follows_the_run(sleep):
    result, _ = _run(happy_script(), sleep)
    trace = result.state["thinking_history"]

    assert [t["node"] for t in trace] == (
        ["initial_analysis", "classification", "section_planning"]
        + ["section_generator"] * 5
        + ["plan_aggregator"]
    )
    assert trace[1]["decisions"] == ["category=web_app", "complexity=moderate"]
    assert trace[2]["decisions"] == SECTION_TITLES
    assert trace[-2]["next_action"] == "plan_aggregator"
    assert result.state["current_thinking"] == trace[-1]
    assert is_terminal_state(result.state)


def test_timeout_mid_generation_is_retried(sleep):
    script = happy_script(section_generator=[
        "Body one",
        "Body two",
        TransientModelError("Request timed out"),
        "Body three",
        "Body four",
        "Body five",
    ])
    result, client = _run(script, sleep)
    state = result.state

    assert result.outcome is Outcome.SUCCESS
    assert state["retry_count"] == 1
    assert sleep.delays == [1.0]
    assert [s["title"] for s in state["plan_sections"]] == SECTION_TITLES
    assert [s["content"] for s in state["plan_sections"]] == [
        "Body one", "Body two", "Body three", "Body four", "Body five",
    ]
    assert [s["order"] for s in state["plan_sections"]] == [1, 2, 3, 4, 5]
    assert client.count("section_generator") == 6
    _check_invariants(state)


def test_aggregator_failures_still_succeed(sleep):
    script = happy_script(
        plan_aggregator=[TransientModelError("Request timed out")],
        summarizer=[TransientModelError("Request timed out")],
    )
    result, _ = _run(script, sleep)
    state = result.state

    assert result.outcome is Outcome.SUCCESS
    assert state["final_plan"].startswith("# Development Plan")
    for title in SECTION_TITLES:
        assert f"## {title}" in state["final_plan"]
    assert state["plan_summary"] == (
        "web_app plan with 5 sections covering React, Stripe, Node.js, PostgreSQL"
    )
    assert state["last_error"].startswith("Aggregation degraded")

    response = build_response(state, result.outcome).to_dict()
    assert response["success"] is True
    assert "Warning: Aggregation degraded" in response["message"]


def test_step_budget_halts_mid_generation(sleep):
    result, _ = _run(happy_script(), sleep, max_steps=5)
    state = result.state

    assert result.outcome is Outcome.FAILURE
    assert state["step_count"] == 5
    assert [s["title"] for s in state["plan_sections"]] == SECTION_TITLES[:2]
    assert state["final_plan"] is None
    _check_invariants(state)

    response = build_response(state, result.outcome).to_dict()
    assert response["success"] is False
    assert "Step budget exhausted (5/5 steps)" in response["message"]


def test_exhausted_retries_without_sections_fail(sleep):
    script = happy_script(classification=[TransientModelError("Request timed out")])
    result, client = _run(script, sleep, max_retries=2)
    state = result.state

    assert result.outcome is Outcome.FAILURE
    assert state["retry_count"] == 3
    assert sleep.delays == [1.0, 2.0]
    assert client.count("classification") == 3
    assert "section_planning" not in client.agents_called()
    _check_invariants(state)

    message = build_response(state, result.outcome).message
    assert "Max retries (2) exceeded" in message


def test_exhausted_retries_salvage_partial_plan(sleep):
    script = happy_script(section_generator=["Body one", "Body two", TransientModelError("Request timed out")])
    result, _ = _run(script, sleep, max_retries=1)
    state = result.state

    assert result.outcome is Outcome.SUCCESS
    assert state["salvaged"] is True
    assert len(state["plan_sections"]) == 2
    assert state["final_plan"] is not None
    assert sleep.delays == [1.0]
    _check_invariants(state)

    message = build_response(state, result.outcome).message
    assert message.startswith("Partial plan generated (2/5 sections)")
    assert [t["node"] for t in state["thinking_history"]].count("retry_handler") == 2


def test_unrecoverable_error_salvages_without_backoff(sleep):
    script = happy_script(section_generator=[
        "Body one",
        "Body two",
        ModelExhaustedError("All models in chain failed: 401 invalid api key"),
    ])
    result, client = _run(script, sleep)
    state = result.state

    assert result.outcome is Outcome.SUCCESS
    assert sleep.delays == []
    assert state["retry_count"] == 0
    assert client.count("section_generator") == 3
    assert state["salvaged"] is True
    assert [s["title"] for s in state["plan_sections"]] == SECTION_TITLES[:2]
    assert "retry_handler" not in [t["node"] for t in state["thinking_history"]]
    _check_invariants(state)

    message = build_response(state, result.outcome).message
    assert message.startswith("Partial plan generated (2/5 sections)")
    assert "401 invalid api key" in message


def test_unrecoverable_error_without_sections_halts(sleep):
    script = happy_script(classification=[ModelExhaustedError("All models in chain failed")])
    result, client = _run(script, sleep)
    state = result.state

    assert result.outcome is Outcome.FAILURE
    assert sleep.delays == []
    assert client.count("classification") == 1
    assert state["plan_sections"] == []
    assert is_terminal_state(state)
    assert "All models in chain failed" in build_response(state, result.outcome).message


def test_cancellation_returns_partial_state(sleep):
    cancel = threading.Event()

    def classify_then_cancel(messages):
        cancel.set()
        return reply(WEB_CLASSIFICATION)

    client = FakeModelClient(happy_script(classification=[classify_then_cancel]))
    orchestrator = Orchestrator(client, sleep=sleep)
    result = orchestrator.execute(PROMPT, cancel_event=cancel)

    assert result.outcome is Outcome.CANCELLED
    assert result.state["project_category"] == "web_app"
    assert "section_planning" not in client.agents_called()
    assert "cancelled" in build_response(result.state, result.outcome).message


def test_runs_are_independent(sleep):
    client = FakeModelClient(happy_script())
    orchestrator = Orchestrator(client, sleep=sleep)
    first = orchestrator.execute(PROMPT)
    second = orchestrator.execute(PROMPT)

    assert first.run_id != second.run_id
    assert len(second.state["plan_sections"]) == 5
    assert client.count("classification") == 2


class TestRequestBoundary:
    def test_validate_request_rejects_blank_prompt(self):
        with pytest.raises(RequestValidationError):
            validate_request({"prompt": "   "})

    def test_validate_request_rejects_long_prompt(self):
        with pytest.raises(RequestValidationError):
            validate_request({"prompt": "x" * 5001})

    def test_validate_request_rejects_bad_history(self):
        with pytest.raises(RequestValidationError):
            validate_request({"prompt": "ok", "history": [{"role": "robot", "content": "hi"}]})

    def test_run_returns_failure_for_invalid_request(self, sleep):
        client = FakeModelClient()
        response = Orchestrator(client, sleep=sleep).run({"prompt": ""})
        assert response["success"] is False
        assert response["data"] is None
        assert client.calls == []

    def test_run_never_raises(self, sleep):
        # no scripted replies: the fake raises AssertionError inside the first node
        response = Orchestrator(FakeModelClient(), sleep=sleep).run({"prompt": PROMPT})
        assert response["success"] is False
        assert response["message"].startswith("Pipeline failed")

    def test_run_success_payload(self, sleep):
        response = Orchestrator(FakeModelClient(happy_script()), sleep=sleep).run({
            "prompt": PROMPT,
            "history": [{"role": "user", "content": "I run a small shop"}],
        })
        assert response["success"] is True
        assert set(response["data"]) == {"markdown", "summary", "metadata"}
        assert response["data"]["metadata"]["total_tokens"] > 0


def test_determine_outcome_prefers_plan():
    state = initial_state("p")
    assert determine_outcome(state) is Outcome.FAILURE
    assert determine_outcome(state, cancelled=True) is Outcome.CANCELLED
    assert determine_outcome({**state, "final_plan": "# P"}, cancelled=True) is Outcome.SUCCESS

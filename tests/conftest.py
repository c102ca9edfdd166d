"""Pytest configuration and shared fixtures.

No test talks to a real model: pipeline tests use ``FakeModelClient``,
which answers each call from a per-node script.
"""

import json

import pytest

from config import PipelineConfig
from llm.model_client import ModelResult
from observability import langfuse_tracer
from state import initial_state
from utils.context import ContextSummarizer


def reply(obj) -> str:
    """Model text containing *obj* as JSON, wrapped the way models often do."""
    return f"```json\n{json.dumps(obj)}\n```"


CLEAR_INTENT = {
    "isVague": False,
    "hasSufficientDetail": True,
    "detectedIntent": "E-commerce site with Stripe payments",
    "missingInfo": [],
    "confidence": 0.9,
    "reasoning": "Platform, payments and frontend are specified",
    "canProceedWithDefaults": True,
}

VAGUE_INTENT = {
    "isVague": True,
    "hasSufficientDetail": False,
    "detectedIntent": "Some kind of app",
    "missingInfo": ["platform", "core features", "target users"],
    "confidence": 0.2,
    "reasoning": "No detail at all",
    "canProceedWithDefaults": False,
}

WEB_CLASSIFICATION = {
    "category": "web_app",
    "detectedStack": ["React", "Stripe"],
    "suggestedStack": ["Node.js", "PostgreSQL", "React"],
    "complexity": "moderate",
    "reasoning": "Storefront with payments",
}

FIVE_SECTIONS = {
    "sections": [
        {"title": "Project Overview", "description": "Goals", "intent": "context", "priority": 10},
        {"title": "Architecture", "description": "Components", "intent": "structure", "priority": 9},
        {"title": "Payments", "description": "Stripe flow", "intent": "checkout", "priority": 8},
        {"title": "Frontend", "description": "React app", "intent": "UI", "priority": 7},
        {"title": "Deployment", "description": "Hosting", "intent": "release", "priority": 6},
    ],
    "reasoning": "Store needs these",
}

SECTION_TITLES = [s["title"] for s in FIVE_SECTIONS["sections"]]


class FakeModelClient:
    """Scripted stand-in for ModelClient.

    ``script`` maps an agent name to a list of replies. Each call consumes
    the next reply; the last one repeats once the list runs out. A reply is
    a string, an exception instance (raised), or a callable taking the
    messages and returning either.
    """

    def __init__(self, script: dict | None = None, model: str = "fake-model", tokens: int = 10):
        self.script = {name: list(replies) for name, replies in (script or {}).items()}
        self.model = model
        self.tokens = tokens
        self.calls: list[dict] = []

    def invoke(self, messages, temperature=None, max_tokens=None, agent_name=""):
        self.calls.append({
            "agent_name": agent_name,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        replies = self.script.get(agent_name)
        if not replies:
            raise AssertionError(f"No scripted reply for agent '{agent_name}'")
        item = replies.pop(0) if len(replies) > 1 else replies[0]
        if callable(item) and not isinstance(item, Exception):
            item = item(messages)
        if isinstance(item, Exception):
            raise item
        return ModelResult(content=item, tokens_used=self.tokens, model_used=self.model)

    def agents_called(self) -> list[str]:
        return [c["agent_name"] for c in self.calls]

    def count(self, agent_name: str) -> int:
        return self.agents_called().count(agent_name)


class RecordingSleep:
    """Injectable sleep that records delays instead of blocking."""

    def __init__(self):
        self.delays: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def happy_script(**overrides) -> dict:
    """Replies for a clear request that runs straight through to a plan."""
    script = {
        "initial_analysis": [reply(CLEAR_INTENT)],
        "classification": [reply(WEB_CLASSIFICATION)],
        "section_planning": [reply(FIVE_SECTIONS)],
        "section_generator": ["Detailed section content."],
        "plan_aggregator": ["# Development Plan\n\nPolished document."],
        "summarizer": ["A five-section plan for a Stripe-backed React store."],
    }
    script.update(overrides)
    return script


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep tracing off and the model chain at its defaults."""
    for var in ("LANGFUSE_PUBLIC_KEY", "MODEL_OVERRIDE", "PLANNER_MODEL_CHAIN"):
        monkeypatch.delenv(var, raising=False)
    langfuse_tracer.reset()
    yield
    langfuse_tracer.reset()


@pytest.fixture
def config():
    return PipelineConfig()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def make_summarizer(config):
    def _make(client, **kwargs):
        params = {
            "max_messages": config.history_max_messages,
            "history_token_budget": config.history_token_budget,
        }
        params.update(kwargs)
        return ContextSummarizer(client, **params)
    return _make


@pytest.fixture
def base_state():
    return initial_state("E-commerce site, Stripe payments, React")

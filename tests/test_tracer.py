"""Tests for the Langfuse generation wrapper."""

from contextlib import contextmanager

from langchain_core.messages import AIMessage, HumanMessage

from observability import langfuse_tracer


class FakeGeneration:
    def __init__(self):
        self.updates = []

    def update(self, **kwargs):
        self.updates.append(kwargs)


class FakeLangfuse:
    def __init__(self):
        self.generations = []
        self.flushed = 0

    @contextmanager
    def start_as_current_generation(self, **kwargs):
        generation = FakeGeneration()
        self.generations.append((kwargs, generation))
        yield generation

    def flush(self):
        self.flushed += 1


class EchoLLM:
    def invoke(self, messages):
        return AIMessage(content="ok", usage_metadata={"input_tokens": 5, "output_tokens": 2, "total_tokens": 7})


def test_untraced_when_disabled():
    response = langfuse_tracer.traced_invoke(EchoLLM(), [HumanMessage(content="hi")], "classification", "gpt-4o-mini")
    assert response.content == "ok"


def test_generation_records_agent_and_usage(monkeypatch):
    fake = FakeLangfuse()
    monkeypatch.setattr(langfuse_tracer, "_langfuse", fake)

    langfuse_tracer.traced_invoke(EchoLLM(), [HumanMessage(content="hi")], "classification", "gpt-4o-mini")

    kwargs, generation = fake.generations[0]
    assert kwargs["name"] == "classification-call"
    assert kwargs["metadata"] == {"agent": "classification"}
    assert generation.updates[0]["usage_details"] == {"input": 5, "output": 2}
    assert fake.flushed == 1

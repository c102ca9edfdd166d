"""LLM-level tracing via Langfuse. Disabled unless LANGFUSE_PUBLIC_KEY is set."""

import logging
import os
import time

from langfuse import Langfuse

from config import calculate_cost

logger = logging.getLogger(__name__)

_langfuse = None


def _get_langfuse():
    global _langfuse
    if _langfuse is not None:
        return _langfuse
    if os.getenv("LANGFUSE_PUBLIC_KEY"):
        _langfuse = Langfuse()
        logger.info("[langfuse] Tracing enabled")
    else:
        _langfuse = False
        logger.info("[langfuse] No API key found, tracing disabled")
    return _langfuse


def usage_tokens(response) -> tuple[int, int]:
    """Return (input_tokens, output_tokens) from a LangChain AIMessage."""
    usage = getattr(response, "usage_metadata", None) or {}
    return usage.get("input_tokens", 0), usage.get("output_tokens", 0)


def traced_invoke(llm, messages, agent_name: str, model_used: str):
    """Invoke *llm* with *messages*, recording a Langfuse generation if enabled."""
    lf = _get_langfuse()
    if not lf:
        return llm.invoke(messages)

    with lf.start_as_current_generation(
        name=f"{agent_name or 'llm'}-call",
        model=model_used,
        input=[{"role": m.type, "content": m.content} for m in messages],
        metadata={"agent": agent_name},
    ) as generation:
        start = time.time()
        response = llm.invoke(messages)
        duration_ms = (time.time() - start) * 1000

        input_tokens, output_tokens = usage_tokens(response)
        generation.update(
            output=response.content,
            usage_details={"input": input_tokens, "output": output_tokens},
            metadata={
                "duration_ms": round(duration_ms, 2),
                "cost_usd": calculate_cost(model_used, input_tokens, output_tokens),
                "model_used": model_used,
            },
        )
    lf.flush()
    return response


def reset() -> None:
    """Forget the cached client so the env var is re-read (tests)."""
    global _langfuse
    _langfuse = None


def flush() -> None:
    """Send any buffered generations before the process exits."""
    if _langfuse:
        _langfuse.flush()

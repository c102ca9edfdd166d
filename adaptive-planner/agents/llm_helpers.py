"""Helpers shared by the pipeline nodes: model calls, structured parsing, error deltas."""

import logging
from typing import Any, NamedTuple, Optional

from errors import ModelInvocationError, analyze_error, is_recoverable
from observability.metrics import NODE_ERRORS, PARSE_FALLBACKS
from validation.parser import ParseResult, parse_model_output

logger = logging.getLogger(__name__)


class StructuredCall(NamedTuple):
    parsed: ParseResult
    tokens_used: int
    model_used: str


def build_messages(system: str, human: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": human},
    ]


def invoke_structured(
    client,
    system: str,
    human: str,
    schema,
    default: Any,
    agent_name: str,
    temperature: float = 0.3,
    max_tokens: int = 800,
) -> StructuredCall:
    """Call the model and parse its JSON answer against *schema*.

    Non-conforming output is re-asked once; a second failure yields the
    *default* wrapped as a fallback. Model-call errors propagate, carrying
    the tokens an earlier unparseable attempt already spent.
    """
    messages = build_messages(system, human)
    tokens = 0
    parsed = None
    result = None
    for attempt in range(2):
        try:
            result = client.invoke(
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                agent_name=agent_name,
            )
        except ModelInvocationError as e:
            e.tokens_used = tokens
            raise
        tokens += result.tokens_used
        parsed = parse_model_output(result.content, schema, default)
        if parsed.ok:
            break
        logger.warning(f"[{agent_name}] Unparseable output (attempt {attempt + 1}/2): {parsed.error}")

    if not parsed.ok:
        PARSE_FALLBACKS.labels(node=agent_name).inc()
        logger.warning(f"[{agent_name}] Falling back to default value")
    return StructuredCall(parsed=parsed, tokens_used=tokens, model_used=result.model_used)


def thinking(
    node: str,
    reasoning: str,
    decisions: Optional[list[str]] = None,
    assumptions: Optional[list[str]] = None,
    next_action: str = "",
) -> dict:
    """State delta recording why a node did what it did."""
    entry = {
        "node": node,
        "reasoning": reasoning,
        "decisions": list(decisions or []),
        "assumptions": list(assumptions or []),
        "next_action": next_action,
    }
    return {"current_thinking": entry, "thinking_history": [entry]}


def node_error(node: str, exc: Exception, recoverable: Optional[bool] = None, **extra) -> dict:
    """State delta recording a failed node for the router.

    Recoverable errors go to the retry handler; the rest skip backoff.
    Tokens the failing call already spent are added to *extra*'s count.
    """
    NODE_ERRORS.labels(node=node).inc()
    if recoverable is None:
        recoverable = is_recoverable(exc)
    message = str(exc) or type(exc).__name__
    logger.error(f"[{node}] {type(exc).__name__}: {exc}{'' if recoverable else ' (not recoverable)'}")

    spent = getattr(exc, "tokens_used", 0)
    if spent:
        extra["total_tokens_used"] = extra.get("total_tokens_used", 0) + spent
    return {
        "last_error": message,
        "failed_node": node,
        "error_recoverable": recoverable,
        **thinking(
            node,
            f"{type(exc).__name__}: {message}",
            decisions=[analyze_error(message)["reason"]],
            next_action="retry" if recoverable else "salvage or halt",
        ),
        **extra,
    }


def technologies(stack: list[str]) -> str:
    return ", ".join(stack) or "To be determined"

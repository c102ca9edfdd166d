"""Retry Coordinator: exponential backoff, then re-entry or give-up."""

import logging
import time
from typing import Callable

from config import PipelineConfig
from errors import analyze_error
from agents.llm_helpers import thinking
from observability.metrics import NODE_RETRIES
from state import PipelineState

logger = logging.getLogger(__name__)

NODE = "retry_handler"


def backoff_delay(retry_count: int, base_delay: float, max_delay: float) -> float:
    """Delay before retry number *retry_count* (1-based), capped at *max_delay*."""
    return min(base_delay * 2 ** (retry_count - 1), max_delay)


def run_retry_coordinator(
    state: PipelineState,
    config: PipelineConfig,
    sleep: Callable[[float], None] = time.sleep,
) -> dict:
    retry_count = state.get("retry_count", 0) + 1
    max_retries = state.get("max_retries", config.max_retries)
    error = state.get("last_error") or "unknown error"
    failed_node = state.get("failed_node") or "unknown"
    diagnosis = analyze_error(error)

    if retry_count > max_retries:
        logger.error(f"[{NODE}] Max retries ({max_retries}) exceeded after failure in {failed_node}")
        return {
            "retry_count": retry_count,
            "last_error": f"Max retries ({max_retries}) exceeded. Last error: {error}",
            **thinking(
                NODE,
                f"{failed_node} kept failing ({diagnosis['reason']})",
                decisions=[f"give up after {max_retries} retries"],
                next_action="salvage or halt",
            ),
        }

    delay = backoff_delay(retry_count, config.base_delay, config.max_delay)
    logger.warning(
        f"[{NODE}] {failed_node} failed ({diagnosis['reason']}): {error}. "
        f"Retry {retry_count}/{max_retries} in {delay:.1f}s"
    )
    NODE_RETRIES.labels(node=failed_node).inc()
    sleep(delay)

    return {
        "retry_count": retry_count,
        "retry_delays": [delay],
        "last_error": None,
        **thinking(
            NODE,
            f"{failed_node} failed ({diagnosis['reason']}): {error}",
            decisions=[f"retry {retry_count}/{max_retries} after {delay:.1f}s"],
            next_action=f"re-enter {failed_node}",
        ),
    }

"""System-level metrics via Prometheus client."""

import logging

from prometheus_client import Counter, Histogram, start_http_server

logger = logging.getLogger(__name__)

# Counters
NODE_CALLS = Counter(
    "planner_node_calls_total",
    "Total number of pipeline node executions",
    ["node"],
)

NODE_ERRORS = Counter(
    "planner_node_errors_total",
    "Total number of node failures recorded in state",
    ["node"],
)

NODE_RETRIES = Counter(
    "planner_node_retries_total",
    "Total number of retries, labelled by the node being re-entered",
    ["node"],
)

PARSE_FALLBACKS = Counter(
    "planner_parse_fallbacks_total",
    "Model outputs that could not be parsed and fell back to a default",
    ["node"],
)

MODEL_FALLBACKS = Counter(
    "planner_model_fallbacks_total",
    "Calls that moved down the fallback model chain",
    ["model"],
)

TOKENS_USED = Counter(
    "planner_tokens_used_total",
    "Total tokens consumed across all LLM calls",
)

SECTIONS_GENERATED = Counter(
    "planner_sections_generated_total",
    "Plan sections successfully generated",
)

RUN_OUTCOMES = Counter(
    "planner_run_outcomes_total",
    "Finished runs by terminal outcome",
    ["outcome"],
)

# Histograms
NODE_LATENCY = Histogram(
    "planner_node_latency_seconds",
    "Time spent in each node",
    ["node"],
    buckets=[0.5, 1, 2, 5, 10, 30, 60],
)

RUN_DURATION = Histogram(
    "planner_run_duration_seconds",
    "End-to-end run latency",
    buckets=[5, 10, 30, 60, 120, 300, 600],
)


def start_metrics_server(port: int = 9090) -> None:
    """Start Prometheus metrics endpoint on /metrics."""
    try:
        start_http_server(port)
        logger.info(f"[metrics] Prometheus metrics available at http://localhost:{port}/metrics")
    except OSError as e:
        logger.warning(f"[metrics] Could not start metrics server: {e}")

"""LangGraph graph definition with table-driven routing."""

import time
from typing import Callable

from langgraph.graph import StateGraph, START

from config import PipelineConfig
from state import PipelineState
from routing import NodeId, Router
from agents.intent_analyzer import run_intent_analyzer
from agents.clarifier import run_clarifier
from agents.classifier import run_classifier
from agents.section_planner import run_section_planner
from agents.section_generator import run_section_generator
from agents.aggregator import run_aggregator
from agents.retry_coordinator import run_retry_coordinator
from observability.metrics import NODE_CALLS, NODE_LATENCY


def _instrumented(node: NodeId, fn: Callable[[PipelineState], dict]):
    """Wrap a node with latency/call metrics and the per-node step count."""
    def wrapper(state: PipelineState) -> dict:
        start = time.time()
        delta = fn(state)
        elapsed = time.time() - start

        NODE_CALLS.labels(node=node.value).inc()
        NODE_LATENCY.labels(node=node.value).observe(elapsed)

        return {**delta, "step_count": 1}
    return wrapper


def build_graph(
    client,
    summarizer,
    config: PipelineConfig,
    sleep: Callable[[float], None] = time.sleep,
    router: Router | None = None,
):
    router = router or Router()

    nodes: dict[NodeId, Callable[[PipelineState], dict]] = {
        NodeId.INITIAL_ANALYSIS: lambda s: run_intent_analyzer(s, client, summarizer, config),
        NodeId.CLARIFICATION: lambda s: run_clarifier(s, client, summarizer, config),
        NodeId.CLASSIFICATION: lambda s: run_classifier(s, client, config),
        NodeId.SECTION_PLANNING: lambda s: run_section_planner(s, client, config),
        NodeId.SECTION_GENERATOR: lambda s: run_section_generator(s, client, config),
        NodeId.PLAN_AGGREGATOR: lambda s: run_aggregator(s, client, summarizer, config),
        NodeId.RETRY_HANDLER: lambda s: run_retry_coordinator(s, config, sleep),
    }

    graph = StateGraph(PipelineState)
    for node, fn in nodes.items():
        graph.add_node(node.value, _instrumented(node, fn))

    graph.add_edge(START, NodeId.INITIAL_ANALYSIS.value)

    # Every node hands its merged state to the router for the next decision
    for node in NodeId:
        graph.add_conditional_edges(
            node.value,
            lambda s, _node=node: router.next(_node, s),
            router.path_map(node),
        )

    return graph.compile()

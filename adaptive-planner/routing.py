"""State-machine transitions between pipeline nodes.

Every node has exactly one transition function mapping the merged state to
the next node id (or ``HALT``). The ``Router`` refuses to start when a node
is missing a transition or a retry target.
"""

import logging
from enum import Enum
from functools import partial
from typing import Callable

from langgraph.graph import END

from state import PipelineState

logger = logging.getLogger(__name__)

HALT = END


class NodeId(str, Enum):
    INITIAL_ANALYSIS = "initial_analysis"
    CLARIFICATION = "clarification"
    CLASSIFICATION = "classification"
    SECTION_PLANNING = "section_planning"
    SECTION_GENERATOR = "section_generator"
    PLAN_AGGREGATOR = "plan_aggregator"
    RETRY_HANDLER = "retry_handler"


# Where a failed node is re-entered after backoff
RETRY_TARGETS: dict[NodeId, NodeId] = {
    NodeId.INITIAL_ANALYSIS: NodeId.INITIAL_ANALYSIS,
    NodeId.CLARIFICATION: NodeId.CLARIFICATION,
    NodeId.CLASSIFICATION: NodeId.CLASSIFICATION,
    NodeId.SECTION_PLANNING: NodeId.SECTION_PLANNING,
    NodeId.SECTION_GENERATOR: NodeId.SECTION_GENERATOR,
    NodeId.PLAN_AGGREGATOR: NodeId.PLAN_AGGREGATOR,
}
DEFAULT_RETRY_TARGET = NodeId.CLASSIFICATION

Target = NodeId | str  # NodeId or HALT


def retry_target(failed_node: str | None, targets: dict[NodeId, NodeId] = RETRY_TARGETS) -> NodeId:
    try:
        return targets[NodeId(failed_node)]
    except (ValueError, KeyError):
        return DEFAULT_RETRY_TARGET


def budget_exhausted(state: PipelineState) -> bool:
    return state.get("step_count", 0) >= state.get("max_steps", 0)


def retries_exhausted(state: PipelineState) -> bool:
    return state.get("retry_count", 0) > state.get("max_retries", 0)


def _on_error(state: PipelineState) -> Target:
    if retries_exhausted(state):
        return HALT
    if state.get("error_recoverable", True):
        return NodeId.RETRY_HANDLER
    # Backoff cannot help: keep what was generated, or stop
    if state.get("plan_sections"):
        logger.warning(
            f"[router] Unrecoverable error in {state.get('failed_node')}, "
            f"salvaging {len(state['plan_sections'])} generated sections"
        )
        return NodeId.PLAN_AGGREGATOR
    return HALT


def after_initial_analysis(state: PipelineState) -> Target:
    if state.get("last_error"):
        return _on_error(state)
    if state.get("needs_clarification"):
        return NodeId.CLARIFICATION
    return NodeId.CLASSIFICATION


def after_clarification(state: PipelineState) -> Target:
    if state.get("last_error"):
        return _on_error(state)
    return HALT


def after_classification(state: PipelineState) -> Target:
    if state.get("last_error"):
        return _on_error(state)
    return NodeId.SECTION_PLANNING


def after_section_planning(state: PipelineState) -> Target:
    if state.get("last_error"):
        return _on_error(state)
    return NodeId.SECTION_GENERATOR


def after_section_generator(state: PipelineState) -> Target:
    if state.get("last_error"):
        return _on_error(state)
    done = state.get("generated_sections") or set()
    if all(s["title"] in done for s in state.get("sections") or []):
        return NodeId.PLAN_AGGREGATOR
    return NodeId.SECTION_GENERATOR


def after_plan_aggregator(state: PipelineState) -> Target:
    return HALT


def after_retry(state: PipelineState, targets: dict[NodeId, NodeId] = RETRY_TARGETS) -> Target:
    if retries_exhausted(state):
        if state.get("plan_sections"):
            logger.warning(
                f"[router] Retries exhausted, salvaging {len(state['plan_sections'])} generated sections"
            )
            return NodeId.PLAN_AGGREGATOR
        return HALT
    return retry_target(state.get("failed_node"), targets)


TRANSITIONS: dict[NodeId, Callable[[PipelineState], Target]] = {
    NodeId.INITIAL_ANALYSIS: after_initial_analysis,
    NodeId.CLARIFICATION: after_clarification,
    NodeId.CLASSIFICATION: after_classification,
    NodeId.SECTION_PLANNING: after_section_planning,
    NodeId.SECTION_GENERATOR: after_section_generator,
    NodeId.PLAN_AGGREGATOR: after_plan_aggregator,
    NodeId.RETRY_HANDLER: after_retry,
}


class Router:
    def __init__(
        self,
        transitions: dict[NodeId, Callable[[PipelineState], Target]] | None = None,
        retry_targets: dict[NodeId, NodeId] | None = None,
    ):
        self.retry_targets = dict(RETRY_TARGETS if retry_targets is None else retry_targets)
        if transitions is None:
            transitions = {
                **TRANSITIONS,
                NodeId.RETRY_HANDLER: partial(after_retry, targets=self.retry_targets),
            }
        self.transitions = dict(transitions)

        missing = [n.value for n in NodeId if n not in self.transitions]
        if missing:
            raise ValueError(f"No transition defined for nodes: {missing}")
        unretried = [
            n.value for n in NodeId
            if n is not NodeId.RETRY_HANDLER and n not in self.retry_targets
        ]
        if unretried:
            raise ValueError(f"No retry target defined for nodes: {unretried}")

    def next(self, node: NodeId, state: PipelineState) -> str:
        """Next node name for LangGraph. The step budget overrides every transition."""
        if budget_exhausted(state):
            logger.warning(
                f"[router] Step budget exhausted ({state.get('step_count', 0)}/{state.get('max_steps', 0)}) "
                f"after {node.value}, halting"
            )
            return HALT
        target = self.transitions[node](state)
        result = target.value if isinstance(target, NodeId) else target
        logger.debug(f"[router] {node.value} -> {result}")
        return result

    def path_map(self, node: NodeId) -> dict[str, str]:
        destinations = {n.value: n.value for n in NodeId}
        destinations[HALT] = HALT
        return destinations


def is_terminal_state(state: PipelineState) -> bool:
    """True when the run can make no further progress on its own."""
    if state.get("final_plan") is not None:
        return True
    if state.get("needs_clarification") and state.get("clarification_questions"):
        return True
    if budget_exhausted(state):
        return True
    gave_up = retries_exhausted(state) or not state.get("error_recoverable", True)
    return bool(state.get("last_error")) and gave_up and not state.get("plan_sections")

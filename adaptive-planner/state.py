"""Pipeline state flowing through the LangGraph graph.

Nodes return only the fields they change. The reducers attached to each
field below decide how a node's delta is merged into the running state.
"""

import operator
from enum import Enum
from typing import Annotated, Literal, Optional, TypedDict, get_type_hints

from config import DEFAULT_MAX_RETRIES, DEFAULT_MAX_STEPS

Complexity = Literal["simple", "moderate", "complex"]


class ProjectCategory(str, Enum):
    WEB_APP = "web_app"
    MOBILE_APP = "mobile_app"
    API = "api"
    CLI_TOOL = "cli_tool"
    LIBRARY = "library"
    DATA_PIPELINE = "data_pipeline"
    ML_MODEL = "ml_model"
    UTILITY = "utility"
    UNKNOWN = "unknown"


class Outcome(str, Enum):
    SUCCESS = "success"
    CLARIFICATION = "clarification"
    FAILURE = "failure"
    CANCELLED = "cancelled"


class ChatMessage(TypedDict, total=False):
    role: Literal["user", "assistant", "system"]
    content: str
    summary: str


class Section(TypedDict):
    title: str
    description: str
    intent: str
    priority: int  # 1..10, planning hint only


class PlanSection(TypedDict):
    title: str
    content: str
    order: int  # generation sequence, starts at 1


class ThinkingEntry(TypedDict):
    node: str
    reasoning: str
    decisions: list[str]
    assumptions: list[str]
    next_action: str


# ── Reducers ────────────────────────────────────────────────────────────────


def keep_first(prev, new):
    """Cache-once merge: a value, once present, is never replaced."""
    if prev is None or prev == []:
        return new
    return prev


def union(prev: set[str], new: set[str]) -> set[str]:
    return set(prev or ()) | set(new or ())


def count_step(prev: int, new: int) -> int:
    return (prev or 0) + new


class PipelineState(TypedDict, total=False):
    # Inputs
    user_prompt: str
    history: list[ChatMessage]
    # Intent analysis / clarification
    needs_clarification: bool
    clarification_questions: list[str]
    missing_info: list[str]
    detected_intent: Optional[str]
    intent_confidence: Optional[float]
    context_summary: Annotated[Optional[str], keep_first]
    default_tech_stack: Annotated[list[str], keep_first]
    default_complexity: Annotated[Optional[Complexity], keep_first]
    # Classification (cache-once)
    project_category: Annotated[Optional[str], keep_first]
    detected_tech_stack: Annotated[list[str], keep_first]
    suggested_tech_stack: Annotated[list[str], keep_first]
    project_complexity: Annotated[Optional[Complexity], keep_first]
    # Plan
    sections: Annotated[Optional[list[Section]], keep_first]
    generated_sections: Annotated[set[str], union]
    plan_sections: Annotated[list[PlanSection], operator.add]
    # Aggregation
    final_plan: Annotated[Optional[str], keep_first]
    plan_summary: Annotated[Optional[str], keep_first]
    salvaged: bool
    # Error / retry bookkeeping
    retry_count: int
    max_retries: int
    retry_delays: Annotated[list[float], operator.add]
    last_error: Optional[str]
    failed_node: Optional[str]
    error_recoverable: bool
    # Step budget
    step_count: Annotated[int, count_step]
    max_steps: int
    # Usage
    model_used: str
    total_tokens_used: Annotated[int, operator.add]
    # Reasoning trace: one entry per node that did work
    current_thinking: Optional[ThinkingEntry]
    thinking_history: Annotated[list[ThinkingEntry], operator.add]


def initial_state(
    user_prompt: str,
    history: Optional[list[ChatMessage]] = None,
    max_retries: int = DEFAULT_MAX_RETRIES,
    max_steps: int = DEFAULT_MAX_STEPS,
) -> PipelineState:
    """Return a fresh state for one incoming request."""
    return {
        "user_prompt": user_prompt,
        "history": list(history or []),
        "needs_clarification": False,
        "clarification_questions": [],
        "missing_info": [],
        "detected_intent": None,
        "intent_confidence": None,
        "context_summary": None,
        "default_tech_stack": [],
        "default_complexity": None,
        "project_category": None,
        "detected_tech_stack": [],
        "suggested_tech_stack": [],
        "project_complexity": None,
        "sections": None,
        "generated_sections": set(),
        "plan_sections": [],
        "final_plan": None,
        "plan_summary": None,
        "salvaged": False,
        "retry_count": 0,
        "max_retries": max_retries,
        "retry_delays": [],
        "last_error": None,
        "failed_node": None,
        "error_recoverable": True,
        "step_count": 0,
        "max_steps": max_steps,
        "model_used": "",
        "total_tokens_used": 0,
        "current_thinking": None,
        "thinking_history": [],
    }


def merge_delta(state: PipelineState, delta: dict) -> PipelineState:
    """Apply a node delta with the same merge rules the graph uses."""
    merged = dict(state)
    for key, value in delta.items():
        reducer = _REDUCERS.get(key)
        if reducer is not None and key in merged:
            merged[key] = reducer(merged[key], value)
        else:
            merged[key] = value
    return merged  # type: ignore[return-value]


_REDUCERS = {
    key: hint.__metadata__[0]
    for key, hint in get_type_hints(PipelineState, include_extras=True).items()
    if getattr(hint, "__metadata__", None)
}


def resolved_complexity(state: PipelineState) -> str:
    return state.get("project_complexity") or state.get("default_complexity") or "moderate"


def resolved_stack(state: PipelineState) -> list[str]:
    """Detected + suggested technologies, or the provisional defaults."""
    stack = list(state.get("detected_tech_stack") or []) + [
        t for t in state.get("suggested_tech_stack") or []
        if t not in (state.get("detected_tech_stack") or [])
    ]
    return stack or list(state.get("default_tech_stack") or [])

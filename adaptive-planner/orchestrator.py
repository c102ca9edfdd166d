"""Orchestrator: drives one pipeline run and shapes the external response.

``Orchestrator.execute`` streams the LangGraph graph step by step so a
caller-supplied cancellation event can stop the run between nodes;
``Orchestrator.run`` is the request/response boundary and never raises.
"""

import logging
import threading
import time
import uuid
from datetime import datetime, timezone
from typing import Callable, NamedTuple, Optional

from langgraph.errors import GraphRecursionError
from pydantic import ValidationError

from config import PipelineConfig
from errors import BudgetExceededError, RequestValidationError
from graph import build_graph
from observability.metrics import RUN_DURATION, RUN_OUTCOMES
from routing import Router, budget_exhausted, is_terminal_state, retries_exhausted
from state import ChatMessage, Outcome, PipelineState, initial_state, merge_delta
from utils.context import ContextSummarizer
from validation.schemas import GeneratePlanRequest, PlanData, PlanMetadata, PlanResponse

logger = logging.getLogger(__name__)


class PipelineRun(NamedTuple):
    state: PipelineState
    outcome: Outcome
    run_id: str
    duration: float


def validate_request(payload: dict) -> GeneratePlanRequest:
    try:
        return GeneratePlanRequest.model_validate(payload)
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'request'}: {err['msg']}" for err in e.errors()
        )
        raise RequestValidationError(f"Invalid request: {details}") from e


def determine_outcome(state: PipelineState, cancelled: bool = False) -> Outcome:
    if state.get("final_plan") is not None:
        return Outcome.SUCCESS
    if cancelled:
        return Outcome.CANCELLED
    if state.get("needs_clarification") and state.get("clarification_questions") and not state.get("last_error"):
        return Outcome.CLARIFICATION
    return Outcome.FAILURE


def failure_message(state: PipelineState) -> str:
    parts = ["Failed to generate plan."]
    if retries_exhausted(state):
        parts.append(f"Max retries ({state.get('max_retries', 0)}) exceeded.")
    if budget_exhausted(state):
        parts.append(
            f"Step budget exhausted ({state.get('step_count', 0)}/{state.get('max_steps', 0)} steps)."
        )
    if state.get("last_error"):
        parts.append(f"Error: {state['last_error']}")
    elif len(parts) == 1:
        parts.append("Please try again.")
    return " ".join(parts)


def build_response(state: PipelineState, outcome: Outcome) -> PlanResponse:
    if outcome is Outcome.CLARIFICATION:
        questions = list(state.get("clarification_questions") or [])
        numbered = "\n".join(f"{i}. {q}" for i, q in enumerate(questions, 1))
        return PlanResponse(
            success=False,
            message=f"I need more information:\n\n{numbered}\n\nPlease provide more details.",
            needs_clarification=True,
            questions=questions,
        )

    if outcome is Outcome.CANCELLED:
        done = len(state.get("plan_sections") or [])
        return PlanResponse(
            success=False,
            message=f"Run cancelled after {state.get('step_count', 0)} steps ({done} sections generated).",
        )

    if outcome is Outcome.FAILURE:
        return PlanResponse(success=False, message=failure_message(state))

    summary = state.get("plan_summary") or "Summary not available"
    message = "Plan generated successfully"
    if state.get("salvaged"):
        message = (
            f"Partial plan generated ({len(state.get('plan_sections') or [])}"
            f"/{len(state.get('sections') or [])} sections)"
        )
    if state.get("last_error"):
        message += f". Warning: {state['last_error']}"
    return PlanResponse(
        success=True,
        data=PlanData(
            markdown=state["final_plan"],
            summary=summary,
            metadata=PlanMetadata(
                generated_at=datetime.now(timezone.utc).isoformat(),
                classification=state.get("project_category") or "unknown",
                model_used=state.get("model_used") or "",
                total_tokens=state.get("total_tokens_used", 0),
                summary=state.get("plan_summary") or "",
            ),
        ),
        message=message,
    )


class Orchestrator:
    """Runs requests through the planning graph.

    The model client and summarizer are injected; nothing here is shared
    between runs except those two objects.
    """

    def __init__(
        self,
        client,
        summarizer: Optional[ContextSummarizer] = None,
        config: Optional[PipelineConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
        router: Optional[Router] = None,
    ):
        self.client = client
        self.config = config or PipelineConfig()
        self.summarizer = summarizer or ContextSummarizer(
            client,
            max_messages=self.config.history_max_messages,
            history_token_budget=self.config.history_token_budget,
            summary_max_tokens=self.config.summary_max_tokens,
            summary_input_tokens=self.config.summary_input_tokens,
        )
        self.graph = build_graph(client, self.summarizer, self.config, sleep=sleep, router=router)

    def execute(
        self,
        prompt: str,
        history: Optional[list[ChatMessage]] = None,
        cancel_event: Optional[threading.Event] = None,
        run_id: Optional[str] = None,
    ) -> PipelineRun:
        """Run the graph to a terminal state and return the final state."""
        run_id = run_id or str(uuid.uuid4())[:8]
        state = initial_state(
            prompt,
            history,
            max_retries=self.config.max_retries,
            max_steps=self.config.max_steps,
        )
        logger.info(f"[orchestrator] Run {run_id} started (max_steps={self.config.max_steps})")

        cancelled = False
        start = time.time()
        try:
            for values in self.graph.stream(
                state,
                {"recursion_limit": self.config.max_steps + 5},
                stream_mode="values",
            ):
                state = values
                if cancel_event is not None and cancel_event.is_set():
                    cancelled = True
                    logger.warning(f"[orchestrator] Run {run_id} cancelled at step {state.get('step_count', 0)}")
                    break
        except GraphRecursionError as e:
            error = BudgetExceededError(f"Step budget exhausted: {e}")
            logger.error(f"[orchestrator] Run {run_id}: {error}")
            state = merge_delta(state, {"last_error": str(error)})

        if not cancelled and not is_terminal_state(state):
            logger.warning(f"[orchestrator] Run {run_id} stopped in a non-terminal state")

        duration = time.time() - start
        outcome = determine_outcome(state, cancelled)
        RUN_OUTCOMES.labels(outcome=outcome.value).inc()
        RUN_DURATION.observe(duration)
        logger.info(
            f"[orchestrator] Run {run_id} finished: {outcome.value} in {duration:.1f}s "
            f"({state.get('step_count', 0)} steps, {state.get('total_tokens_used', 0)} tokens)"
        )
        return PipelineRun(state=state, outcome=outcome, run_id=run_id, duration=duration)

    def run(self, request: dict, cancel_event: Optional[threading.Event] = None) -> dict:
        """Validate, execute and shape one request. Always returns a response dict."""
        try:
            req = validate_request(request)
            history = [m.model_dump(exclude_none=True) for m in req.history]
            result = self.execute(req.prompt, history, cancel_event=cancel_event)
            return build_response(result.state, result.outcome).to_dict()
        except RequestValidationError as e:
            logger.warning(f"[orchestrator] {e}")
            return PlanResponse(success=False, message=str(e)).to_dict()
        except Exception as e:
            logger.exception("[orchestrator] Unexpected pipeline failure")
            return PlanResponse(success=False, message=f"Pipeline failed: {e}").to_dict()

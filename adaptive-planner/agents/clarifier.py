"""Clarifier: turns missing information into 2-4 follow-up questions."""

import logging

from config import PipelineConfig
from errors import ModelInvocationError
from agents.llm_helpers import invoke_structured, node_error, thinking
from prompts.clarifier_prompt import CLARIFIER_HUMAN, CLARIFIER_SYSTEM, GENERIC_QUESTIONS
from state import PipelineState
from validation.schemas import ClarificationOutput

logger = logging.getLogger(__name__)

NODE = "clarification"
MIN_QUESTIONS = 2
MAX_QUESTIONS = 4


def normalize_questions(questions: list[str]) -> list[str]:
    """Dedupe and bound the question list, padding from the generic set."""
    result: list[str] = []
    for q in questions:
        q = q.strip()
        if q and q not in result:
            result.append(q)
    result = result[:MAX_QUESTIONS]
    for q in GENERIC_QUESTIONS:
        if len(result) >= MIN_QUESTIONS:
            break
        if q not in result:
            result.append(q)
    return result


def run_clarifier(state: PipelineState, client, summarizer, config: PipelineConfig) -> dict:
    cached = state.get("clarification_questions") or []
    if cached:
        logger.info(f"[{NODE}] Using {len(cached)} cached questions")
        return {"needs_clarification": True}

    history = state.get("history") or []
    history_context = state.get("context_summary")
    if not history_context:
        if history:
            history_context, _ = summarizer.build_context(state["user_prompt"], history)
        else:
            history_context = "No previous conversation."
    missing = state.get("missing_info") or []

    try:
        call = invoke_structured(
            client,
            CLARIFIER_SYSTEM,
            CLARIFIER_HUMAN.format(
                prompt=state["user_prompt"],
                history_context=history_context,
                missing_info=", ".join(missing) or "Core project requirements and goals",
            ),
            ClarificationOutput,
            default=ClarificationOutput(questions=list(GENERIC_QUESTIONS), reasoning="Default clarification"),
            agent_name=NODE,
            temperature=0.7,
            max_tokens=500,
        )
    except ModelInvocationError as e:
        return node_error(NODE, e)

    questions = normalize_questions(call.parsed.value.questions)
    logger.info(f"[{NODE}] Generated {len(questions)} clarification questions")
    return {
        "needs_clarification": True,
        "clarification_questions": questions,
        "model_used": call.model_used,
        "total_tokens_used": call.tokens_used,
        **thinking(
            NODE,
            call.parsed.value.reasoning or "Request lacks detail needed to plan",
            decisions=[f"ask {len(questions)} questions"],
            assumptions=[f"missing: {m}" for m in missing],
            next_action="await user answers",
        ),
    }

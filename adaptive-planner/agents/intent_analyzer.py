"""Intent Analyzer: decides whether the request is clear enough to plan."""

import logging

from config import DEFAULT_COMPLEXITY, DEFAULT_TECH_STACK, PipelineConfig
from errors import ModelInvocationError
from agents.llm_helpers import invoke_structured, node_error, thinking
from prompts.intent_prompt import INTENT_HUMAN, INTENT_SYSTEM
from state import PipelineState
from validation.schemas import IntentAnalysis

logger = logging.getLogger(__name__)

NODE = "initial_analysis"

SKIP_PHRASES = (
    "i don't know",
    "not sure",
    "skip",
    "just proceed",
    "use defaults",
    "whatever works",
    "you decide",
    "surprise me",
)


def is_user_skipping_clarification(prompt: str) -> bool:
    lower = prompt.lower()
    return any(phrase in lower for phrase in SKIP_PHRASES)


def is_intent_clear(analysis: IntentAnalysis, config: PipelineConfig) -> bool:
    if analysis.confidence >= config.high_confidence:
        return True
    if analysis.confidence >= config.defaults_confidence and analysis.can_proceed_with_defaults:
        return True
    return analysis.has_sufficient_detail and not analysis.missing_info


def heuristic_analysis(prompt: str, config: PipelineConfig) -> IntentAnalysis:
    """Word-count judgement used when the model's answer cannot be parsed."""
    words = len(prompt.split())
    return IntentAnalysis(
        is_vague=words < config.vague_word_count,
        has_sufficient_detail=words >= config.detailed_word_count,
        detected_intent="unknown",
        missing_info=[],
        confidence=0.5,
        reasoning="Heuristic analysis (model output unparseable)",
        can_proceed_with_defaults=False,
    )


def apply_defaults(state: PipelineState) -> dict:
    """Provisional stack/complexity, recorded only where nothing is set yet."""
    defaults: dict = {}
    if not state.get("detected_tech_stack") and not state.get("default_tech_stack"):
        defaults["default_tech_stack"] = list(DEFAULT_TECH_STACK)
    if not state.get("project_complexity") and not state.get("default_complexity"):
        defaults["default_complexity"] = DEFAULT_COMPLEXITY
    if defaults:
        logger.info(f"[{NODE}] Applied defaults: {sorted(defaults)}")
    return defaults


def run_intent_analyzer(state: PipelineState, client, summarizer, config: PipelineConfig) -> dict:
    prompt = state["user_prompt"]
    history = state.get("history") or []

    if is_user_skipping_clarification(prompt):
        logger.info(f"[{NODE}] User opted to skip clarification, proceeding with defaults")
        defaults = apply_defaults(state)
        return {
            "needs_clarification": False,
            "clarification_questions": [],
            "missing_info": [],
            "detected_intent": "Proceed with default assumptions",
            "intent_confidence": config.skip_confidence,
            **defaults,
            **thinking(
                NODE,
                "User asked to proceed without clarification",
                decisions=["skip clarification"],
                assumptions=sorted(defaults),
                next_action="classification",
            ),
        }

    delta: dict = {}
    tokens = 0
    summary = state.get("context_summary")
    if summary is None and history and summarizer.needs_compression(history):
        summary, summary_tokens = summarizer.summarize_history(history)
        summary = summary[: config.context_summary_chars]
        delta["context_summary"] = summary
        tokens += summary_tokens
        logger.info(f"[{NODE}] Compressed {len(history)} history messages into a summary")

    context, estimated = summarizer.build_context(prompt, history, summary)
    history_context = (
        f"Conversation history:\n{context}" if history or summary else "No previous conversation."
    )
    logger.debug(f"[{NODE}] Context built ({estimated} tokens)")

    try:
        call = invoke_structured(
            client,
            INTENT_SYSTEM,
            INTENT_HUMAN.format(prompt=prompt, history_context=history_context),
            IntentAnalysis,
            default=heuristic_analysis(prompt, config),
            agent_name=NODE,
            temperature=0.3,
            max_tokens=max(500, int(estimated * 0.6)),
        )
    except ModelInvocationError as e:
        if tokens:
            delta["total_tokens_used"] = tokens
        return node_error(NODE, e, **delta)

    analysis: IntentAnalysis = call.parsed.value
    clear = is_intent_clear(analysis, config)
    logger.info(
        f"[{NODE}] confidence={analysis.confidence:.2f} "
        f"detail={analysis.has_sufficient_detail} missing={len(analysis.missing_info)} "
        f"-> {'clear' if clear else 'needs clarification'}"
    )

    delta.update({
        "needs_clarification": not clear,
        "missing_info": list(analysis.missing_info),
        "detected_intent": analysis.detected_intent,
        "intent_confidence": analysis.confidence,
        "model_used": call.model_used,
        "total_tokens_used": tokens + call.tokens_used,
    })
    defaults = apply_defaults(state) if clear else {}
    delta.update(defaults)
    delta.update(thinking(
        NODE,
        analysis.reasoning or f"confidence {analysis.confidence:.2f}",
        decisions=[
            f"confidence={analysis.confidence:.2f}",
            "intent clear" if clear else "needs clarification",
        ],
        assumptions=sorted(defaults) + ([] if call.parsed.ok else ["heuristic analysis"]),
        next_action="classification" if clear else "clarification",
    ))
    return delta

"""Aggregator: assembles generated sections into the final document.

Never raises. The polish call and the summary call can each fail on their
own; either failure is replaced by a deterministic fallback and reported as
a warning in ``last_error`` on an otherwise successful result.
"""

import logging
from datetime import datetime, timezone

from config import PipelineConfig
from errors import ModelInvocationError, PipelineError
from agents.llm_helpers import build_messages, node_error, technologies, thinking
from prompts.aggregator_prompt import AGGREGATOR_HUMAN, AGGREGATOR_SYSTEM
from state import PipelineState, PlanSection, resolved_complexity, resolved_stack

logger = logging.getLogger(__name__)

NODE = "plan_aggregator"


def join_sections(sections: list[PlanSection]) -> str:
    return "\n\n---\n\n".join(f"## {s['title']}\n\n{s['content']}" for s in sections)


def fallback_document(state: PipelineState, sections: list[PlanSection]) -> str:
    """Plain concatenation used when the polish call fails."""
    header = [
        "# Development Plan",
        "",
        f"**Type:** {state.get('project_category') or 'unknown'}",
        f"**Stack:** {technologies(resolved_stack(state))}",
        f"**Complexity:** {resolved_complexity(state)}",
        "",
        "---",
        "",
    ]
    return "\n".join(header) + join_sections(sections) + "\n"


def fallback_summary(state: PipelineState, section_count: int) -> str:
    category = state.get("project_category") or "project"
    return f"{category} plan with {section_count} sections covering {technologies(resolved_stack(state))}"


def run_aggregator(state: PipelineState, client, summarizer, config: PipelineConfig) -> dict:
    plan_sections = state.get("plan_sections") or []
    if not plan_sections:
        return node_error(NODE, PipelineError("No sections generated"), recoverable=False)

    ordered = sorted(plan_sections, key=lambda s: s["order"])
    planned = len(state.get("sections") or [])
    salvaged = len(ordered) < planned
    if salvaged:
        logger.warning(f"[{NODE}] Salvaging partial plan ({len(ordered)}/{planned} sections)")

    delta: dict = {"salvaged": salvaged}
    warnings: list[str] = []
    tokens = 0

    human = AGGREGATOR_HUMAN.format(
        category=state.get("project_category") or "unknown",
        technologies=technologies(resolved_stack(state)),
        complexity=resolved_complexity(state),
        section_count=len(ordered),
        date=datetime.now(timezone.utc).date().isoformat(),
        sections=join_sections(ordered),
    )
    try:
        result = client.invoke(
            messages=build_messages(AGGREGATOR_SYSTEM, human),
            temperature=0.5,
            max_tokens=config.aggregation_max_tokens,
            agent_name=NODE,
        )
        document = result.content.strip()
        tokens += result.tokens_used
        delta["model_used"] = result.model_used
        if not document:
            raise PipelineError("empty document returned")
    except (ModelInvocationError, PipelineError) as e:
        logger.warning(f"[{NODE}] Polish failed, using plain concatenation: {e}")
        warnings.append(f"document fallback ({e})")
        document = fallback_document(state, ordered)

    try:
        summary_result = summarizer.summarize(document)
        summary = summary_result.content
        tokens += summary_result.tokens_used
        if not summary:
            raise PipelineError("empty summary returned")
    except (ModelInvocationError, PipelineError) as e:
        logger.warning(f"[{NODE}] Summary failed, using template: {e}")
        warnings.append(f"summary fallback ({e})")
        summary = fallback_summary(state, len(ordered))

    delta.update({
        "final_plan": document,
        "plan_summary": summary,
        "total_tokens_used": tokens,
    })
    if warnings:
        delta["last_error"] = "Aggregation degraded: " + "; ".join(warnings)
    delta.update(thinking(
        NODE,
        f"Assembled {len(ordered)}/{planned} sections into the final document",
        decisions=["partial plan" if salvaged else "complete plan"] + warnings,
        next_action="halt",
    ))
    logger.info(f"[{NODE}] Final plan assembled ({len(document)} chars, {len(ordered)} sections)")
    return delta

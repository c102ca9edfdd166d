"""Section Generator: writes exactly one planned section per invocation.

The plan is fixed before the loop starts and every invocation either
appends one section or changes nothing, so the loop always terminates and
a retried invocation picks up where the failed one left off.
"""

import logging

from config import PipelineConfig
from errors import ModelInvocationError, PipelineError
from agents.llm_helpers import build_messages, node_error, technologies, thinking
from observability.metrics import SECTIONS_GENERATED
from prompts.section_prompt import FIRST_SECTION_NOTE, SECTION_HUMAN, SECTION_SYSTEM
from state import PipelineState, PlanSection, Section, resolved_complexity, resolved_stack
from utils.tokens import estimate_tokens

logger = logging.getLogger(__name__)

NODE = "section_generator"


def remaining_sections(state: PipelineState) -> list[Section]:
    done = state.get("generated_sections") or set()
    return [s for s in state.get("sections") or [] if s["title"] not in done]


def build_previous_sections_context(plan_sections: list[PlanSection], config: PipelineConfig) -> str:
    """Context from already-written sections, newest first within a token budget.

    The most recent sections are kept (capped) whatever the budget; older
    ones are shortened to a preview and dropped oldest-first once the
    budget is spent.
    """
    if not plan_sections:
        return FIRST_SECTION_NOTE

    ordered = sorted(plan_sections, key=lambda s: s["order"])
    blocks: list[str] = []
    used = 0
    for age, section in enumerate(reversed(ordered)):
        recent = age < config.recent_sections_verbatim
        limit = config.recent_section_char_cap if recent else config.older_section_preview_chars
        body = section["content"][:limit]
        if len(section["content"]) > len(body):
            body += "..."
        block = f"### {section['title']}\n{body}"
        cost = estimate_tokens(block)
        if not recent and used + cost > config.context_token_budget:
            break
        used += cost
        blocks.append(block)

    blocks.reverse()
    return "Previously generated sections (for context and continuity):\n\n" + "\n\n".join(blocks)


def calculate_adaptive_max_tokens(context: str, complexity: str, config: PipelineConfig) -> int:
    base_tokens = estimate_tokens(context)
    factor = config.complexity_factors.get(complexity, config.complexity_factors.get("moderate", 2.5))
    max_tokens = int(base_tokens * factor)
    return min(max(max_tokens, config.min_section_tokens), config.max_section_tokens)


def run_section_generator(state: PipelineState, client, config: PipelineConfig) -> dict:
    sections = state.get("sections") or []
    if not sections:
        return node_error(NODE, PipelineError("No sections to generate"))

    remaining = remaining_sections(state)
    if not remaining:
        logger.info(f"[{NODE}] All sections generated")
        return {}

    current = remaining[0]
    plan_sections = state.get("plan_sections") or []
    progress = f"{len(sections) - len(remaining) + 1}/{len(sections)}"
    complexity = resolved_complexity(state)

    human = SECTION_HUMAN.format(
        prompt=state["user_prompt"],
        category=state.get("project_category") or "unknown",
        technologies=technologies(resolved_stack(state)),
        complexity=complexity,
        title=current["title"],
        description=current["description"],
        intent=current["intent"],
        previous_sections=build_previous_sections_context(plan_sections, config),
    )
    max_tokens = calculate_adaptive_max_tokens(human, complexity, config)
    logger.info(f"[{NODE}] Generating '{current['title']}' ({progress}, max_tokens={max_tokens})")

    try:
        result = client.invoke(
            messages=build_messages(SECTION_SYSTEM, human),
            temperature=0.7,
            max_tokens=max_tokens,
            agent_name=NODE,
        )
    except ModelInvocationError as e:
        return node_error(NODE, e)

    content = result.content.strip()
    if not content:
        return node_error(
            NODE,
            PipelineError(f"Empty content for section '{current['title']}'"),
            model_used=result.model_used,
            total_tokens_used=result.tokens_used,
        )

    SECTIONS_GENERATED.inc()
    return {
        "plan_sections": [{
            "title": current["title"],
            "content": content,
            "order": len(plan_sections) + 1,
        }],
        "generated_sections": {current["title"]},
        "model_used": result.model_used,
        "total_tokens_used": result.tokens_used,
        **thinking(
            NODE,
            f"Wrote '{current['title']}' ({progress}): {current['intent'] or current['description']}",
            decisions=[f"max_tokens={max_tokens}", f"{len(plan_sections)} previous sections in context"],
            next_action="plan_aggregator" if len(remaining) == 1 else "section_generator",
        ),
    }

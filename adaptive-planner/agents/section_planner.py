"""Section Planner: decides which sections this particular document needs."""

import logging

from config import PipelineConfig
from errors import ModelInvocationError
from agents.llm_helpers import invoke_structured, node_error, technologies, thinking
from prompts.planner_prompt import PLANNER_HUMAN, PLANNER_SYSTEM
from state import PipelineState, Section, resolved_complexity, resolved_stack
from validation.schemas import SectionPlanOutput, SectionSpec

logger = logging.getLogger(__name__)

NODE = "section_planning"

FALLBACK_SECTION = SectionSpec(
    title="Project Overview",
    description="High-level description of the project, its goals, and expected outcomes",
    intent="Establish project context",
    priority=10,
)


def normalize_sections(specs: list[SectionSpec], max_sections: int) -> list[Section]:
    """Drop blank and duplicate titles, order by priority (stable), cap the count.

    Titles key the generation loop, so they must be unique.
    """
    seen: set[str] = set()
    unique: list[Section] = []
    for spec in specs:
        title = spec.title.strip()
        if not title or title.lower() in seen:
            continue
        seen.add(title.lower())
        unique.append({
            "title": title,
            "description": spec.description.strip(),
            "intent": spec.intent.strip(),
            "priority": spec.priority,
        })
    unique.sort(key=lambda s: s["priority"], reverse=True)
    return unique[:max_sections]


def run_section_planner(state: PipelineState, client, config: PipelineConfig) -> dict:
    if state.get("sections"):
        logger.info(f"[{NODE}] Plan already fixed with {len(state['sections'])} sections")
        return {}

    human = PLANNER_HUMAN.format(
        prompt=state["user_prompt"],
        category=state.get("project_category") or "unknown",
        technologies=technologies(resolved_stack(state)),
        complexity=resolved_complexity(state),
    )
    system = PLANNER_SYSTEM.format(min_sections=config.min_sections, max_sections=config.max_sections)
    default = SectionPlanOutput(sections=[FALLBACK_SECTION], reasoning="Default plan")

    try:
        call = invoke_structured(
            client,
            system,
            human,
            SectionPlanOutput,
            default=default,
            agent_name=NODE,
            temperature=0.5,
            max_tokens=1200,
        )
    except ModelInvocationError as e:
        return node_error(NODE, e)

    sections = normalize_sections(call.parsed.value.sections, config.max_sections)
    if not sections:
        sections = normalize_sections([FALLBACK_SECTION], config.max_sections)
    if len(sections) < config.min_sections and call.parsed.ok:
        logger.warning(f"[{NODE}] Model planned only {len(sections)} sections (asked for >= {config.min_sections})")

    logger.info(
        f"[{NODE}] Planned {len(sections)} sections: "
        + ", ".join(f"{s['title']} (p{s['priority']})" for s in sections)
    )
    return {
        "sections": sections,
        "model_used": call.model_used,
        "total_tokens_used": call.tokens_used,
        **thinking(
            NODE,
            call.parsed.value.reasoning or f"Planned {len(sections)} sections",
            decisions=[s["title"] for s in sections],
            assumptions=[] if call.parsed.ok else ["Model plan unusable, single overview section"],
            next_action="section_generator",
        ),
    }

"""Classifier: project category, technology stack and complexity tier.

Runs its model call at most once per run: when ``project_category`` is
already present the node returns an empty delta.
"""

import logging

from config import PipelineConfig
from errors import ModelInvocationError
from agents.llm_helpers import invoke_structured, node_error, thinking
from prompts.classifier_prompt import CLASSIFIER_HUMAN, CLASSIFIER_SYSTEM
from state import PipelineState, ProjectCategory
from validation.schemas import ClassificationOutput

logger = logging.getLogger(__name__)

NODE = "classification"

# Long-form categories the model tends to answer with
_CATEGORY_PREFIXES: list[tuple[tuple[str, ...], ProjectCategory]] = [
    (("web", "frontend", "backend", "fullstack", "website", "saas", "e_commerce", "ecommerce"), ProjectCategory.WEB_APP),
    (("mobile", "ios", "android"), ProjectCategory.MOBILE_APP),
    (("api", "microservice", "rest", "graphql"), ProjectCategory.API),
    (("cli", "command_line", "terminal"), ProjectCategory.CLI_TOOL),
    (("library", "package", "sdk"), ProjectCategory.LIBRARY),
    (("data", "etl", "pipeline"), ProjectCategory.DATA_PIPELINE),
    (("ml", "ai", "machine_learning", "model"), ProjectCategory.ML_MODEL),
    (("devops", "automation", "desktop", "utility", "tool", "infra"), ProjectCategory.UTILITY),
]


def normalize_category(raw: str) -> ProjectCategory:
    key = (raw or "").strip().lower().replace("-", "_").replace(" ", "_")
    try:
        return ProjectCategory(key)
    except ValueError:
        pass
    for prefixes, category in _CATEGORY_PREFIXES:
        if key.startswith(prefixes):
            return category
    return ProjectCategory.UNKNOWN


def _dedupe(items: list[str], exclude: tuple[str, ...] = ()) -> list[str]:
    seen = {e.lower() for e in exclude}
    result = []
    for item in items:
        item = item.strip()
        if item and item.lower() not in seen:
            seen.add(item.lower())
            result.append(item)
    return result


def run_classifier(state: PipelineState, client, config: PipelineConfig) -> dict:
    if state.get("project_category"):
        logger.info(f"[{NODE}] Cached category '{state['project_category']}', skipping model call")
        return {}

    default = ClassificationOutput(
        category=ProjectCategory.UNKNOWN.value,
        suggested_stack=list(state.get("default_tech_stack") or []),
        complexity=state.get("default_complexity") or "moderate",
        reasoning="Default classification",
    )
    try:
        call = invoke_structured(
            client,
            CLASSIFIER_SYSTEM,
            CLASSIFIER_HUMAN.format(prompt=state["user_prompt"]),
            ClassificationOutput,
            default=default,
            agent_name=NODE,
            temperature=0.3,
            max_tokens=600,
        )
    except ModelInvocationError as e:
        return node_error(NODE, e)

    result: ClassificationOutput = call.parsed.value
    category = normalize_category(result.category)
    detected = _dedupe(result.detected_stack)
    suggested = _dedupe(result.suggested_stack, exclude=tuple(detected))
    logger.info(
        f"[{NODE}] category={category.value} complexity={result.complexity} "
        f"detected={detected} suggested={suggested}"
    )
    return {
        "project_category": category.value,
        "detected_tech_stack": detected,
        "suggested_tech_stack": suggested,
        "project_complexity": result.complexity,
        "model_used": call.model_used,
        "total_tokens_used": call.tokens_used,
        **thinking(
            NODE,
            result.reasoning or f"Classified as {category.value}",
            decisions=[f"category={category.value}", f"complexity={result.complexity}"],
            assumptions=[] if call.parsed.ok else ["Model answer unusable, defaults kept"],
            next_action="section_planning",
        ),
    }

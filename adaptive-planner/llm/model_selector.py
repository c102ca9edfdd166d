"""Fallback model chain with automatic selection and override support."""

import logging
import os

from config import MODEL_CHAIN

logger = logging.getLogger(__name__)


def model_chain() -> list[str]:
    """Return the ordered models to try for one call.

    MODEL_OVERRIDE pins a single model; PLANNER_MODEL_CHAIN (comma separated)
    replaces the default chain.
    """
    override = os.getenv("MODEL_OVERRIDE")
    if override:
        return [override]
    configured = os.getenv("PLANNER_MODEL_CHAIN")
    if configured:
        chain = [m.strip() for m in configured.split(",") if m.strip()]
        if chain:
            return chain
    return list(MODEL_CHAIN)


def get_model(agent_name: str = "", attempt: int = 0) -> str:
    """Return the model to use based on attempt number and overrides.

    - MODEL_OVERRIDE env var forces a specific model for all nodes.
    - Otherwise, walks the chain based on the attempt number.
    """
    chain = model_chain()
    index = min(attempt, len(chain) - 1)
    model = chain[index]
    if attempt > 0:
        logger.info(f"[model_selector] {agent_name}: fallback attempt {attempt}, using '{model}'")
    else:
        logger.debug(f"[model_selector] {agent_name}: using '{model}'")
    return model

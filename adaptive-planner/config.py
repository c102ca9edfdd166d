"""Centralized configuration for model selection, budgets, and pipeline tunables."""

import os

from pydantic import BaseModel, Field

# Fallback model chain: tried in order on API errors
MODEL_CHAIN: list[str] = ["gpt-4o-mini", "gpt-4o", "gpt-3.5-turbo"]

# Model pricing per 1M tokens (USD)
MODEL_PRICING: dict[str, dict[str, float]] = {
    "gpt-4o-mini": {"input": 0.15, "output": 0.60},
    "gpt-4o": {"input": 2.50, "output": 10.00},
    "gpt-3.5-turbo": {"input": 0.50, "output": 1.50},
}

# Per-call request timeout handed to the backend (seconds)
REQUEST_TIMEOUT_SECONDS: float = 60.0

# Run budgets
DEFAULT_MAX_STEPS: int = 50
DEFAULT_MAX_RETRIES: int = 3

# Output token multipliers for section generation, by complexity tier
COMPLEXITY_FACTORS: dict[str, float] = {
    "simple": 1.5,
    "moderate": 2.5,
    "complex": 4.0,
}

DEFAULT_TECH_STACK: list[str] = ["Modern web technologies", "Cloud-native tools"]
DEFAULT_COMPLEXITY: str = "moderate"


def calculate_cost(
    model: str, input_tokens: int, output_tokens: int
) -> float:
    """Return estimated cost in USD for a single LLM call."""
    pricing = MODEL_PRICING.get(model, {"input": 0.0, "output": 0.0})
    cost = (input_tokens * pricing["input"] + output_tokens * pricing["output"]) / 1_000_000
    return round(cost, 6)


class PipelineConfig(BaseModel):
    """Tunables for a pipeline run.

    The clarity thresholds and token multipliers were chosen empirically;
    they are configuration, not contract.
    """

    max_steps: int = Field(default=DEFAULT_MAX_STEPS, ge=1)
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)

    # Retry backoff (seconds)
    base_delay: float = Field(default=1.0, ge=0)
    max_delay: float = Field(default=10.0, ge=0)

    # Intent clarity
    high_confidence: float = 0.7
    defaults_confidence: float = 0.5
    skip_confidence: float = 0.6
    vague_word_count: int = 10
    detailed_word_count: int = 15

    # Context building
    history_max_messages: int = 6
    history_token_budget: int = 2_000
    context_summary_chars: int = 1_000

    # Section planning
    min_sections: int = 5
    max_sections: int = 12

    # Section generation
    recent_sections_verbatim: int = 2
    recent_section_char_cap: int = 1_500
    older_section_preview_chars: int = 200
    context_token_budget: int = 2_000
    min_section_tokens: int = 2_000
    max_section_tokens: int = 8_000
    complexity_factors: dict[str, float] = Field(
        default_factory=lambda: dict(COMPLEXITY_FACTORS)
    )

    # Aggregation
    aggregation_max_tokens: int = 3_000
    summary_max_tokens: int = 300
    summary_input_tokens: int = 3_000

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """Build a config, overriding defaults from PLANNER_* env vars."""
        overrides: dict[str, str] = {}
        for name in cls.model_fields:
            value = os.getenv(f"PLANNER_{name.upper()}")
            if value is not None and name != "complexity_factors":
                overrides[name] = value
        return cls.model_validate(overrides)

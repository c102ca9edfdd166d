"""Pydantic schemas for the request/response contract and every model output."""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ── Model outputs ───────────────────────────────────────────────────────────


class _ModelOutput(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class IntentAnalysis(_ModelOutput):
    is_vague: bool = Field(default=False, alias="isVague")
    has_sufficient_detail: bool = Field(default=False, alias="hasSufficientDetail")
    detected_intent: str = Field(default="unknown", alias="detectedIntent")
    missing_info: list[str] = Field(default_factory=list, alias="missingInfo")
    confidence: float = 0.5
    reasoning: str = ""
    can_proceed_with_defaults: bool = Field(default=False, alias="canProceedWithDefaults")

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, v: float) -> float:
        return min(max(v, 0.0), 1.0)


class ClarificationOutput(_ModelOutput):
    questions: list[str]
    reasoning: str = ""


class ClassificationOutput(_ModelOutput):
    category: str = "unknown"
    detected_stack: list[str] = Field(default_factory=list, alias="detectedStack")
    suggested_stack: list[str] = Field(default_factory=list, alias="suggestedStack")
    complexity: Literal["simple", "moderate", "complex"] = "moderate"
    reasoning: str = ""

    @field_validator("complexity", mode="before")
    @classmethod
    def _normalize_complexity(cls, v):
        if isinstance(v, str) and v.strip().lower() in ("simple", "moderate", "complex"):
            return v.strip().lower()
        return "moderate"


class SectionSpec(_ModelOutput):
    title: str
    description: str = ""
    intent: str = ""
    priority: int = 5

    @field_validator("priority", mode="before")
    @classmethod
    def _clamp_priority(cls, v):
        try:
            return min(max(int(round(float(v))), 1), 10)
        except (TypeError, ValueError):
            return 5


class SectionPlanOutput(_ModelOutput):
    sections: list[SectionSpec] = Field(min_length=1)
    reasoning: str = ""
    estimated_complexity: Optional[str] = Field(default=None, alias="estimatedComplexity")


# ── External contract ───────────────────────────────────────────────────────


class HistoryMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str
    summary: Optional[str] = None


class GeneratePlanRequest(BaseModel):
    prompt: str = Field(min_length=1, max_length=5000)
    history: list[HistoryMessage] = Field(default_factory=list)

    @field_validator("prompt")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Prompt cannot contain only whitespace")
        return v


class PlanMetadata(BaseModel):
    generated_at: str
    classification: str
    model_used: str
    total_tokens: int
    summary: str


class PlanData(BaseModel):
    markdown: str
    summary: str
    metadata: PlanMetadata


class PlanResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    data: Optional[PlanData] = None
    message: Optional[str] = None
    needs_clarification: Optional[bool] = Field(default=None, alias="needsClarification")
    questions: Optional[list[str]] = None

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, exclude={"data"}) | {
            "data": self.data.model_dump() if self.data else None
        }

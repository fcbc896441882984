"""Hook generation schemas — request, candidates, scores, results.

A hook is tri-modal: the spoken line, the first-frame visual direction and
the on-screen text overlay. Candidates flow through the pipeline as
pydantic models and are replaced (``model_copy``) rather than mutated.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Platform(str, Enum):
    TIKTOK = "tiktok"
    INSTAGRAM = "instagram"
    YOUTUBE = "youtube"


class Objective(str, Enum):
    WATCH_TIME = "watch_time"
    SHARES = "shares"
    SAVES = "saves"
    CTR = "ctr"


ContentType = Literal["educational", "storytelling", "mixed"]
ContentStrategy = Literal["curiosity_gap", "value_hit"]
RiskFactor = Literal["low", "medium", "high"]
HookSource = Literal["primary", "simplified", "static"]
VariantLabel = Literal["enhanced", "refined", "optimized"]


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------

class BrandProfile(BaseModel):
    """Who the hooks are written for. Everything has a safe default."""
    model_config = ConfigDict(frozen=True)

    company: str = "Content Creator"
    role: str = "Creator"
    industry: str = "General"
    audience: str = "General audience"
    voice: str = "Professional"
    banned_terms: list[str] = Field(default_factory=list)

    @field_validator("banned_terms")
    @classmethod
    def _clean_terms(cls, value: list[str]) -> list[str]:
        return [str(v).strip() for v in value if str(v or "").strip()]


class GenerationRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    topic: str = Field(..., min_length=1, description="What the video is about")
    platform: Platform
    objective: Objective
    brand: BrandProfile = Field(default_factory=BrandProfile)
    model_type: Optional[str] = Field(
        None, description="Override for the primary rung model (e.g. gpt-4o-mini)"
    )

    @field_validator("topic")
    @classmethod
    def _strip_topic(cls, value: str) -> str:
        value = str(value or "").strip()
        if not value:
            raise ValueError("topic must not be blank")
        return value


# ---------------------------------------------------------------------------
# Candidates and scores
# ---------------------------------------------------------------------------

class JudgeScores(BaseModel):
    """Optional evaluator ratings (0-1). Informational, never in the composite."""
    tri_modal_synergy: float = Field(0.0, ge=0, le=1)
    psychological_impact: float = Field(0.0, ge=0, le=1)
    platform_optimization: float = Field(0.0, ge=0, le=1)
    freshness: float = Field(0.0, ge=0, le=1)
    specificity: float = Field(0.0, ge=0, le=1)


class ScoreBreakdown(BaseModel):
    word_count_fit: float = Field(..., ge=0, le=1)
    framework_bonus: float
    objective_bonus: float
    baseline: float = 2.5
    jitter: float = Field(0.0, description="Cosmetic perturbation, not a quality signal")
    judge: Optional[JudgeScores] = None
    composite: float = Field(..., ge=0, le=5)
    explanation: str = ""


class HookCandidate(BaseModel):
    verbal_hook: str
    visual_hook: str = ""
    textual_hook: str = ""
    framework: str = ""
    hook_category: str = ""
    rationale: str = ""
    psychological_driver: str = "Engagement"
    risk_factor: RiskFactor = "low"
    word_count: int = Field(0, ge=0)
    source: HookSource = "primary"
    repaired: bool = False
    validation_issues: list[str] = Field(default_factory=list)
    score: Optional[ScoreBreakdown] = None

    @property
    def composite(self) -> float:
        return float(self.score.composite) if self.score else 0.0


class ValidationResult(BaseModel):
    valid: bool
    issues: list[str] = Field(default_factory=list)
    word_count: int = Field(0, ge=0)


class TopVariant(BaseModel):
    variant_label: VariantLabel
    rank: int = Field(..., ge=1, le=3)
    hook: HookCandidate


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

class StageEvent(BaseModel):
    state: str
    rung: str = ""
    detail: str = ""


class GenerationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    topic: str
    platform: Platform
    objective: Objective
    hooks: list[HookCandidate] = Field(..., min_length=10, max_length=10)
    top_three_variants: list[TopVariant] = Field(..., min_length=3, max_length=3)
    rung: HookSource
    content_type: ContentType
    content_strategy: ContentStrategy
    selected_categories: list[str] = Field(default_factory=list)
    repaired_count: int = 0
    trace: list[StageEvent] = Field(default_factory=list)
    elapsed_seconds: float = 0.0

"""
Scoring Schemas

Measurement records consumed by the scoring engine, the AI grader output
contract, and the fixed ten-category score result.
"""
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel, to_snake


Score = Union[int, float]


class ScoreSource(str, Enum):
    RULE = "rule"
    AI = "ai"
    HYBRID = "hybrid"


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Measurement records
# ============================================================================

class LighthouseMetrics(BaseModel):
    """Normalized page-speed record. Times in seconds except TBT (ms)."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    lcp: float = Field(..., ge=0, alias="LCP")
    cls: float = Field(..., ge=0, alias="CLS")
    tbt: float = Field(..., ge=0, alias="TBT")
    fcp: Optional[float] = Field(None, ge=0, alias="FCP")
    si: Optional[float] = Field(None, ge=0, alias="SI")
    tti: Optional[float] = Field(None, ge=0, alias="TTI")
    requests: Optional[int] = Field(None, ge=0)
    redirects: Optional[int] = Field(None, ge=0)
    errors: Optional[int] = Field(None, ge=0)


class CVMetrics(CamelModel):
    """Visual / mobile measurements. A missing field means 'not measured'."""
    has_viewport: Optional[bool] = None
    min_font_size: Optional[float] = None
    min_touch_target: Optional[float] = None
    has_overflow: Optional[bool] = None
    alt_ratio: Optional[float] = Field(None, ge=0, le=1)
    popup_count: Optional[int] = Field(None, ge=0)


class HTMLMetrics(CamelModel):
    """Markup / SEO measurements."""
    title: Optional[Union[bool, str]] = None
    meta_description: Optional[Union[bool, str]] = None
    og_tags: Optional[int] = Field(None, ge=0)
    h1_count: Optional[int] = Field(None, ge=0)
    alt_ratio: Optional[float] = Field(None, ge=0, le=1)
    has_analytics: Optional[bool] = None
    menu_count: Optional[int] = Field(None, ge=0)
    has_search: Optional[bool] = None
    min_font_size: Optional[float] = None


class MeasuredData(BaseModel):
    """Everything the deterministic side of an audit managed to measure."""
    lighthouse: Optional[LighthouseMetrics] = None
    cv: Optional[CVMetrics] = None
    html: Optional[HTMLMetrics] = None


# ============================================================================
# AI grader output
# ============================================================================

GRADED_CATEGORIES = (
    "speed",
    "firstView",
    "bi",
    "navigation",
    "uspPromo",
    "visuals",
    "trust",
    "mobile",
    "purchaseFlow",
    "seoAnalytics",
)


class CategoryGrade(CamelModel):
    """One category as graded by the vision model."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: Optional[str] = None
    score: float = Field(..., ge=0, le=100)
    insights: List[str] = Field(default_factory=list)
    evidence: Optional[Dict[str, Any]] = None
    metrics: Optional[Dict[str, Any]] = None


class PurchaseFlowStep(BaseModel):
    name: str
    url: str
    screenshot: str


class PurchaseFlowGrade(CategoryGrade):
    ok: bool = False
    steps: List[PurchaseFlowStep] = Field(default_factory=list)


class GraderScores(CamelModel):
    speed: Optional[CategoryGrade] = None
    first_view: Optional[CategoryGrade] = None
    bi: Optional[CategoryGrade] = None
    navigation: Optional[CategoryGrade] = None
    usp_promo: Optional[CategoryGrade] = None
    visuals: Optional[CategoryGrade] = None
    trust: Optional[CategoryGrade] = None
    mobile: Optional[CategoryGrade] = None
    purchase_flow: Optional[PurchaseFlowGrade] = None
    seo_analytics: Optional[CategoryGrade] = None


class ExpertSummary(BaseModel):
    grade: str = Field(..., pattern="^[SABCDF]$")
    headline: str
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    priorities: List[str] = Field(default_factory=list)


class GraderMetadata(CamelModel):
    model_requested: Optional[str] = None
    model_used: Optional[str] = None
    processing_time_ms: Optional[int] = None
    tokens_used: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0


class LLMGraderOutput(CamelModel):
    """
    Grader result. Accepts either the full envelope
    (``{"url": ..., "scores": {...}}``) or a bare category mapping
    (``{"bi": {"score": 7, "insights": []}, ...}``).
    """
    url: Optional[str] = None
    scores: GraderScores = Field(default_factory=GraderScores)
    expert_summary: Optional[ExpertSummary] = None
    metadata: Optional[GraderMetadata] = None

    @model_validator(mode="before")
    @classmethod
    def _wrap_bare_mapping(cls, data: Any) -> Any:
        if isinstance(data, dict) and "scores" not in data:
            keys = set(GRADED_CATEGORIES) | {to_snake(name) for name in GRADED_CATEGORIES}
            categories = {key: value for key, value in data.items() if key in keys}
            rest = {key: value for key, value in data.items() if key not in keys}
            return {**rest, "scores": categories}
        return data

    def category(self, name: str) -> Optional[CategoryGrade]:
        """Look up a graded category by its camelCase name."""
        for field_name, field in GraderScores.model_fields.items():
            if field.alias == name or field_name == name:
                return getattr(self.scores, field_name)
        return None

    def insights(self) -> Dict[str, List[str]]:
        """Insights per graded category, skipping categories the grader omitted."""
        collected = {}
        for name in GRADED_CATEGORIES:
            grade = self.category(name)
            if grade is not None:
                collected[name] = list(grade.insights)
        return collected


# ============================================================================
# Score result
# ============================================================================

class CategoryScores(CamelModel):
    speed: Score
    mobile: Score
    seo_analytics: Score
    bi: Score
    usp_promo: Score
    trust: Score
    purchase_flow: Score
    first_view: Score
    navigation: Score
    visuals: Score

    def total(self) -> float:
        return sum(getattr(self, name) for name in type(self).model_fields)


class ScoreSources(CamelModel):
    speed: ScoreSource = ScoreSource.RULE
    mobile: ScoreSource = ScoreSource.RULE
    seo_analytics: ScoreSource = ScoreSource.RULE
    bi: ScoreSource = ScoreSource.AI
    usp_promo: ScoreSource = ScoreSource.AI
    trust: ScoreSource = ScoreSource.AI
    purchase_flow: ScoreSource = ScoreSource.AI
    first_view: ScoreSource = ScoreSource.HYBRID
    navigation: ScoreSource = ScoreSource.HYBRID
    visuals: ScoreSource = ScoreSource.HYBRID


class ScoreResult(CamelModel):
    total_score: int
    category_scores: CategoryScores
    score_sources: ScoreSources = Field(default_factory=ScoreSources)


# ============================================================================
# Request / response bodies
# ============================================================================


class ScoreRequest(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "llmOutput": {
                    "bi": {"score": 7, "insights": ["Brand colour is used consistently"]},
                    "firstView": {"score": 8, "insights": []},
                },
                "measured": {
                    "lighthouse": {"LCP": 2.0, "CLS": 0.05, "TBT": 200},
                    "html": {"title": True, "menuCount": 5, "hasSearch": True},
                },
            }
        },
    )

    llm_output: LLMGraderOutput = Field(default_factory=LLMGraderOutput)
    measured: MeasuredData = Field(default_factory=MeasuredData)

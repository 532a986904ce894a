from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.features.scoring.schemas.scoring import ExpertSummary, GraderMetadata, MeasuredData, ScoreResult


class AuditIn(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={"example": {"url": "https://example-shop.com", "device": "mobile"}},
    )

    url: str
    device: Literal["mobile", "desktop"] = "mobile"
    platform: Optional[str] = None


class AuditOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    url: str
    result: ScoreResult
    display_speed_score: float
    measured: MeasuredData
    insights: Dict[str, List[str]] = Field(default_factory=dict)
    expert_summary: Optional[ExpertSummary] = None
    grader: Optional[GraderMetadata] = None
    platform: Optional[str] = None
    platform_signals: List[str] = Field(default_factory=list)
    graded_with_mock: bool = False
    screenshot_url: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)

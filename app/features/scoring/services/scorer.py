"""
Composite audit score.

Rule-based categories (speed, mobile, seoAnalytics), AI-graded categories
(bi, uspPromo, trust, purchaseFlow) and hybrid categories (firstView,
navigation, visuals) are assembled into one ScoreResult with provenance.
"""
from typing import Any, Dict, Optional, Union

from app.features.scoring.schemas.scoring import (
    CategoryGrade,
    CategoryScores,
    LLMGraderOutput,
    MeasuredData,
    ScoreResult,
    ScoreSource,
    ScoreSources,
)
from app.features.scoring.services.hybrid_blenders import (
    calculate_first_view_score,
    calculate_navigation_score,
    calculate_visuals_score,
    round_half_up,
)
from app.features.scoring.services.rule_scorers import (
    calculate_mobile_score,
    calculate_seo_score,
    calculate_speed_score,
)
from app.platform.logger import get_logger

logger = get_logger(__name__)

# Direct AI categories score 0 when the grader skipped them,
# unlike the rule and hybrid defaults of 5.
DEFAULT_DIRECT_AI_SCORE = 0


def _direct_ai_score(grade: Optional[CategoryGrade]) -> float:
    if grade is None:
        return DEFAULT_DIRECT_AI_SCORE
    return grade.score


def calculate_scores(
    llm_output: Union[LLMGraderOutput, Dict[str, Any], None],
    measured: Union[MeasuredData, Dict[str, Any], None] = None,
) -> ScoreResult:
    """
    Combine grader output and measurements into the final audit score.

    Args:
        llm_output: grader result, as a model or a plain mapping. Missing
            categories fall back to their documented defaults.
        measured: ``{lighthouse?, cv?, html?}`` measurement records.

    Returns:
        ScoreResult whose total_score is the rounded, unclamped sum of the
        ten category scores.
    """
    if not isinstance(llm_output, LLMGraderOutput):
        llm_output = LLMGraderOutput.model_validate(llm_output or {})
    if not isinstance(measured, MeasuredData):
        measured = MeasuredData.model_validate(measured or {})

    grades = llm_output.scores

    category_scores = CategoryScores(
        # Rule based
        speed=calculate_speed_score(measured.lighthouse),
        mobile=calculate_mobile_score(measured.cv),
        seo_analytics=calculate_seo_score(measured.html),
        # AI based
        bi=_direct_ai_score(grades.bi),
        usp_promo=_direct_ai_score(grades.usp_promo),
        trust=_direct_ai_score(grades.trust),
        purchase_flow=_direct_ai_score(grades.purchase_flow),
        # Hybrid
        first_view=calculate_first_view_score(grades.first_view, measured.html),
        navigation=calculate_navigation_score(grades.navigation, measured.html),
        visuals=calculate_visuals_score(grades.visuals, measured.cv),
    )
    score_sources = ScoreSources()

    result = ScoreResult(
        total_score=round_half_up(category_scores.total()),
        category_scores=category_scores,
        score_sources=score_sources,
    )

    subtotals = {source.value: 0 for source in ScoreSource}
    for name in CategoryScores.model_fields:
        subtotals[getattr(score_sources, name).value] += getattr(category_scores, name)
    logger.debug(f"Score calculated: total={result.total_score} subtotals={subtotals}")

    return result

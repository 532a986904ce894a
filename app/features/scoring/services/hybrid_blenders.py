"""
Hybrid category scorers: an AI sub-score blended with a rule sub-score.
"""
import math
from typing import Optional

from app.features.scoring.schemas.scoring import CategoryGrade, CVMetrics, HTMLMetrics

DEFAULT_AI_SCORE = 5

FIRST_VIEW_AI_WEIGHT = 0.7
NAVIGATION_AI_WEIGHT = 0.3
VISUALS_AI_WEIGHT = 0.5


def round_half_up(value: float) -> int:
    """Round .5 upwards (2.5 -> 3), unlike Python's round-half-to-even."""
    return int(math.floor(value + 0.5))


def ai_sub_score(grade: Optional[CategoryGrade]) -> float:
    """Grader score for a hybrid category, DEFAULT_AI_SCORE when not graded."""
    if grade is None:
        return DEFAULT_AI_SCORE
    return grade.score


def calculate_first_view_score(grade: Optional[CategoryGrade], html: Optional[HTMLMetrics]) -> int:
    """AI 70% plus 3 points when body text is at least 16px."""
    ai_part = ai_sub_score(grade) * FIRST_VIEW_AI_WEIGHT

    rule_part = 0
    if html is not None and html.min_font_size is not None and html.min_font_size >= 16:
        rule_part += 3

    return round_half_up(ai_part + rule_part)


def calculate_navigation_score(grade: Optional[CategoryGrade], html: Optional[HTMLMetrics]) -> int:
    """Menu size and search presence, plus AI 30% for how well categories are organised."""
    rule_part = 0
    if html is not None:
        if html.menu_count is not None and 3 <= html.menu_count <= 8:
            rule_part += 4
        if html.has_search:
            rule_part += 3

    ai_part = ai_sub_score(grade) * NAVIGATION_AI_WEIGHT

    return round_half_up(rule_part + ai_part)


def calculate_visuals_score(grade: Optional[CategoryGrade], cv: Optional[CVMetrics]) -> int:
    """Alt coverage and popup count, plus AI 50% for visual quality and hierarchy."""
    rule_part = 0
    if cv is not None:
        if cv.alt_ratio is not None and cv.alt_ratio >= 0.8:
            rule_part += 2
        if cv.popup_count is not None and cv.popup_count <= 1:
            rule_part += 3

    ai_part = ai_sub_score(grade) * VISUALS_AI_WEIGHT

    return round_half_up(rule_part + ai_part)

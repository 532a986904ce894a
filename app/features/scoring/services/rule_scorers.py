"""
Rule-based category scorers (0-10 each).

Every scorer takes an optional measurement record and falls back to
DEFAULT_RULE_SCORE when the whole record is missing. Missing individual
fields fail their check, except hasOverflow: an unmeasured overflow counts
as no horizontal scroll.
"""
from typing import Optional

from app.features.scoring.schemas.scoring import CVMetrics, HTMLMetrics, LighthouseMetrics

DEFAULT_RULE_SCORE = 5
MAX_RULE_SCORE = 10

# Core Web Vitals thresholds
LCP_GOOD_SECONDS = 2.5
LCP_POOR_SECONDS = 4.0
CLS_GOOD = 0.1
TBT_GOOD_MS = 300
FCP_GOOD_SECONDS = 3.0


def _at_least(value: Optional[float], threshold: float) -> bool:
    return value is not None and value >= threshold


def _core_vitals_deductions(metrics: LighthouseMetrics) -> int:
    deductions = 0

    if metrics.lcp > LCP_POOR_SECONDS:
        deductions += 3
    elif metrics.lcp > LCP_GOOD_SECONDS:
        deductions += 1

    if metrics.cls > CLS_GOOD:
        deductions += 2

    if metrics.tbt > TBT_GOOD_MS:
        deductions += 2

    return deductions


def calculate_speed_score(metrics: Optional[LighthouseMetrics]) -> int:
    """
    Canonical speed score, the one used by the composite score.

    Starts at 10 and deducts for LCP (-3 above 4.0s, -1 above 2.5s),
    CLS above 0.1 (-2) and TBT above 300ms (-2).
    """
    if metrics is None:
        return DEFAULT_RULE_SCORE

    return max(0, MAX_RULE_SCORE - _core_vitals_deductions(metrics))


def calculate_display_speed_score(metrics: Optional[LighthouseMetrics]) -> int:
    """
    Stricter speed score for quick display.

    Same as calculate_speed_score, plus -1 when FCP is above 3.0s and -2
    when any network request failed. Never feeds the composite score.
    """
    if metrics is None:
        return DEFAULT_RULE_SCORE

    deductions = _core_vitals_deductions(metrics)

    if metrics.fcp is not None and metrics.fcp > FCP_GOOD_SECONDS:
        deductions += 1

    if metrics.errors:
        deductions += 2

    return max(0, MAX_RULE_SCORE - deductions)


def calculate_mobile_score(cv: Optional[CVMetrics]) -> int:
    if cv is None:
        return DEFAULT_RULE_SCORE

    score = 0

    # Viewport meta (2)
    if cv.has_viewport:
        score += 2

    # Minimum font size (3)
    if _at_least(cv.min_font_size, 14):
        score += 3
    elif _at_least(cv.min_font_size, 12):
        score += 1

    # Touch target size (3)
    if _at_least(cv.min_touch_target, 44):
        score += 3
    elif _at_least(cv.min_touch_target, 36):
        score += 1

    # Horizontal scroll (2)
    if not cv.has_overflow:
        score += 2

    return score


def calculate_seo_score(html: Optional[HTMLMetrics]) -> int:
    if html is None:
        return DEFAULT_RULE_SCORE

    score = 0

    # Meta tags (5)
    if html.title:
        score += 1
    if html.meta_description:
        score += 1
    if _at_least(html.og_tags, 3):
        score += 2
    # Exactly one H1
    if html.h1_count == 1:
        score += 1

    # Alt text (2)
    alt_ratio = html.alt_ratio or 0
    if alt_ratio >= 0.8:
        score += 2
    elif alt_ratio >= 0.5:
        score += 1

    # Analytics (3)
    if html.has_analytics:
        score += 3

    return score

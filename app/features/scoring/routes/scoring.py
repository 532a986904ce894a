from typing import Any, Dict

from fastapi import APIRouter, Body, status

from app.features.scoring.schemas.scoring import ScoreRequest
from app.features.scoring.services.metric_extractor import extract_metrics, format_metrics
from app.features.scoring.services.rule_scorers import calculate_display_speed_score
from app.features.scoring.services.scorer import calculate_scores
from app.platform.logger import get_logger
from app.platform.response import api_response

logger = get_logger(__name__)

router = APIRouter(prefix="/audit", tags=["audit"])


@router.post("/metrics")
async def extract_lighthouse_metrics(report: Dict[str, Any] = Body(...)):
    """Normalize a raw Lighthouse JSON report."""
    metrics = extract_metrics(report)

    return api_response(
        data={
            "metrics": metrics.model_dump(by_alias=True),
            "summary": format_metrics(metrics),
        },
        message="Metrics extracted",
        status_code=status.HTTP_200_OK,
    )


@router.post("/score")
async def score_audit(request: ScoreRequest):
    """Score already-collected measurements and grader output."""
    result = calculate_scores(request.llm_output, request.measured)
    logger.info(f"Scored audit for {request.llm_output.url or 'unknown url'}: {result.total_score}")

    return api_response(
        data={
            "result": result.model_dump(by_alias=True, mode="json"),
            "displaySpeedScore": calculate_display_speed_score(request.measured.lighthouse),
        },
        message="Scores calculated",
        status_code=status.HTTP_200_OK,
    )

"""
Audit Service

Runs one storefront audit end to end:
page speed -> first-view capture -> markup analysis -> platform detection ->
AI grading -> scoring.
Measurement failures are tolerated and only leave their record empty; a
grading failure aborts the audit.
"""
import base64
import mimetypes
from pathlib import Path
from typing import List, Optional, Tuple

from app.features.audit.schemas.audit import AuditIn, AuditOut
from app.features.grading.schemas.grading import GraderInput, GraderScreenshots
from app.features.grading.services.vision_grader import VisionGrader, create_vision_grader
from app.features.lighthouse.services.lighthouse_runner import LighthouseRunner, create_lighthouse_runner
from app.features.page_analysis.services.markup_analyzer import analyze_markup
from app.features.page_analysis.services.platform_detector import detect_platform
from app.features.scoring.schemas.scoring import LighthouseMetrics, MeasuredData
from app.features.scoring.services.rule_scorers import calculate_display_speed_score
from app.features.scoring.services.scorer import calculate_scores
from app.features.screenshots.schemas.screenshot import MOBILE_VIEWPORT, CaptureResult, Viewport
from app.features.screenshots.services.screenshot_service import ScreenshotService
from app.platform.logger import get_logger

logger = get_logger(__name__)


def to_data_uri(path: str) -> Optional[str]:
    """Inline a local image as a data URI so the grader can see it."""
    try:
        content = Path(path).read_bytes()
    except OSError as e:
        logger.warning(f"Could not read screenshot {path}: {e}")
        return None

    mime_type = mimetypes.guess_type(path)[0] or "image/png"
    return f"data:{mime_type};base64,{base64.b64encode(content).decode('ascii')}"


class AuditService:
    def __init__(
        self,
        lighthouse_runner: Optional[LighthouseRunner] = None,
        screenshot_service: Optional[ScreenshotService] = None,
        grader: Optional[VisionGrader] = None,
    ):
        self.lighthouse_runner = lighthouse_runner or create_lighthouse_runner()
        self.screenshot_service = screenshot_service or ScreenshotService()
        self.grader = grader or create_vision_grader()

    def _measure_speed(self, url: str, device: str, warnings: List[str]) -> Optional[LighthouseMetrics]:
        result = self.lighthouse_runner.run(url, device=device)
        if not result.success:
            warnings.append(f"Lighthouse unavailable: {result.error}")
            return None
        return result.metrics

    def _capture_first_view(self, url: str, device: str, warnings: List[str]) -> CaptureResult:
        viewport = MOBILE_VIEWPORT if device == "mobile" else Viewport()
        # First view only; the grader judges what is visible before scrolling
        capture = self.screenshot_service.capture(url, full_page=False, viewport=viewport)
        if not capture.success:
            warnings.append(f"Screenshot unavailable: {capture.error}")
        return capture

    def _resolve_platform(self, audit_in: AuditIn, html: str, url: str) -> Tuple[Optional[str], List[str]]:
        if audit_in.platform:
            return audit_in.platform, []
        if not html.strip():
            return None, []

        detection = detect_platform(html, url)
        logger.info(f"Detected platform for {url}: {detection.platform} (confidence {detection.confidence})")
        return detection.platform, detection.signals

    def run(self, audit_in: AuditIn, url: str) -> AuditOut:
        """
        Audit ``url`` (already validated and normalized).

        Raises:
            UpstreamFailure: when the configured grader fails after retries.
        """
        warnings: List[str] = []
        logger.info(f"Starting audit for {url} ({audit_in.device})")

        lighthouse = self._measure_speed(url, audit_in.device, warnings)
        capture = self._capture_first_view(url, audit_in.device, warnings)

        html = capture.html or ""
        viewport_width = MOBILE_VIEWPORT.width if audit_in.device == "mobile" else Viewport().width
        cv, html_metrics = analyze_markup(html, viewport_width=viewport_width)
        if html_metrics is None:
            warnings.append("No HTML captured; markup measurements skipped")

        measured = MeasuredData(lighthouse=lighthouse, cv=cv, html=html_metrics)
        platform, platform_signals = self._resolve_platform(audit_in, html, url)

        grader_input = GraderInput(
            url=url,
            platform=platform,
            html=html,
            screenshots=GraderScreenshots(
                first_view=to_data_uri(capture.local_path) if capture.local_path else None,
            ),
        )
        if self.grader.enabled:
            llm_output = self.grader.grade(grader_input)
        else:
            llm_output = self.grader.grade_mock(grader_input)

        result = calculate_scores(llm_output, measured)
        logger.info(f"Audit for {url} finished: total={result.total_score} warnings={len(warnings)}")

        return AuditOut(
            url=url,
            result=result,
            display_speed_score=calculate_display_speed_score(lighthouse),
            measured=measured,
            insights=llm_output.insights(),
            expert_summary=llm_output.expert_summary,
            grader=llm_output.metadata,
            platform=platform,
            platform_signals=platform_signals,
            graded_with_mock=not self.grader.enabled,
            screenshot_url=capture.url if capture.success else None,
            warnings=warnings,
        )


def get_audit_service() -> AuditService:
    return AuditService()

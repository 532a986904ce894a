from unittest.mock import MagicMock

import pytest

from app.features.audit.schemas.audit import AuditIn
from app.features.audit.services.audit_service import AuditService, get_audit_service, to_data_uri
from app.features.grading.schemas.grading import GraderInput
from app.features.grading.services.vision_grader import VisionGrader
from app.features.lighthouse.services.lighthouse_runner import LighthouseResult, LighthouseRunner
from app.features.scoring.schemas.scoring import LighthouseMetrics
from app.features.screenshots.schemas.screenshot import CaptureResult
from app.features.screenshots.services.screenshot_service import ScreenshotService
from app.platform.exceptions import UpstreamFailure

PAGE = """
<html><head>
  <title>Acme</title>
  <meta name="viewport" content="width=device-width">
  <meta name="description" content="Shop">
</head><body>
  <nav><a>1</a><a>2</a><a>3</a></nav>
  <input type="search">
  <h1>Hello</h1>
</body></html>
"""


@pytest.fixture
def lighthouse_runner():
    runner = MagicMock(spec=LighthouseRunner)
    runner.run.return_value = LighthouseResult(
        success=True, metrics=LighthouseMetrics(lcp=2.0, cls=0.05, tbt=200, fcp=3.4)
    )
    return runner


@pytest.fixture
def screenshot_service(tmp_path):
    image = tmp_path / "first-view.png"
    image.write_bytes(b"\x89PNG fake")

    service = MagicMock(spec=ScreenshotService)
    service.capture.return_value = CaptureResult(
        success=True, url="/screenshots/first-view.png", local_path=str(image), html=PAGE
    )
    return service


@pytest.fixture
def audit_service(lighthouse_runner, screenshot_service):
    return AuditService(
        lighthouse_runner=lighthouse_runner,
        screenshot_service=screenshot_service,
        grader=VisionGrader(),
    )


def test_to_data_uri(tmp_path):
    image = tmp_path / "shot.png"
    image.write_bytes(b"abc")

    assert to_data_uri(str(image)) == "data:image/png;base64,YWJj"
    assert to_data_uri(str(tmp_path / "missing.png")) is None


class TestAuditService:
    def test_full_run_with_mock_grader(self, audit_service, lighthouse_runner, screenshot_service):
        audit = audit_service.run(AuditIn(url="https://shop.example"), "https://shop.example")

        assert audit.graded_with_mock is True
        assert audit.warnings == []
        assert audit.screenshot_url == "/screenshots/first-view.png"
        assert audit.result.category_scores.speed == 10
        assert audit.display_speed_score == 9
        assert audit.measured.html.menu_count == 3
        assert audit.measured.cv.has_viewport is True
        assert audit.insights["visuals"] == ["Reduce the number of popups", "Fill in missing alt text"]
        assert audit.expert_summary.grade == "B"
        assert audit.platform == "unknown"

        lighthouse_runner.run.assert_called_once_with("https://shop.example", device="mobile")
        kwargs = screenshot_service.capture.call_args[1]
        assert kwargs["full_page"] is False
        assert kwargs["viewport"].is_mobile is True

    def test_measurement_failures_are_tolerated(self, audit_service, lighthouse_runner, screenshot_service):
        lighthouse_runner.run.return_value = LighthouseResult(success=False, error="Lighthouse: timed out")
        screenshot_service.capture.return_value = CaptureResult(success=False, error="browser crashed")

        audit = audit_service.run(AuditIn(url="https://shop.example"), "https://shop.example")

        assert audit.measured.lighthouse is None
        assert audit.measured.cv is None
        assert audit.measured.html is None
        assert audit.result.category_scores.speed == 5
        assert audit.screenshot_url is None
        assert len(audit.warnings) == 3
        assert audit.platform is None

    def test_configured_grader_receives_screenshot(self, lighthouse_runner, screenshot_service):
        grader = MagicMock(spec=VisionGrader)
        grader.enabled = True
        grader.grade.return_value = VisionGrader().grade_mock(GraderInput(url="https://shop.example"))

        service = AuditService(lighthouse_runner, screenshot_service, grader)
        audit = service.run(AuditIn(url="https://shop.example", platform="imweb"), "https://shop.example")

        grader_input = grader.grade.call_args[0][0]
        assert grader_input.platform == "imweb"
        assert grader_input.screenshots.first_view.startswith("data:image/png;base64,")
        assert "<h1>Hello</h1>" in grader_input.html
        assert audit.platform == "imweb"
        assert audit.platform_signals == []
        assert audit.graded_with_mock is False
        grader.grade_mock.assert_not_called()

    def test_platform_detected_when_not_given(self, lighthouse_runner, screenshot_service):
        screenshot_service.capture.return_value = screenshot_service.capture.return_value.model_copy(
            update={"html": PAGE.replace("<h1>Hello</h1>", '<div class="ec-base-box">Hello</div>')}
        )
        grader = MagicMock(spec=VisionGrader)
        grader.enabled = True
        grader.grade.return_value = VisionGrader().grade_mock(GraderInput(url="https://acme.cafe24.com"))

        service = AuditService(lighthouse_runner, screenshot_service, grader)
        audit = service.run(AuditIn(url="https://acme.cafe24.com"), "https://acme.cafe24.com")

        assert grader.grade.call_args[0][0].platform == "cafe24"
        assert audit.platform == "cafe24"
        assert audit.platform_signals == ["url:cafe24-host", "html:ec-* classes"]

    def test_grading_failure_propagates(self, lighthouse_runner, screenshot_service):
        grader = MagicMock(spec=VisionGrader)
        grader.enabled = True
        grader.grade.side_effect = UpstreamFailure("Vision grader", "grading failed after 2 attempts")

        service = AuditService(lighthouse_runner, screenshot_service, grader)
        with pytest.raises(UpstreamFailure):
            service.run(AuditIn(url="https://shop.example"), "https://shop.example")

    def test_desktop_device(self, audit_service, lighthouse_runner, screenshot_service):
        audit_service.run(AuditIn(url="https://shop.example", device="desktop"), "https://shop.example")

        lighthouse_runner.run.assert_called_once_with("https://shop.example", device="desktop")
        assert screenshot_service.capture.call_args[1]["viewport"].width == 1280


class TestAuditRoute:
    def test_run(self, client, test_app, audit_service):
        test_app.dependency_overrides[get_audit_service] = lambda: audit_service

        response = client.post("/api/v1/audit/run", json={"url": "shop.example"})
        assert response.status_code == 200

        payload = response.json()
        assert payload["success"] is True
        assert payload["url"] == "https://shop.example"
        assert payload["result"]["scoreSources"]["firstView"] == "hybrid"
        assert payload["measured"]["lighthouse"]["LCP"] == 2.0
        assert payload["measured"]["html"]["menuCount"] == 3
        assert payload["gradedWithMock"] is True
        assert payload["platform"] == "unknown"
        assert "firstView" in payload["insights"]

    def test_invalid_url(self, client, test_app, audit_service):
        test_app.dependency_overrides[get_audit_service] = lambda: audit_service

        response = client.post("/api/v1/audit/run", json={"url": "   "})
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_grading_failure_is_500(self, client, test_app, lighthouse_runner, screenshot_service):
        grader = MagicMock(spec=VisionGrader)
        grader.enabled = True
        grader.grade.side_effect = UpstreamFailure("Vision grader", "grading failed after 2 attempts")
        service = AuditService(lighthouse_runner, screenshot_service, grader)
        test_app.dependency_overrides[get_audit_service] = lambda: service

        response = client.post("/api/v1/audit/run", json={"url": "https://shop.example"})
        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "error": "Vision grader: grading failed after 2 attempts",
        }

    def test_unknown_device_rejected(self, client):
        response = client.post("/api/v1/audit/run", json={"url": "https://shop.example", "device": "watch"})
        assert response.status_code == 400

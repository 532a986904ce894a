from unittest.mock import MagicMock

import pytest

from app.features.screenshots.schemas.screenshot import CaptureMetadata, CaptureResult, Viewport
from app.features.screenshots.services.screenshot_service import ScreenshotService, get_screenshot_service


@pytest.fixture
def screenshot_dir(tmp_path, test_app):
    service = ScreenshotService(screenshot_dir=str(tmp_path), max_retries=1)
    test_app.dependency_overrides[get_screenshot_service] = lambda: service
    yield tmp_path
    test_app.dependency_overrides.pop(get_screenshot_service, None)


@pytest.fixture
def mock_capture_service(test_app):
    service = MagicMock(spec=ScreenshotService)
    test_app.dependency_overrides[get_screenshot_service] = lambda: service
    yield service
    test_app.dependency_overrides.pop(get_screenshot_service, None)


def test_list_screenshots(client, screenshot_dir):
    (screenshot_dir / "a.png").write_bytes(b"aaaa")
    (screenshot_dir / "readme.md").write_text("skip")

    response = client.get("/api/v1/screenshots/list")
    assert response.status_code == 200

    payload = response.json()
    assert payload["success"] is True
    assert payload["count"] == 1
    assert payload["screenshots"][0]["filename"] == "a.png"
    assert payload["screenshots"][0]["size"] == 4
    assert "createdAt" in payload["screenshots"][0]


def test_metadata(client, screenshot_dir):
    (screenshot_dir / "a.png").write_bytes(b"aaaa")

    response = client.get("/api/v1/screenshots/a.png/metadata")
    assert response.status_code == 200

    metadata = response.json()["metadata"]
    assert metadata["filename"] == "a.png"
    assert metadata["modifiedAt"]


def test_metadata_not_found(client, screenshot_dir):
    response = client.get("/api/v1/screenshots/missing.png/metadata")
    assert response.status_code == 404

    payload = response.json()
    assert payload["success"] is False
    assert "not found" in payload["error"]


def test_delete(client, screenshot_dir):
    (screenshot_dir / "a.png").write_bytes(b"aaaa")

    response = client.delete("/api/v1/screenshots/a.png")
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert not (screenshot_dir / "a.png").exists()


def test_delete_rejects_traversal(client, screenshot_dir):
    response = client.delete("/api/v1/screenshots/..%5Csecret.png")
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Invalid filename"}


def test_capture_requires_url(client, mock_capture_service):
    response = client.post("/api/v1/screenshots/capture", json={"fullPage": True})
    assert response.status_code == 400
    assert response.json()["success"] is False
    mock_capture_service.capture.assert_not_called()


def test_capture_rejects_bad_scheme(client, mock_capture_service):
    response = client.post("/api/v1/screenshots/capture", json={"url": "ftp://shop.example"})
    assert response.status_code == 400
    assert "scheme" in response.json()["error"]


def test_capture_success(client, mock_capture_service):
    mock_capture_service.capture.return_value = CaptureResult(
        success=True,
        url="/screenshots/abc.png",
        local_path="/tmp/abc.png",
        html="<html></html>",
        metadata=CaptureMetadata(
            url="https://shop.example",
            timestamp=1700000000000,
            viewport=Viewport(width=375, height=812, is_mobile=True),
            full_page=False,
        ),
    )

    response = client.post(
        "/api/v1/screenshots/capture",
        json={"url": "shop.example", "fullPage": False, "viewport": {"width": 375, "height": 812, "isMobile": True}},
    )
    assert response.status_code == 200

    screenshot = response.json()["screenshot"]
    assert screenshot["localPath"] == "/tmp/abc.png"
    assert screenshot["metadata"]["viewport"]["isMobile"] is True
    assert "html" not in screenshot

    args, kwargs = mock_capture_service.capture.call_args
    assert args[0] == "https://shop.example"
    assert kwargs["full_page"] is False
    assert kwargs["viewport"].is_mobile is True


def test_capture_failure_is_500(client, mock_capture_service):
    mock_capture_service.capture.return_value = CaptureResult(success=False, error="net::ERR_NAME_NOT_RESOLVED")

    response = client.post("/api/v1/screenshots/capture", json={"url": "https://nowhere.invalid"})
    assert response.status_code == 500

    payload = response.json()
    assert payload["success"] is False
    assert "ERR_NAME_NOT_RESOLVED" in payload["error"]

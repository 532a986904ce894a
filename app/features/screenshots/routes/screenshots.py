from fastapi import APIRouter, Depends, status

from app.features.screenshots.schemas.screenshot import CaptureRequest, ScreenshotListResponse
from app.features.screenshots.services.screenshot_service import ScreenshotService, get_screenshot_service
from app.platform.exceptions import UpstreamFailure, ValidationError
from app.platform.logger import get_logger
from app.platform.response import api_response
from app.platform.utils.url_validator import validate_url

logger = get_logger(__name__)

router = APIRouter(prefix="/screenshots", tags=["screenshots"])


@router.get("/list")
def list_screenshots(service: ScreenshotService = Depends(get_screenshot_service)):
    screenshots = service.list_screenshots()
    listing = ScreenshotListResponse(count=len(screenshots), screenshots=screenshots)

    return api_response(data=listing.model_dump(by_alias=True), status_code=status.HTTP_200_OK)


@router.delete("/{filename}")
def delete_screenshot(filename: str, service: ScreenshotService = Depends(get_screenshot_service)):
    service.delete(filename)

    return api_response(message=f"Screenshot {filename} deleted", status_code=status.HTTP_200_OK)


@router.get("/{filename}/metadata")
def get_screenshot_metadata(filename: str, service: ScreenshotService = Depends(get_screenshot_service)):
    info = service.get_metadata(filename)

    return api_response(data={"metadata": info.model_dump(by_alias=True)}, status_code=status.HTTP_200_OK)


@router.post("/capture")
def capture_screenshot(request: CaptureRequest, service: ScreenshotService = Depends(get_screenshot_service)):
    is_valid, url, error_message = validate_url(request.url)
    if not is_valid:
        raise ValidationError(f"Invalid URL: {error_message}")

    result = service.capture(
        url,
        full_page=request.full_page,
        viewport=request.viewport,
        wait_for=request.wait_for,
    )

    if not result.success:
        raise UpstreamFailure("Screenshot", result.error or "Failed to capture screenshot")

    return api_response(
        data={"screenshot": result.model_dump(by_alias=True, exclude={"success", "error"})},
        message="Screenshot captured",
        status_code=status.HTTP_200_OK,
    )

import hashlib
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from selenium import webdriver
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service
from webdriver_manager.chrome import ChromeDriverManager

from app.features.screenshots.schemas.screenshot import (
    CaptureMetadata,
    CaptureResult,
    ScreenshotInfo,
    Viewport,
)
from app.platform.config import settings
from app.platform.exceptions import NotFoundError, ValidationError
from app.platform.logger import get_logger

logger = get_logger(__name__)

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp"}
MOBILE_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 16_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/16.0 Mobile/15E148 Safari/604.1"
)
DEFAULT_VIEWPORT = Viewport(width=1280, height=800, is_mobile=False)
PUBLIC_URL_PREFIX = "/screenshots"


def _iso(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


class ScreenshotService:
    """
    Captures page screenshots with headless Chrome and manages the files
    stored in the screenshot directory.
    """

    def __init__(
        self,
        screenshot_dir: Optional[str] = None,
        max_retries: Optional[int] = None,
        page_load_timeout: Optional[int] = None,
    ):
        self.screenshot_dir = Path(screenshot_dir or settings.SCREENSHOT_DIR)
        self.max_retries = max_retries or settings.SCREENSHOT_MAX_RETRIES
        self.page_load_timeout = page_load_timeout or settings.SCREENSHOT_PAGE_LOAD_TIMEOUT

    # ------------------------------------------------------------------
    # File management
    # ------------------------------------------------------------------

    @staticmethod
    def validate_filename(filename: str) -> str:
        """Reject empty names and anything that could escape the screenshot directory."""
        if not filename or not filename.strip():
            raise ValidationError("Invalid filename")
        if ".." in filename or "/" in filename or "\\" in filename or "\x00" in filename:
            raise ValidationError("Invalid filename")
        return filename

    def _path_for(self, filename: str) -> Path:
        return self.screenshot_dir / self.validate_filename(filename)

    def _info(self, path: Path, include_modified: bool = False) -> ScreenshotInfo:
        stats = path.stat()
        created = getattr(stats, "st_birthtime", stats.st_ctime)
        return ScreenshotInfo(
            filename=path.name,
            url=f"{PUBLIC_URL_PREFIX}/{path.name}",
            size=stats.st_size,
            created_at=_iso(created),
            modified_at=_iso(stats.st_mtime) if include_modified else None,
        )

    def list_screenshots(self) -> List[ScreenshotInfo]:
        """Stored screenshots, newest first. A missing directory lists as empty."""
        if not self.screenshot_dir.is_dir():
            return []

        screenshots = []
        for path in self.screenshot_dir.iterdir():
            if not path.is_file() or path.suffix.lower() not in IMAGE_EXTENSIONS:
                continue
            try:
                screenshots.append(self._info(path))
            except OSError as e:
                logger.error(f"Error reading file stats for {path.name}: {e}")

        screenshots.sort(key=lambda info: info.created_at, reverse=True)
        return screenshots

    def get_metadata(self, filename: str) -> ScreenshotInfo:
        path = self._path_for(filename)
        if not path.is_file():
            raise NotFoundError("Screenshot", filename)
        return self._info(path, include_modified=True)

    def delete(self, filename: str) -> None:
        path = self._path_for(filename)
        try:
            path.unlink()
        except FileNotFoundError:
            raise NotFoundError("Screenshot", filename)
        logger.info(f"Deleted screenshot {filename}")

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    def _create_driver(self, viewport: Viewport):
        chrome_options = Options()
        chrome_options.add_argument("--headless=new")
        chrome_options.add_argument("--no-sandbox")
        chrome_options.add_argument("--disable-dev-shm-usage")
        chrome_options.add_argument("--disable-gpu")
        chrome_options.add_argument("--hide-scrollbars")
        chrome_options.add_argument(f"--window-size={viewport.width},{viewport.height}")

        if viewport.is_mobile:
            chrome_options.add_experimental_option(
                "mobileEmulation",
                {
                    "deviceMetrics": {"width": viewport.width, "height": viewport.height, "pixelRatio": 1.0},
                    "userAgent": MOBILE_USER_AGENT,
                },
            )

        service = Service(ChromeDriverManager().install())
        driver = webdriver.Chrome(service=service, options=chrome_options)
        driver.set_page_load_timeout(self.page_load_timeout)
        return driver

    def _capture_once(self, url: str, full_page: bool, viewport: Viewport, wait_for: Optional[int]) -> CaptureResult:
        driver = None
        try:
            driver = self._create_driver(viewport)

            logger.info(f"Capturing screenshot of {url}")
            driver.get(url)

            if wait_for:
                time.sleep(wait_for / 1000)

            if full_page:
                height = driver.execute_script(
                    "return Math.max(document.body.scrollHeight, document.documentElement.scrollHeight);"
                )
                if isinstance(height, (int, float)) and height > viewport.height:
                    driver.set_window_size(viewport.width, int(height))

            html = driver.page_source

            self.screenshot_dir.mkdir(parents=True, exist_ok=True)
            digest = hashlib.md5(f"{url}{time.time()}".encode("utf-8")).hexdigest()
            filename = f"{digest}.png"
            local_path = self.screenshot_dir / filename

            if not driver.save_screenshot(str(local_path)):
                raise RuntimeError("Browser did not write the screenshot file")

            return CaptureResult(
                success=True,
                url=f"{PUBLIC_URL_PREFIX}/{filename}",
                local_path=str(local_path),
                html=html,
                metadata=CaptureMetadata(
                    url=url,
                    timestamp=int(time.time() * 1000),
                    viewport=Viewport(width=viewport.width, height=viewport.height, is_mobile=viewport.is_mobile),
                    full_page=full_page,
                ),
            )
        finally:
            if driver:
                driver.quit()

    def capture(
        self,
        url: str,
        full_page: bool = True,
        viewport: Optional[Viewport] = None,
        wait_for: Optional[int] = None,
    ) -> CaptureResult:
        """
        Capture a screenshot, retrying up to max_retries times.

        Returns a CaptureResult; failures are reported through
        ``success=False`` and ``error`` rather than raised.
        """
        viewport = viewport or DEFAULT_VIEWPORT
        last_error = None

        for attempt in range(1, self.max_retries + 1):
            try:
                return self._capture_once(url, full_page, viewport, wait_for)
            except Exception as e:
                last_error = e
                logger.warning(f"Screenshot attempt {attempt}/{self.max_retries} for {url} failed: {e}")
                if attempt < self.max_retries:
                    time.sleep(attempt)

        logger.error(f"Screenshot capture failed for {url}: {last_error}")
        return CaptureResult(success=False, error=str(last_error) if last_error else "Unknown error")


def get_screenshot_service() -> ScreenshotService:
    return ScreenshotService()

"""
Heuristic markup analysis of a rendered storefront page.

Produces the CVMetrics and HTMLMetrics records the scorers consume. All
measurements come from inline styles and DOM structure; no layout engine is
involved, so the numbers are estimates.
"""
import re
from typing import Optional, Tuple

from bs4 import BeautifulSoup

from app.features.scoring.schemas.scoring import CVMetrics, HTMLMetrics
from app.platform.logger import get_logger

logger = get_logger(__name__)

DEFAULT_FONT_SIZE = 16
MIN_COUNTED_FONT_SIZE = 8
DEFAULT_TOUCH_TARGET = 44
MIN_COUNTED_TOUCH_TARGET = 20
ROOT_FONT_SIZE = 16
POPUP_Z_INDEX = 100

ANALYTICS_MARKERS = ("googletagmanager", "gtag", "fbevents")

POPUP_SELECTORS = (
    '[role="dialog"]',
    '[role="alertdialog"]',
    ".modal",
    ".popup",
    ".overlay",
    '[class*="popup"]',
    '[class*="modal"]',
    '[id*="popup"]',
    '[id*="modal"]',
)
NAV_LINK_SELECTOR = "nav a, .nav a, .menu a, header a"
SEARCH_SELECTOR = (
    'input[type="search"], input[type="text"][placeholder*="검색"], '
    'input[type="text"][placeholder*="search" i], .search, #search'
)
TEXT_SELECTOR = "p, span, div, li, a"
TOUCH_TARGET_SELECTOR = 'button, a, input[type="button"], input[type="submit"]'

FONT_SIZE_RE = re.compile(r"font-size:\s*(\d+(?:\.\d+)?)(px|rem|em)", re.IGNORECASE)
HEIGHT_RE = re.compile(r"(?<![\w-])height:\s*(\d+)px", re.IGNORECASE)
WIDTH_RE = re.compile(r"(?<![\w-])width:\s*(\d+)px", re.IGNORECASE)
FIXED_RE = re.compile(r"position:\s*fixed", re.IGNORECASE)
Z_INDEX_RE = re.compile(r"z-index:\s*(\d+)", re.IGNORECASE)


def make_soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def _style(element) -> str:
    return element.get("style") or ""


def has_viewport_meta(soup: BeautifulSoup) -> bool:
    viewport = soup.find("meta", attrs={"name": "viewport"})
    return viewport is not None and "width=device-width" in (viewport.get("content") or "")


def min_font_size(soup: BeautifulSoup) -> float:
    """Smallest inline font size on text elements, in px. 16 when none is set."""
    smallest = DEFAULT_FONT_SIZE
    for element in soup.select(TEXT_SELECTOR):
        match = FONT_SIZE_RE.search(_style(element))
        if not match:
            continue
        size = float(match.group(1))
        if match.group(2).lower() in ("rem", "em"):
            size *= ROOT_FONT_SIZE
        # Sub-8px text is usually hidden or decorative
        if MIN_COUNTED_FONT_SIZE < size < smallest:
            smallest = size
    return smallest


def min_touch_target(soup: BeautifulSoup) -> float:
    """Smallest inline width/height on tappable elements, in px. 44 when none is set."""
    smallest = DEFAULT_TOUCH_TARGET
    for element in soup.select(TOUCH_TARGET_SELECTOR):
        style = _style(element)
        for pattern in (HEIGHT_RE, WIDTH_RE):
            match = pattern.search(style)
            if match:
                size = int(match.group(1))
                if MIN_COUNTED_TOUCH_TARGET < size < smallest:
                    smallest = size
    return smallest


def has_horizontal_overflow(soup: BeautifulSoup, viewport_width: int = 375) -> bool:
    for element in soup.find_all(style=True):
        match = WIDTH_RE.search(_style(element))
        if match and int(match.group(1)) > viewport_width:
            return True
    return False


def image_alt_ratio(soup: BeautifulSoup) -> float:
    """
    Share of images with non-empty alt text, for the visuals score.

    A page without images has nothing to caption and reads as fully
    covered (1.0). The SEO record in analyze_html uses a different rule.
    """
    images = soup.find_all("img")
    if not images:
        return 1.0
    with_alt = sum(1 for image in images if (image.get("alt") or "").strip())
    return with_alt / len(images)


def count_popups(soup: BeautifulSoup) -> int:
    """Dialog-like elements plus fixed-position layers stacked above z-index 100."""
    popups = set()
    for selector in POPUP_SELECTORS:
        for element in soup.select(selector):
            popups.add(id(element))

    for element in soup.find_all(style=True):
        style = _style(element)
        if FIXED_RE.search(style):
            z_index = Z_INDEX_RE.search(style)
            if z_index and int(z_index.group(1)) > POPUP_Z_INDEX:
                popups.add(id(element))

    return len(popups)


def has_analytics(html: str) -> bool:
    return any(marker in html for marker in ANALYTICS_MARKERS)


def analyze_cv(html: str, viewport_width: int = 375) -> CVMetrics:
    soup = make_soup(html)
    return CVMetrics(
        has_viewport=has_viewport_meta(soup),
        min_font_size=min_font_size(soup),
        min_touch_target=min_touch_target(soup),
        has_overflow=has_horizontal_overflow(soup, viewport_width),
        alt_ratio=image_alt_ratio(soup),
        popup_count=count_popups(soup),
    )


def analyze_html(html: str) -> HTMLMetrics:
    """
    SEO and navigation measurements.

    alt_ratio here is the share of images carrying any alt attribute, even
    an empty one, and is 0.0 for a page without images: no image metadata
    earns no SEO credit. It intentionally differs from image_alt_ratio.
    """
    soup = make_soup(html)

    title = soup.title.get_text(strip=True) if soup.title else ""
    description_tag = soup.find("meta", attrs={"name": "description"})
    description = (description_tag.get("content") or "").strip() if description_tag else ""

    images = soup.find_all("img")
    alt_ratio = sum(1 for image in images if image.has_attr("alt")) / len(images) if images else 0.0

    return HTMLMetrics(
        title=title or None,
        meta_description=description or None,
        og_tags=len(soup.select('meta[property^="og:"]')),
        h1_count=len(soup.find_all("h1")),
        alt_ratio=alt_ratio,
        has_analytics=has_analytics(html or ""),
        menu_count=len(soup.select(NAV_LINK_SELECTOR)),
        has_search=bool(soup.select(SEARCH_SELECTOR)),
        min_font_size=min_font_size(soup),
    )


def analyze_markup(html: Optional[str], viewport_width: int = 375) -> Tuple[Optional[CVMetrics], Optional[HTMLMetrics]]:
    """
    Measure a rendered page.

    Returns (None, None) for empty HTML so the scorers apply their
    "not measured" defaults instead of scoring an empty document.
    """
    if not html or not html.strip():
        logger.warning("No HTML to analyze; markup measurements skipped")
        return None, None

    return analyze_cv(html, viewport_width), analyze_html(html)

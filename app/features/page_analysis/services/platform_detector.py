"""
Storefront platform detection.

Scores cafe24 and imweb fingerprints found in the page URL and the rendered
HTML. Each signal adds a fixed weight; a platform is reported only when its
capped score reaches MIN_CONFIDENCE and beats the other platform.
"""
import re
from typing import List, NamedTuple, Optional, Set
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from app.features.page_analysis.schemas.platform import PlatformDetection
from app.features.page_analysis.services.markup_analyzer import make_soup
from app.platform.logger import get_logger

logger = get_logger(__name__)

MIN_CONFIDENCE = 0.5

CAFE24_HOST_RE = re.compile(r"cafe24(?:shop)?\.com", re.I)
CAFE24_CDN_RE = re.compile(r"img\.echosting\.cafe24\.com|cafe24img\.com|ecimg\.cafe24img\.com", re.I)
CAFE24_SCRIPT_RE = re.compile(r"cafe24_common\.js|eclog\.js|/ind-script/optimizer\.php", re.I)
CAFE24_CLASS_RE = re.compile(r"^ec-(?:base|list|shop|product|order)", re.I)
CAFE24_DATA_ATTR = "data-ez-sdk"

IMWEB_HOST_RE = re.compile(r"imweb\.me|imweb\.co\.kr", re.I)
IMWEB_CDN_RE = re.compile(r"cdn\.imweb\.me|static\.imweb\.me", re.I)
IMWEB_SCRIPT_RE = re.compile(r"\bimweb[-_.\w]*\.(?:js|css)\b", re.I)
IMWEB_CLASS_RE = re.compile(r"^im[-_x]", re.I)
IMWEB_DATA_ATTR = "data-imweb-"


class _Page(NamedTuple):
    host: str
    html: str
    classes: Set[str]
    data_attrs: Set[str]
    resources: List[str]


def extract_resources(soup: BeautifulSoup) -> List[str]:
    """Script, stylesheet and image URLs referenced by the page, deduplicated in order."""
    resources = [tag["src"] for tag in soup.find_all("script", src=True)]
    for link in soup.find_all("link", href=True):
        rel = " ".join(link.get("rel") or [])
        if ".css" in link["href"] or "stylesheet" in rel:
            resources.append(link["href"])
    resources.extend(tag["src"] for tag in soup.find_all("img", src=True))
    return list(dict.fromkeys(resources))


def _read_page(html: str, url: str) -> _Page:
    soup = make_soup(html)
    classes: Set[str] = set()
    data_attrs: Set[str] = set()
    for tag in soup.find_all(True):
        classes.update(tag.get("class") or [])
        data_attrs.update(name for name in tag.attrs if name.startswith("data-"))

    return _Page(
        host=urlparse(url).hostname or url,
        html=html,
        classes=classes,
        data_attrs=data_attrs,
        resources=extract_resources(soup),
    )


def _score_cafe24(page: _Page, signals: List[str]) -> float:
    score = 0.0

    if CAFE24_HOST_RE.search(page.host):
        score += 0.25
        signals.append("url:cafe24-host")

    if any(CAFE24_CLASS_RE.match(name) for name in page.classes):
        score += 0.25
        signals.append("html:ec-* classes")
    if CAFE24_SCRIPT_RE.search(page.html):
        score += 0.2
        signals.append("html:cafe24 scripts")
    if any(name.startswith(CAFE24_DATA_ATTR) for name in page.data_attrs):
        score += 0.15
        signals.append("html:data-ez-sdk")
    if "echosting" in page.html.lower():
        score += 0.1
        signals.append("html:echosting mention")

    if any(CAFE24_CDN_RE.search(resource) for resource in page.resources):
        score += 0.35
        signals.append("res:cafe24 cdn")
    if any(CAFE24_SCRIPT_RE.search(resource) for resource in page.resources):
        score += 0.25
        signals.append("res:cafe24 scripts")

    return score


def _score_imweb(page: _Page, signals: List[str]) -> float:
    score = 0.0

    if IMWEB_HOST_RE.search(page.host):
        score += 0.25
        signals.append("url:imweb-host")

    if any(IMWEB_CLASS_RE.match(name) for name in page.classes):
        score += 0.25
        signals.append("html:im*/imx* classes")
    if IMWEB_SCRIPT_RE.search(page.html):
        score += 0.25
        signals.append("html:imweb*.js/css")
    if any(name.startswith(IMWEB_DATA_ATTR) for name in page.data_attrs):
        score += 0.15
        signals.append("html:data-imweb-*")
    if "imweb" in page.html.lower():
        score += 0.1
        signals.append("html:imweb mention")

    if any(IMWEB_CDN_RE.search(resource) for resource in page.resources):
        score += 0.35
        signals.append("res:imweb cdn")
    if any(IMWEB_SCRIPT_RE.search(resource) for resource in page.resources):
        score += 0.25
        signals.append("res:imweb scripts")

    return score


def detect_platform(html: Optional[str], url: str) -> PlatformDetection:
    """
    Guess which hosted shop builder serves the page.

    Scores are capped at 1.0. A tie, or a winner below MIN_CONFIDENCE,
    reports "unknown" with the stronger score as confidence and every
    signal found, the stronger platform's first.
    """
    page = _read_page(html or "", url)

    cafe24_signals: List[str] = []
    imweb_signals: List[str] = []
    cafe24 = min(1.0, _score_cafe24(page, cafe24_signals))
    imweb = min(1.0, _score_imweb(page, imweb_signals))

    if cafe24 == 0 and imweb == 0:
        detection = PlatformDetection()
    elif cafe24 > imweb and cafe24 >= MIN_CONFIDENCE:
        detection = PlatformDetection(platform="cafe24", confidence=round(cafe24, 2), signals=cafe24_signals)
    elif imweb > cafe24 and imweb >= MIN_CONFIDENCE:
        detection = PlatformDetection(platform="imweb", confidence=round(imweb, 2), signals=imweb_signals)
    else:
        signals = cafe24_signals + imweb_signals if cafe24 >= imweb else imweb_signals + cafe24_signals
        detection = PlatformDetection(confidence=round(max(cafe24, imweb), 2), signals=signals)

    logger.debug(f"Platform for {url}: {detection.platform} ({detection.confidence}) {detection.signals}")
    return detection

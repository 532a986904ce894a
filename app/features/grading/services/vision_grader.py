"""
Vision Grader

Grades a storefront's first view and markup with an OpenAI-compatible vision
model. The model answers with a JSON object that is validated into
LLMGraderOutput before it reaches the scorer.
"""
import json
import time
from typing import Any, Dict, List, Optional

from openai import OpenAI, OpenAIError

from app.features.grading.schemas.grading import GraderInput
from app.features.scoring.schemas.scoring import GRADED_CATEGORIES, GraderMetadata, LLMGraderOutput
from app.platform.config import settings
from app.platform.exceptions import UpstreamFailure
from app.platform.logger import get_logger

logger = get_logger(__name__)

SYSTEM_PROMPT = """You are a senior e-commerce conversion consultant with 15 years of experience.

Role:
- Review a mobile storefront from its first-view screenshot and HTML
- Grade ten categories, each out of 10 points
- Back every judgement with evidence: a bbox [x, y, width, height] for visual
  elements, or a CSS selector and quoted text for markup
- A claim without evidence scores 0

Output:
- A single JSON object, no commentary
- Every category present, each with an "id" field equal to its key"""

KEYWORDS = {
    "cta": ["buy now", "add to cart", "coupon", "sale", "%", "discount"],
    "category": ["best", "new arrivals", "recommended", "popular"],
    "usp": ["free shipping", "same-day delivery", "authentic", "first order", "points"],
    "trust": ["https", "privacy", "exchange", "returns", "customer service", "payment logos"],
    "navigation": ["search", "category", "menu", "login", "my page"],
}

RUBRIC = """1. speed: LCP <= 2.5s 4pts (<= 4.0s 3pts, otherwise 1pt); CLS <= 0.1 2pts; TBT <= 300ms 2pts; no network errors 2pts
2. firstView: CTA visible without scrolling (bbox) 5pts; hero promotion copy (bbox) 3pts; font size >= 16px 2pts
3. bi: logo in the top 15% (bbox) 3pts; primary colour reuse >= 60% 4pts; clear typographic hierarchy 3pts
4. navigation: 3-8 menu items 4pts; search box (selector) 3pts; best/new sections 3pts
5. uspPromo: above the fold (bbox) 3pts; contrast >= 4.5 3pts; font size >= 18px 1pt; within 300px of a CTA 2pts; concrete benefit 1pt
6. visuals: alt text ratio >= 80% 2pts; at most one popup 3pts; sensible content order 3pts; image quality 2pts
7. trust: reviews or ratings 3pts; exchange/return/AS policies 3pts; payment method logos 4pts
8. mobile: viewport meta 2pts; readability 3pts; tap target size 3pts; no horizontal scroll 2pts
9. purchaseFlow: home to PDP 3pts; PDP to cart 3pts; cart to checkout 3pts; three steps or fewer 1pt. Include "ok" (boolean) and "steps" (names: home, pdp, cart, checkout)
10. seoAnalytics: title, description, og, h1, canonical 1pt each; alt text 2pts; analytics code 3pts"""

RESPONSE_SHAPE = """{
  "url": "<graded url>",
  "expertSummary": {
    "grade": "S|A|B|C|D|F",
    "headline": "<one-line verdict>",
    "strengths": ["..."],
    "weaknesses": ["..."],
    "priorities": ["..."]
  },
  "scores": {
    "<category>": {"id": "<category>", "score": 0-10, "evidence": {}, "insights": ["..."]},
    "purchaseFlow": {"id": "purchaseFlow", "score": 0-10, "ok": true, "steps": [{"name": "home", "url": "...", "screenshot": "..."}], "evidence": {}, "insights": ["..."]}
  }
}"""


class VisionGrader:
    """OpenAI-backed grader. Without an API key only `grade_mock` is usable."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o",
        base_url: Optional[str] = None,
        max_retries: int = 2,
        html_char_limit: int = 15000,
    ):
        self.client = OpenAI(api_key=api_key, base_url=base_url) if api_key else None
        self.model = model
        self.max_retries = max(1, max_retries)
        self.html_char_limit = html_char_limit

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def build_user_prompt(self, grader_input: GraderInput) -> str:
        actions = grader_input.screenshots.actions
        html = grader_input.html[: self.html_char_limit]

        return f"""Site under review:
- URL: {grader_input.url}
- Platform: {grader_input.platform or "unknown"}
- Action screenshots: {", ".join(actions) if actions else "none"}

Only grade what is actually on {grader_input.url}. Do not mention promotions
or content from other sites.

Screenshot coordinates: mobile viewport 375x812 px, bbox = [x, y, width, height].

Keywords to look for:
{json.dumps(KEYWORDS, indent=2)}

Rubric:
{RUBRIC}

HTML (first {self.html_char_limit} of {len(grader_input.html)} characters):
```html
{html}
```

Give 1-3 concrete insights per category and respond with JSON in this shape:
{RESPONSE_SHAPE}"""

    def build_messages(self, grader_input: GraderInput) -> List[Dict[str, Any]]:
        user_prompt = self.build_user_prompt(grader_input)
        first_view = grader_input.screenshots.first_view

        if first_view:
            user_content: Any = [
                {"type": "text", "text": user_prompt},
                {"type": "image_url", "image_url": {"url": first_view, "detail": "high"}},
            ]
        else:
            user_content = user_prompt

        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": user_content},
        ]

    @staticmethod
    def parse_content(content: str) -> Dict[str, Any]:
        """Parse the model's JSON, tolerating markdown fences around it."""
        try:
            return json.loads(content)
        except json.JSONDecodeError:
            cleaned = content.strip()
            if cleaned.startswith("```"):
                cleaned = cleaned.replace("```json", "").replace("```", "").strip()

            last_brace = cleaned.rfind("}")
            if not cleaned.startswith("{") or last_brace < 0:
                raise
            return json.loads(cleaned[: last_brace + 1])

    @staticmethod
    def _fill_ids(parsed: Dict[str, Any]) -> None:
        categories = parsed.get("scores", parsed)
        if not isinstance(categories, dict):
            return
        for key, value in categories.items():
            if key in GRADED_CATEGORIES and isinstance(value, dict):
                value.setdefault("id", key)

    def _grade_once(self, grader_input: GraderInput) -> LLMGraderOutput:
        started = time.monotonic()
        response = self.client.chat.completions.create(
            model=self.model,
            messages=self.build_messages(grader_input),
            response_format={"type": "json_object"},
            temperature=0.3,
        )
        processing_time_ms = int((time.monotonic() - started) * 1000)

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ValueError("Empty response from model")

        parsed = self.parse_content(content)
        if not isinstance(parsed, dict):
            raise ValueError("Model response is not a JSON object")
        self._fill_ids(parsed)
        parsed.setdefault("url", grader_input.url)

        output = LLMGraderOutput.model_validate(parsed)

        usage = response.usage
        output.metadata = GraderMetadata(
            model_requested=self.model,
            model_used=getattr(response, "model", None),
            processing_time_ms=processing_time_ms,
            tokens_used=getattr(usage, "total_tokens", 0) or 0,
            prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
        )
        logger.info(
            f"Graded {grader_input.url} with {output.metadata.model_used} "
            f"in {processing_time_ms}ms ({output.metadata.tokens_used} tokens)"
        )
        return output

    def grade(self, grader_input: GraderInput) -> LLMGraderOutput:
        """
        Grade a page with the vision model.

        Retries up to ``max_retries`` attempts with a linear back-off.

        Raises:
            UpstreamFailure: when no client is configured or every attempt fails.
        """
        if self.client is None:
            raise UpstreamFailure("Vision grader", "LLM client not initialized; set LLM_API_KEY")

        last_error: Optional[Exception] = None
        for attempt in range(self.max_retries):
            try:
                return self._grade_once(grader_input)
            except (OpenAIError, ValueError) as e:
                last_error = e
                logger.error(f"Grading attempt {attempt + 1}/{self.max_retries} failed for {grader_input.url}: {e}")
                if attempt < self.max_retries - 1:
                    time.sleep(attempt + 1)

        raise UpstreamFailure("Vision grader", f"grading failed after {self.max_retries} attempts: {last_error}")

    def grade_mock(self, grader_input: GraderInput) -> LLMGraderOutput:
        """Fixed grading for local runs and tests. Only the URL varies."""
        url = grader_input.url
        return LLMGraderOutput.model_validate({
            "url": url,
            "expertSummary": {
                "grade": "B",
                "headline": "Solid fundamentals with plenty of room to lift conversion",
                "strengths": [
                    "Mobile usability is strong and navigation is intuitive",
                    "The main CTA sits in the first view",
                    "Basic SEO tags and analytics are installed",
                ],
                "weaknesses": [
                    "Slow page load (LCP 2.8s)",
                    "Too many popups interrupt the visit",
                    "USP and promotion messages are weak",
                ],
                "priorities": [
                    "Optimize images to bring LCP under 2.5s",
                    "Limit popups on entry",
                    "Sharpen the USP and promotion copy",
                ],
            },
            "scores": {
                "speed": {
                    "id": "speed",
                    "score": 7,
                    "metrics": {"LCP": 2.8, "CLS": 0.05, "TBT": 250},
                    "evidence": {"lighthousePath": "mock/lighthouse.json"},
                    "insights": ["Bring LCP under 2.5s"],
                },
                "firstView": {
                    "id": "firstView",
                    "score": 8,
                    "evidence": {
                        "cta": {"selector": "button.buy-now", "bbox": [20, 400, 335, 50], "text": "Buy now"},
                        "promoTexts": [{"text": "10% off your first order", "bbox": [20, 200, 335, 40]}],
                    },
                    "insights": ["Increase CTA button contrast"],
                },
                "bi": {
                    "id": "bi",
                    "score": 7,
                    "evidence": {
                        "logo": {"bbox": [10, 10, 100, 40], "type": "image"},
                        "primaryColor": "#FF6B6B",
                        "reuseRatio": 0.45,
                    },
                    "insights": ["Use the brand colour more consistently"],
                },
                "navigation": {
                    "id": "navigation",
                    "score": 9,
                    "evidence": {
                        "menu": ["Home", "Best", "New", "Events", "My page"],
                        "menuCount": 5,
                        "searchPresent": True,
                        "searchSelector": "input.search",
                    },
                    "insights": [],
                },
                "uspPromo": {
                    "id": "uspPromo",
                    "score": 8,
                    "evidence": {
                        "usp": [{"text": "Free shipping", "bbox": [20, 300, 100, 30]}],
                        "ctaNearby": {"distancePx": 100, "ctaText": "Buy"},
                    },
                    "insights": ["Enlarge the USP text"],
                },
                "visuals": {
                    "id": "visuals",
                    "score": 6,
                    "evidence": {"altRatio": 0.7, "popups": 2, "flowOrderOK": True},
                    "insights": ["Reduce the number of popups", "Fill in missing alt text"],
                },
                "trust": {
                    "id": "trust",
                    "score": 8,
                    "evidence": {"policies": ["exchange", "returns"], "payments": ["naverpay", "kakaopay"]},
                    "insights": ["State the after-sales policy"],
                },
                "mobile": {
                    "id": "mobile",
                    "score": 9,
                    "evidence": {"viewportMeta": True, "readability": "ok", "tapTargetsOK": True, "overflow": False},
                    "insights": [],
                },
                "purchaseFlow": {
                    "id": "purchaseFlow",
                    "score": 7,
                    "ok": True,
                    "steps": [
                        {"name": "home", "url": url, "screenshot": "home.png"},
                        {"name": "pdp", "url": f"{url}/product/123", "screenshot": "pdp.png"},
                        {"name": "cart", "url": f"{url}/cart", "screenshot": "cart.png"},
                    ],
                    "evidence": {},
                    "insights": ["Shorten the checkout steps"],
                },
                "seoAnalytics": {
                    "id": "seoAnalytics",
                    "score": 8,
                    "evidence": {
                        "tags": {"title": True, "description": True, "og": True, "h1": True, "canonical": False},
                        "analytics": ["googletagmanager.com", "wcs.naver.net"],
                    },
                    "insights": ["Add a canonical tag"],
                },
            },
        })


def create_vision_grader() -> VisionGrader:
    if not settings.LLM_API_KEY:
        logger.warning("LLM_API_KEY not provided, using mock grader")
        return VisionGrader(model=settings.LLM_MODEL)

    return VisionGrader(
        api_key=settings.LLM_API_KEY,
        model=settings.LLM_MODEL,
        base_url=settings.LLM_BASE_URL,
        max_retries=settings.LLM_MAX_RETRIES,
        html_char_limit=settings.LLM_HTML_CHAR_LIMIT,
    )

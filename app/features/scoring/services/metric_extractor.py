"""
Lighthouse report normalization.

Turns the raw JSON report written by the Lighthouse CLI into the compact
LighthouseMetrics record the scorers consume.
"""
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from app.features.scoring.schemas.scoring import LighthouseMetrics
from app.platform.exceptions import MalformedReport
from app.platform.logger import get_logger

logger = get_logger(__name__)

# Lighthouse audit ids
LCP_AUDIT = "largest-contentful-paint"
CLS_AUDIT = "cumulative-layout-shift"
TBT_AUDIT = "total-blocking-time"
FCP_AUDIT = "first-contentful-paint"
SI_AUDIT = "speed-index"
TTI_AUDIT = "interactive"
NETWORK_REQUESTS_AUDIT = "network-requests"
REDIRECTS_AUDIT = "redirects"


def _numeric_value(audits: Dict[str, Any], audit_id: str) -> Optional[float]:
    audit = audits.get(audit_id)
    if not isinstance(audit, dict):
        return None
    value = audit.get("numericValue")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _ms_to_seconds(value: Optional[float]) -> Optional[float]:
    return value / 1000 if value is not None else None


def _detail_items(audits: Dict[str, Any], audit_id: str) -> Optional[list]:
    """Items of an audit's details table, or None when the audit is absent."""
    audit = audits.get(audit_id)
    if not isinstance(audit, dict):
        return None
    details = audit.get("details") or {}
    items = details.get("items") if isinstance(details, dict) else None
    return items if isinstance(items, list) else []


def _failed_request(item: Any) -> bool:
    if not isinstance(item, dict):
        return False
    if item.get("failed"):
        return True
    status_code = item.get("statusCode")
    return isinstance(status_code, (int, float)) and status_code >= 400


def extract_metrics(report: Dict[str, Any]) -> LighthouseMetrics:
    """
    Build a LighthouseMetrics record from a raw Lighthouse report.

    Optional metrics whose audit is missing stay None so that callers can
    tell "not measured" apart from "measured as zero". Required metrics
    (LCP, CLS, TBT) fall back to 0 when their audit is missing.

    Raises:
        MalformedReport: if the report has no ``audits`` mapping, or an
            audit carries an out-of-range value such as a negative time.
    """
    if not isinstance(report, dict):
        raise MalformedReport("Lighthouse report must be a JSON object")

    audits = report.get("audits")
    if not isinstance(audits, dict):
        raise MalformedReport("Lighthouse report has no audits section")

    lcp_ms = _numeric_value(audits, LCP_AUDIT)
    requests = _detail_items(audits, NETWORK_REQUESTS_AUDIT)
    redirects = _detail_items(audits, REDIRECTS_AUDIT)

    try:
        metrics = LighthouseMetrics(
            lcp=lcp_ms / 1000 if lcp_ms is not None else 0.0,
            cls=_numeric_value(audits, CLS_AUDIT) or 0.0,
            tbt=_numeric_value(audits, TBT_AUDIT) or 0.0,
            fcp=_ms_to_seconds(_numeric_value(audits, FCP_AUDIT)),
            si=_ms_to_seconds(_numeric_value(audits, SI_AUDIT)),
            tti=_ms_to_seconds(_numeric_value(audits, TTI_AUDIT)),
            requests=len(requests) if requests is not None else None,
            redirects=len(redirects) if redirects is not None else None,
            errors=sum(1 for item in requests if _failed_request(item)) if requests is not None else None,
        )
    except PydanticValidationError as e:
        fields = ", ".join(str(error["loc"][0]) for error in e.errors() if error["loc"])
        raise MalformedReport(f"Lighthouse report has invalid metric values: {fields}") from e

    missing = [audit_id for audit_id in (LCP_AUDIT, CLS_AUDIT, TBT_AUDIT) if audit_id not in audits]
    if missing:
        logger.warning(f"Lighthouse report is missing core audits: {', '.join(missing)}")

    return metrics


def format_metrics(metrics: LighthouseMetrics) -> str:
    """Readable multi-line summary; optional metrics appear only when measured."""
    lines = [
        f"LCP: {metrics.lcp:.2f}s",
        f"CLS: {metrics.cls:.3f}",
        f"TBT: {metrics.tbt:.0f}ms",
    ]

    if metrics.fcp is not None:
        lines.append(f"FCP: {metrics.fcp:.2f}s")
    if metrics.si is not None:
        lines.append(f"SI: {metrics.si:.2f}s")
    if metrics.tti is not None:
        lines.append(f"TTI: {metrics.tti:.2f}s")
    if metrics.requests is not None:
        lines.append(f"Requests: {metrics.requests}")
    if metrics.redirects is not None:
        lines.append(f"Redirects: {metrics.redirects}")
    if metrics.errors is not None:
        lines.append(f"Errors: {metrics.errors}")

    return "\n".join(lines)

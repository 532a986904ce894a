from fastapi import APIRouter, Depends, status

from app.features.audit.schemas.audit import AuditIn
from app.features.audit.services.audit_service import AuditService, get_audit_service
from app.platform.exceptions import ValidationError
from app.platform.logger import get_logger
from app.platform.response import api_response
from app.platform.utils.url_validator import validate_url

logger = get_logger(__name__)

router = APIRouter(prefix="/audit", tags=["audit"])


@router.post("/run")
def run_audit(audit_in: AuditIn, service: AuditService = Depends(get_audit_service)):
    """Measure, grade and score a single storefront URL."""
    is_valid, url, error_message = validate_url(audit_in.url)
    if not is_valid:
        raise ValidationError(f"Invalid URL: {error_message}")

    audit = service.run(audit_in, url)

    return api_response(
        data=audit.model_dump(by_alias=True, mode="json"),
        message="Website audited",
        status_code=status.HTTP_200_OK,
    )

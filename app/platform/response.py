from typing import Any, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def api_response(
    *,
    data: Optional[Any] = None,
    message: Optional[str] = None,
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    """
    Single source of truth for ALL API responses.

    Success bodies look like ``{"success": true, "message": ..., **data}``.
    Error bodies look like ``{"success": false, "error": message, **data}``.
    The payload keys are merged into the envelope so clients can read
    ``body["screenshots"]`` or ``body["metadata"]`` directly.
    """
    success = status_code < 400
    payload = jsonable_encoder(data) if data is not None else {}

    content = {"success": success}
    if success:
        if message:
            content["message"] = message
    else:
        content["error"] = message or "Error"
    content.update(payload)

    return JSONResponse(status_code=status_code, content=content)
